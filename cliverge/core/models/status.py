"""
Status and version models: what the engine knows about a tool right now.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field

from cliverge.core.models.tool import ToolConfig


def _now() -> datetime:
    return datetime.now(UTC)


class StatusKind(StrEnum):
    UNKNOWN = "unknown"
    NOT_INSTALLED = "not_installed"
    INSTALLED = "installed"
    ERROR = "error"


class ToolStatus(BaseModel):
    """Installation state of one tool.

    Closed variant keyed by ``state``: ``version`` is set only for
    ``installed`` and ``message`` only for ``error``.  Build instances
    through the classmethods rather than the constructor.
    """

    model_config = ConfigDict(frozen=True)

    state: StatusKind = StatusKind.UNKNOWN
    version: str | None = None
    message: str | None = None

    @classmethod
    def unknown(cls) -> ToolStatus:
        return cls(state=StatusKind.UNKNOWN)

    @classmethod
    def not_installed(cls) -> ToolStatus:
        return cls(state=StatusKind.NOT_INSTALLED)

    @classmethod
    def installed(cls, version: str) -> ToolStatus:
        return cls(state=StatusKind.INSTALLED, version=version)

    @classmethod
    def error(cls, message: str) -> ToolStatus:
        return cls(state=StatusKind.ERROR, message=message)

    @property
    def is_installed(self) -> bool:
        return self.state == StatusKind.INSTALLED

    @property
    def is_unknown(self) -> bool:
        return self.state == StatusKind.UNKNOWN

    def label(self) -> str:
        """Short human-readable form for listings."""
        if self.state == StatusKind.INSTALLED:
            return f"installed ({self.version})"
        if self.state == StatusKind.ERROR:
            return f"error: {self.message}"
        return self.state.value.replace("_", " ")


class VersionCheckStrategy(StrEnum):
    """How the latest available version is determined."""

    AUTO = "auto"
    SELF_CHECK = "self-check"
    PACKAGE_MANAGER = "package-manager"
    LOCAL_DATABASE = "local-database"


class VersionInfo(BaseModel):
    """Result of a version check."""

    model_config = ConfigDict(populate_by_name=True)

    current: str | None = None
    latest: str | None = None
    update_available: bool = Field(default=False, alias="updateAvailable")
    check_method: str = Field(alias="checkMethod")       # provenance tag
    last_checked: datetime = Field(default_factory=_now, alias="lastChecked")


class ToolInfo(BaseModel):
    """A registry entry paired with its last known status."""

    tool: ToolConfig
    status: ToolStatus = Field(default_factory=ToolStatus.unknown)

    @property
    def id(self) -> str:
        return self.tool.id
