"""
Tool models: the declarative description of one managed CLI tool.

Everything the engine does to a tool is driven by a ``ToolConfig``:
which argv proves it is installed, how to install/uninstall/update it
on each platform, and how it reports a newer release.

On disk the fields are camelCase (``versionCheck``, ``packageName``);
in Python they are snake_case.  Both spellings are accepted on input.
"""

from __future__ import annotations

import sys
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Platform(StrEnum):
    """Operating systems a tool can be configured for."""

    WINDOWS = "windows"
    MACOS = "macos"
    LINUX = "linux"


def current_platform() -> Platform:
    """Map ``sys.platform`` onto the three supported platforms."""
    if sys.platform in ("win32", "cygwin"):
        return Platform.WINDOWS
    if sys.platform == "darwin":
        return Platform.MACOS
    return Platform.LINUX


class PackageManager(StrEnum):
    """Install methods the engine knows how to synthesize commands for."""

    NPM = "npm"
    BREW = "brew"
    PIP = "pip"
    APT = "apt"
    YUM = "yum"
    DNF = "dnf"
    PACMAN = "pacman"
    WINGET = "winget"
    CHOCO = "choco"
    SCOOP = "scoop"
    CARGO = "cargo"
    GO = "go"
    SCRIPT = "script"


_MODEL_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


# ── Install method ──────────────────────────────────────────────


class InstallMethod(BaseModel):
    """How to get a tool onto one platform.

    ``method`` is kept as a plain string so a typo in one entry does not
    make the whole registry unreadable; it fails with ``NotSupported``
    only when a command has to be built from it.
    """

    model_config = _MODEL_CONFIG

    method: str
    command: list[str] | None = None        # explicit argv, run verbatim
    url: str | None = None                  # script installers
    package_name: str | None = Field(default=None, alias="packageName")

    @property
    def package_manager(self) -> PackageManager | None:
        """The known package manager for ``method``, or None."""
        try:
            return PackageManager(self.method.strip().lower())
        except ValueError:
            return None

    def resolved_package_name(self) -> str | None:
        """``packageName``, else the last element of the explicit command."""
        if self.package_name:
            return self.package_name
        if self.command:
            return self.command[-1]
        return None


class ConfigField(BaseModel):
    """A user-editable option or secret (UI metadata only)."""

    model_config = _MODEL_CONFIG

    field_type: str = Field(default="string", alias="fieldType")
    secret: bool | None = None
    required: bool | None = None
    description: str = ""
    default: Any = None
    values: list[str] | None = None


# ── Tool config ─────────────────────────────────────────────────


def _broadcast_argv(value: Any) -> Any:
    """Accept the legacy flat argv list and spread it over every platform."""
    if value is None:
        return None
    if isinstance(value, (list, tuple)):
        return {p.value: [str(a) for a in value] for p in Platform}
    return value


class ToolConfig(BaseModel):
    """One tool in the registry."""

    model_config = _MODEL_CONFIG

    id: str
    name: str
    description: str = ""
    website: str = ""
    command: str

    version_check: dict[Platform, list[str]] = Field(alias="versionCheck")
    update_check: dict[Platform, list[str]] | None = Field(
        default=None, alias="updateCheck",
    )
    self_update: dict[Platform, list[str]] | None = Field(
        default=None, alias="selfUpdate",
    )

    install: dict[Platform, InstallMethod] = Field(default_factory=dict)
    uninstall: dict[Platform, InstallMethod] | None = None
    update: dict[Platform, InstallMethod] | None = None

    config_schema: dict[str, ConfigField] | None = Field(
        default=None, alias="configSchema",
    )

    @field_validator("version_check", "update_check", "self_update", mode="before")
    @classmethod
    def _accept_legacy_argv(cls, value: Any) -> Any:
        return _broadcast_argv(value)

    # ── Per-platform lookups ────────────────────────────────────

    def version_check_for(self, platform: Platform) -> list[str] | None:
        return self.version_check.get(platform)

    def update_check_for(self, platform: Platform) -> list[str] | None:
        if not self.update_check:
            return None
        argv = self.update_check.get(platform)
        return argv or None

    def self_update_for(self, platform: Platform) -> list[str] | None:
        if not self.self_update:
            return None
        return self.self_update.get(platform) or None

    def install_method_for(self, platform: Platform) -> InstallMethod | None:
        return self.install.get(platform)

    def uninstall_method_for(self, platform: Platform) -> InstallMethod | None:
        """Explicit uninstall entry, else the install entry."""
        if self.uninstall and platform in self.uninstall:
            return self.uninstall[platform]
        return self.install.get(platform)

    def update_method_for(self, platform: Platform) -> InstallMethod | None:
        """Explicit update entry, else the install entry."""
        if self.update and platform in self.update:
            return self.update[platform]
        return self.install.get(platform)

    def to_json(self) -> dict[str, Any]:
        """Serialize with on-disk (camelCase) keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class ToolsConfig(BaseModel):
    """The ``tools.json`` document."""

    model_config = _MODEL_CONFIG

    version: str = "1.0"
    tools: list[ToolConfig] = Field(default_factory=list)

    @field_validator("tools", mode="before")
    @classmethod
    def _accept_null_tools(cls, value: Any) -> Any:
        return [] if value is None else value
