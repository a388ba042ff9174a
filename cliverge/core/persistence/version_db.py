"""
Version database: offline table of latest known versions.

Used by the ``local-database`` strategy when neither the tool nor its
package manager can say what the newest release is.  Stored at
``<config_dir>/version_database.json``.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from cliverge.core.errors import ConfigError
from cliverge.core.persistence.json_file import read_json, write_json_atomic

logger = logging.getLogger(__name__)

VERSION_DB_FILE = "version_database.json"


def _now() -> datetime:
    return datetime.now(UTC)


class ToolVersionInfo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    latest_version: str = Field(alias="latestVersion")
    release_date: str | None = Field(default=None, alias="releaseDate")
    download_url: str | None = Field(default=None, alias="downloadUrl")
    changelog_url: str | None = Field(default=None, alias="changelogUrl")


class VersionDatabaseDocument(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    last_updated: datetime = Field(default_factory=_now, alias="lastUpdated")
    tools: dict[str, ToolVersionInfo] = Field(default_factory=dict)


def default_version_db_path(config_dir: Path) -> Path:
    return config_dir / VERSION_DB_FILE


class VersionDatabase:
    """Thread-safe wrapper around the version database document."""

    def __init__(self, path: Path, document: VersionDatabaseDocument | None = None) -> None:
        self.path = path
        self._doc = document or VersionDatabaseDocument()
        self._lock = threading.Lock()

    @classmethod
    def load(cls, path: Path) -> VersionDatabase:
        """Load from disk. A missing file yields an empty database.

        Raises:
            ConfigError: The file exists but is malformed.
        """
        raw = read_json(path)
        if raw is None:
            logger.debug("No version database at %s, starting empty", path)
            return cls(path)
        try:
            doc = VersionDatabaseDocument.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid version database {path}: {e}") from e
        return cls(path, doc)

    def save(self) -> None:
        with self._lock:
            data = self._doc.model_dump(mode="json", by_alias=True, exclude_none=True)
        write_json_atomic(self.path, data, prefix=".versiondb_")

    @property
    def last_updated(self) -> datetime:
        return self._doc.last_updated

    def get(self, tool_id: str) -> ToolVersionInfo | None:
        with self._lock:
            return self._doc.tools.get(tool_id)

    def get_latest_version(self, tool_id: str) -> str | None:
        info = self.get(tool_id)
        return info.latest_version if info else None

    def update_tool_version(self, tool_id: str, info: ToolVersionInfo) -> None:
        """Record a tool's latest version and bump ``last_updated``."""
        with self._lock:
            self._doc.tools[tool_id] = info
            self._doc.last_updated = _now()

    def is_stale(self, max_age_days: int, *, now: datetime | None = None) -> bool:
        """True when the table is more than ``max_age_days`` whole days old."""
        now = now or _now()
        last = self._doc.last_updated
        if last.tzinfo is None:
            last = last.replace(tzinfo=UTC)
        age = now - last
        return age.days > max_age_days
