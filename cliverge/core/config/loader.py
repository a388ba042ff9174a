"""
Configuration loader: the tool registry and app settings.

Reads ``settings.json`` and ``tools.json`` from the config directory,
validates them against Pydantic schemas, and keeps the typed documents
in memory for the lifetime of the manager.  Writes go through the
atomic JSON helper so a crash never leaves a truncated file.

Older registries stored ``versionCheck`` / ``updateCheck`` as a single
argv list.  Those are normalized to per-platform maps by the model
validators, so everything past this module sees one shape.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from cliverge.core.context import get_config_dir
from cliverge.core.data import load_default_catalog
from cliverge.core.errors import ConfigError, ToolNotFoundError
from cliverge.core.models.settings import AppSettings
from cliverge.core.models.tool import ToolConfig, ToolsConfig
from cliverge.core.persistence.json_file import read_json, write_json_atomic

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"
TOOLS_FILE = "tools.json"


def _describe_validation_error(path: Path, error: ValidationError) -> str:
    """Name the first offending field, e.g. ``tools.0.command: Field required``."""
    first = error.errors()[0]
    loc = ".".join(str(p) for p in first.get("loc", ()))
    return f"Invalid {path.name}: {loc}: {first.get('msg', 'invalid value')}"


def load_settings(path: Path) -> AppSettings:
    """Load app settings; a missing file yields defaults.

    Raises:
        ConfigError: The file is malformed.
    """
    raw = read_json(path)
    if raw is None:
        logger.debug("No settings at %s, using defaults", path)
        return AppSettings()
    try:
        return AppSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(_describe_validation_error(path, e)) from e


def load_tools(path: Path) -> ToolsConfig:
    """Load the tool registry; a missing file yields the bundled catalog.

    Raises:
        ConfigError: The file is malformed or names a tool twice.
    """
    raw = read_json(path)
    if raw is None:
        logger.info("No registry at %s, seeding from default catalog", path)
        return load_default_catalog()

    # Pre-versioned registries were a bare list of tools.
    if isinstance(raw, list):
        raw = {"version": "1.0", "tools": raw}

    try:
        tools = ToolsConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(_describe_validation_error(path, e)) from e

    seen: set[str] = set()
    for tool in tools.tools:
        if tool.id in seen:
            raise ConfigError(f"Duplicate tool id '{tool.id}' in {path}")
        seen.add(tool.id)
    return tools


class ConfigManager:
    """Owns the settings and tool registry documents for one config directory.

    All accessors are thread-safe.  ``list_tools()`` and ``get()`` hand out the
    stored (immutable-by-convention) models; mutate through ``add`` /
    ``update`` / ``remove`` so the registry stays consistent.
    """

    def __init__(
        self,
        config_dir: Path | None = None,
        *,
        settings: AppSettings | None = None,
        tools: ToolsConfig | None = None,
    ) -> None:
        self.config_dir = Path(config_dir) if config_dir else get_config_dir()
        self._settings = settings or AppSettings()
        self._tools = tools or ToolsConfig()
        self._lock = threading.RLock()

    @property
    def settings_path(self) -> Path:
        return self.config_dir / SETTINGS_FILE

    @property
    def tools_path(self) -> Path:
        name = self._settings.paths.tools_config_path or TOOLS_FILE
        path = Path(name).expanduser()
        return path if path.is_absolute() else self.config_dir / path

    # ── Load / save ─────────────────────────────────────────────

    @classmethod
    def load(cls, config_dir: Path | None = None) -> ConfigManager:
        """Create the directory if needed and read both documents."""
        manager = cls(config_dir)
        manager.reload()
        return manager

    def reload(self) -> None:
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.warning("Cannot create config dir %s: %s", self.config_dir, e)

        settings = load_settings(self.settings_path)
        with self._lock:
            self._settings = settings
        tools = load_tools(self.tools_path)
        with self._lock:
            self._tools = tools
        logger.debug("Loaded %d tools from %s", len(tools.tools), self.config_dir)

    def save(self) -> None:
        """Persist settings and registry (each atomically)."""
        with self._lock:
            settings = self._settings.model_dump(mode="json", by_alias=True)
            tools = self._tools.model_dump(mode="json", by_alias=True, exclude_none=True)
        write_json_atomic(self.settings_path, settings, prefix=".settings_")
        write_json_atomic(self.tools_path, tools, prefix=".tools_")

    # ── Settings ────────────────────────────────────────────────

    @property
    def settings(self) -> AppSettings:
        with self._lock:
            return self._settings

    def update_settings(self, settings: AppSettings) -> None:
        with self._lock:
            self._settings = settings

    # ── Registry CRUD ───────────────────────────────────────────

    def list_tools(self) -> list[ToolConfig]:
        with self._lock:
            return list(self._tools.tools)

    def ids(self) -> list[str]:
        with self._lock:
            return [t.id for t in self._tools.tools]

    def find(self, tool_id: str) -> ToolConfig | None:
        with self._lock:
            for tool in self._tools.tools:
                if tool.id == tool_id:
                    return tool
        return None

    def get(self, tool_id: str) -> ToolConfig:
        """Return the tool or raise ``ToolNotFoundError``."""
        tool = self.find(tool_id)
        if tool is None:
            raise ToolNotFoundError(f"Tool '{tool_id}' not found")
        return tool

    def add(self, tool: ToolConfig) -> None:
        with self._lock:
            if any(t.id == tool.id for t in self._tools.tools):
                raise ConfigError(f"Tool '{tool.id}' already exists")
            self._tools.tools.append(tool)
        logger.info("Added tool %s", tool.id)

    def update(self, tool_id: str, tool: ToolConfig) -> None:
        """Replace a tool's config. The new config may carry a new id."""
        with self._lock:
            for i, existing in enumerate(self._tools.tools):
                if existing.id == tool_id:
                    if tool.id != tool_id and any(
                        t.id == tool.id for t in self._tools.tools
                    ):
                        raise ConfigError(f"Tool '{tool.id}' already exists")
                    self._tools.tools[i] = tool
                    break
            else:
                raise ToolNotFoundError(f"Tool '{tool_id}' not found")
        logger.info("Updated tool %s", tool_id)

    def remove(self, tool_id: str) -> ToolConfig:
        with self._lock:
            for i, existing in enumerate(self._tools.tools):
                if existing.id == tool_id:
                    removed = self._tools.tools.pop(i)
                    break
            else:
                raise ToolNotFoundError(f"Tool '{tool_id}' not found")
        logger.info("Removed tool %s", tool_id)
        return removed
