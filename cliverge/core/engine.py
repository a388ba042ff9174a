"""
Engine wiring: build the registry, caches and manager for a config dir.

Front ends call ``open_engine()`` once at startup and pass the result
around; nothing else constructs the pieces by hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from cliverge.core.config.loader import ConfigManager
from cliverge.core.context import get_config_dir
from cliverge.core.errors import ToolError
from cliverge.core.persistence.tool_cache import ToolCacheStore, default_cache_path
from cliverge.core.persistence.version_db import VersionDatabase, default_version_db_path
from cliverge.core.services.tool_lifecycle.coordinator import BackgroundCoordinator
from cliverge.core.services.tool_lifecycle.execution.subprocess_runner import (
    CommandRunner,
    run_command,
)
from cliverge.core.services.tool_lifecycle.manager import ToolManager
from cliverge.core.services.tool_lifecycle.version_resolver import VersionResolver

logger = logging.getLogger(__name__)


@dataclass
class Engine:
    config: ConfigManager
    cache: ToolCacheStore
    version_db: VersionDatabase
    manager: ToolManager

    def coordinator(self, max_workers: int | None = None) -> BackgroundCoordinator:
        return BackgroundCoordinator(self.manager, self.cache, max_workers=max_workers)

    def version_db_is_stale(self) -> bool:
        max_age = self.config.settings.behavior.version_db_max_age_days
        return self.version_db.is_stale(max_age)

    def close(self) -> None:
        """Flush the cache to disk and stop its writer thread."""
        self.cache.close()
        try:
            self.cache.save()
        except ToolError as e:
            logger.warning("Could not save cache on exit: %s", e)


def open_engine(
    config_dir: Path | None = None,
    *,
    runner: CommandRunner = run_command,
) -> Engine:
    """Load everything under ``config_dir`` (default: the context dir).

    Raises:
        ConfigError: settings.json or tools.json is malformed.
    """
    config_dir = config_dir or get_config_dir()
    config = ConfigManager.load(config_dir)

    cache = ToolCacheStore(default_cache_path(config_dir))
    cache.load()

    db_path = default_version_db_path(config_dir)
    try:
        version_db = VersionDatabase.load(db_path)
    except ToolError as e:
        logger.warning("Ignoring unreadable version database: %s", e)
        version_db = VersionDatabase(db_path)

    resolver = VersionResolver(runner=runner, version_db=version_db)
    manager = ToolManager(
        config, cache_store=cache, version_resolver=resolver, runner=runner,
    )
    return Engine(config=config, cache=cache, version_db=version_db, manager=manager)
