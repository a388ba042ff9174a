"""
Version resolver: installed vs. latest version, by strategy.

Strategies:
    self-check        the tool's own update probe (``updateCheck`` argv)
    package-manager   the install method's registry (npm, brew, pip, cargo)
    local-database    the offline ``version_database.json`` table
    auto              self-check -> package-manager -> local-database

Each strategy either returns a ``VersionInfo`` or raises a ``ToolError``.
``auto`` treats any failure as "try the next one" and logs it; the
local database never fails, so ``auto`` always produces a result.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from cliverge.core.errors import (
    ExecutionFailedError,
    NotSupportedError,
    ParseError,
    ToolError,
)
from cliverge.core.models.status import VersionCheckStrategy, VersionInfo
from cliverge.core.models.tool import PackageManager, Platform, ToolConfig, current_platform
from cliverge.core.persistence.version_db import VersionDatabase
from cliverge.core.services.tool_lifecycle.domain.commands import build_latest_version_query
from cliverge.core.services.tool_lifecycle.domain.versions import (
    CURRENT_VERSION,
    UNKNOWN_VERSION,
    is_newer,
    parse_brew_info,
    parse_cargo_search,
    parse_latest_version_from_output,
    parse_npm_view,
    parse_pip_index,
    parse_version_string,
)
from cliverge.core.services.tool_lifecycle.execution.subprocess_runner import (
    CommandRunner,
    run_command,
)

logger = logging.getLogger(__name__)

SELF_CHECK = "self-check"
LOCAL_DATABASE = "local-database"

_QUERY_PARSERS = {
    PackageManager.NPM: parse_npm_view,
    PackageManager.BREW: parse_brew_info,
    PackageManager.PIP: parse_pip_index,
    PackageManager.CARGO: parse_cargo_search,
}


class VersionResolver:
    """Determines current and latest versions for registry tools."""

    def __init__(
        self,
        *,
        runner: CommandRunner = run_command,
        version_db: VersionDatabase | None = None,
        platform: Platform | None = None,
    ) -> None:
        self._run = runner
        self.version_db = version_db
        self.platform = platform or current_platform()

    # ── Current version ─────────────────────────────────────────

    def get_current_version(self, tool: ToolConfig) -> str:
        """Run the version probe and extract the installed version.

        Raises:
            NotSupportedError: No version probe for this platform.
            ExecutionFailedError: The probe could not run or exited non-zero.
        """
        argv = tool.version_check_for(self.platform)
        if argv is None:
            raise NotSupportedError(f"{tool.name} is not supported on {self.platform}")

        result = self._run([tool.command] + argv)
        if not result.ok:
            raise ExecutionFailedError(
                f"Version check failed for {tool.name}",
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        version = parse_version_string(result.stdout)
        if version == UNKNOWN_VERSION and result.stderr:
            version = parse_version_string(result.stderr)
        return version

    def _current_or_none(self, tool: ToolConfig) -> str | None:
        try:
            return self.get_current_version(tool)
        except ToolError as e:
            logger.debug("No current version for %s: %s", tool.id, e)
            return None

    # ── Entry point ─────────────────────────────────────────────

    def check(
        self,
        tool: ToolConfig,
        strategy: VersionCheckStrategy = VersionCheckStrategy.AUTO,
    ) -> VersionInfo:
        """Resolve versions with ``strategy``."""
        if strategy == VersionCheckStrategy.SELF_CHECK:
            return self.check_self(tool)
        if strategy == VersionCheckStrategy.PACKAGE_MANAGER:
            return self.check_package_manager(tool)
        if strategy == VersionCheckStrategy.LOCAL_DATABASE:
            return self.check_local_database(tool)
        return self.check_auto(tool)

    def check_auto(self, tool: ToolConfig) -> VersionInfo:
        if tool.update_check_for(self.platform):
            try:
                return self.check_self(tool)
            except ToolError as e:
                logger.warning("Self-check failed for %s, trying package manager: %s", tool.id, e)

        try:
            return self.check_package_manager(tool)
        except ToolError as e:
            logger.warning("Package-manager check failed for %s, using local database: %s", tool.id, e)

        return self.check_local_database(tool)

    # ── Strategies ──────────────────────────────────────────────

    def check_self(self, tool: ToolConfig) -> VersionInfo:
        """Ask the tool itself whether an update exists.

        Raises:
            NotSupportedError: No ``updateCheck`` for this platform.
            ExecutionFailedError: The probe could not run.
            ParseError: The probe output names no version.
        """
        argv = tool.update_check_for(self.platform)
        if not argv:
            raise NotSupportedError(f"{tool.name} has no self-update check")

        current = self.get_current_version(tool)
        result = self._run(argv)
        output = result.output
        if not result.ok and not output.strip():
            raise ExecutionFailedError(
                f"Update check failed for {tool.name}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        latest = parse_latest_version_from_output(output)
        if latest == CURRENT_VERSION:
            latest = current
        elif latest == UNKNOWN_VERSION:
            raise ParseError(f"Could not read latest version from {tool.name} update check")

        return self._info(current, latest, SELF_CHECK)

    def check_package_manager(self, tool: ToolConfig) -> VersionInfo:
        """Query the install method's registry for the newest version.

        Raises:
            NotSupportedError: No install method, or its manager has no query.
            ExecutionFailedError: The query could not run or exited non-zero.
            ParseError: The query output names no version.
        """
        method = tool.install_method_for(self.platform)
        if method is None:
            raise NotSupportedError(f"{tool.name} has no install method on {self.platform}")

        manager, argv = build_latest_version_query(method)
        current = self.get_current_version(tool)

        result = self._run(argv)
        if not result.ok:
            raise ExecutionFailedError(
                f"{manager.value} version query failed for {tool.name}",
                returncode=result.returncode,
                stderr=result.stderr,
            )

        latest = _QUERY_PARSERS[manager](result.stdout)
        if not latest:
            raise ParseError(f"Could not parse {manager.value} output for {tool.name}")

        return self._info(current, latest, f"package-manager-{manager.value}")

    def check_local_database(self, tool: ToolConfig) -> VersionInfo:
        """Look up the offline table. Never raises for a missing entry."""
        current = self._current_or_none(tool)
        latest = self.version_db.get_latest_version(tool.id) if self.version_db else None
        return self._info(current, latest, LOCAL_DATABASE)

    @staticmethod
    def _info(current: str | None, latest: str | None, method: str) -> VersionInfo:
        return VersionInfo(
            current=current,
            latest=latest,
            update_available=is_newer(latest, current),
            check_method=method,
            last_checked=datetime.now(UTC),
        )
