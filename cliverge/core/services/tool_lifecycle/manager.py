"""
Tool manager: detect, install, uninstall, update, execute, get help.

Turns a tool id from the registry into subprocess invocations and
keeps an in-memory status cache for the session.  This is the only
component that mutates the status caches; front ends read through
the accessors below.

Design notes:
    - Status detection is "did the version probe exit 0".  A non-zero
      exit or a missing executable is ``NotInstalled``, never an error.
    - The in-memory status cache is cleared explicitly (after installs,
      uninstalls and updates), never by time.  The persisted cache store,
      when attached, mirrors every detection result.
    - One lock guards the status map.  It is never held across a
      subprocess spawn or disk write.
    - install/uninstall/update on the same tool id are serialized by a
      per-id lock taken without blocking: a second overlapping call is
      rejected with ``OperationInProgressError`` instead of queueing.
    - A successful install/update is never taken as proof of
      ``Installed``: the status is invalidated and re-detected on demand.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from cliverge.core.config.loader import ConfigManager
from cliverge.core.errors import (
    ExecutionFailedError,
    InstallationFailedError,
    NotSupportedError,
    OperationInProgressError,
    ToolError,
    ToolNotFoundError,
    UpdateFailedError,
)
from cliverge.core.models.progress import OperationKind
from cliverge.core.models.status import ToolInfo, ToolStatus, VersionCheckStrategy, VersionInfo
from cliverge.core.models.tool import InstallMethod, Platform, ToolConfig, current_platform
from cliverge.core.persistence.tool_cache import ToolCacheStore
from cliverge.core.services.tool_lifecycle.domain.commands import (
    build_method_command,
    build_pinned_update_command,
    derive_self_update_command,
)
from cliverge.core.services.tool_lifecycle.domain.versions import (
    UNKNOWN_VERSION,
    parse_version_string,
)
from cliverge.core.services.tool_lifecycle.execution.subprocess_runner import (
    CommandResult,
    CommandRunner,
    is_root,
    run_command,
)
from cliverge.core.services.tool_lifecycle.version_resolver import VersionResolver

logger = logging.getLogger(__name__)

PLATFORM_NOT_SUPPORTED = "platform not supported"

# Tried in order until one prints something.
HELP_ARGS: tuple[str, ...] = ("--help", "help", "-h")


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of install/uninstall/update.

    ``changed`` is False for no-ops (already installed / not installed).
    ``command`` is the argv that ran, if any.
    """

    tool_id: str
    operation: OperationKind
    changed: bool
    command: list[str] | None = None
    stdout: str = ""
    message: str = ""


class ToolManager:
    """Lifecycle operations over the tools in one registry."""

    def __init__(
        self,
        config: ConfigManager,
        *,
        cache_store: ToolCacheStore | None = None,
        version_resolver: VersionResolver | None = None,
        runner: CommandRunner = run_command,
        platform: Platform | None = None,
        running_as_root: bool | None = None,
    ) -> None:
        self.config = config
        self.cache_store = cache_store
        self.platform = platform or current_platform()
        self._run = runner
        self._is_root = is_root() if running_as_root is None else running_as_root
        self.version_resolver = version_resolver or VersionResolver(
            runner=runner, platform=self.platform,
        )

        self._status_lock = threading.Lock()
        self._status_cache: dict[str, ToolStatus] = {}

        self._op_locks: dict[str, threading.Lock] = {}
        self._op_locks_guard = threading.Lock()

    # ── Status cache accessors ──────────────────────────────────

    def get_cached_status(self, tool_id: str) -> ToolStatus | None:
        with self._status_lock:
            return self._status_cache.get(tool_id)

    def set_cached_status(self, tool_id: str, status: ToolStatus) -> None:
        with self._status_lock:
            self._status_cache[tool_id] = status

    def clear_status_cache(self, tool_id: str | None = None) -> None:
        """Forget one tool's status, or every tool's when ``tool_id`` is None."""
        with self._status_lock:
            if tool_id is None:
                self._status_cache.clear()
            else:
                self._status_cache.pop(tool_id, None)

    def _record_status(self, tool_id: str, status: ToolStatus) -> None:
        self.set_cached_status(tool_id, status)
        if self.cache_store is not None:
            self.cache_store.set_status(tool_id, status)

    def _invalidate(self, tool_id: str) -> None:
        self.clear_status_cache(tool_id)
        if self.cache_store is not None:
            self.cache_store.invalidate(tool_id)
            self.cache_store.save_async()

    # ── Per-tool operation lock ─────────────────────────────────

    def _get_op_lock(self, tool_id: str) -> threading.Lock:
        with self._op_locks_guard:
            lock = self._op_locks.get(tool_id)
            if lock is None:
                lock = threading.Lock()
                self._op_locks[tool_id] = lock
            return lock

    @contextmanager
    def _exclusive(self, tool_id: str, operation: OperationKind) -> Iterator[None]:
        lock = self._get_op_lock(tool_id)
        if not lock.acquire(blocking=False):
            raise OperationInProgressError(
                f"Another operation is already running for '{tool_id}'",
                details=f"requested: {operation.value}",
            )
        try:
            yield
        finally:
            lock.release()

    def is_busy(self, tool_id: str) -> bool:
        """True while an install/uninstall/update holds the tool's lock."""
        return self._get_op_lock(tool_id).locked()

    # ── Detection ───────────────────────────────────────────────

    def _detect(self, tool: ToolConfig) -> ToolStatus:
        argv = tool.version_check_for(self.platform)
        if argv is None:
            raise NotSupportedError(
                f"{tool.name}: {PLATFORM_NOT_SUPPORTED}",
                details=f"no versionCheck for {self.platform}",
            )

        try:
            result = self._run([tool.command] + argv)
        except ExecutionFailedError as e:
            logger.debug("%s not detected: %s", tool.id, e)
            return ToolStatus.not_installed()

        if not result.ok:
            return ToolStatus.not_installed()

        version = parse_version_string(result.stdout)
        if version == UNKNOWN_VERSION and result.stderr:
            version = parse_version_string(result.stderr)
        return ToolStatus.installed(version)

    def probe_status(self, tool_id: str) -> ToolStatus:
        """Run the version probe without recording the result."""
        return self._detect(self.config.get(tool_id))

    def check_status(self, tool_id: str) -> ToolStatus:
        """Run the version probe now and record the result.

        Raises:
            ToolNotFoundError: Unknown tool id.
            NotSupportedError: No version probe for this platform.
        """
        tool = self.config.get(tool_id)
        status = self._detect(tool)
        self._record_status(tool_id, status)
        logger.debug("Status of %s: %s", tool_id, status.label())
        return status

    def get_status(self, tool_id: str) -> ToolStatus:
        """Cached status if known, else a fresh check.

        An unsupported platform is folded into ``Error`` so listings can
        show every tool.
        """
        cached = self.get_cached_status(tool_id)
        if cached is not None:
            return cached

        if self.cache_store is not None:
            persisted = self.cache_store.get_status(tool_id)
            if persisted is not None:
                self.set_cached_status(tool_id, persisted)
                return persisted

        try:
            return self.check_status(tool_id)
        except NotSupportedError:
            status = ToolStatus.error(PLATFORM_NOT_SUPPORTED)
            self._record_status(tool_id, status)
            return status

    def refresh_all_status(self) -> dict[str, ToolStatus]:
        """Re-check every tool sequentially. Per-tool failures become ``Error``."""
        results: dict[str, ToolStatus] = {}
        for tool_id in self.config.ids():
            try:
                results[tool_id] = self.check_status(tool_id)
            except NotSupportedError:
                status = ToolStatus.error(PLATFORM_NOT_SUPPORTED)
                self._record_status(tool_id, status)
                results[tool_id] = status
            except ToolError as e:
                logger.warning("Status check failed for %s: %s", tool_id, e)
                status = ToolStatus.error(e.message)
                self._record_status(tool_id, status)
                results[tool_id] = status
        return results

    def list_tools(self) -> list[ToolInfo]:
        """Every registry tool with its last known status. Spawns nothing."""
        infos = []
        for tool in self.config.list_tools():
            status = self.get_cached_status(tool.id)
            if status is None and self.cache_store is not None:
                status = self.cache_store.get_status(tool.id)
            infos.append(ToolInfo(tool=tool, status=status or ToolStatus.unknown()))
        return infos

    def get_tool(self, tool_id: str) -> ToolInfo:
        tool = self.config.get(tool_id)
        return ToolInfo(tool=tool, status=self.get_status(tool_id))

    # ── Install / uninstall ─────────────────────────────────────

    def _method_for(self, tool: ToolConfig, operation: OperationKind) -> InstallMethod:
        if operation == OperationKind.INSTALL:
            method = tool.install_method_for(self.platform)
        elif operation == OperationKind.UNINSTALL:
            method = tool.uninstall_method_for(self.platform)
        elif operation == OperationKind.UPDATE:
            method = tool.update_method_for(self.platform)
        else:
            raise NotSupportedError(f"No command for operation '{operation.value}'")

        if method is None:
            raise NotSupportedError(
                f"{tool.name}: {PLATFORM_NOT_SUPPORTED}",
                details=f"no {operation.value} method for {self.platform}",
            )
        return method

    def resolve_command(self, operation: OperationKind, tool_id: str) -> list[str]:
        """The package-manager argv ``operation`` would run (no self-update)."""
        tool = self.config.get(tool_id)
        method = self._method_for(tool, operation)
        return build_method_command(
            operation.value, method, self.platform, is_root=self._is_root,
        )

    def install(self, tool_id: str) -> LifecycleResult:
        """Install a tool. A no-op when it is already installed.

        Raises:
            ToolNotFoundError: Unknown tool id.
            NotSupportedError: Nothing to run on this platform.
            ConfigError: The install method cannot form a command.
            InstallationFailedError: The install command failed.
            OperationInProgressError: Another operation holds this tool.
        """
        tool = self.config.get(tool_id)
        with self._exclusive(tool_id, OperationKind.INSTALL):
            method = self._method_for(tool, OperationKind.INSTALL)

            if self.check_status(tool_id).is_installed:
                logger.info("%s is already installed", tool.name)
                return LifecycleResult(
                    tool_id, OperationKind.INSTALL, changed=False,
                    message=f"{tool.name} is already installed",
                )

            argv = build_method_command("install", method, self.platform, is_root=self._is_root)
            logger.info("Installing %s: %s", tool.name, " ".join(argv))
            result = self._run_checked(argv, InstallationFailedError, f"Failed to install {tool.name}")
            self._invalidate(tool_id)
            return LifecycleResult(
                tool_id, OperationKind.INSTALL, changed=True, command=argv,
                stdout=result.stdout, message=f"{tool.name} installed",
            )

    def uninstall(self, tool_id: str) -> LifecycleResult:
        """Uninstall a tool. A no-op when it is not installed.

        Raises:
            ToolNotFoundError: Unknown tool id.
            NotSupportedError: Nothing to run on this platform.
            InstallationFailedError: The uninstall command failed.
            OperationInProgressError: Another operation holds this tool.
        """
        tool = self.config.get(tool_id)
        with self._exclusive(tool_id, OperationKind.UNINSTALL):
            method = self._method_for(tool, OperationKind.UNINSTALL)

            if not self.check_status(tool_id).is_installed:
                logger.info("%s is not installed", tool.name)
                return LifecycleResult(
                    tool_id, OperationKind.UNINSTALL, changed=False,
                    message=f"{tool.name} is not installed",
                )

            argv = build_method_command("uninstall", method, self.platform, is_root=self._is_root)
            logger.info("Uninstalling %s: %s", tool.name, " ".join(argv))
            result = self._run_checked(argv, InstallationFailedError, f"Failed to uninstall {tool.name}")
            self._invalidate(tool_id)
            return LifecycleResult(
                tool_id, OperationKind.UNINSTALL, changed=True, command=argv,
                stdout=result.stdout, message=f"{tool.name} uninstalled",
            )

    # ── Update ──────────────────────────────────────────────────

    def _self_update_command(self, tool: ToolConfig) -> list[str] | None:
        explicit = tool.self_update_for(self.platform)
        if explicit:
            return explicit
        return derive_self_update_command(tool.update_check_for(self.platform))

    def update(self, tool_id: str, version: str | None = None) -> LifecycleResult:
        """Update an installed tool.

        Tries the tool's own updater first (unless a specific ``version``
        is requested), then the package-manager update command.

        Raises:
            ToolNotFoundError: Unknown tool id, or the tool is not installed.
            NotSupportedError: No update path on this platform.
            UpdateFailedError: The package-manager update failed.
            OperationInProgressError: Another operation holds this tool.
        """
        tool = self.config.get(tool_id)
        with self._exclusive(tool_id, OperationKind.UPDATE):
            if not self.check_status(tool_id).is_installed:
                raise ToolNotFoundError(f"{tool.name} is not installed")

            if version is None:
                self_cmd = self._self_update_command(tool)
                if self_cmd:
                    done = self._try_self_update(tool, self_cmd)
                    if done is not None:
                        self._invalidate(tool_id)
                        return done

            method = self._method_for(tool, OperationKind.UPDATE)
            if version is None:
                argv = build_method_command("update", method, self.platform, is_root=self._is_root)
            else:
                argv = build_pinned_update_command(
                    method, self.platform, version, is_root=self._is_root,
                )

            logger.info("Updating %s: %s", tool.name, " ".join(argv))
            result = self._run_checked(argv, UpdateFailedError, f"Failed to update {tool.name}")
            self._invalidate(tool_id)
            return LifecycleResult(
                tool_id, OperationKind.UPDATE, changed=True, command=argv,
                stdout=result.stdout, message=f"{tool.name} updated",
            )

    def _try_self_update(self, tool: ToolConfig, argv: list[str]) -> LifecycleResult | None:
        """Run the tool's own updater. None means "fall back to the package manager"."""
        logger.info("Self-updating %s: %s", tool.name, " ".join(argv))
        try:
            result = self._run(argv)
        except ExecutionFailedError as e:
            logger.warning("Self-update of %s could not start, falling back: %s", tool.id, e)
            return None
        if not result.ok:
            logger.warning(
                "Self-update of %s exited %d, falling back to package manager",
                tool.id, result.returncode,
            )
            return None
        return LifecycleResult(
            tool.id, OperationKind.UPDATE, changed=True, command=argv,
            stdout=result.stdout, message=f"{tool.name} updated",
        )

    def _run_checked(
        self,
        argv: list[str],
        error_type: type[ExecutionFailedError],
        message: str,
    ) -> CommandResult:
        try:
            result = self._run(argv)
        except ExecutionFailedError as e:
            raise error_type(message, details=e.message) from e
        if not result.ok:
            raise error_type(
                message,
                returncode=result.returncode,
                stdout=result.stdout,
                stderr=result.stderr,
            )
        return result

    # ── Execute / help ──────────────────────────────────────────

    def execute(self, tool_id: str, args: list[str]) -> CommandResult:
        """Run the tool with ``args`` and return its output verbatim.

        Raises:
            ToolNotFoundError: Unknown tool id, or the tool is not installed.
            ExecutionFailedError: The tool could not be started.
        """
        tool = self.config.get(tool_id)
        if not self.get_status(tool_id).is_installed:
            raise ToolNotFoundError(f"{tool.name} is not installed")
        return self._run([tool.command] + list(args))

    def get_help(self, tool_id: str) -> str:
        """Help text from the cache, else from ``--help`` / ``help`` / ``-h``.

        Raises:
            ToolNotFoundError: Unknown tool id.
            ExecutionFailedError: No help flag produced output.
        """
        tool = self.config.get(tool_id)
        if self.cache_store is not None:
            cached = self.cache_store.get_help(tool_id)
            if cached is not None:
                return cached

        for arg in HELP_ARGS:
            try:
                result = self._run([tool.command, arg])
            except ExecutionFailedError as e:
                logger.debug("%s %s failed: %s", tool.command, arg, e)
                continue
            if result.ok and result.stdout.strip():
                if self.cache_store is not None:
                    self.cache_store.set_help(tool_id, result.stdout)
                    self.cache_store.save_async()
                return result.stdout

        raise ExecutionFailedError(f"Could not get help information for {tool.name}")

    # ── Versions ────────────────────────────────────────────────

    def check_version_updates(
        self,
        tool_id: str,
        strategy: VersionCheckStrategy = VersionCheckStrategy.AUTO,
    ) -> VersionInfo:
        tool = self.config.get(tool_id)
        return self.version_resolver.check(tool, strategy)

    def has_updates_available(self, tool_id: str) -> bool:
        return self.check_version_updates(tool_id).update_available

    def check_all_updates(self) -> list[tuple[str, bool]]:
        """``(tool_id, update_available)`` for every tool; failures report False."""
        results = []
        for tool_id in self.config.ids():
            try:
                available = self.has_updates_available(tool_id)
            except ToolError as e:
                logger.warning("Update check failed for %s: %s", tool_id, e)
                available = False
            results.append((tool_id, available))
        return results
