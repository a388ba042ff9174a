"""
Background coordinator: parallel per-tool operations with progress events.

Fans status checks (and install/uninstall/update/help) out to a thread
pool, one task per tool, and reports through a single progress queue.
A UI thread drains the queue between frames and never blocks on a
subprocess.

Event lifecycle per task:

    pending  ->  in_progress  ->  completed | failed

Design decisions:
    - Every submitted task emits exactly one terminal event, unless the
      coordinator is shut down first.  After ``shutdown()`` late results
      are dropped: no events, no cache writes.
    - Results are written into the cache store by the task itself; the
      file save is handed to the store's background writer so disk I/O
      never stalls the next check.
    - No per-operation timeout.  A hung tool holds one worker until the
      process exits or the coordinator is shut down.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Callable, Iterator

from cliverge.core.errors import NotSupportedError, ToolError
from cliverge.core.models.progress import OperationKind, ProgressEvent, ProgressPhase
from cliverge.core.observability.logging_config import WORKER_THREAD_PREFIX
from cliverge.core.models.status import ToolStatus
from cliverge.core.persistence.tool_cache import ToolCacheStore
from cliverge.core.services.tool_lifecycle.domain.commands import display_command
from cliverge.core.services.tool_lifecycle.manager import PLATFORM_NOT_SUPPORTED, ToolManager

logger = logging.getLogger(__name__)

_IN_PROGRESS_MESSAGES = {
    OperationKind.STATUS: "Checking status...",
    OperationKind.INSTALL: "Installing...",
    OperationKind.UNINSTALL: "Uninstalling...",
    OperationKind.UPDATE: "Updating...",
    OperationKind.HELP: "Fetching help...",
}


class BackgroundCoordinator:
    """Runs tool operations on a worker pool and queues progress events."""

    def __init__(
        self,
        manager: ToolManager,
        cache_store: ToolCacheStore | None = None,
        *,
        max_workers: int | None = None,
    ) -> None:
        self.manager = manager
        self.cache_store = cache_store if cache_store is not None else manager.cache_store
        self.events: queue.Queue[ProgressEvent] = queue.Queue()

        workers = max_workers or min(32, (os.cpu_count() or 1) + 4)
        self._pool = ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix=WORKER_THREAD_PREFIX,
        )
        self._futures: list[Future] = []
        self._futures_lock = threading.Lock()
        self._aborted = threading.Event()

    @property
    def aborted(self) -> bool:
        return self._aborted.is_set()

    # ── Event plumbing ──────────────────────────────────────────

    def _emit(
        self,
        tool_id: str,
        operation: OperationKind,
        phase: ProgressPhase,
        message: str,
        command: str | None = None,
    ) -> None:
        if self._aborted.is_set():
            return
        tool = self.manager.config.find(tool_id)
        self.events.put(ProgressEvent(
            tool_id=tool_id,
            tool_name=tool.name if tool else tool_id,
            operation=operation,
            phase=phase,
            message=message,
            command=command,
        ))

    def drain(self) -> list[ProgressEvent]:
        """Every queued event, without blocking."""
        drained = []
        while True:
            try:
                drained.append(self.events.get_nowait())
            except queue.Empty:
                return drained

    def iter_events(self, timeout: float = 0.5) -> Iterator[ProgressEvent]:
        """Yield events until the queue stays empty for ``timeout`` seconds
        and no task is still running."""
        while True:
            try:
                yield self.events.get(timeout=timeout)
            except queue.Empty:
                if not self.has_pending():
                    yield from self.drain()
                    return

    # ── Submission ──────────────────────────────────────────────

    def _submit(
        self,
        tool_id: str,
        operation: OperationKind,
        work: Callable[[], str],
        command: str | None = None,
    ) -> Future | None:
        if self._aborted.is_set():
            logger.debug("Coordinator shut down, not submitting %s %s", operation, tool_id)
            return None

        self._emit(tool_id, operation, ProgressPhase.PENDING, "Queued", command)

        def task() -> None:
            if self._aborted.is_set():
                return
            self._emit(
                tool_id, operation, ProgressPhase.IN_PROGRESS,
                _IN_PROGRESS_MESSAGES[operation], command,
            )
            try:
                message = work()
            except ToolError as e:
                logger.debug("%s %s failed: %s", operation.value, tool_id, e)
                self._emit(tool_id, operation, ProgressPhase.FAILED, f"Failed: {e.message}", command)
                return
            except Exception as e:
                logger.exception("Unexpected error during %s of %s", operation.value, tool_id)
                self._emit(tool_id, operation, ProgressPhase.FAILED, f"Failed: {e}", command)
                return
            self._emit(tool_id, operation, ProgressPhase.COMPLETED, message, command)

        future = self._pool.submit(task)
        with self._futures_lock:
            self._futures.append(future)
        return future

    def _persist(self) -> None:
        if self.cache_store is not None and not self._aborted.is_set():
            self.cache_store.save_async()

    # ── Status refresh ──────────────────────────────────────────

    def _refresh_one(self, tool_id: str) -> str:
        try:
            status = self.manager.probe_status(tool_id)
        except NotSupportedError:
            status = ToolStatus.error(PLATFORM_NOT_SUPPORTED)
            self._store_status(tool_id, status)
            raise
        self._store_status(tool_id, status)
        return "Status check completed"

    def _store_status(self, tool_id: str, status: ToolStatus) -> None:
        if self._aborted.is_set():
            return
        self.manager.set_cached_status(tool_id, status)
        if self.cache_store is not None:
            self.cache_store.set_status(tool_id, status)
        self._persist()

    def refresh_all(self, tool_ids: list[str] | None = None) -> list[Future]:
        """Check every tool (or ``tool_ids``) in parallel."""
        ids = tool_ids if tool_ids is not None else self.manager.config.ids()
        futures = []
        for tool_id in ids:
            future = self._submit(
                tool_id, OperationKind.STATUS,
                lambda tid=tool_id: self._refresh_one(tid),
            )
            if future is not None:
                futures.append(future)
        logger.debug("Submitted %d status checks", len(futures))
        return futures

    def refresh(self, tool_id: str) -> Future | None:
        return self._submit(tool_id, OperationKind.STATUS, lambda: self._refresh_one(tool_id))

    # ── Lifecycle operations ────────────────────────────────────

    def _preview(self, operation: OperationKind, tool_id: str) -> str | None:
        try:
            return display_command(self.manager.resolve_command(operation, tool_id))
        except ToolError:
            return None

    def _after_change(self, tool_id: str, message: str) -> str:
        self._persist()
        return message

    def install(self, tool_id: str) -> Future | None:
        return self._submit(
            tool_id, OperationKind.INSTALL,
            lambda: self._after_change(tool_id, self.manager.install(tool_id).message),
            self._preview(OperationKind.INSTALL, tool_id),
        )

    def uninstall(self, tool_id: str) -> Future | None:
        return self._submit(
            tool_id, OperationKind.UNINSTALL,
            lambda: self._after_change(tool_id, self.manager.uninstall(tool_id).message),
            self._preview(OperationKind.UNINSTALL, tool_id),
        )

    def update(self, tool_id: str, version: str | None = None) -> Future | None:
        return self._submit(
            tool_id, OperationKind.UPDATE,
            lambda: self._after_change(tool_id, self.manager.update(tool_id, version).message),
            self._preview(OperationKind.UPDATE, tool_id),
        )

    def fetch_help(self, tool_id: str) -> Future | None:
        def work() -> str:
            self.manager.get_help(tool_id)
            return "Help loaded"
        return self._submit(tool_id, OperationKind.HELP, work)

    # ── Lifetime ────────────────────────────────────────────────

    def has_pending(self) -> bool:
        with self._futures_lock:
            self._futures = [f for f in self._futures if not f.done()]
            return bool(self._futures)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until submitted tasks finish. False on timeout."""
        with self._futures_lock:
            pending = list(self._futures)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def shutdown(self, wait_for_running: bool = False) -> None:
        """Abort: drop outstanding results and cancel queued tasks.

        Running subprocesses are not killed; their results are discarded.
        Safe to call more than once.
        """
        if self._aborted.is_set():
            return
        self._aborted.set()
        self._pool.shutdown(wait=wait_for_running, cancel_futures=True)
        logger.debug("Coordinator shut down")

    def __enter__(self) -> BackgroundCoordinator:
        return self

    def __exit__(self, *exc) -> None:
        if not self._aborted.is_set():
            self.wait()
        self.shutdown()


class ProgressBoard:
    """Latest event per ``(tool_id, operation)``.

    Consumers feed drained events in; a burst of updates for one tool
    collapses to its most recent snapshot.
    """

    def __init__(self) -> None:
        self._latest: dict[tuple[str, OperationKind], ProgressEvent] = {}

    def apply(self, events: list[ProgressEvent]) -> None:
        for event in events:
            self._latest[event.key] = event

    def get(self, tool_id: str, operation: OperationKind) -> ProgressEvent | None:
        return self._latest.get((tool_id, operation))

    def is_busy(self, tool_id: str) -> bool:
        return any(
            e.tool_id == tool_id and not e.is_terminal for e in self._latest.values()
        )

    def terminal_count(self) -> int:
        return sum(1 for e in self._latest.values() if e.is_terminal)

    def clear_finished(self, older_than: float, now: float | None = None) -> None:
        """Forget terminal events older than ``older_than`` seconds."""
        now = now if now is not None else time.time()
        self._latest = {
            k: e for k, e in self._latest.items()
            if not (e.is_terminal and now - e.timestamp.timestamp() > older_than)
        }

    def __len__(self) -> int:
        return len(self._latest)
