"""
Tests for the background coordinator and progress board.
"""

import threading
import time

import pytest

from cliverge.core.models.progress import OperationKind, ProgressEvent, ProgressPhase
from cliverge.core.models.status import StatusKind
from cliverge.core.services.tool_lifecycle.coordinator import BackgroundCoordinator, ProgressBoard
from cliverge.core.services.tool_lifecycle.execution.subprocess_runner import CommandResult


def _terminal(events):
    return [e for e in events if e.is_terminal]


class TestRefreshAll:
    def test_one_terminal_event_per_tool(self, make_manager, make_tool, fake_runner):
        ids = [f"t{i}" for i in range(8)]
        for tid in ids[::2]:
            fake_runner.on([tid, "--version"], stdout="1.0.0")
        mgr = make_manager(*(make_tool(t) for t in ids))

        with BackgroundCoordinator(mgr, max_workers=4) as coord:
            coord.refresh_all()
        events = coord.drain()

        terminal = _terminal(events)
        assert len(terminal) == len(ids)
        assert sorted(e.tool_id for e in terminal) == sorted(ids)
        assert all(e.phase == ProgressPhase.COMPLETED for e in terminal)
        assert all(e.operation == OperationKind.STATUS for e in events)

    def test_phase_order_per_tool(self, make_manager, make_tool):
        mgr = make_manager(make_tool("a"))
        with BackgroundCoordinator(mgr) as coord:
            coord.refresh_all()
        phases = [e.phase for e in coord.drain() if e.tool_id == "a"]
        assert phases == [ProgressPhase.PENDING, ProgressPhase.IN_PROGRESS, ProgressPhase.COMPLETED]

    def test_results_written_to_cache(self, make_manager, make_tool, fake_runner, cache_store):
        fake_runner.on(["a", "--version"], stdout="2.0.0")
        mgr = make_manager(make_tool("a"), make_tool("b"))
        with BackgroundCoordinator(mgr, cache_store) as coord:
            coord.refresh_all()
        assert cache_store.get_status("a").version == "2.0.0"
        assert cache_store.get_status("b").state == StatusKind.NOT_INSTALLED
        assert mgr.get_cached_status("a").is_installed

    def test_unsupported_platform_fails_and_records_error(self, make_manager, make_tool, cache_store):
        mgr = make_manager(make_tool("a", versionCheck={"windows": ["--version"]}))
        with BackgroundCoordinator(mgr, cache_store) as coord:
            coord.refresh_all()
        terminal = _terminal(coord.drain())
        assert [e.phase for e in terminal] == [ProgressPhase.FAILED]
        assert "platform not supported" in terminal[0].message
        assert cache_store.get_status("a").state == StatusKind.ERROR

    def test_runs_in_parallel(self, make_manager, make_tool, fake_runner):
        ids = ["a", "b", "c"]
        barrier = threading.Barrier(len(ids), timeout=5)

        def rendezvous(argv):
            barrier.wait()
            return CommandResult(0, "1.0.0")

        for tid in ids:
            fake_runner.on_call([tid, "--version"], rendezvous)
        mgr = make_manager(*(make_tool(t) for t in ids))

        with BackgroundCoordinator(mgr, max_workers=3) as coord:
            coord.refresh_all()
            assert coord.wait(timeout=10)
        assert all(e.phase == ProgressPhase.COMPLETED for e in _terminal(coord.drain()))

    def test_iter_events(self, make_manager, make_tool):
        mgr = make_manager(make_tool("a"), make_tool("b"))
        coord = BackgroundCoordinator(mgr)
        try:
            coord.refresh_all()
            events = list(coord.iter_events(timeout=0.2))
        finally:
            coord.shutdown()
        assert len(_terminal(events)) == 2


class TestLifecycleOperations:
    def test_install_event_carries_command(self, make_manager, make_tool, fake_runner):
        fake_runner.on(["npm", "install", "-g", "a-cli"])
        mgr = make_manager(make_tool("a"))
        with BackgroundCoordinator(mgr) as coord:
            coord.install("a")
        events = coord.drain()
        assert events[-1].phase == ProgressPhase.COMPLETED
        assert events[-1].operation == OperationKind.INSTALL
        assert events[-1].command == "npm install -g a-cli"

    def test_failed_update(self, make_manager, make_tool):
        mgr = make_manager(make_tool("a"))
        with BackgroundCoordinator(mgr) as coord:
            coord.update("a")
        last = coord.drain()[-1]
        assert last.phase == ProgressPhase.FAILED
        assert last.message.startswith("Failed:")

    def test_fetch_help(self, make_manager, make_tool, fake_runner, cache_store):
        fake_runner.on(["a", "--help"], stdout="usage")
        mgr = make_manager(make_tool("a"))
        with BackgroundCoordinator(mgr) as coord:
            coord.fetch_help("a")
        assert coord.drain()[-1].phase == ProgressPhase.COMPLETED
        assert cache_store.get_help("a") == "usage"


class TestShutdown:
    def test_late_results_dropped(self, make_manager, make_tool, fake_runner, cache_store):
        started = threading.Event()
        release = threading.Event()

        def slow(argv):
            started.set()
            release.wait(timeout=5)
            return CommandResult(0, "1.0.0")

        fake_runner.on_call(["a", "--version"], slow)
        mgr = make_manager(make_tool("a"))
        coord = BackgroundCoordinator(mgr, cache_store, max_workers=1)
        coord.refresh_all()
        assert started.wait(timeout=5)

        coord.shutdown()
        coord.drain()
        release.set()
        time.sleep(0.1)

        assert coord.drain() == []
        assert cache_store.get_status("a") is None

    def test_queued_tasks_cancelled(self, make_manager, make_tool, fake_runner):
        release = threading.Event()

        def slow(argv):
            release.wait(timeout=5)
            return CommandResult(0, "1.0.0")

        fake_runner.on_call(["a", "--version"], slow)
        mgr = make_manager(make_tool("a"), make_tool("b"))
        coord = BackgroundCoordinator(mgr, max_workers=1)
        futures = coord.refresh_all()
        coord.shutdown()
        release.set()
        assert futures[1].cancelled()
        assert ["b", "--version"] not in fake_runner.calls

    def test_idempotent_and_rejects_new_work(self, make_manager, make_tool):
        coord = BackgroundCoordinator(make_manager(make_tool("a")))
        coord.shutdown()
        coord.shutdown()
        assert coord.aborted
        assert coord.refresh("a") is None
        assert coord.drain() == []


class TestProgressBoard:
    def _event(self, tool_id, phase, op=OperationKind.STATUS):
        return ProgressEvent(tool_id=tool_id, operation=op, phase=phase)

    def test_keeps_latest_per_key(self):
        board = ProgressBoard()
        board.apply([
            self._event("a", ProgressPhase.PENDING),
            self._event("a", ProgressPhase.IN_PROGRESS),
            self._event("b", ProgressPhase.PENDING),
        ])
        assert len(board) == 2
        assert board.get("a", OperationKind.STATUS).phase == ProgressPhase.IN_PROGRESS
        assert board.is_busy("a")

        board.apply([self._event("a", ProgressPhase.COMPLETED)])
        assert not board.is_busy("a")
        assert board.terminal_count() == 1

    def test_operations_tracked_separately(self):
        board = ProgressBoard()
        board.apply([
            self._event("a", ProgressPhase.COMPLETED, OperationKind.STATUS),
            self._event("a", ProgressPhase.IN_PROGRESS, OperationKind.INSTALL),
        ])
        assert len(board) == 2
        assert board.is_busy("a")

    def test_clear_finished(self):
        board = ProgressBoard()
        done = self._event("a", ProgressPhase.COMPLETED)
        board.apply([done, self._event("b", ProgressPhase.IN_PROGRESS)])
        board.clear_finished(older_than=10, now=done.timestamp.timestamp() + 60)
        assert board.get("a", OperationKind.STATUS) is None
        assert board.get("b", OperationKind.STATUS) is not None
