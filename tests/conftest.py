"""
Shared test fixtures and configuration.
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Any, Callable

import pytest

from cliverge.core import context
from cliverge.core.config.loader import ConfigManager
from cliverge.core.errors import ExecutionFailedError
from cliverge.core.models.tool import Platform, ToolConfig, ToolsConfig
from cliverge.core.persistence.tool_cache import ToolCacheStore
from cliverge.core.services.tool_lifecycle.execution.subprocess_runner import CommandResult
from cliverge.core.services.tool_lifecycle.manager import ToolManager


class FakeRunner:
    """Stands in for ``run_command``.

    Responses are keyed by the exact argv.  An argv with no response
    behaves like a missing executable (``ExecutionFailedError``).
    """

    def __init__(self) -> None:
        self.responses: dict[tuple[str, ...], Any] = {}
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    def on(
        self,
        argv: list[str],
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        self.responses[tuple(argv)] = CommandResult(returncode, stdout, stderr)

    def on_call(self, argv: list[str], handler: Callable[[list[str]], Any]) -> None:
        self.responses[tuple(argv)] = handler

    def raise_on(self, argv: list[str], error: Exception) -> None:
        self.responses[tuple(argv)] = error

    def __call__(
        self,
        cmd: list[str],
        *,
        timeout: float | None = None,
        env_overrides: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> CommandResult:
        with self._lock:
            self.calls.append(list(cmd))
        response = self.responses.get(tuple(cmd))
        if response is None:
            raise ExecutionFailedError(f"Failed to start {cmd[0]}: not found")
        if isinstance(response, Exception):
            raise response
        if callable(response):
            return response(list(cmd))
        return response

    def count(self, argv: list[str]) -> int:
        with self._lock:
            return sum(1 for c in self.calls if c == list(argv))


def tool_data(tool_id: str = "demo", **overrides: Any) -> dict:
    """On-disk style (camelCase) tool definition."""
    data = {
        "id": tool_id,
        "name": tool_id.title(),
        "description": "A demo tool",
        "website": "https://example.com",
        "command": tool_id,
        "versionCheck": ["--version"],
        "install": {
            p.value: {"method": "npm", "packageName": f"{tool_id}-cli"} for p in Platform
        },
    }
    data.update(overrides)
    return data


@pytest.fixture(autouse=True)
def _reset_config_context(monkeypatch: pytest.MonkeyPatch):
    """Keep the process-wide config dir from leaking between tests."""
    monkeypatch.delenv(context.ENV_CONFIG_DIR, raising=False)
    context.set_config_dir(None)
    yield
    context.set_config_dir(None)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def make_tool() -> Callable[..., ToolConfig]:
    def _make(tool_id: str = "demo", **overrides: Any) -> ToolConfig:
        return ToolConfig.model_validate(tool_data(tool_id, **overrides))
    return _make


@pytest.fixture
def config_dir(tmp_path: Path) -> Path:
    """Return a temporary config directory."""
    d = tmp_path / "cliverge"
    d.mkdir()
    return d


@pytest.fixture
def cache_store(config_dir: Path) -> ToolCacheStore:
    store = ToolCacheStore(config_dir / "cache" / "tool_cache.json")
    yield store
    store.close()


@pytest.fixture
def make_manager(config_dir: Path, fake_runner: FakeRunner, cache_store: ToolCacheStore):
    """Build a Linux ToolManager over the given tools with the fake runner."""

    def _make(*tools: ToolConfig, platform: Platform = Platform.LINUX, **kwargs: Any) -> ToolManager:
        config = ConfigManager(config_dir, tools=ToolsConfig(tools=list(tools)))
        kwargs.setdefault("cache_store", cache_store)
        kwargs.setdefault("running_as_root", False)
        return ToolManager(config, runner=fake_runner, platform=platform, **kwargs)

    return _make
