"""
L2 Execution: core subprocess runner.

The SINGLE PLACE where ``subprocess.run`` is called by the lifecycle
engine.  Hidden-window spawning on Windows, executable resolution,
logging and timeout handling are centralised here so every caller
captures exit code, stdout and stderr the same way.

Services take a ``runner`` callable with this signature so tests can
inject a fake without touching ``subprocess``.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import sys
import time
from dataclasses import dataclass
from typing import Protocol

from cliverge.core.errors import ExecutionFailedError

logger = logging.getLogger(__name__)

# CREATE_NO_WINDOW; spelled out so the module imports on every platform.
_CREATE_NO_WINDOW = 0x08000000


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one process run."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout followed by stderr, for parsers that accept either."""
        if self.stdout and self.stderr:
            return f"{self.stdout}\n{self.stderr}"
        return self.stdout or self.stderr


class CommandRunner(Protocol):
    def __call__(
        self,
        cmd: list[str],
        *,
        timeout: float | None = None,
        env_overrides: dict[str, str] | None = None,
        cwd: str | None = None,
    ) -> CommandResult: ...


def _hidden_window_kwargs() -> dict:
    """Extra ``subprocess.run`` kwargs that stop a console window flashing up."""
    if sys.platform != "win32":
        return {}
    startupinfo = subprocess.STARTUPINFO()
    startupinfo.dwFlags |= subprocess.STARTF_USESHOWWINDOW
    startupinfo.wShowWindow = 0  # SW_HIDE
    return {"creationflags": _CREATE_NO_WINDOW, "startupinfo": startupinfo}


def _resolve_executable(cmd: list[str]) -> list[str]:
    """Resolve ``cmd[0]`` on PATH (picks up ``npm.cmd`` style shims on Windows)."""
    resolved = shutil.which(cmd[0])
    if resolved:
        return [resolved] + cmd[1:]
    return cmd


def run_command(
    cmd: list[str],
    *,
    timeout: float | None = None,
    env_overrides: dict[str, str] | None = None,
    cwd: str | None = None,
) -> CommandResult:
    """Run a command without a shell and capture its output.

    A non-zero exit is NOT an error here: it comes back as a
    ``CommandResult`` and the caller decides what it means.

    Args:
        cmd: Full argv, executable first.
        timeout: Seconds before the run is abandoned. None waits forever.
        env_overrides: Extra environment variables.
        cwd: Working directory for the command.

    Raises:
        ExecutionFailedError: The process could not be started, or timed out.
    """
    if not cmd:
        raise ExecutionFailedError("Empty command")

    env = None
    if env_overrides:
        env = os.environ.copy()
        env.update(env_overrides)

    argv = _resolve_executable(cmd)
    logger.debug("Running: %s", " ".join(cmd))

    start = time.monotonic()
    try:
        result = subprocess.run(
            argv,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            env=env,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            **_hidden_window_kwargs(),
        )
    except subprocess.TimeoutExpired as e:
        raise ExecutionFailedError(
            f"Command timed out after {timeout}s: {cmd[0]}",
        ) from e
    except OSError as e:
        logger.debug("Failed to start %s: %s", cmd[0], e)
        raise ExecutionFailedError(f"Failed to start {cmd[0]}: {e}") from e

    elapsed_ms = int((time.monotonic() - start) * 1000)
    logger.debug("%s exited %d in %dms", cmd[0], result.returncode, elapsed_ms)
    return CommandResult(
        returncode=result.returncode,
        stdout=result.stdout or "",
        stderr=result.stderr or "",
        elapsed_ms=elapsed_ms,
    )


def is_root() -> bool:
    """True when running with root privileges (never on Windows)."""
    geteuid = getattr(os, "geteuid", None)
    return geteuid is not None and geteuid() == 0
