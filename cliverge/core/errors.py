"""
Error types raised by the lifecycle engine.

Every failure a caller can act on is a ``ToolError`` subclass.  The
CLI catches ``ToolError`` at the top of each command, prints the
message to stderr and exits 1.

Status checks never raise for "tool missing": a non-zero exit from
the version probe is a ``NotInstalled`` status, not an error.
"""

from __future__ import annotations


class ToolError(Exception):
    """Base class for lifecycle engine failures."""

    def __init__(self, message: str, *, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}\n{self.details}"
        return self.message


class ToolNotFoundError(ToolError):
    """Unknown tool id, or an operation that needs the tool installed."""


class NotSupportedError(ToolError):
    """No command is configured (or can be synthesized) for this platform."""


class ConfigError(ToolError):
    """Invalid or unreadable registry/settings document."""


class ParseError(ToolError):
    """Version output could not be understood."""


class ToolIOError(ToolError):
    """Filesystem failure while reading or writing engine files."""


class OperationInProgressError(ToolError):
    """Another install/uninstall/update is already running for this tool."""


class ExecutionFailedError(ToolError):
    """A subprocess failed. Carries the captured exit code and output."""

    def __init__(
        self,
        message: str,
        *,
        returncode: int | None = None,
        stdout: str = "",
        stderr: str = "",
        details: str | None = None,
    ) -> None:
        if details is None and (returncode is not None or stdout or stderr):
            details = _format_output(returncode, stdout, stderr)
        super().__init__(message, details=details)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class InstallationFailedError(ExecutionFailedError):
    """Install or uninstall command exited non-zero."""


class UpdateFailedError(ExecutionFailedError):
    """Update command exited non-zero."""


def _format_output(returncode: int | None, stdout: str, stderr: str) -> str:
    parts = []
    if returncode is not None:
        parts.append(f"exit code: {returncode}")
    if stdout.strip():
        parts.append(f"stdout: {stdout.strip()}")
    if stderr.strip():
        parts.append(f"stderr: {stderr.strip()}")
    return "\n".join(parts)
