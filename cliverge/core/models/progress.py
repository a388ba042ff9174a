"""
Progress events emitted by background operations.

A front end drains these from the coordinator's queue and renders
them.  Each event is a snapshot; consumers keep only the latest
per ``(tool_id, operation)``.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field


def _now() -> datetime:
    return datetime.now(UTC)


class OperationKind(StrEnum):
    STATUS = "status"
    INSTALL = "install"
    UNINSTALL = "uninstall"
    UPDATE = "update"
    HELP = "help"


class ProgressPhase(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_PHASES = frozenset({ProgressPhase.COMPLETED, ProgressPhase.FAILED})


class ProgressEvent(BaseModel):
    """One progress update for one tool operation."""

    tool_id: str
    tool_name: str = ""
    operation: OperationKind
    phase: ProgressPhase
    message: str = ""
    timestamp: datetime = Field(default_factory=_now)
    command: str | None = None      # display form of the argv being run

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def key(self) -> tuple[str, OperationKind]:
        return (self.tool_id, self.operation)
