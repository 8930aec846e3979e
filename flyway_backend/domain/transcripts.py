"""Domain entities for transcript enrichment."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Transcript:
    """A unit of raw text submitted for enrichment."""

    text: str
    created_at: datetime = field(default_factory=utcnow)


class InvocationState(str, Enum):
    TRIGGERED = "triggered"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def terminal(self) -> bool:
        return self in (InvocationState.COMPLETED, InvocationState.FAILED)


@dataclass(slots=True)
class WorkerInvocation:
    """One run of the enrichment worker against one transcript."""

    invocation_id: str
    input_transcript: Transcript
    state: InvocationState = InvocationState.TRIGGERED
    started_at: datetime | None = None
    finished_at: datetime | None = None
    pid: int | None = None
    exit_code: int | None = None
    reason: str | None = None
    records_parsed: int = 0
    malformed_chunks: int = 0

    def mark_running(self, pid: int | None) -> None:
        self.state = InvocationState.RUNNING
        self.pid = pid
        self.started_at = utcnow()

    def mark_completed(self, exit_code: int) -> None:
        self.state = InvocationState.COMPLETED
        self.exit_code = exit_code
        self.finished_at = utcnow()

    def mark_failed(self, reason: str, *, exit_code: int | None = None) -> None:
        self.state = InvocationState.FAILED
        self.reason = reason
        self.exit_code = exit_code
        self.finished_at = utcnow()

    def as_dict(self) -> dict[str, object]:
        return {
            "invocation_id": self.invocation_id,
            "transcript": self.input_transcript.text,
            "transcript_created_at": self.input_transcript.created_at.isoformat(),
            "state": self.state.value,
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "pid": self.pid,
            "exit_code": self.exit_code,
            "reason": self.reason,
            "records_parsed": self.records_parsed,
            "malformed_chunks": self.malformed_chunks,
        }
