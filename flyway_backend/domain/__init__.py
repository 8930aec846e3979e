"""Domain layer definitions."""

from .transcripts import InvocationState, Transcript, WorkerInvocation

__all__ = [
    "InvocationState",
    "Transcript",
    "WorkerInvocation",
]
