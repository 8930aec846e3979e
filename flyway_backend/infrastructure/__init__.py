"""Infrastructure layer exports."""

from .invocations import InMemoryInvocationRepository
from .transcripts import (
    InMemoryTranscriptRepository,
    JsonlTranscriptRepository,
    StoreError,
    TranscriptRepository,
)
from .worker import (
    OversizedChunk,
    SpawnError,
    WorkerExit,
    WorkerExitError,
    WorkerProcess,
    WorkerProcessAdapter,
)

__all__ = [
    "InMemoryInvocationRepository",
    "InMemoryTranscriptRepository",
    "JsonlTranscriptRepository",
    "OversizedChunk",
    "SpawnError",
    "StoreError",
    "TranscriptRepository",
    "WorkerExit",
    "WorkerExitError",
    "WorkerProcess",
    "WorkerProcessAdapter",
]
