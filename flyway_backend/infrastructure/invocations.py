"""Bounded in-memory history of worker invocations."""
from __future__ import annotations

from collections import deque

from flyway_backend.domain import Transcript, WorkerInvocation


class InMemoryInvocationRepository:
    """Keeps the most recent ``limit`` invocation records, newest last."""

    def __init__(self, limit: int = 50) -> None:
        self._records: deque[WorkerInvocation] = deque(maxlen=limit)
        self._counter = 0

    def next_invocation_id(self) -> str:
        self._counter += 1
        return f"inv-{self._counter:05d}"

    def create(self, transcript: Transcript) -> WorkerInvocation:
        invocation = WorkerInvocation(invocation_id=self.next_invocation_id(), input_transcript=transcript)
        self._records.append(invocation)
        return invocation

    def list_invocations(self) -> list[WorkerInvocation]:
        return list(reversed(self._records))
