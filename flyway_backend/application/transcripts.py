"""Application service layer for transcript ingestion."""
from __future__ import annotations

import asyncio
import logging

from flyway_backend.domain import Transcript
from flyway_backend.infrastructure import InMemoryTranscriptRepository, TranscriptRepository

logger = logging.getLogger(__name__)


class TranscriptService:
    """Coordinates transcript persistence use cases.

    Repository calls may touch the filesystem, so they run in a worker thread
    to keep the event loop free.
    """

    def __init__(self, repository: TranscriptRepository) -> None:
        self._repository = repository

    async def submit(self, text: str) -> Transcript:
        transcript = Transcript(text=text)
        await asyncio.to_thread(self._repository.add, transcript)
        logger.info("Saved transcript (%d chars) at %s", len(text), transcript.created_at.isoformat())
        return transcript

    async def latest(self) -> Transcript | None:
        return await asyncio.to_thread(self._repository.latest)

    def list_transcripts(self) -> list[Transcript]:
        return self._repository.list_transcripts()


_service = TranscriptService(InMemoryTranscriptRepository())


def configure_transcript_service(service: TranscriptService) -> None:
    """Install the transcript service used by the HTTP routes and orchestrator."""

    global _service
    _service = service


def get_transcript_service() -> TranscriptService:
    """Return the transcript service for the process."""

    return _service


def reset_transcript_state() -> None:
    """Reset to a fresh in-memory store (used in tests)."""

    configure_transcript_service(TranscriptService(InMemoryTranscriptRepository()))
