from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from flyway_backend.domain import Transcript

TRANSCRIPT_SCHEMA_VERSION = 1


class TranscriptDocument(BaseModel):
    """On-disk layout of one persisted transcript."""

    schema_version: Literal[1] = TRANSCRIPT_SCHEMA_VERSION
    transcript: str = Field(min_length=1)
    timestamp: datetime

    @classmethod
    def from_transcript(cls, transcript: Transcript) -> "TranscriptDocument":
        return cls(transcript=transcript.text, timestamp=transcript.created_at)

    def to_transcript(self) -> Transcript:
        timestamp = self.timestamp
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return Transcript(text=self.transcript, created_at=timestamp)
