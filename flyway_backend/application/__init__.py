"""Application services."""

from .transcripts import (
    TranscriptService,
    configure_transcript_service,
    get_transcript_service,
    reset_transcript_state,
)

__all__ = [
    "TranscriptService",
    "configure_transcript_service",
    "get_transcript_service",
    "reset_transcript_state",
]
