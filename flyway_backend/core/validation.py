from __future__ import annotations

import json
from typing import Any


class ValidationError(Exception):
    """Raised when an ingestion payload is missing or malformed."""


def validate_transcript_body(raw: bytes) -> str:
    """Decode a raw request body and return the transcript text it carries."""

    if not raw.strip():
        raise ValidationError("Transcript is required")
    try:
        payload = json.loads(raw)
    except ValueError as exc:
        raise ValidationError("Request body must be valid JSON") from exc
    return validate_transcript_payload(payload)


def validate_transcript_payload(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise ValidationError("Request body must be a JSON object")
    text = payload.get("transcript")
    if text is None:
        raise ValidationError("Transcript is required")
    if not isinstance(text, str):
        raise ValidationError("Transcript must be a string")
    if not text.strip():
        raise ValidationError("Transcript is required")
    return text
