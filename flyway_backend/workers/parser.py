from __future__ import annotations

import json
import logging
from typing import Any, AsyncIterable, Callable

from flyway_backend.infrastructure.worker import OversizedChunk

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 80


class MalformedOutput(ValueError):
    """Raised when a worker output chunk is not a JSON object."""


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-finite number {name} is not allowed")


class StreamParser:
    """Turns worker output chunks into enrichment results.

    Every chunk is treated as one complete record.  Chunks that do not decode
    are counted and logged, and parsing carries on with the next one.
    """

    def __init__(self, sink: Callable[[dict[str, Any]], None], *, label: str = "worker") -> None:
        self._sink = sink
        self._label = label
        self.parsed = 0
        self.malformed = 0

    @staticmethod
    def decode(chunk: bytes | str | OversizedChunk) -> dict[str, Any] | None:
        """Decode one chunk; blank chunks yield ``None``."""

        if isinstance(chunk, OversizedChunk):
            raise MalformedOutput(f"chunk exceeded {chunk.limit} bytes")
        text = chunk.decode("utf-8", errors="replace") if isinstance(chunk, bytes) else chunk
        text = text.strip()
        if not text:
            return None
        try:
            value = json.loads(text, parse_constant=_reject_constant)
        except ValueError as exc:
            preview = text if len(text) <= _PREVIEW_CHARS else f"{text[:_PREVIEW_CHARS]}..."
            raise MalformedOutput(f"{exc} in {preview!r}") from exc
        if not isinstance(value, dict):
            raise MalformedOutput(f"expected a JSON object, got {type(value).__name__}")
        return value

    def feed(self, chunk: bytes | str | OversizedChunk) -> dict[str, Any] | None:
        try:
            record = self.decode(chunk)
        except MalformedOutput as exc:
            self.malformed += 1
            logger.warning("Malformed output from %s: %s", self._label, exc)
            return None
        if record is None:
            return None
        self._sink(record)
        self.parsed += 1
        logger.debug("Parsed record #%d from %s", self.parsed, self._label)
        return record

    async def consume(self, chunks: AsyncIterable[bytes | str | OversizedChunk]) -> int:
        async for chunk in chunks:
            self.feed(chunk)
        return self.parsed
