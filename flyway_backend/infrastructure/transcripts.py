"""Infrastructure layer for transcript persistence."""
from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from flyway_backend.core.schema import TranscriptDocument
from flyway_backend.domain import Transcript

logger = logging.getLogger(__name__)


class StoreError(RuntimeError):
    """Raised when the transcript store cannot be read or written."""


class TranscriptRepository(Protocol):
    """Persistence contract for submitted transcripts."""

    def add(self, transcript: Transcript) -> None: ...

    def latest(self) -> Transcript | None: ...

    def list_transcripts(self) -> list[Transcript]: ...


def _newer(candidate: Transcript, current: Transcript | None) -> bool:
    # ties on created_at resolve to the later append
    return current is None or candidate.created_at >= current.created_at


def _most_recent(transcripts: list[Transcript]) -> Transcript | None:
    latest: Transcript | None = None
    for transcript in transcripts:
        if _newer(transcript, latest):
            latest = transcript
    return latest


class InMemoryTranscriptRepository:
    """Simple in-memory repository for fast iteration and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._transcripts: list[Transcript] = []

    def add(self, transcript: Transcript) -> None:
        with self._lock:
            self._transcripts.append(transcript)

    def latest(self) -> Transcript | None:
        with self._lock:
            return _most_recent(self._transcripts)

    def list_transcripts(self) -> list[Transcript]:
        with self._lock:
            return list(self._transcripts)


class JsonlTranscriptRepository:
    """Append-only transcript log stored as one JSON document per line.

    The file is scanned once on the first ``latest()`` call; after that the
    most recent record is tracked in memory as transcripts are appended.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()
        self._loaded = False
        self._latest: Transcript | None = None

    def _read_all(self) -> list[Transcript]:
        if not self._path.exists():
            return []
        transcripts: list[Transcript] = []
        try:
            with self._path.open("rb") as fp:
                for line_no, raw in enumerate(fp, start=1):
                    if not raw.strip():
                        continue
                    try:
                        document = TranscriptDocument.model_validate_json(raw.decode("utf-8"))
                    except (UnicodeDecodeError, ValidationError):
                        logger.warning("Skipping unreadable transcript record %s:%d", self._path, line_no)
                        continue
                    transcripts.append(document.to_transcript())
        except OSError as exc:
            raise StoreError(f"Unable to read transcripts from {self._path}: {exc}") from exc
        return transcripts

    def add(self, transcript: Transcript) -> None:
        document = TranscriptDocument.from_transcript(transcript)
        line = json.dumps(document.model_dump(mode="json"), ensure_ascii=False)
        with self._lock:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as fp:
                    fp.write(line + "\n")
                    fp.flush()
            except OSError as exc:
                raise StoreError(f"Unable to write transcript to {self._path}: {exc}") from exc
            if self._loaded and _newer(transcript, self._latest):
                self._latest = transcript

    def latest(self) -> Transcript | None:
        with self._lock:
            if not self._loaded:
                self._latest = _most_recent(self._read_all())
                self._loaded = True
            return self._latest

    def list_transcripts(self) -> list[Transcript]:
        with self._lock:
            return self._read_all()
