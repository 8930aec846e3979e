"""Environment driven settings for the enrichment service."""
from __future__ import annotations

import os
import shlex
import sys
from dataclasses import dataclass
from pathlib import Path


DEFAULT_CORS_ORIGINS = ["http://localhost:3000", "http://127.0.0.1:3000"]


@dataclass(frozen=True, slots=True)
class Settings:
    worker_command: tuple[str, ...]
    max_concurrency: int = 4
    max_record_bytes: int = 1024 * 1024
    kill_timeout: float = 5.0
    history_limit: int = 50
    transcripts_path: Path | None = None
    cors_origins: tuple[str, ...] = tuple(DEFAULT_CORS_ORIGINS)
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3001


def _int_env(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}")
    return value


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def _worker_command() -> tuple[str, ...]:
    raw = os.getenv("ENRICHMENT_WORKER_COMMAND", "")
    command = shlex.split(raw)
    if not command:
        command = [sys.executable, "flyway.py"]
    return tuple(command)


def load_settings() -> Settings:
    """Read settings from the process environment."""

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = list(DEFAULT_CORS_ORIGINS)

    transcripts_env = os.getenv("TRANSCRIPTS_PATH")
    transcripts_path = Path(transcripts_env).expanduser().resolve() if transcripts_env else None

    return Settings(
        worker_command=_worker_command(),
        max_concurrency=_int_env("ENRICHMENT_MAX_CONCURRENCY", 4),
        max_record_bytes=_int_env("ENRICHMENT_MAX_RECORD_BYTES", 1024 * 1024),
        kill_timeout=_float_env("ENRICHMENT_KILL_TIMEOUT", 5.0),
        history_limit=_int_env("ENRICHMENT_HISTORY_LIMIT", 50),
        transcripts_path=transcripts_path,
        cors_origins=tuple(origins),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
        host=os.getenv("HOST") or "0.0.0.0",
        port=_int_env("PORT", 3001),
    )
