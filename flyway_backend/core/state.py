from __future__ import annotations

import threading
from typing import Any, ClassVar


class LatestResultCache:
    """Single-slot holder for the most recently parsed enrichment result.

    Writers run on the event loop while readers may run on the request
    threadpool, so every access goes through ``_lock``.
    """

    _instance: ClassVar["LatestResultCache" | None] = None

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value: dict[str, Any] | None = None

    @classmethod
    def instance(cls) -> "LatestResultCache":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Utility used in tests to clear global state."""

        cls._instance = None

    def set(self, result: dict[str, Any]) -> None:
        with self._lock:
            self._value = result

    def get(self) -> dict[str, Any] | None:
        with self._lock:
            return self._value

    def clear(self) -> None:
        with self._lock:
            self._value = None
