"""In-process TTL cache for detection results.

Entries are keyed by absolute project path. An entry older than ``ttl_ms``
is treated as absent and evicted when it is next read; nothing is swept in
the background.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from testdaemon.detector.types import DetectionResult

DEFAULT_CACHE_TTL_MS = 300_000


def _now_ms() -> float:
    return time.time() * 1000


@dataclass
class CacheEntry:
    result: DetectionResult
    timestamp: float


class DetectionCache:
    def __init__(self, ttl_ms: int = DEFAULT_CACHE_TTL_MS, clock: Optional[Callable[[], float]] = None):
        self.ttl_ms = ttl_ms
        self._clock = clock or _now_ms
        self._entries: dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[DetectionResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._clock() - entry.timestamp > self.ttl_ms:
            del self._entries[key]
            return None
        return entry.result

    def set(self, key: str, result: DetectionResult) -> None:
        self._entries[key] = CacheEntry(result=result, timestamp=self._clock())

    def clear(self) -> None:
        self._entries.clear()

    def stats(self) -> dict:
        return {"size": len(self._entries), "keys": list(self._entries)}

    def __len__(self) -> int:
        return len(self._entries)
