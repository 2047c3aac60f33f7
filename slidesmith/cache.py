"""
cache.py — Process-wide TTL cache for model responses.

Keys are SHA-256 digests of (stage, canonical JSON of the stage inputs), so two
runs over the same brief reuse the creative direction, design system and so on
for `ttl_seconds` (30 min by default). Expired entries are evicted lazily on
lookup. A lock guards the dict because PipelineRunner executes pipelines on
worker threads.
"""

from __future__ import annotations

import hashlib
import json
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

DEFAULT_TTL_SECONDS = 30 * 60


@dataclass
class CacheEntry:
    key: str
    data: Any
    created_at: float
    expires_at: float


def cache_key(stage: str, inputs: Any) -> str:
    """SHA-256 of the stage name plus canonical JSON of its inputs."""
    canonical = json.dumps(inputs, sort_keys=True, ensure_ascii=False, separators=(",", ":"), default=str)
    return hashlib.sha256(f"{stage}\n{canonical}".encode("utf-8")).hexdigest()


class TTLCache:
    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if self._clock() >= entry.expires_at:
                del self._entries[key]
                return None
            return entry.data

    def set(self, key: str, data: Any, ttl_seconds: Optional[float] = None) -> CacheEntry:
        now = self._clock()
        ttl = self.ttl_seconds if ttl_seconds is None else ttl_seconds
        entry = CacheEntry(key=key, data=data, created_at=now, expires_at=now + ttl)
        with self._lock:
            self._entries[key] = entry
        return entry

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None
