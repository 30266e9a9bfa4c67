import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from config.settings import RESOLUTION_CACHE_TTL_SECONDS
from engine.models import ResolvedPlaybackTrack


@dataclass
class _CacheEntry:
    track: ResolvedPlaybackTrack
    expires_at: float


class ResolutionCache:
    """Process-local title::artist -> resolved track map with lazy TTL eviction.

    Only definite successes are stored. Safe to share between resolver threads.
    """

    def __init__(
        self,
        ttl_seconds: float = RESOLUTION_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._ttl_seconds = max(1.0, float(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _CacheEntry] = {}

    def get(self, key: str) -> Optional[ResolvedPlaybackTrack]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= now:
                self._entries.pop(key, None)
                return None
            return entry.track

    def set(self, key: str, track: ResolvedPlaybackTrack) -> None:
        now = self._clock()
        with self._lock:
            self._entries[key] = _CacheEntry(track=track, expires_at=now + self._ttl_seconds)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


_DEFAULT_CACHE: Optional[ResolutionCache] = None
_DEFAULT_CACHE_LOCK = threading.Lock()


def default_resolution_cache() -> ResolutionCache:
    global _DEFAULT_CACHE
    with _DEFAULT_CACHE_LOCK:
        if _DEFAULT_CACHE is None:
            _DEFAULT_CACHE = ResolutionCache()
        return _DEFAULT_CACHE
