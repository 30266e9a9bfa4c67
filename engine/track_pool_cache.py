import logging
import threading
import time

from config.settings import TRACK_POOL_CACHE_TTL_SECONDS
from engine.json_utils import safe_json_dumps
from engine.log_events import log_event
from engine.models import SourceType
from input.source_router import parse_track_source


def _cache_key(source_query, size):
    # Free-text queries are case-insensitive; playlist ids are not.
    payload = parse_track_source(source_query).to_dict()
    payload.pop("original", None)
    if payload["type"] == SourceType.SEARCH.value:
        payload["query"] = (payload.get("query") or "").lower()
    return f"{safe_json_dumps(payload, sort_keys=True)}::{int(size)}"


class TrackPoolCache:
    """Short-lived cache of whole resolved pools keyed by source query and size.

    Expired entries are kept so a failing reload can serve the last good pool.
    Empty pools are never stored.
    """

    def __init__(self, ttl_seconds=TRACK_POOL_CACHE_TTL_SECONDS, clock=time.time):
        self._ttl_seconds = max(1.0, float(ttl_seconds))
        self._clock = clock
        self._lock = threading.Lock()
        self._entries = {}
        self._hits = 0
        self._misses = 0
        self._stale_served = 0

    def get_or_load(self, source_query, size, loader):
        key = _cache_key(source_query, size)
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                self._hits += 1
                return list(entry[1])
            self._misses += 1

        try:
            tracks = loader()
        except Exception as exc:
            if entry is None:
                raise
            with self._lock:
                self._stale_served += 1
            log_event(
                logging.WARNING,
                "track_pool_cache_stale_served",
                source=source_query,
                size=size,
                error=str(exc),
            )
            return list(entry[1])

        if tracks:
            with self._lock:
                self._entries[key] = (self._clock() + self._ttl_seconds, list(tracks))
        return tracks

    def clear(self):
        with self._lock:
            self._entries.clear()

    def stats(self):
        now = self._clock()
        with self._lock:
            fresh = sum(1 for expires_at, _ in self._entries.values() if expires_at > now)
            return {
                "entries": len(self._entries),
                "fresh_entries": fresh,
                "hits": self._hits,
                "misses": self._misses,
                "stale_served": self._stale_served,
            }
