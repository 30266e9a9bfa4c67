"""AnimeThemes lookup: best opening/ending ``.webm`` for an anime title."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Optional

from engine.log_events import log_event
from metadata.providers.http import fetch_json_with_timeout

_ANIMETHEMES_API_URL = "https://api.animethemes.moe/anime"

CACHE_TTL_SECONDS = 6 * 60 * 60
CACHE_MAX_ENTRIES = 2000
MAX_SEARCH_TERMS = 8

_TYPE_BONUS = {"OP": 6000, "ED": 5000}
_OTHER_TYPE_BONUS = 4000
_CREDITLESS_BONUS = 1200


@dataclass(frozen=True)
class AnimeThemeVideo:
    track_id: str
    anime_name: str
    theme_label: str
    source_url: str
    resolution: int
    creditless: bool


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _number(value: Any, default: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return int(value)


def video_score(theme_type: str, sequence: int, resolution: int, creditless: bool) -> int:
    """Openings beat endings, creditless beats credited, then resolution, then earlier sequence."""
    bonus = _TYPE_BONUS.get(theme_type, _OTHER_TYPE_BONUS)
    return bonus + (_CREDITLESS_BONUS if creditless else 0) + resolution - max(0, sequence) * 10


def pick_best_video(payload: Any) -> Optional[AnimeThemeVideo]:
    anime_list = payload.get("anime") if isinstance(payload, dict) else None
    if not isinstance(anime_list, list) or not anime_list or not isinstance(anime_list[0], dict):
        return None
    anime = anime_list[0]
    anime_name = _text(anime.get("name")) or "Unknown anime"

    best: Optional[AnimeThemeVideo] = None
    best_score = None
    for theme in anime.get("animethemes") or []:
        if not isinstance(theme, dict):
            continue
        theme_type = _text(theme.get("type")).upper()
        slug = _text(theme.get("slug"))
        sequence = _number(theme.get("sequence"), 1)
        for entry in theme.get("animethemeentries") or []:
            if not isinstance(entry, dict):
                continue
            for video in entry.get("videos") or []:
                if not isinstance(video, dict):
                    continue
                link = _text(video.get("link"))
                if not link or not link.lower().endswith(".webm"):
                    continue
                resolution = max(0, _number(video.get("resolution"), 0))
                creditless = video.get("nc") is True
                score = video_score(theme_type, sequence, resolution, creditless)
                if best_score is not None and best_score >= score:
                    continue
                raw_id = video.get("id")
                track_id = str(raw_id) if raw_id is not None else f"{slug or theme_type or 'theme'}:{sequence}"
                label = slug or f"{theme_type or 'TH'}{sequence if sequence > 0 else ''}"
                best_score = score
                best = AnimeThemeVideo(
                    track_id=track_id,
                    anime_name=anime_name,
                    theme_label=label,
                    source_url=link,
                    resolution=resolution,
                    creditless=creditless,
                )
    return best


def dedupe_search_terms(canonical_title: str, aliases) -> list[str]:
    output: list[str] = []
    seen: set[str] = set()
    for raw in [canonical_title, *(aliases or [])]:
        term = (raw or "").strip()
        if not term or term.lower() in seen:
            continue
        seen.add(term.lower())
        output.append(term)
        if len(output) >= MAX_SEARCH_TERMS:
            break
    return output


class AnimeThemesClient:
    """Name lookups against the AnimeThemes API with a TTL cache.

    Misses are cached too, so a title without themes is not re-queried until
    its entry expires.
    """

    def __init__(self, *, session=None, clock=time.time, ttl_seconds=CACHE_TTL_SECONDS):
        self.session = session
        self._clock = clock
        self._ttl_seconds = ttl_seconds
        self._lock = threading.Lock()
        self._cache: dict[str, tuple[float, Optional[AnimeThemeVideo]]] = {}

    def _cache_get(self, key):
        with self._lock:
            entry = self._cache.get(key)
            if entry is None:
                return False, None
            expires_at, value = entry
            if expires_at <= self._clock():
                self._cache.pop(key, None)
                return False, None
            return True, value

    def _cache_set(self, key, value):
        with self._lock:
            self._cache[key] = (self._clock() + self._ttl_seconds, value)
            while len(self._cache) > CACHE_MAX_ENTRIES:
                self._cache.pop(next(iter(self._cache)))

    def lookup_by_name(self, name: str) -> Optional[AnimeThemeVideo]:
        key = (name or "").strip().lower()
        if not key:
            return None
        hit, value = self._cache_get(key)
        if hit:
            return value
        payload = fetch_json_with_timeout(
            _ANIMETHEMES_API_URL,
            params={
                "filter[name]": name.strip(),
                "include": "animethemes.animethemeentries.videos",
                "page[size]": 1,
            },
            timeout_sec=7.0,
            retries=1,
            provider="animethemes",
            context={"route": "anime"},
            session=self.session,
        )
        resolved = pick_best_video(payload) if payload else None
        self._cache_set(key, resolved)
        return resolved

    def resolve(self, canonical_title: str, aliases=()) -> Optional[AnimeThemeVideo]:
        terms = dedupe_search_terms(canonical_title, aliases)
        for term in terms:
            resolved = self.lookup_by_name(term)
            if resolved is not None:
                return resolved
        if terms:
            log_event(
                logging.WARNING,
                "animethemes_video_not_found",
                canonical_title=canonical_title,
                term_count=len(terms),
            )
        return None
