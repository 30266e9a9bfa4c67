"""Intent-tagged YouTube query plans for catalog tracks."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from engine.music_title_normalization import sanitize_track_search_value

_WS_RE = re.compile(r"\s+")


class SearchIntent(Enum):
    OFFICIAL_CLIP = "official_clip"
    OFFICIAL_AUDIO = "official_audio"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class QueryGroup:
    intent: SearchIntent
    queries: tuple[str, ...]


def _normalize_query(value: str) -> str:
    return _WS_RE.sub(" ", value or "").strip()


def _dedupe(queries) -> tuple[str, ...]:
    seen: set[str] = set()
    output: list[str] = []
    for raw in queries:
        query = _normalize_query(raw)
        key = query.lower()
        if not query or key in seen:
            continue
        seen.add(key)
        output.append(query)
    return tuple(output)


def _join(artist: str, title: str, suffix: str = "", *, separator: str = " - ") -> str:
    if not title:
        return ""
    head = f"{artist}{separator}{title}" if artist else title
    return f"{head} {suffix}" if suffix else head


def build_query_plan(track) -> list[QueryGroup]:
    """Return query groups in the order they should be tried.

    Narrow intents come first so the first search slot is not spent on a
    generic query that tends to surface lyric videos and reactions.
    """
    title = _normalize_query(track.title)
    artist = _normalize_query(track.artist)
    sanitized = sanitize_track_search_value(title) or title

    groups = [
        (
            SearchIntent.OFFICIAL_CLIP,
            [
                _join(artist, title, "official video"),
                _join(artist, sanitized, "official music video"),
            ],
        ),
        (
            SearchIntent.OFFICIAL_AUDIO,
            [_join(artist, title, "official audio")],
        ),
        (
            SearchIntent.FALLBACK,
            [
                _join(artist, title),
                _join(artist, sanitized),
                _join(artist, title, separator=" "),
            ],
        ),
    ]

    plan: list[QueryGroup] = []
    for intent, queries in groups:
        deduped = _dedupe(queries)
        if deduped:
            plan.append(QueryGroup(intent=intent, queries=deduped))
    return plan


def build_fill_queries(fill_query: str) -> list[str]:
    base = _normalize_query(fill_query)
    if not base:
        return []
    return list(_dedupe([base, f"{base} official video", f"{base} official audio"]))
