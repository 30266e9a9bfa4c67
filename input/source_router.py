"""Source routing helpers for raw track-source strings."""

from __future__ import annotations

import re
from typing import Optional
from urllib.parse import unquote

from config.settings import ANILIST_MAX_USERS, DEFAULT_SEARCH_QUERY
from engine.models import SourceDescriptor

SPOTIFY_PLAYLIST_PREFIX = "spotify:playlist:"
SPOTIFY_CHART_ALIASES = ("spotify:popular", "spotify:chart")
DEEZER_PLAYLIST_PREFIX = "deezer:playlist:"
DEEZER_CHART_ALIASES = ("deezer:chart",)
CATALOG_USERS_PREFIXES = ("anilist:users:", "catalog:users:")

_SPOTIFY_URL_RE = re.compile(r"spotify\.com/(?:[a-z-]+/)?playlist/([a-zA-Z0-9]+)", re.IGNORECASE)
_SPOTIFY_URI_RE = re.compile(r"spotify:playlist:([a-zA-Z0-9]+)", re.IGNORECASE)
_SPOTIFY_TRAILING_ID_RE = re.compile(r"([a-zA-Z0-9]{8,})$")
_DEEZER_URL_RE = re.compile(r"deezer\.com/(?:[a-z]{2}/)?playlist/([0-9]+)", re.IGNORECASE)
_DEEZER_TRAILING_ID_RE = re.compile(r"([0-9]+)$")
_QUERY_OR_FRAGMENT_RE = re.compile(r"[?#].*$")


def parse_track_source(raw_source: str) -> SourceDescriptor:
    """Classify a raw source string without network calls.

    Rules:
    - ``spotify:playlist:<id|url>`` and ``deezer:playlist:<id|url>`` select a playlist.
    - ``spotify:popular``/``spotify:chart`` and ``deezer:chart`` select a chart.
    - ``anilist:users:a,b`` (or ``catalog:users:``) selects catalog users.
    - Anything else is a free-text search; blank input searches the default query.
    """
    original = raw_source or ""
    trimmed = original.strip()
    lower = trimmed.lower()

    if lower.startswith(SPOTIFY_PLAYLIST_PREFIX):
        playlist_id = _normalize_spotify_playlist_id(trimmed[len(SPOTIFY_PLAYLIST_PREFIX):])
        return SourceDescriptor.playlist(original, "spotify", playlist_id)

    if lower in SPOTIFY_CHART_ALIASES:
        return SourceDescriptor.chart(original, "spotify")

    if lower.startswith(DEEZER_PLAYLIST_PREFIX):
        playlist_id = _normalize_deezer_playlist_id(trimmed[len(DEEZER_PLAYLIST_PREFIX):])
        return SourceDescriptor.playlist(original, "deezer", playlist_id)

    if lower in DEEZER_CHART_ALIASES:
        return SourceDescriptor.chart(original, "deezer")

    for prefix in CATALOG_USERS_PREFIXES:
        if lower.startswith(prefix):
            return SourceDescriptor.catalog_users(original, parse_usernames(trimmed[len(prefix):]))

    return SourceDescriptor.search(original, trimmed or DEFAULT_SEARCH_QUERY)


def parse_usernames(raw: str) -> list[str]:
    seen: set[str] = set()
    usernames: list[str] = []
    for value in (raw or "").split(","):
        name = value.strip()
        if not name or name.lower() in seen:
            continue
        seen.add(name.lower())
        usernames.append(name)
    return usernames[:ANILIST_MAX_USERS]


def _safe_unquote(value: str) -> str:
    try:
        return unquote(value)
    except Exception:
        return value


def _strip_url_tail(value: str) -> str:
    return _QUERY_OR_FRAGMENT_RE.sub("", value).rstrip("/").strip()


def _normalize_spotify_playlist_id(raw: str) -> str:
    decoded = _safe_unquote((raw or "").strip())
    if not decoded:
        return ""
    for _ in range(4):
        stripped = re.sub(r"^spotify:playlist:", "", decoded, flags=re.IGNORECASE).strip()
        if stripped == decoded:
            break
        decoded = stripped
    from_url = _first_group(_SPOTIFY_URL_RE, decoded)
    if from_url:
        return from_url
    from_uri = _first_group(_SPOTIFY_URI_RE, decoded)
    if from_uri:
        return from_uri
    normalized = _strip_url_tail(decoded)
    return _first_group(_SPOTIFY_TRAILING_ID_RE, normalized) or normalized


def _normalize_deezer_playlist_id(raw: str) -> str:
    decoded = _safe_unquote((raw or "").strip())
    if not decoded:
        return ""
    from_url = _first_group(_DEEZER_URL_RE, decoded)
    if from_url:
        return from_url
    normalized = _strip_url_tail(decoded)
    return _first_group(_DEEZER_TRAILING_ID_RE, normalized) or normalized


def _first_group(pattern: re.Pattern[str], value: str) -> Optional[str]:
    match = pattern.search(value)
    return match.group(1) if match else None
