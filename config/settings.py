"""Application settings constants and environment-backed runtime settings."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

from engine.paths import DB_PATH

# Query used when a free-text source is blank.
DEFAULT_SEARCH_QUERY = "top hits"

# Requested pool size bounds.
POOL_SIZE_MIN = 1
POOL_SIZE_MAX = 100

# Provider fetch size: min(FETCH_LIMIT_MAX, max(FETCH_LIMIT_MIN, size * FETCH_LIMIT_FACTOR)).
FETCH_LIMIT_MIN = 24
FETCH_LIMIT_MAX = 120
FETCH_LIMIT_FACTOR = 2

# Resolve budget clamp. Tuned empirically; not a contract.
RESOLVE_BUDGET_MIN = 1
RESOLVE_BUDGET_MAX = 48

RESOLVE_CONCURRENCY = 4
SEARCH_RESULTS_PER_QUERY = 5

# Volatile title::artist cache.
RESOLUTION_CACHE_TTL_SECONDS = 24 * 60 * 60

# Whole-pool cache keyed by source query and size.
TRACK_POOL_CACHE_TTL_SECONDS = 5 * 60

QUERY_FILL_LIMIT_MAX = 10

SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS = ("37i9dQZEVXbMDoHDwVN2tF",)
SPOTIFY_RATE_LIMIT_COOLDOWN_SECONDS = 20.0

ANILIST_MAX_USERS = 8
ANILIST_ENTRIES_PER_USER = 80

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    youtube_api_key: str | None = None
    search_backend: str = "api"
    spotify_client_id: str | None = None
    spotify_client_secret: str | None = None
    spotify_popular_playlist_ids: tuple[str, ...] = SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS
    deezer_enabled: bool = True
    anilist_access_token: str | None = None
    db_path: str = str(DB_PATH)
    resolve_concurrency: int = RESOLVE_CONCURRENCY
    log_level: str = "INFO"


def _clean(value: str | None) -> str | None:
    cleaned = (value or "").strip()
    return cleaned or None


def _parse_int(value: str | None, default: int) -> int:
    try:
        return max(1, int(str(value).strip()))
    except (TypeError, ValueError):
        return default


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """Build ``Settings`` from environment variables."""
    env = os.environ if environ is None else environ

    backend = (_clean(env.get("TUNEPOOL_SEARCH_BACKEND")) or "api").lower()
    if backend not in {"api", "ytdlp"}:
        backend = "api"

    raw_playlists = _clean(env.get("SPOTIFY_POPULAR_PLAYLIST_IDS"))
    playlist_ids = SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS
    if raw_playlists:
        parsed = tuple(part.strip() for part in raw_playlists.split(",") if part.strip())
        playlist_ids = parsed or SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS

    deezer_raw = _clean(env.get("DEEZER_ENABLED"))
    deezer_enabled = True if deezer_raw is None else deezer_raw.lower() in _TRUTHY

    return Settings(
        youtube_api_key=_clean(env.get("YOUTUBE_API_KEY")),
        search_backend=backend,
        spotify_client_id=_clean(env.get("SPOTIFY_CLIENT_ID")),
        spotify_client_secret=_clean(env.get("SPOTIFY_CLIENT_SECRET")),
        spotify_popular_playlist_ids=playlist_ids,
        deezer_enabled=deezer_enabled,
        anilist_access_token=_clean(env.get("ANILIST_ACCESS_TOKEN")),
        db_path=_clean(env.get("TUNEPOOL_DB_PATH")) or str(DB_PATH),
        resolve_concurrency=_parse_int(env.get("TUNEPOOL_RESOLVE_CONCURRENCY"), RESOLVE_CONCURRENCY),
        log_level=(_clean(env.get("LOG_LEVEL")) or "INFO").upper(),
    )
