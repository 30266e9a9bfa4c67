import base64
import logging
import threading
import time
import urllib.parse

import requests

from config.settings import (
    SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS,
    SPOTIFY_RATE_LIMIT_COOLDOWN_SECONDS,
)
from engine.errors import ProviderRateLimitedError
from engine.log_events import log_event
from engine.models import CatalogTrack, SourceType
from metadata.providers.base import (
    ProviderTrackPayload,
    dedupe_by_signature,
    prioritize_by_preview,
)
from metadata.providers.http import fetch_json_with_timeout

_SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
_SPOTIFY_SEARCH_URL = "https://api.spotify.com/v1/search"
_SPOTIFY_PLAYLIST_TRACKS_URL = "https://api.spotify.com/v1/playlists/{playlist_id}/tracks"
_SPOTIFY_TRACK_URL = "https://open.spotify.com/track/{track_id}"

PLAYLIST_PAGE_LIMIT = 100
SEARCH_LIMIT_MAX = 10
PLAYLIST_RETRIES = 4
PLAYLIST_RETRY_DELAY_SEC = 0.35


def decode_track(item: ProviderTrackPayload | None):
    """Map a Spotify track object to a ``CatalogTrack``; ``None`` when incomplete."""
    if not isinstance(item, dict):
        return None
    track_id = item.get("id")
    title = str(item.get("name") or "").strip()
    artists = item.get("artists") or []
    first = artists[0] if artists and isinstance(artists[0], dict) else {}
    artist = str(first.get("name") or "").strip()
    if not track_id or not title or not artist:
        return None
    duration_ms = item.get("duration_ms")
    duration_sec = None
    if isinstance(duration_ms, (int, float)) and duration_ms > 0:
        duration_sec = max(1, round(duration_ms / 1000))
    external = item.get("external_urls") or {}
    return CatalogTrack(
        provider="spotify",
        source_id=str(track_id),
        title=title,
        artist=artist,
        duration_sec=duration_sec,
        preview_url=item.get("preview_url") or None,
        source_url=external.get("spotify") or _SPOTIFY_TRACK_URL.format(track_id=track_id),
    )


def decode_playlist_items(raw_items):
    """Decode playlist entries, skipping local files and removed tracks."""
    tracks = []
    skipped_local = 0
    skipped_null = 0
    for entry in raw_items or []:
        if not isinstance(entry, dict):
            skipped_null += 1
            continue
        if "track" in entry or "item" in entry or "is_local" in entry:
            track = entry.get("track") or entry.get("item")
            is_local = entry.get("is_local") is True or (isinstance(track, dict) and track.get("is_local") is True)
        else:
            track = entry
            is_local = entry.get("is_local") is True
        if is_local:
            skipped_local += 1
            continue
        mapped = decode_track(track)
        if mapped is None:
            skipped_null += 1
            continue
        tracks.append(mapped)
    return dedupe_by_signature(tracks), skipped_local, skipped_null


class SpotifyCatalogProvider:
    name = "spotify"

    def __init__(
        self,
        *,
        client_id,
        client_secret,
        popular_playlist_ids=SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS,
        session=None,
        clock=time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.popular_playlist_ids = tuple(popular_playlist_ids or SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS)
        self.session = session
        self._clock = clock
        self._lock = threading.Lock()
        self._token = None
        self._token_expires_at = 0
        self._rate_limited_until = 0.0

    def _has_credentials(self):
        return bool(self.client_id and self.client_secret)

    def _get_token(self):
        if not self._has_credentials():
            return None
        now = self._clock()
        with self._lock:
            if self._token and now < self._token_expires_at:
                return self._token
        auth = base64.b64encode(f"{self.client_id}:{self.client_secret}".encode("utf-8")).decode("ascii")
        headers = {"Authorization": f"Basic {auth}"}
        data = {"grant_type": "client_credentials"}
        http = self.session or requests
        try:
            response = http.post(_SPOTIFY_TOKEN_URL, data=data, headers=headers, timeout=15)
        except requests.RequestException:
            logging.exception("Spotify token request failed")
            return None
        if response.status_code != 200:
            logging.warning("Spotify token request failed: status=%s", response.status_code)
            return None
        payload = response.json()
        token = payload.get("access_token")
        expires_in = int(payload.get("expires_in") or 0)
        if not token:
            return None
        with self._lock:
            self._token = token
            self._token_expires_at = now + max(0, expires_in - 30)
        return token

    def rate_limit_retry_after(self):
        return max(0.0, self._rate_limited_until - self._clock())

    def _register_rate_limit(self, retry_after_sec):
        cooldown = SPOTIFY_RATE_LIMIT_COOLDOWN_SECONDS
        if retry_after_sec:
            cooldown = max(1.0, min(float(retry_after_sec), SPOTIFY_RATE_LIMIT_COOLDOWN_SECONDS))
        with self._lock:
            self._rate_limited_until = max(self._rate_limited_until, self._clock() + cooldown)

    def fetch(self, descriptor, limit):
        if descriptor.type is SourceType.SPOTIFY_PLAYLIST:
            return self.fetch_playlist(descriptor.playlist_id or "", limit)
        if descriptor.type is SourceType.SPOTIFY_CHART:
            return self.fetch_popular(limit)
        if descriptor.type is SourceType.SEARCH:
            return self.search(descriptor.query, limit)
        return []

    def fetch_playlist(self, playlist_id, limit=PLAYLIST_PAGE_LIMIT):
        playlist_id = (playlist_id or "").strip()
        if not playlist_id:
            log_event(logging.WARNING, "spotify_playlist_invalid_id", playlist_id=playlist_id)
            return []
        token = self._get_token()
        if not token:
            log_event(logging.ERROR, "spotify_playlist_missing_access_token", playlist_id=playlist_id)
            return []
        if self.rate_limit_retry_after() > 0:
            raise ProviderRateLimitedError(self.name, self.rate_limit_retry_after())

        safe_limit = max(1, min(int(limit), PLAYLIST_PAGE_LIMIT))
        url = _SPOTIFY_PLAYLIST_TRACKS_URL.format(playlist_id=urllib.parse.quote(playlist_id, safe=""))
        try:
            payload = fetch_json_with_timeout(
                url,
                params={"limit": PLAYLIST_PAGE_LIMIT, "offset": 0},
                headers={"Authorization": f"Bearer {token}"},
                retries=PLAYLIST_RETRIES,
                retry_delay_sec=PLAYLIST_RETRY_DELAY_SEC,
                provider=self.name,
                context={"route": "playlist_tracks", "playlist_id": playlist_id},
                raise_on_rate_limit=True,
                session=self.session,
            )
        except ProviderRateLimitedError as exc:
            self._register_rate_limit(exc.retry_after_sec)
            log_event(
                logging.WARNING,
                "spotify_playlist_rate_limited",
                playlist_id=playlist_id,
                retry_after_sec=self.rate_limit_retry_after(),
            )
            raise ProviderRateLimitedError(self.name, self.rate_limit_retry_after()) from exc

        raw_items = None
        if isinstance(payload, dict):
            raw_items = payload.get("items")
            if not isinstance(raw_items, list):
                raw_items = (payload.get("tracks") or {}).get("items")
        if not isinstance(raw_items, list):
            log_event(logging.WARNING, "spotify_playlist_tracks_empty", playlist_id=playlist_id, fetched_items=0)
            return []

        tracks, skipped_local, skipped_null = decode_playlist_items(raw_items)
        if not tracks:
            log_event(
                logging.WARNING,
                "spotify_playlist_tracks_empty",
                playlist_id=playlist_id,
                fetched_items=len(raw_items),
                skipped_local_tracks=skipped_local,
                skipped_null_tracks=skipped_null,
            )
            return []
        with self._lock:
            self._rate_limited_until = 0.0
        return tracks[:safe_limit]

    def fetch_popular(self, limit):
        safe_limit = max(1, min(int(limit), 50))
        merged = []
        for playlist_id in self.popular_playlist_ids:
            merged = dedupe_by_signature(merged + self.fetch_playlist(playlist_id))
            if len(merged) >= safe_limit * 3:
                break
        return prioritize_by_preview(merged, safe_limit)

    def search(self, query, limit=SEARCH_LIMIT_MAX):
        query = (query or "").strip()
        if not query:
            return []
        token = self._get_token()
        if not token:
            return []
        payload = fetch_json_with_timeout(
            _SPOTIFY_SEARCH_URL,
            params={"type": "track", "q": query, "limit": max(1, min(int(limit), SEARCH_LIMIT_MAX))},
            headers={"Authorization": f"Bearer {token}"},
            provider=self.name,
            context={"route": "search_tracks"},
            session=self.session,
        )
        items = ((payload or {}).get("tracks") or {}).get("items") or []
        return dedupe_by_signature(track for track in map(decode_track, items) if track is not None)
