import logging

from engine.log_events import log_event
from engine.models import CatalogTrack, SourceType
from metadata.providers.base import dedupe_by_signature
from metadata.providers.http import fetch_json_with_timeout

_DEEZER_API_URL = "https://api.deezer.com"
_DEEZER_TRACK_URL = "https://www.deezer.com/track/{track_id}"

DEEZER_LIMIT_MAX = 100


def decode_track(item):
    if not isinstance(item, dict):
        return None
    track_id = item.get("id")
    title = str(item.get("title") or "").strip()
    artist = str((item.get("artist") or {}).get("name") or "").strip()
    if not track_id or not title or not artist:
        return None
    duration = item.get("duration")
    return CatalogTrack(
        provider="deezer",
        source_id=str(track_id),
        title=title,
        artist=artist,
        duration_sec=int(duration) if isinstance(duration, (int, float)) and duration > 0 else None,
        preview_url=item.get("preview") or None,
        source_url=item.get("link") or _DEEZER_TRACK_URL.format(track_id=track_id),
    )


def decode_tracks(payload):
    items = payload.get("data") if isinstance(payload, dict) else None
    return dedupe_by_signature(track for track in map(decode_track, items or []) if track is not None)


class DeezerCatalogProvider:
    """Deezer public API. No credentials; disabled providers return nothing."""

    name = "deezer"

    def __init__(self, *, enabled=True, session=None):
        self.enabled = enabled
        self.session = session

    def _get(self, path, params, route):
        return fetch_json_with_timeout(
            f"{_DEEZER_API_URL}{path}",
            params=params,
            provider=self.name,
            context={"route": route},
            session=self.session,
        )

    def fetch(self, descriptor, limit):
        if not self.enabled:
            return []
        if descriptor.type is SourceType.DEEZER_PLAYLIST:
            return self.fetch_playlist(descriptor.playlist_id or "", limit)
        if descriptor.type is SourceType.DEEZER_CHART:
            return self.fetch_chart(limit)
        if descriptor.type is SourceType.SEARCH:
            return self.search(descriptor.query, limit)
        return []

    def fetch_playlist(self, playlist_id, limit):
        playlist_id = (playlist_id or "").strip()
        if not playlist_id.isdigit():
            log_event(logging.WARNING, "deezer_playlist_invalid_id", playlist_id=playlist_id)
            return []
        payload = self._get(
            f"/playlist/{playlist_id}/tracks",
            {"limit": max(1, min(int(limit), DEEZER_LIMIT_MAX))},
            "playlist_tracks",
        )
        return decode_tracks(payload)

    def fetch_chart(self, limit):
        payload = self._get("/chart/0/tracks", {"limit": max(1, min(int(limit), DEEZER_LIMIT_MAX))}, "chart_tracks")
        return decode_tracks(payload)

    def search(self, query, limit=10):
        if not self.enabled:
            return []
        query = (query or "").strip()
        if not query:
            return []
        payload = self._get("/search", {"q": query, "limit": max(1, min(int(limit), DEEZER_LIMIT_MAX))}, "search")
        return decode_tracks(payload)
