"""AniList watch history as a track source.

Each user's CURRENT/COMPLETED anime list is merged, deduplicated by title,
and mapped to the best AnimeThemes opening. Titles without a theme video fall
back to an ``"<title> opening"`` track that the resolver searches on YouTube.
"""

import logging

from config.settings import ANILIST_ENTRIES_PER_USER, ANILIST_MAX_USERS
from engine.log_events import log_event
from engine.models import CatalogTrack, SourceType, TrackAnswer
from metadata.providers.animethemes import AnimeThemesClient
from metadata.providers.base import dedupe_by_signature
from metadata.providers.http import fetch_json_with_timeout

_ANILIST_GRAPHQL_URL = "https://graphql.anilist.co"

ANILIST_TRACK_LIMIT_MAX = 30

MEDIA_LIST_QUERY = """
query ($userName: String) {
  MediaListCollection(
    userName: $userName
    type: ANIME
    status_in: [CURRENT, COMPLETED]
    sort: [UPDATED_TIME_DESC]
  ) {
    lists {
      entries {
        media {
          id
          title { romaji english native }
          synonyms
        }
      }
    }
  }
}
"""


def pick_title(title):
    if not isinstance(title, dict):
        return None
    for key in ("romaji", "english", "native"):
        value = title.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def normalize_synonyms(values, canonical_title):
    output = []
    seen = set()
    for value in [canonical_title, *(values or [])]:
        text = value.strip() if isinstance(value, str) else ""
        if not text or text.lower() in seen:
            continue
        seen.add(text.lower())
        output.append(text)
    return output


def decode_media_entries(payload, limit=ANILIST_ENTRIES_PER_USER):
    """Return ``(media_id, canonical_title, synonyms)`` tuples from a MediaListCollection payload."""
    collection = ((payload or {}).get("data") or {}).get("MediaListCollection") or {}
    entries = []
    seen = set()
    for media_list in collection.get("lists") or []:
        for entry in (media_list or {}).get("entries") or []:
            media = (entry or {}).get("media") or {}
            title = pick_title(media.get("title"))
            if not title or title.lower() in seen:
                continue
            seen.add(title.lower())
            media_id = str(media.get("id") or title.lower())
            entries.append((media_id, title, normalize_synonyms(media.get("synonyms"), title)))
            if len(entries) >= limit:
                return entries
    return entries


class AniListCatalogProvider:
    name = "anilist"

    def __init__(self, *, access_token=None, animethemes=None, session=None):
        self.access_token = (access_token or "").strip() or None
        self.animethemes = animethemes or AnimeThemesClient(session=session)
        self.session = session

    def fetch_user_entries(self, username):
        username = (username or "").strip()
        if not username:
            return []
        headers = {"Content-Type": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        payload = fetch_json_with_timeout(
            _ANILIST_GRAPHQL_URL,
            method="POST",
            headers=headers,
            json_body={"query": MEDIA_LIST_QUERY, "variables": {"userName": username}},
            timeout_sec=8.0,
            retries=1,
            retry_delay_sec=0.35,
            provider=self.name,
            context={"route": "media_list_collection", "user_name": username},
            session=self.session,
        )
        return decode_media_entries(payload) if isinstance(payload, dict) else []

    def fetch(self, descriptor, limit):
        if descriptor.type is not SourceType.ANILIST_USERS:
            return []
        usernames = list(descriptor.usernames)[:ANILIST_MAX_USERS]
        if not usernames:
            return []
        safe_limit = max(1, min(int(limit), ANILIST_TRACK_LIMIT_MAX))

        merged = []
        seen_titles = set()
        for username in usernames:
            for entry in self.fetch_user_entries(username):
                key = entry[1].lower()
                if key in seen_titles:
                    continue
                seen_titles.add(key)
                merged.append(entry)

        tracks = []
        for media_id, title, synonyms in merged:
            tracks = dedupe_by_signature(tracks + [self._track_for_entry(media_id, title, synonyms)])
            if len(tracks) >= safe_limit:
                break

        log_event(
            logging.INFO,
            "anilist_opening_tracks_resolved",
            usernames=usernames,
            source_title_count=len(merged),
            resolved_track_count=len(tracks),
            requested_limit=safe_limit,
        )
        return tracks

    def _track_for_entry(self, media_id, title, synonyms):
        answer = TrackAnswer(canonical=title, aliases=list(synonyms), mode="anime")
        video = self.animethemes.resolve(title, synonyms)
        if video is not None:
            return CatalogTrack(
                provider="animethemes",
                source_id=video.track_id,
                title=video.theme_label,
                artist=video.anime_name,
                source_url=video.source_url,
                answer=answer,
            )
        return CatalogTrack(
            provider=self.name,
            source_id=f"{media_id}:opening",
            title=f"{title} opening",
            artist=title,
            answer=answer,
        )
