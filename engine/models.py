"""Track, candidate, and resolution records shared across the engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from engine.music_title_normalization import track_signature

YOUTUBE_WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def youtube_watch_url(video_id: str) -> str:
    return YOUTUBE_WATCH_URL.format(video_id=video_id)


class SourceType(Enum):
    SEARCH = "search"
    SPOTIFY_PLAYLIST = "spotify_playlist"
    SPOTIFY_CHART = "spotify_chart"
    DEEZER_PLAYLIST = "deezer_playlist"
    DEEZER_CHART = "deezer_chart"
    ANILIST_USERS = "anilist_users"


_PLAYLIST_TYPES = {
    "spotify": SourceType.SPOTIFY_PLAYLIST,
    "deezer": SourceType.DEEZER_PLAYLIST,
}
_CHART_TYPES = {
    "spotify": SourceType.SPOTIFY_CHART,
    "deezer": SourceType.DEEZER_CHART,
}


@dataclass(frozen=True)
class SourceDescriptor:
    """Parsed "where do tracks come from" request.

    Exactly one variant payload is populated: ``query`` for search,
    ``playlist_id`` for playlists, ``usernames`` for catalog users, and none
    for charts. Use the classmethod constructors rather than building one by
    hand.
    """

    type: SourceType
    original: str
    provider: Optional[str] = None
    query: str = ""
    playlist_id: Optional[str] = None
    usernames: tuple[str, ...] = ()

    @classmethod
    def search(cls, original: str, query: str) -> "SourceDescriptor":
        return cls(type=SourceType.SEARCH, original=original, query=query)

    @classmethod
    def playlist(cls, original: str, provider: str, playlist_id: str) -> "SourceDescriptor":
        return cls(
            type=_PLAYLIST_TYPES[provider],
            original=original,
            provider=provider,
            playlist_id=playlist_id,
        )

    @classmethod
    def chart(cls, original: str, provider: str) -> "SourceDescriptor":
        return cls(type=_CHART_TYPES[provider], original=original, provider=provider)

    @classmethod
    def catalog_users(cls, original: str, usernames) -> "SourceDescriptor":
        return cls(
            type=SourceType.ANILIST_USERS,
            original=original,
            provider="anilist",
            usernames=tuple(usernames),
        )

    @property
    def is_free_text(self) -> bool:
        return self.type is SourceType.SEARCH

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"type": self.type.value, "original": self.original}
        if self.type is SourceType.SEARCH:
            payload["query"] = self.query
        elif self.type in (SourceType.SPOTIFY_PLAYLIST, SourceType.DEEZER_PLAYLIST):
            payload["provider"] = self.provider
            payload["playlist_id"] = self.playlist_id
        elif self.type is SourceType.ANILIST_USERS:
            payload["usernames"] = list(self.usernames)
        else:
            payload["provider"] = self.provider
        return payload


@dataclass
class TrackAnswer:
    canonical: str
    aliases: list[str] = field(default_factory=list)
    mode: str = "anime"


@dataclass
class CatalogTrack:
    provider: str
    source_id: str
    title: str
    artist: str
    duration_sec: Optional[int] = None
    preview_url: Optional[str] = None
    source_url: Optional[str] = None
    answer: Optional[TrackAnswer] = None

    @property
    def signature(self) -> str:
        return track_signature(self.title, self.artist)


@dataclass
class ResolvedPlaybackTrack:
    provider: str
    id: str
    title: str
    artist: str
    source_url: str
    duration_sec: Optional[int] = None
    answer: Optional[TrackAnswer] = None

    @property
    def preview_url(self) -> None:
        # Playback goes through the embed, never an audio preview.
        return None

    @property
    def signature(self) -> str:
        return track_signature(self.title, self.artist)

    def to_dict(self) -> dict[str, Any]:
        answer = None
        if self.answer is not None:
            answer = {
                "canonical": self.answer.canonical,
                "aliases": list(self.answer.aliases),
                "mode": self.answer.mode,
            }
        return {
            "provider": self.provider,
            "id": self.id,
            "title": self.title,
            "artist": self.artist,
            "durationSec": self.duration_sec,
            "previewUrl": None,
            "sourceUrl": self.source_url,
            "answer": answer,
        }


@dataclass(frozen=True)
class VideoCandidate:
    id: str
    title: str
    channel_title: str
    source_url: str


@dataclass(frozen=True)
class ScoredCandidate:
    candidate: VideoCandidate
    score: int
    is_clip: bool
    is_audio: bool
    artist_channel_match: bool
    title_token_overlap: int
    title_token_count: int
    off_version_mismatch: bool
    deprioritized: bool = False


@dataclass
class DurableResolutionRecord:
    provider: str
    source_id: str
    title: str
    artist: str
    resolved_video_id: Optional[str] = None
    duration_ms: Optional[int] = None
    updated_at: Optional[str] = None
