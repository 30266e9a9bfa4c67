from __future__ import annotations

import re
from urllib.parse import parse_qs, urlparse

from engine.models import ResolvedPlaybackTrack, youtube_watch_url

_VIDEO_ID_RE = re.compile(r"^[A-Za-z0-9_-]{6,}$")


def _has_text(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def has_youtube_playback(provider, source_url) -> bool:
    if provider == "youtube":
        return True
    if not _has_text(source_url):
        return False
    lowered = source_url.lower()
    return "youtube.com/watch" in lowered or "youtu.be/" in lowered


def has_animethemes_playback(provider, source_url) -> bool:
    if provider == "animethemes":
        return True
    if not _has_text(source_url):
        return False
    lowered = source_url.lower()
    return "animethemes.moe/" in lowered or lowered.endswith(".webm")


def is_track_playable(track) -> bool:
    provider = getattr(track, "provider", None)
    source_url = getattr(track, "source_url", None)
    return has_youtube_playback(provider, source_url) or has_animethemes_playback(provider, source_url)


def extract_youtube_video_id(source_url) -> str | None:
    if not _has_text(source_url):
        return None
    parsed = urlparse(source_url.strip())
    host = (parsed.netloc or "").lower()
    if host.endswith("youtu.be"):
        candidate = (parsed.path or "").strip("/").split("/", 1)[0]
    else:
        candidate = (parse_qs(parsed.query).get("v") or [""])[0]
    candidate = candidate.strip()
    return candidate if _VIDEO_ID_RE.match(candidate) else None


def as_playable(track) -> ResolvedPlaybackTrack | None:
    """Convert an already-playable catalog track; ``None`` when it needs resolving."""
    if has_animethemes_playback(track.provider, track.source_url):
        if not _has_text(track.source_url):
            return None
        return ResolvedPlaybackTrack(
            provider="animethemes",
            id=track.source_id,
            title=track.title,
            artist=track.artist,
            source_url=track.source_url,
            duration_sec=track.duration_sec,
            answer=track.answer,
        )
    if has_youtube_playback(track.provider, track.source_url):
        video_id = extract_youtube_video_id(track.source_url) or track.source_id
        return ResolvedPlaybackTrack(
            provider="youtube",
            id=video_id,
            title=track.title,
            artist=track.artist,
            source_url=track.source_url or youtube_watch_url(video_id),
            duration_sec=track.duration_sec,
            answer=track.answer,
        )
    return None
