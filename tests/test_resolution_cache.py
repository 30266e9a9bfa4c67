from __future__ import annotations

from engine.models import ResolvedPlaybackTrack
from engine.resolution_cache import ResolutionCache, default_resolution_cache


def _track(video_id: str) -> ResolvedPlaybackTrack:
    return ResolvedPlaybackTrack(
        provider="youtube",
        id=video_id,
        title="Song",
        artist="Artist",
        source_url=f"https://www.youtube.com/watch?v={video_id}",
    )


def test_get_returns_stored_track_until_expiry() -> None:
    now = [1000.0]
    cache = ResolutionCache(ttl_seconds=60, clock=lambda: now[0])
    cache.set("song::artist", _track("abc"))

    assert cache.get("song::artist").id == "abc"
    now[0] += 59
    assert cache.get("song::artist") is not None
    now[0] += 2
    assert cache.get("song::artist") is None
    assert len(cache) == 0


def test_clear_and_missing_keys() -> None:
    cache = ResolutionCache()
    assert cache.get("nope") is None
    cache.set("a::b", _track("x"))
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_default_cache_is_shared() -> None:
    assert default_resolution_cache() is default_resolution_cache()
