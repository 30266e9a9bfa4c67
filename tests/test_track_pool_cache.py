from __future__ import annotations

import pytest

from engine.track_pool_cache import TrackPoolCache


def test_fresh_entries_are_served_from_cache() -> None:
    now = [0.0]
    cache = TrackPoolCache(ttl_seconds=300, clock=lambda: now[0])
    loads = []

    def loader():
        loads.append(1)
        return ["track"]

    assert cache.get_or_load("Top Hits", 10, loader) == ["track"]
    assert cache.get_or_load("top hits ", 10, loader) == ["track"]
    assert len(loads) == 1
    assert cache.stats()["hits"] == 1

    cache.get_or_load("top hits", 20, loader)
    assert len(loads) == 2


def test_playlist_ids_keep_their_case() -> None:
    cache = TrackPoolCache()
    loads = []

    def loader():
        loads.append(1)
        return [f"pool{len(loads)}"]

    first = cache.get_or_load("spotify:playlist:37i9dQZF1DXcBWIGoYBM5M", 10, loader)
    second = cache.get_or_load("spotify:playlist:37I9DQZF1DXCBWIGOYBM5M", 10, loader)
    assert (first, second) == (["pool1"], ["pool2"])
    assert cache.get_or_load("SPOTIFY:PLAYLIST:37i9dQZF1DXcBWIGoYBM5M", 10, loader) == ["pool1"]
    assert len(loads) == 2


def test_stale_entry_served_when_reload_fails() -> None:
    now = [0.0]
    cache = TrackPoolCache(ttl_seconds=300, clock=lambda: now[0])
    cache.get_or_load("q", 5, lambda: ["old"])
    now[0] = 301.0

    def failing():
        raise RuntimeError("provider down")

    assert cache.get_or_load("q", 5, failing) == ["old"]
    assert cache.stats()["stale_served"] == 1


def test_failure_without_entry_propagates() -> None:
    cache = TrackPoolCache()

    def failing():
        raise RuntimeError("provider down")

    with pytest.raises(RuntimeError):
        cache.get_or_load("q", 5, failing)


def test_empty_pools_are_not_cached() -> None:
    cache = TrackPoolCache()
    loads = []

    def loader():
        loads.append(1)
        return []

    cache.get_or_load("q", 5, loader)
    cache.get_or_load("q", 5, loader)
    assert len(loads) == 2
    assert cache.stats()["entries"] == 0
