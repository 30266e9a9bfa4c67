from __future__ import annotations

from engine.junk_filter import filter_junk_tracks, is_likely_ad_track, normalize_ad_text
from fakes import catalog_track


def test_normalize_ad_text_folds_accents() -> None:
    assert normalize_ad_text("Publicité!") == "publicite"


def test_deezer_ads_are_junk() -> None:
    assert is_likely_ad_track("Publicité", "Deezer Ads")
    assert is_likely_ad_track("Deezer Session", "Various")
    assert is_likely_ad_track("Get the best free music app", "Heartify")


def test_regular_tracks_are_kept() -> None:
    assert not is_likely_ad_track("Harder, Better, Faster, Stronger", "Daft Punk")
    assert not is_likely_ad_track("Public Service Announcement", "JAY-Z")
    assert not is_likely_ad_track("", "")


def test_filter_preserves_order() -> None:
    tracks = [
        catalog_track("One More Time", "Daft Punk"),
        catalog_track("Publicité", "Deezer Ads", provider="deezer"),
        catalog_track("Digital Love", "Daft Punk"),
    ]
    kept = filter_junk_tracks(tracks)
    assert [track.title for track in kept] == ["One More Time", "Digital Love"]
