from __future__ import annotations

from engine.models import SourceType
from input.source_router import parse_track_source, parse_usernames


def test_blank_source_searches_default_query() -> None:
    descriptor = parse_track_source("   ")
    assert descriptor.type == SourceType.SEARCH
    assert descriptor.query == "top hits"
    assert descriptor.is_free_text


def test_free_text_is_trimmed() -> None:
    descriptor = parse_track_source("  daft punk  ")
    assert descriptor.type == SourceType.SEARCH
    assert descriptor.query == "daft punk"
    assert descriptor.original == "  daft punk  "


def test_spotify_playlist_from_url_drops_query_string() -> None:
    descriptor = parse_track_source(
        "spotify:playlist:https://open.spotify.com/playlist/37i9dQZF1DXcBWIGoYBM5M?si=abc123"
    )
    assert descriptor.type == SourceType.SPOTIFY_PLAYLIST
    assert descriptor.provider == "spotify"
    assert descriptor.playlist_id == "37i9dQZF1DXcBWIGoYBM5M"
    assert not descriptor.is_free_text


def test_spotify_playlist_prefix_is_case_insensitive() -> None:
    descriptor = parse_track_source("SPOTIFY:PLAYLIST:37i9dQZF1DXcBWIGoYBM5M")
    assert descriptor.type == SourceType.SPOTIFY_PLAYLIST
    assert descriptor.playlist_id == "37i9dQZF1DXcBWIGoYBM5M"


def test_spotify_chart_aliases() -> None:
    assert parse_track_source("spotify:popular").type == SourceType.SPOTIFY_CHART
    assert parse_track_source("spotify:chart").type == SourceType.SPOTIFY_CHART


def test_deezer_playlist_from_localized_url() -> None:
    descriptor = parse_track_source("deezer:playlist:https://www.deezer.com/fr/playlist/1234567?utm_source=x")
    assert descriptor.type == SourceType.DEEZER_PLAYLIST
    assert descriptor.playlist_id == "1234567"


def test_deezer_chart() -> None:
    descriptor = parse_track_source("deezer:chart")
    assert descriptor.type == SourceType.DEEZER_CHART
    assert descriptor.to_dict() == {"type": "deezer_chart", "original": "deezer:chart", "provider": "deezer"}


def test_empty_playlist_id_is_kept_empty() -> None:
    descriptor = parse_track_source("spotify:playlist:")
    assert descriptor.type == SourceType.SPOTIFY_PLAYLIST
    assert descriptor.playlist_id == ""


def test_catalog_users_are_deduplicated_case_insensitively() -> None:
    descriptor = parse_track_source("anilist:users:Alice, bob ,alice,,Carol")
    assert descriptor.type == SourceType.ANILIST_USERS
    assert descriptor.usernames == ("Alice", "bob", "Carol")
    assert parse_track_source("catalog:users:dan").usernames == ("dan",)


def test_usernames_are_capped() -> None:
    names = ",".join(f"user{i}" for i in range(12))
    assert len(parse_usernames(names)) == 8


def test_search_descriptor_to_dict() -> None:
    assert parse_track_source("lofi").to_dict() == {"type": "search", "original": "lofi", "query": "lofi"}
