from __future__ import annotations

from config.settings import RESOLVE_CONCURRENCY, SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS, load_settings


def test_defaults_from_empty_environment() -> None:
    settings = load_settings({})

    assert settings.youtube_api_key is None
    assert settings.search_backend == "api"
    assert settings.spotify_popular_playlist_ids == SPOTIFY_DEFAULT_POPULAR_PLAYLIST_IDS
    assert settings.deezer_enabled is True
    assert settings.resolve_concurrency == RESOLVE_CONCURRENCY
    assert settings.log_level == "INFO"


def test_environment_overrides() -> None:
    settings = load_settings(
        {
            "YOUTUBE_API_KEY": " abc ",
            "TUNEPOOL_SEARCH_BACKEND": "YTDLP",
            "SPOTIFY_POPULAR_PLAYLIST_IDS": "one, two,,",
            "DEEZER_ENABLED": "false",
            "TUNEPOOL_DB_PATH": "/tmp/tunepool.sqlite",
            "TUNEPOOL_RESOLVE_CONCURRENCY": "8",
            "LOG_LEVEL": "debug",
        }
    )

    assert settings.youtube_api_key == "abc"
    assert settings.search_backend == "ytdlp"
    assert settings.spotify_popular_playlist_ids == ("one", "two")
    assert settings.deezer_enabled is False
    assert settings.db_path == "/tmp/tunepool.sqlite"
    assert settings.resolve_concurrency == 8
    assert settings.log_level == "DEBUG"


def test_invalid_values_fall_back() -> None:
    settings = load_settings({"TUNEPOOL_SEARCH_BACKEND": "scrape", "TUNEPOOL_RESOLVE_CONCURRENCY": "many"})

    assert settings.search_backend == "api"
    assert settings.resolve_concurrency == RESOLVE_CONCURRENCY
