from __future__ import annotations

import pytest

from engine.errors import ProviderRateLimitedError
from engine.models import SourceDescriptor
from fakes import catalog_track
from metadata.providers import deezer, spotify
from metadata.providers.anilist import AniListCatalogProvider, decode_media_entries, pick_title
from metadata.providers.animethemes import AnimeThemeVideo, dedupe_search_terms, pick_best_video
from metadata.providers.catalog_search import CatalogSearchProvider


class FakeResponse:
    def __init__(self, status_code, payload=None, headers=None):
        self.status_code = status_code
        self._payload = payload
        self.headers = headers or {}

    def json(self):
        return self._payload


class SpotifySession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []
        self.token_posts = 0

    def post(self, url, **kwargs):
        self.token_posts += 1
        return FakeResponse(200, {"access_token": "tok", "expires_in": 3600})

    def request(self, method, url, **kwargs):
        self.requests.append((method, url, kwargs))
        return self.responses.pop(0)


def _spotify_item(track_id, name, artist, **extra):
    item = {"id": track_id, "name": name, "artists": [{"name": artist}], "duration_ms": 201_400}
    item.update(extra)
    return item


def test_spotify_decode_playlist_items_skips_local_and_null() -> None:
    raw = [
        {"track": _spotify_item("a", "Song A", "Band", preview_url="https://p/a.mp3")},
        {"track": None},
        {"is_local": True, "track": _spotify_item("b", "Local Song", "Me")},
        {"track": _spotify_item("c", "song a", "BAND")},
        {"track": _spotify_item("d", "Song D", "Band")},
    ]

    tracks, skipped_local, skipped_null = spotify.decode_playlist_items(raw)

    assert [track.source_id for track in tracks] == ["a", "d"]
    assert skipped_local == 1
    assert skipped_null == 1
    assert tracks[0].duration_sec == 201
    assert tracks[0].preview_url == "https://p/a.mp3"
    assert tracks[1].source_url == "https://open.spotify.com/track/d"


def test_spotify_without_credentials_returns_empty() -> None:
    provider = spotify.SpotifyCatalogProvider(client_id="", client_secret="", session=SpotifySession())

    assert provider.fetch_playlist("37i9dQZF1DXcBWIGoYBM5M") == []
    assert provider.search("anything") == []


def test_spotify_rate_limit_enters_cooldown() -> None:
    session = SpotifySession(FakeResponse(429, headers={"Retry-After": "5"}))
    provider = spotify.SpotifyCatalogProvider(
        client_id="id",
        client_secret="secret",
        session=session,
        clock=lambda: 1000.0,
    )

    with pytest.raises(ProviderRateLimitedError) as first:
        provider.fetch_playlist("37i9dQZF1DXcBWIGoYBM5M")
    assert first.value.retry_after_sec == 5.0

    with pytest.raises(ProviderRateLimitedError):
        provider.fetch_playlist("37i9dQZF1DXcBWIGoYBM5M")
    assert len(session.requests) == 1
    assert session.token_posts == 1


def test_spotify_playlist_fetch_truncates_to_limit() -> None:
    items = [{"track": _spotify_item(str(i), f"Song {i}", "Band")} for i in range(5)]
    session = SpotifySession(FakeResponse(200, {"items": items}))
    provider = spotify.SpotifyCatalogProvider(client_id="id", client_secret="secret", session=session)

    tracks = provider.fetch(SourceDescriptor.playlist("x", "spotify", "37i9dQZF1DXcBWIGoYBM5M"), 3)

    assert [track.title for track in tracks] == ["Song 0", "Song 1", "Song 2"]
    method, url, kwargs = session.requests[0]
    assert url.endswith("/playlists/37i9dQZF1DXcBWIGoYBM5M/tracks")
    assert kwargs["headers"]["Authorization"] == "Bearer tok"


def test_deezer_decode_tracks() -> None:
    payload = {
        "data": [
            {"id": 3135556, "title": "Harder, Better, Faster, Stronger", "artist": {"name": "Daft Punk"},
             "duration": 224, "preview": "https://cdn/p.mp3", "link": "https://www.deezer.com/track/3135556"},
            {"id": 2, "title": "", "artist": {"name": "Nobody"}},
            {"id": 3, "title": "No Preview", "artist": {"name": "Someone"}, "duration": 0},
        ]
    }

    tracks = deezer.decode_tracks(payload)

    assert [track.source_id for track in tracks] == ["3135556", "3"]
    assert tracks[0].duration_sec == 224
    assert tracks[1].duration_sec is None
    assert tracks[1].source_url == "https://www.deezer.com/track/3"
    assert deezer.decode_tracks(None) == []


def test_deezer_rejects_non_numeric_playlist_and_disabled() -> None:
    provider = deezer.DeezerCatalogProvider(session=object())
    assert provider.fetch_playlist("abc", 10) == []

    disabled = deezer.DeezerCatalogProvider(enabled=False)
    assert disabled.fetch(SourceDescriptor.chart("deezer:chart", "deezer"), 10) == []


def test_animethemes_prefers_creditless_opening() -> None:
    payload = {
        "anime": [
            {
                "name": "Cowboy Bebop",
                "animethemes": [
                    {
                        "type": "ED",
                        "slug": "ED1",
                        "sequence": 1,
                        "animethemeentries": [
                            {"videos": [{"id": 1, "link": "https://v.animethemes.moe/ed.webm", "resolution": 1080}]}
                        ],
                    },
                    {
                        "type": "OP",
                        "slug": "OP1",
                        "sequence": 1,
                        "animethemeentries": [
                            {
                                "videos": [
                                    {"id": 2, "link": "https://v.animethemes.moe/op.webm", "resolution": 720},
                                    {"id": 3, "link": "https://v.animethemes.moe/op-nc.webm", "resolution": 720, "nc": True},
                                    {"id": 4, "link": "https://v.animethemes.moe/op.mp4", "resolution": 1080, "nc": True},
                                ]
                            }
                        ],
                    },
                ],
            }
        ]
    }

    best = pick_best_video(payload)

    assert best == AnimeThemeVideo(
        track_id="3",
        anime_name="Cowboy Bebop",
        theme_label="OP1",
        source_url="https://v.animethemes.moe/op-nc.webm",
        resolution=720,
        creditless=True,
    )
    assert pick_best_video({"anime": []}) is None


def test_animethemes_search_terms_dedupe_case_insensitively() -> None:
    assert dedupe_search_terms("Shingeki no Kyojin", ["Attack on Titan", "shingeki no kyojin", " "]) == [
        "Shingeki no Kyojin",
        "Attack on Titan",
    ]


def test_anilist_decode_media_entries() -> None:
    payload = {
        "data": {
            "MediaListCollection": {
                "lists": [
                    {
                        "entries": [
                            {"media": {"id": 1, "title": {"romaji": "Shingeki no Kyojin", "english": "Attack on Titan"},
                                       "synonyms": ["AoT"]}},
                            {"media": {"id": 2, "title": {"english": "Frieren"}, "synonyms": []}},
                        ]
                    },
                    {"entries": [{"media": {"id": 1, "title": {"romaji": "Shingeki no Kyojin"}}}]},
                ]
            }
        }
    }

    entries = decode_media_entries(payload)

    assert entries == [
        ("1", "Shingeki no Kyojin", ["Shingeki no Kyojin", "AoT"]),
        ("2", "Frieren", ["Frieren"]),
    ]
    assert pick_title({"romaji": " ", "native": "進撃の巨人"}) == "進撃の巨人"


class FakeAnimeThemes:
    def __init__(self, videos):
        self.videos = videos

    def resolve(self, canonical_title, aliases=()):
        return self.videos.get(canonical_title)


def test_anilist_fetch_maps_themes_and_falls_back(monkeypatch) -> None:
    themes = FakeAnimeThemes(
        {
            "Cowboy Bebop": AnimeThemeVideo(
                track_id="99",
                anime_name="Cowboy Bebop",
                theme_label="OP1",
                source_url="https://v.animethemes.moe/CowboyBebop-OP1.webm",
                resolution=720,
                creditless=True,
            )
        }
    )
    provider = AniListCatalogProvider(animethemes=themes)
    lists = {
        "alice": [("1", "Cowboy Bebop", ["Cowboy Bebop"]), ("2", "Frieren", ["Frieren", "Sousou no Frieren"])],
        "bob": [("1", "cowboy bebop", ["cowboy bebop"])],
    }
    monkeypatch.setattr(provider, "fetch_user_entries", lambda username: lists.get(username, []))

    tracks = provider.fetch(SourceDescriptor.catalog_users("anilist:users:alice,bob", ["alice", "bob"]), 10)

    assert [track.provider for track in tracks] == ["animethemes", "anilist"]
    assert tracks[0].title == "OP1"
    assert tracks[0].source_url.endswith(".webm")
    assert tracks[1].title == "Frieren opening"
    assert tracks[1].source_id == "2:opening"
    assert tracks[1].answer.aliases == ["Frieren", "Sousou no Frieren"]


class FakeSearchProvider:
    def __init__(self, name, results=None, error=None):
        self.name = name
        self.results = results or []
        self.error = error

    def search(self, query, limit):
        if self.error is not None:
            raise self.error
        return list(self.results)


def test_catalog_search_merges_and_skips_rate_limited_provider() -> None:
    first = FakeSearchProvider("spotify", error=ProviderRateLimitedError("spotify", 3))
    second = FakeSearchProvider(
        "deezer",
        [
            catalog_track("Song A", "Band", provider="deezer"),
            catalog_track("Song B", "Band", provider="deezer", preview_url="https://p/b.mp3"),
        ],
    )
    third = FakeSearchProvider("other", [catalog_track("song a", "band", provider="other")])

    tracks = CatalogSearchProvider([first, second, None, third]).fetch(SourceDescriptor.search("q", "song"), 10)

    assert [track.title for track in tracks] == ["Song B", "Song A"]
