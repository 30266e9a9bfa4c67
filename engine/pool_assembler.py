"""Source string -> resolved, playable track pool."""

from __future__ import annotations

import logging
import random
import threading

from config.settings import (
    FETCH_LIMIT_FACTOR,
    FETCH_LIMIT_MAX,
    FETCH_LIMIT_MIN,
    POOL_SIZE_MAX,
    POOL_SIZE_MIN,
    QUERY_FILL_LIMIT_MAX,
    load_settings,
)
from db.track_resolutions import TrackResolutionStore
from engine.batch_resolver import BatchResolver
from engine.errors import ProviderRateLimitedError
from engine.junk_filter import filter_junk_tracks, is_likely_ad_track
from engine.log_events import log_event
from engine.models import ResolvedPlaybackTrack, SourceType
from engine.resolution_cache import default_resolution_cache
from engine.search_adapters import build_search_adapter
from engine.search_queries import build_fill_queries
from input.source_router import parse_track_source
from metadata.providers import (
    AniListCatalogProvider,
    CatalogSearchProvider,
    DeezerCatalogProvider,
    SpotifyCatalogProvider,
)


def clamp_pool_size(size):
    try:
        value = int(size)
    except (TypeError, ValueError):
        value = POOL_SIZE_MIN
    return max(POOL_SIZE_MIN, min(POOL_SIZE_MAX, value))


def compute_fetch_limit(size):
    return min(FETCH_LIMIT_MAX, max(FETCH_LIMIT_MIN, size * FETCH_LIMIT_FACTOR))


def preview_first(tracks):
    """Stable partition: tracks with a preview URL keep their order and lead."""
    return [t for t in tracks if t.preview_url] + [t for t in tracks if not t.preview_url]


class TrackPoolAssembler:
    def __init__(self, providers, search_adapter, resolver, *, rng=None):
        self.providers = dict(providers or {})
        self.search_adapter = search_adapter
        self.resolver = resolver
        self._rng = rng or random.Random()

    def resolve_track_pool_from_source(self, source_query, size):
        size = clamp_pool_size(size)
        descriptor = parse_track_source(source_query)
        fetch_limit = compute_fetch_limit(size)
        provider = self.providers.get(descriptor.type)

        raw_tracks = []
        if provider is not None:
            try:
                raw_tracks = list(provider.fetch(descriptor, fetch_limit) or [])
            except ProviderRateLimitedError:
                raise
            except Exception as exc:
                log_event(
                    logging.WARNING,
                    "track_source_fetch_failed",
                    source=descriptor.original,
                    source_type=descriptor.type.value,
                    error=str(exc),
                )
                raw_tracks = []

        if not raw_tracks and not descriptor.is_free_text:
            log_event(
                logging.WARNING,
                "track_source_empty",
                source=descriptor.original,
                source_type=descriptor.type.value,
                requested_size=size,
            )
            return []

        fill_query = descriptor.query if descriptor.is_free_text else ""
        return self._assemble(
            raw_tracks,
            size,
            fill_query=fill_query,
            source=descriptor.original,
            source_type=descriptor.type.value,
        )

    def resolve_tracks_to_playable(self, tracks, size, fill_query="", *, max_resolve_budget=None):
        return self._assemble(
            list(tracks or []),
            clamp_pool_size(size),
            fill_query=fill_query,
            max_resolve_budget=max_resolve_budget,
            source=fill_query or None,
            source_type="tracks",
        )

    def _assemble(self, raw_tracks, size, *, fill_query="", max_resolve_budget=None, source=None, source_type=None):
        filtered = filter_junk_tracks(raw_tracks)
        shuffled = list(filtered)
        self._rng.shuffle(shuffled)
        ordered = preview_first(shuffled)

        batch = self.resolver.resolve(ordered, size, max_resolve_budget=max_resolve_budget)
        pool = list(batch.tracks)

        fill_count = 0
        if (fill_query or "").strip() and len(pool) < size:
            fill = self._query_fill(fill_query, size - len(pool), pool, size)
            fill_count = len(fill)
            pool.extend(fill)

        log_event(
            logging.INFO,
            "track_source_pool_resolved",
            source=source,
            source_type=source_type,
            requested_size=size,
            raw_count=len(raw_tracks),
            filtered_count=len(filtered),
            resolved_count=len(batch.tracks),
            fill_count=fill_count,
            pool_count=len(pool),
            stats=batch.stats.to_dict(),
        )
        if not pool:
            log_event(
                logging.WARNING,
                "track_source_pool_empty",
                source=source,
                source_type=source_type,
                requested_size=size,
                raw_count=len(raw_tracks),
                filtered_count=len(filtered),
            )
        return pool

    def _query_fill(self, fill_query, needed, existing, size):
        seen_signatures = {track.signature for track in existing}
        seen_ids = {track.id for track in existing}
        limit = min(QUERY_FILL_LIMIT_MAX, size)
        fill = []
        for query in build_fill_queries(fill_query):
            if len(fill) >= needed:
                break
            try:
                videos = self.search_adapter.search(query, limit)
            except Exception as exc:
                logging.warning("Query fill search failed query=%r error=%s", query, exc)
                continue
            for video in videos or []:
                if len(fill) >= needed:
                    break
                if is_likely_ad_track(video.title, video.channel_title):
                    continue
                track = ResolvedPlaybackTrack(
                    provider="youtube",
                    id=video.id,
                    title=video.title,
                    artist=video.channel_title,
                    source_url=video.source_url,
                )
                if track.signature in seen_signatures or track.id in seen_ids:
                    continue
                seen_signatures.add(track.signature)
                seen_ids.add(track.id)
                fill.append(track)
        return fill


def build_default_assembler(settings=None):
    settings = settings or load_settings()
    spotify = SpotifyCatalogProvider(
        client_id=settings.spotify_client_id,
        client_secret=settings.spotify_client_secret,
        popular_playlist_ids=settings.spotify_popular_playlist_ids,
    )
    deezer = DeezerCatalogProvider(enabled=settings.deezer_enabled)
    anilist = AniListCatalogProvider(access_token=settings.anilist_access_token)
    providers = {
        SourceType.SEARCH: CatalogSearchProvider([spotify, deezer]),
        SourceType.SPOTIFY_PLAYLIST: spotify,
        SourceType.SPOTIFY_CHART: spotify,
        SourceType.DEEZER_PLAYLIST: deezer,
        SourceType.DEEZER_CHART: deezer,
        SourceType.ANILIST_USERS: anilist,
    }
    search_adapter = build_search_adapter(settings)
    resolver = BatchResolver(
        search_adapter,
        default_resolution_cache(),
        TrackResolutionStore(settings.db_path),
        concurrency=settings.resolve_concurrency,
    )
    return TrackPoolAssembler(providers, search_adapter, resolver)


_DEFAULT_ASSEMBLER = None
_DEFAULT_ASSEMBLER_LOCK = threading.Lock()


def get_default_assembler():
    global _DEFAULT_ASSEMBLER
    with _DEFAULT_ASSEMBLER_LOCK:
        if _DEFAULT_ASSEMBLER is None:
            _DEFAULT_ASSEMBLER = build_default_assembler()
        return _DEFAULT_ASSEMBLER


def set_default_assembler(assembler):
    global _DEFAULT_ASSEMBLER
    with _DEFAULT_ASSEMBLER_LOCK:
        _DEFAULT_ASSEMBLER = assembler


def resolve_track_pool_from_source(source_query, size):
    return get_default_assembler().resolve_track_pool_from_source(source_query, size)


def resolve_tracks_to_playable_youtube(tracks, size, fill_query="", *, max_resolve_budget=None):
    return get_default_assembler().resolve_tracks_to_playable(
        tracks,
        size,
        fill_query,
        max_resolve_budget=max_resolve_budget,
    )
