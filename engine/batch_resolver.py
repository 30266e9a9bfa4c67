"""Bounded-concurrency resolution of catalog tracks into playable videos."""

from __future__ import annotations

import dataclasses
import logging
import queue
import threading
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from config.settings import (
    RESOLVE_BUDGET_MAX,
    RESOLVE_BUDGET_MIN,
    RESOLVE_CONCURRENCY,
    SEARCH_RESULTS_PER_QUERY,
)
from engine.errors import ProviderRateLimitedError
from engine.log_events import log_event
from engine.models import (
    CatalogTrack,
    DurableResolutionRecord,
    ResolvedPlaybackTrack,
    youtube_watch_url,
)
from engine.playback import as_playable, is_track_playable
from engine.search_queries import build_query_plan
from engine.search_scoring import better_candidate, select_best_candidate

MAX_ERROR_SAMPLES = 5


class ResolutionStatus(Enum):
    ALREADY_PLAYABLE = "already_playable"
    DURABLE_HIT = "durable_hit"
    CACHE_HIT = "cache_hit"
    SEARCH_RESOLVED = "search_resolved"
    UNRESOLVED = "unresolved"


@dataclass
class ResolutionOutcome:
    source: CatalogTrack
    status: ResolutionStatus = ResolutionStatus.UNRESOLVED
    track: Optional[ResolvedPlaybackTrack] = None
    attempted_queries: int = 0
    failed_queries: int = 0
    empty_queries: int = 0
    selected_query: Optional[str] = None
    selected_intent: Optional[str] = None
    last_error: Optional[str] = None
    budget_exhausted: bool = False


@dataclass
class ResolutionStats:
    requested_size: int = 0
    input_count: int = 0
    resolve_budget: int = 0
    search_allowance: int = 0
    budget_exhausted: int = 0
    attempts: int = 0
    resolved: int = 0
    no_match: int = 0
    already_playable: int = 0
    durable_hits: int = 0
    cache_hits: int = 0
    search_queries: int = 0
    search_failures: int = 0
    search_empty: int = 0
    error_samples: list[str] = field(default_factory=list)

    def to_dict(self):
        return dataclasses.asdict(self)


@dataclass
class BatchResolution:
    tracks: list[ResolvedPlaybackTrack]
    stats: ResolutionStats
    outcomes: list[ResolutionOutcome]


def compute_search_allowance(size, explicit=None, *, remaining=None):
    """How many search calls one batch may issue in total."""
    if explicit is not None:
        return max(1, int(explicit))
    size = max(1, int(size))
    remaining = size if remaining is None else max(0, int(remaining))
    budget = max(size * 2, remaining * 4)
    return max(RESOLVE_BUDGET_MIN, min(RESOLVE_BUDGET_MAX, budget))


def compute_resolve_budget(size, available, explicit=None, *, remaining=None):
    """How many unresolved tracks one batch may push through search.

    ``remaining`` is the part of ``size`` not already covered by playable
    tracks; it defaults to ``size``.
    """
    available = max(0, int(available))
    return min(available, compute_search_allowance(size, explicit, remaining=remaining))


class SearchAllowance:
    """Batch-wide count of search calls left, shared by every worker."""

    def __init__(self, calls):
        self._left = max(0, int(calls))
        self._lock = threading.Lock()

    def take(self):
        with self._lock:
            if self._left <= 0:
                return False
            self._left -= 1
            return True

    @property
    def left(self):
        with self._lock:
            return self._left


class BatchResolver:
    def __init__(
        self,
        search_adapter,
        cache,
        store=None,
        *,
        concurrency=RESOLVE_CONCURRENCY,
        search_limit=SEARCH_RESULTS_PER_QUERY,
    ):
        self.search_adapter = search_adapter
        self.cache = cache
        self.store = store
        self.concurrency = max(1, int(concurrency))
        self.search_limit = max(1, int(search_limit))

    def resolve(self, tracks, size, *, max_resolve_budget=None):
        """Resolve up to ``size`` playable tracks, in completion order."""
        size = max(1, int(size))
        tracks = list(tracks or [])
        stats = ResolutionStats(requested_size=size, input_count=len(tracks))

        playable = [track for track in tracks if is_track_playable(track)]
        pending = [track for track in tracks if not is_track_playable(track)]
        remaining = max(0, size - len(playable))
        budget = compute_resolve_budget(size, len(pending), max_resolve_budget, remaining=remaining)
        allowance = SearchAllowance(compute_search_allowance(size, max_resolve_budget, remaining=remaining))
        stats.resolve_budget = budget
        stats.search_allowance = allowance.left
        candidates = playable + pending[:budget]
        if not candidates:
            return BatchResolution(tracks=[], stats=stats, outcomes=[])

        work = queue.Queue()
        for track in candidates:
            work.put(track)

        lock = threading.Lock()
        stop = threading.Event()
        seen = set()
        results = []
        outcomes = []

        def _worker():
            while not stop.is_set():
                with lock:
                    if len(results) >= size:
                        return
                try:
                    track = work.get_nowait()
                except queue.Empty:
                    return
                signature = track.signature
                with lock:
                    if signature in seen:
                        continue
                    seen.add(signature)
                    stats.attempts += 1
                try:
                    outcome = self._resolve_one(track, allowance)
                except ProviderRateLimitedError:
                    stop.set()
                    raise
                except Exception as exc:
                    log_event(
                        logging.WARNING,
                        "track_resolve_failed",
                        provider=track.provider,
                        source_id=track.source_id,
                        title=track.title,
                        artist=track.artist,
                        error=str(exc) or exc.__class__.__name__,
                    )
                    outcome = ResolutionOutcome(source=track, last_error=str(exc) or exc.__class__.__name__)
                with lock:
                    outcomes.append(outcome)
                    self._count(stats, outcome)
                    if outcome.track is not None and len(results) < size:
                        results.append(outcome.track)

        workers = min(self.concurrency, len(candidates))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(_worker) for _ in range(workers)]
        for future in futures:
            future.result()

        return BatchResolution(tracks=results, stats=stats, outcomes=outcomes)

    def _count(self, stats, outcome):
        stats.search_queries += outcome.attempted_queries
        stats.search_failures += outcome.failed_queries
        stats.search_empty += outcome.empty_queries
        if outcome.budget_exhausted:
            stats.budget_exhausted += 1
        if outcome.status is ResolutionStatus.ALREADY_PLAYABLE:
            stats.already_playable += 1
        elif outcome.status is ResolutionStatus.DURABLE_HIT:
            stats.durable_hits += 1
        elif outcome.status is ResolutionStatus.CACHE_HIT:
            stats.cache_hits += 1
        if outcome.track is not None:
            stats.resolved += 1
        else:
            stats.no_match += 1
        if outcome.last_error and len(stats.error_samples) < MAX_ERROR_SAMPLES:
            stats.error_samples.append(f"{outcome.source.artist} - {outcome.source.title}: {outcome.last_error}")

    def _resolve_one(self, track, allowance=None):
        playable = as_playable(track)
        if playable is not None:
            return ResolutionOutcome(source=track, status=ResolutionStatus.ALREADY_PLAYABLE, track=playable)

        key = track.signature
        record = self._durable_get(track)
        if record is not None and record.resolved_video_id:
            resolved = self._playback_for(track, record.resolved_video_id)
            if record.duration_ms and not resolved.duration_sec:
                resolved.duration_sec = max(1, round(record.duration_ms / 1000))
            self.cache.set(key, resolved)
            return ResolutionOutcome(source=track, status=ResolutionStatus.DURABLE_HIT, track=resolved)

        cached = self.cache.get(key)
        if cached is not None:
            if track.answer is not None and cached.answer is None:
                cached = dataclasses.replace(cached, answer=track.answer)
            return ResolutionOutcome(source=track, status=ResolutionStatus.CACHE_HIT, track=cached)

        outcome = ResolutionOutcome(source=track)
        for group in build_query_plan(track):
            if outcome.budget_exhausted:
                break
            best = None
            best_query = None
            for query in group.queries:
                if allowance is not None and not allowance.take():
                    outcome.budget_exhausted = True
                    break
                outcome.attempted_queries += 1
                try:
                    candidates = self.search_adapter.search(query, self.search_limit)
                except ProviderRateLimitedError:
                    raise
                except Exception as exc:
                    outcome.failed_queries += 1
                    outcome.last_error = str(exc) or exc.__class__.__name__
                    logging.warning("Video search failed query=%r error=%s", query, outcome.last_error)
                    continue
                if not candidates:
                    outcome.empty_queries += 1
                    continue
                chosen = select_best_candidate(candidates, track, group.intent)
                if chosen is None:
                    continue
                if better_candidate(best, chosen) is chosen:
                    best = chosen
                    best_query = query
                if best.artist_channel_match:
                    break
            if best is None:
                continue

            resolved = self._playback_for(track, best.candidate.id, best.candidate.source_url)
            self.cache.set(key, resolved)
            self._durable_save(track, best.candidate.id)
            outcome.status = ResolutionStatus.SEARCH_RESOLVED
            outcome.track = resolved
            outcome.selected_query = best_query
            outcome.selected_intent = group.intent.value
            return outcome

        if outcome.attempted_queries:
            self._durable_save(track, None)
        log_event(
            logging.WARNING,
            "track_resolve_no_match",
            provider=track.provider,
            source_id=track.source_id,
            title=track.title,
            artist=track.artist,
            attempted_queries=outcome.attempted_queries,
            failed_queries=outcome.failed_queries,
            empty_queries=outcome.empty_queries,
            last_error=outcome.last_error,
            budget_exhausted=outcome.budget_exhausted,
        )
        return outcome

    def _playback_for(self, track, video_id, source_url=None):
        return ResolvedPlaybackTrack(
            provider="youtube",
            id=video_id,
            title=track.title,
            artist=track.artist,
            source_url=source_url or youtube_watch_url(video_id),
            duration_sec=track.duration_sec,
            answer=track.answer,
        )

    def _durable_get(self, track):
        if self.store is None or not track.provider or not track.source_id:
            return None
        try:
            return self.store.get(track.provider, track.source_id)
        except Exception as exc:
            logging.warning("Durable resolution lookup failed: %s", exc)
            return None

    def _durable_save(self, track, video_id):
        if self.store is None or not track.provider or not track.source_id:
            return
        record = DurableResolutionRecord(
            provider=track.provider,
            source_id=track.source_id,
            title=track.title,
            artist=track.artist,
            resolved_video_id=video_id,
            duration_ms=track.duration_sec * 1000 if track.duration_sec else None,
        )
        try:
            self.store.upsert(record)
        except Exception as exc:
            logging.warning("Durable resolution upsert failed: %s", exc)
