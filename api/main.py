#!/usr/bin/env python3
import functools
import logging
import math
import os
from datetime import datetime, timezone

import anyio
from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse

from config.settings import load_settings
from engine.errors import ProviderRateLimitedError
from engine.json_utils import safe_json_dumps
from engine.log_events import log_event, setup_logging
from engine.paths import LOG_DIR
from engine.pool_assembler import clamp_pool_size, get_default_assembler
from engine.provider_metrics import provider_metrics
from engine.resolution_cache import default_resolution_cache
from engine.track_pool_cache import TrackPoolCache
from input.source_router import parse_track_source

APP_NAME = "Tunepool"
DEFAULT_POOL_SIZE = 20


class SafeJSONResponse(JSONResponse):
    def render(self, content):
        return safe_json_dumps(content).encode("utf-8")


app = FastAPI(
    title=APP_NAME,
    description="Tunepool API for resolving music sources into playable track pools.",
    default_response_class=SafeJSONResponse,
)

track_pool_cache = TrackPoolCache()


@app.on_event("startup")
async def startup():
    settings = load_settings()
    setup_logging(os.environ.get("TUNEPOOL_LOG_DIR") or str(LOG_DIR), settings.log_level)
    app.state.started_at = datetime.now(timezone.utc).isoformat()
    logging.info("%s API started search_backend=%s", APP_NAME, settings.search_backend)


def _error_response(status_code, error, headers=None, **fields):
    return SafeJSONResponse({"ok": False, "error": error, **fields}, status_code=status_code, headers=headers)


def _resolve_pool(source, size):
    loader = functools.partial(get_default_assembler().resolve_track_pool_from_source, source, size)
    return track_pool_cache.get_or_load(source, size, loader)


@app.get("/api/health")
async def api_health():
    return {"ok": True, "app": APP_NAME, "server_time": datetime.now(timezone.utc).isoformat()}


@app.get("/api/music/source/parse")
async def api_parse_source(source: str = Query(default="")):
    return {"ok": True, "parsed": parse_track_source(source).to_dict()}


@app.get("/api/music/source/resolve")
async def api_resolve_source(source: str = Query(default=""), size: int = Query(default=DEFAULT_POOL_SIZE)):
    source = (source or "").strip()
    if not source:
        return _error_response(400, "MISSING_SOURCE")
    size = clamp_pool_size(size)
    parsed = parse_track_source(source)

    try:
        tracks = await anyio.to_thread.run_sync(_resolve_pool, source, size)
    except ProviderRateLimitedError as exc:
        retry_after = exc.retry_after_sec
        headers = {"Retry-After": str(max(1, math.ceil(retry_after)))} if retry_after else None
        log_event(
            logging.WARNING,
            "track_source_rate_limited",
            source=source,
            provider=exc.provider,
            retry_after_sec=retry_after,
        )
        return _error_response(
            429,
            "PROVIDER_RATE_LIMITED",
            headers=headers,
            provider=exc.provider,
            retryAfterSec=retry_after,
        )

    return {
        "ok": True,
        "source": source,
        "parsed": parsed.to_dict(),
        "count": len(tracks),
        "tracks": [track.to_dict() for track in tracks],
    }


@app.get("/api/music/metrics")
async def api_music_metrics():
    return {
        "server_time": datetime.now(timezone.utc).isoformat(),
        "providers": provider_metrics.snapshot(),
        "track_pool_cache": track_pool_cache.stats(),
        "resolution_cache_entries": len(default_resolution_cache()),
    }
