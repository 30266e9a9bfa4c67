import html
import logging
import time
from urllib.parse import urlparse

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from yt_dlp import YoutubeDL

from engine.models import VideoCandidate, youtube_watch_url
from engine.provider_metrics import provider_metrics

MAX_SEARCH_RESULTS = 50


def _is_http_url(value):
    if not value or not isinstance(value, str):
        return False
    try:
        return urlparse(value).scheme in ("http", "https")
    except Exception:
        return False


def _clamp_limit(limit):
    try:
        value = int(limit)
    except (TypeError, ValueError):
        value = 5
    return max(1, min(value, MAX_SEARCH_RESULTS))


def _dedupe_candidates(candidates, limit):
    seen = set()
    output = []
    for candidate in candidates:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        output.append(candidate)
        if len(output) >= limit:
            break
    return output


class VideoSearchAdapter:
    source = ""

    def search(self, query, limit=5):
        raise NotImplementedError


class YouTubeApiSearchAdapter(VideoSearchAdapter):
    """YouTube Data API v3 search restricted to embeddable videos."""

    source = "youtube"

    def __init__(self, api_key, *, client=None):
        self.api_key = (api_key or "").strip() or None
        self._client = client

    def _youtube(self):
        if self._client is None:
            self._client = build("youtube", "v3", developerKey=self.api_key, cache_discovery=False)
        return self._client

    def search(self, query, limit=5):
        query = (query or "").strip()
        if not query:
            return []
        if not self.api_key and self._client is None:
            logging.warning("YouTube search skipped: YOUTUBE_API_KEY is not configured")
            return []

        safe_limit = _clamp_limit(limit)
        started = time.monotonic()
        try:
            response = (
                self._youtube()
                .search()
                .list(
                    part="snippet",
                    type="video",
                    videoEmbeddable="true",
                    maxResults=safe_limit,
                    q=query,
                )
                .execute(num_retries=1)
            )
        except HttpError as exc:
            status = getattr(getattr(exc, "resp", None), "status", None)
            provider_metrics.record(
                self.source,
                success=False,
                latency_ms=(time.monotonic() - started) * 1000,
                status=int(status) if status else None,
                error=str(exc),
            )
            logging.warning("YouTube search failed status=%s query=%r", status, query)
            return []
        except Exception as exc:
            provider_metrics.record(
                self.source,
                success=False,
                latency_ms=(time.monotonic() - started) * 1000,
                error=str(exc),
            )
            logging.exception("YouTube search failed query=%r", query)
            return []

        provider_metrics.record(
            self.source,
            success=True,
            latency_ms=(time.monotonic() - started) * 1000,
            status=200,
        )
        return _dedupe_candidates(self._parse_items(response), safe_limit)

    def _parse_items(self, response):
        items = response.get("items") if isinstance(response, dict) else None
        results = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            video_id = (item.get("id") or {}).get("videoId")
            snippet = item.get("snippet") or {}
            title = html.unescape(str(snippet.get("title") or "")).strip()
            channel = html.unescape(str(snippet.get("channelTitle") or "")).strip()
            if not video_id or not title or not channel:
                continue
            results.append(
                VideoCandidate(
                    id=str(video_id),
                    title=title,
                    channel_title=channel,
                    source_url=youtube_watch_url(str(video_id)),
                )
            )
        return results


class YtDlpSearchAdapter(VideoSearchAdapter):
    """Keyless search through yt-dlp's ``ytsearchN:`` extractor."""

    source = "youtube"
    search_prefix = "ytsearch"

    def search(self, query, limit=5):
        query = (query or "").strip()
        if not query:
            return []
        safe_limit = _clamp_limit(limit)
        search_term = f"{self.search_prefix}{safe_limit}:{query}"
        opts = {
            "skip_download": True,
            "quiet": True,
            "no_warnings": True,
            "ignoreerrors": True,
            "extract_flat": "in_playlist",
            "noplaylist": True,
            "cachedir": False,
            "socket_timeout": 10,
        }
        started = time.monotonic()
        try:
            with YoutubeDL(opts) as ydl:
                info = ydl.extract_info(search_term, download=False)
        except Exception as exc:
            provider_metrics.record(
                self.source,
                success=False,
                latency_ms=(time.monotonic() - started) * 1000,
                error=str(exc),
            )
            logging.exception("Search failed for source=%s query=%s", self.source, query)
            return []

        provider_metrics.record(self.source, success=True, latency_ms=(time.monotonic() - started) * 1000)
        entries = info.get("entries") if isinstance(info, dict) else None
        results = []
        for entry in entries or []:
            if not isinstance(entry, dict):
                continue
            video_id = entry.get("id")
            title = str(entry.get("title") or "").strip()
            channel = str(entry.get("channel") or entry.get("uploader") or "").strip()
            if not video_id or not title or not channel:
                continue
            url = entry.get("webpage_url") or entry.get("url")
            if not _is_http_url(url):
                url = youtube_watch_url(str(video_id))
            results.append(
                VideoCandidate(id=str(video_id), title=title, channel_title=channel, source_url=url)
            )
        return _dedupe_candidates(results, safe_limit)


def build_search_adapter(settings):
    if settings.search_backend == "ytdlp":
        return YtDlpSearchAdapter()
    return YouTubeApiSearchAdapter(settings.youtube_api_key)
