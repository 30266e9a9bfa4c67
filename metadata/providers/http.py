"""JSON-over-HTTP helper shared by the catalog providers."""

from __future__ import annotations

import logging
import random
import re
import time
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from engine.errors import ProviderRateLimitedError
from engine.log_events import log_event
from engine.provider_metrics import provider_metrics

DEFAULT_TIMEOUT_SEC = 4.0
DEFAULT_RETRIES = 2
DEFAULT_RETRY_DELAY_SEC = 0.25
MAX_JITTER_SEC = 0.06
MAX_RETRY_AFTER_SEC = 20.0

_SENSITIVE_KEYS = {
    "key",
    "api_key",
    "apikey",
    "token",
    "access_token",
    "client_secret",
    "authorization",
}
_SENSITIVE_RE = re.compile(r"(key|token|access_token|client_secret)=([^&]+)", re.IGNORECASE)


def should_retry_status(status: int) -> bool:
    return status == 408 or status == 429 or status >= 500


def sanitize_url_for_logs(url: str, params: dict[str, Any] | None = None) -> str:
    """Return ``url`` (with ``params`` merged in) with credential values masked."""
    try:
        parts = urlsplit(url)
        query = parse_qsl(parts.query, keep_blank_values=True)
        query.extend((str(k), str(v)) for k, v in (params or {}).items())
        masked = [(k, "[redacted]" if k.lower() in _SENSITIVE_KEYS else v) for k, v in query]
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(masked), parts.fragment))
    except ValueError:
        return _SENSITIVE_RE.sub(r"\1=[redacted]", url)


def parse_retry_after(value: str | None) -> float | None:
    if value is None:
        return None
    try:
        seconds = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return seconds if seconds > 0 else None


def backoff_delay(base_sec: float, attempt: int) -> float:
    return base_sec * (2 ** attempt) + random.uniform(0, MAX_JITTER_SEC)


def fetch_json_with_timeout(
    url: str,
    *,
    method: str = "GET",
    params: dict[str, Any] | None = None,
    headers: dict[str, str] | None = None,
    json_body: Any = None,
    data: Any = None,
    timeout_sec: float = DEFAULT_TIMEOUT_SEC,
    retries: int = DEFAULT_RETRIES,
    retry_delay_sec: float = DEFAULT_RETRY_DELAY_SEC,
    provider: str | None = None,
    context: dict[str, Any] | None = None,
    raise_on_rate_limit: bool = False,
    session: Any = None,
    sleep=time.sleep,
) -> Any:
    """Fetch JSON with retries on 408/429/5xx and connection errors.

    Returns the decoded payload, or ``None`` once retries are exhausted or the
    response is a non-retryable error. With ``raise_on_rate_limit`` a 429
    raises ``ProviderRateLimitedError`` immediately instead of retrying.
    """
    http = session or requests
    retries = max(0, int(retries))
    log_url = sanitize_url_for_logs(url, params)
    extra = dict(context or {})
    if provider:
        extra.setdefault("provider", provider)
    started = time.monotonic()

    def _record(success, *, status=None, error=None, attempts=1):
        if not provider:
            return
        provider_metrics.record(
            provider,
            success=success,
            latency_ms=(time.monotonic() - started) * 1000,
            status=status,
            error=error,
            attempts=attempts,
        )

    for attempt in range(retries + 1):
        try:
            response = http.request(
                method,
                url,
                params=params,
                headers=headers,
                json=json_body,
                data=data,
                timeout=timeout_sec,
            )
        except requests.RequestException as exc:
            if attempt >= retries:
                log_event(
                    logging.WARNING,
                    "provider_http_failure",
                    url=log_url,
                    attempt=attempt + 1,
                    retries=retries + 1,
                    error=str(exc),
                    **extra,
                )
                _record(False, error=str(exc), attempts=attempt + 1)
                return None
            log_event(
                logging.WARNING,
                "provider_http_retry_error",
                url=log_url,
                attempt=attempt + 1,
                retries=retries + 1,
                error=str(exc),
                **extra,
            )
            sleep(backoff_delay(retry_delay_sec, attempt))
            continue

        status = response.status_code
        if 200 <= status < 300:
            try:
                payload = response.json()
            except ValueError as exc:
                log_event(logging.WARNING, "provider_http_invalid_json", url=log_url, status=status, **extra)
                _record(False, status=status, error=str(exc), attempts=attempt + 1)
                return None
            _record(True, status=status, attempts=attempt + 1)
            return payload

        if status == 429 and raise_on_rate_limit:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            log_event(
                logging.WARNING,
                "provider_http_rate_limited",
                url=log_url,
                status=status,
                retry_after_sec=retry_after,
                **extra,
            )
            _record(False, status=status, error="rate_limited", attempts=attempt + 1)
            raise ProviderRateLimitedError(provider or "unknown", retry_after)

        if not should_retry_status(status) or attempt >= retries:
            log_event(
                logging.WARNING,
                "provider_http_non_ok",
                url=log_url,
                status=status,
                attempt=attempt + 1,
                **extra,
            )
            _record(False, status=status, attempts=attempt + 1)
            return None

        log_event(
            logging.WARNING,
            "provider_http_retry_status",
            url=log_url,
            status=status,
            attempt=attempt + 1,
            retries=retries + 1,
            **extra,
        )
        delay = backoff_delay(retry_delay_sec, attempt)
        if status == 429:
            retry_after = parse_retry_after(response.headers.get("Retry-After"))
            if retry_after is not None:
                delay = max(delay, min(retry_after, MAX_RETRY_AFTER_SEC))
        sleep(delay)

    return None
