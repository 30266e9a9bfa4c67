import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone


@dataclass
class ProviderMetricEntry:
    total_calls: int = 0
    success_calls: int = 0
    failed_calls: int = 0
    total_latency_ms: int = 0
    max_latency_ms: int = 0
    last_latency_ms: int = 0
    last_status: int | None = None
    last_error: str | None = None
    last_seen_at: str | None = None
    max_attempts: int = 0


class ProviderMetrics:
    def __init__(self):
        self._lock = threading.Lock()
        self._entries = {}

    def record(self, provider, *, success, latency_ms, status=None, error=None, attempts=1):
        latency = max(0, int(round(latency_ms)))
        with self._lock:
            entry = self._entries.setdefault(provider, ProviderMetricEntry())
            entry.total_calls += 1
            if success:
                entry.success_calls += 1
            else:
                entry.failed_calls += 1
            entry.total_latency_ms += latency
            entry.max_latency_ms = max(entry.max_latency_ms, latency)
            entry.last_latency_ms = latency
            entry.last_status = status
            entry.last_error = error
            entry.last_seen_at = datetime.now(timezone.utc).isoformat()
            entry.max_attempts = max(entry.max_attempts, max(1, int(attempts or 1)))

    def snapshot(self):
        with self._lock:
            result = {}
            for provider, entry in self._entries.items():
                payload = asdict(entry)
                payload["average_latency_ms"] = (
                    round(entry.total_latency_ms / entry.total_calls) if entry.total_calls else 0
                )
                result[provider] = payload
            return result

    def reset(self):
        with self._lock:
            self._entries.clear()


provider_metrics = ProviderMetrics()
