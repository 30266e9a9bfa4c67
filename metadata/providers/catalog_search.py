import logging

from engine.errors import ProviderRateLimitedError
from engine.log_events import log_event
from engine.models import SourceType
from metadata.providers.base import dedupe_by_signature, prioritize_by_preview


class CatalogSearchProvider:
    """Free-text search fanned out over catalog providers in priority order.

    Results are merged by title::artist signature and reordered so tracks with
    a preview URL come first.
    """

    name = "catalog_search"

    def __init__(self, providers):
        self.providers = [provider for provider in providers if provider is not None]

    def fetch(self, descriptor, limit):
        if descriptor.type is not SourceType.SEARCH:
            return []
        return self.search(descriptor.query, limit)

    def search(self, query, limit):
        query = (query or "").strip()
        if not query:
            return []
        merged = []
        for provider in self.providers:
            try:
                results = provider.search(query, limit)
            except ProviderRateLimitedError as exc:
                log_event(
                    logging.WARNING,
                    "catalog_search_provider_rate_limited",
                    provider=provider.name,
                    retry_after_sec=exc.retry_after_sec,
                )
                continue
            merged = dedupe_by_signature(merged + list(results))
        return prioritize_by_preview(merged, limit)
