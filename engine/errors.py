class TunepoolError(Exception):
    """Base error for track pool resolution."""


class ProviderRateLimitedError(TunepoolError):
    """A catalog provider asked us to back off. Callers must surface this."""

    def __init__(self, provider, retry_after_sec=None):
        self.provider = provider
        self.retry_after_sec = retry_after_sec
        detail = f"{provider} rate limited"
        if retry_after_sec is not None:
            detail = f"{detail} (retry after {retry_after_sec:.0f}s)"
        super().__init__(detail)


class TrackStoreError(TunepoolError):
    """The durable resolution store could not be read or written."""
