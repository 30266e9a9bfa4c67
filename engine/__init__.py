from .errors import ProviderRateLimitedError, TrackStoreError, TunepoolError
from .models import CatalogTrack, ResolvedPlaybackTrack, SourceDescriptor, SourceType

__all__ = [
    "CatalogTrack",
    "ProviderRateLimitedError",
    "ResolvedPlaybackTrack",
    "SourceDescriptor",
    "SourceType",
    "TrackStoreError",
    "TunepoolError",
]
