from typing import Protocol, TypedDict

from engine.models import CatalogTrack, SourceDescriptor


class ProviderArtist(TypedDict, total=False):
    name: str


class ProviderTrackPayload(TypedDict, total=False):
    id: str | int
    name: str
    title: str
    artists: list[ProviderArtist]
    duration_ms: int | None
    preview_url: str | None


class CatalogProvider(Protocol):
    """Fetches catalog tracks for a parsed source.

    Returns ``[]`` on transient failure. Raises ``ProviderRateLimitedError``
    when the upstream asks us to back off.
    """

    name: str

    def fetch(self, descriptor: SourceDescriptor, limit: int) -> list[CatalogTrack]:
        raise NotImplementedError


class TrackSearchProvider(Protocol):
    name: str

    def search(self, query: str, limit: int) -> list[CatalogTrack]:
        raise NotImplementedError


def dedupe_by_signature(tracks, limit=None):
    seen = set()
    output = []
    for track in tracks:
        signature = track.signature
        if signature in seen:
            continue
        seen.add(signature)
        output.append(track)
        if limit is not None and len(output) >= limit:
            break
    return output


def prioritize_by_preview(tracks, limit):
    """Stable reorder putting tracks with a preview URL first, then truncate."""
    with_preview = [track for track in tracks if track.preview_url]
    without_preview = [track for track in tracks if not track.preview_url]
    return (with_preview + without_preview)[: max(0, limit)]
