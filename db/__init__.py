"""Database helpers for tunepool."""

from db.track_resolutions import TrackResolutionStore

__all__ = ["TrackResolutionStore"]
