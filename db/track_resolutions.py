"""Durable (provider, source_id) -> YouTube video id resolutions."""

from __future__ import annotations

import sqlite3
from datetime import datetime, timezone

from db.migrations import ensure_track_resolutions_table
from engine.errors import TrackStoreError
from engine.models import DurableResolutionRecord
from engine.paths import resolve_db_path


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class TrackResolutionStore:
    """SQLite-backed store keyed by ``(provider, source_id)``.

    A row with a null ``resolved_video_id`` records the last failed attempt. It
    is not a terminal negative: readers treat it as a miss.
    """

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path

    def _connect(self) -> sqlite3.Connection:
        try:
            conn = sqlite3.connect(resolve_db_path(self.db_path), check_same_thread=False, timeout=30)
            conn.row_factory = sqlite3.Row
            ensure_track_resolutions_table(conn)
        except (OSError, sqlite3.Error) as exc:
            raise TrackStoreError(f"cannot open track resolution store at {self.db_path}: {exc}") from exc
        return conn

    def ensure_schema(self) -> None:
        conn = self._connect()
        conn.close()

    def get(self, provider: str, source_id: str) -> DurableResolutionRecord | None:
        """Return the stored record for ``(provider, source_id)`` or ``None``."""
        key_provider = (provider or "").strip()
        key_source = (source_id or "").strip()
        if not key_provider or not key_source:
            return None

        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                SELECT provider, source_id, title, artist, resolved_video_id, duration_ms, updated_at
                FROM track_resolutions
                WHERE provider=? AND source_id=?
                LIMIT 1
                """,
                (key_provider, key_source),
            )
            row = cur.fetchone()
        except sqlite3.Error as exc:
            raise TrackStoreError(f"track resolution lookup failed: {exc}") from exc
        finally:
            conn.close()
        if row is None:
            return None
        return DurableResolutionRecord(**dict(row))

    def upsert(self, record: DurableResolutionRecord) -> None:
        """Insert or replace the record for its ``(provider, source_id)`` key."""
        provider = (record.provider or "").strip()
        source_id = (record.source_id or "").strip()
        if not provider:
            raise ValueError("provider is required")
        if not source_id:
            raise ValueError("source_id is required")

        conn = self._connect()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                INSERT INTO track_resolutions
                    (provider, source_id, title, artist, resolved_video_id, duration_ms, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(provider, source_id) DO UPDATE SET
                    title=excluded.title,
                    artist=excluded.artist,
                    resolved_video_id=excluded.resolved_video_id,
                    duration_ms=excluded.duration_ms,
                    updated_at=excluded.updated_at
                """,
                (
                    provider,
                    source_id,
                    record.title or "",
                    record.artist or "",
                    record.resolved_video_id,
                    record.duration_ms,
                    record.updated_at or _utc_now(),
                ),
            )
            conn.commit()
        except sqlite3.Error as exc:
            raise TrackStoreError(f"track resolution upsert failed: {exc}") from exc
        finally:
            conn.close()
