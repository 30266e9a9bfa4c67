"""SQLite migrations for the durable track resolution store."""

from __future__ import annotations

import sqlite3


def ensure_track_resolutions_table(conn: sqlite3.Connection) -> None:
    """Ensure the ``track_resolutions`` table and its indexes exist."""
    cur = conn.cursor()
    cur.execute(
        """
        CREATE TABLE IF NOT EXISTS track_resolutions (
            provider TEXT NOT NULL,
            source_id TEXT NOT NULL,
            title TEXT NOT NULL,
            artist TEXT NOT NULL,
            resolved_video_id TEXT,
            duration_ms INTEGER,
            updated_at TEXT NOT NULL,
            PRIMARY KEY (provider, source_id)
        )
        """
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_track_resolutions_video "
        "ON track_resolutions (resolved_video_id)"
    )
    cur.execute(
        "CREATE INDEX IF NOT EXISTS idx_track_resolutions_updated_at "
        "ON track_resolutions (updated_at)"
    )
    conn.commit()
