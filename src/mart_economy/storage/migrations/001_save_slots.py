"""Migration 001: Save slots for serialized economy state."""
from __future__ import annotations

import sqlite3


def upgrade(conn: sqlite3.Connection) -> None:
    cur = conn.cursor()

    cur.execute("""
        CREATE TABLE IF NOT EXISTS save_slots (
            slot TEXT PRIMARY KEY,
            blob BLOB NOT NULL,
            sim_time INTEGER DEFAULT 0,
            shop_count INTEGER DEFAULT 0,
            metadata TEXT,
            saved_at TEXT NOT NULL
        )
    """)
