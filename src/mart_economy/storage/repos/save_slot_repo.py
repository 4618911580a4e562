"""Repository for economy save slots."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any

from mart_economy.storage.database import Database

_INFO_COLUMNS = "slot, sim_time, shop_count, metadata, saved_at"


def _slot_info(row) -> dict:
    info = dict(row)
    info["metadata"] = json.loads(info["metadata"]) if info.get("metadata") else {}
    return info


class SaveSlotRepo:
    def __init__(self, db: Database) -> None:
        self.db = db

    def write(
        self,
        slot: str,
        blob: bytes,
        sim_time: int = 0,
        shop_count: int = 0,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Insert or overwrite a slot."""
        now = datetime.now(timezone.utc).isoformat()
        with self.db.get_connection() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO save_slots
                   (slot, blob, sim_time, shop_count, metadata, saved_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (slot, blob, sim_time, shop_count, json.dumps(metadata or {}), now),
            )

    def read(self, slot: str) -> bytes | None:
        """Return the blob stored in *slot*, or None when the slot is empty."""
        with self.db.get_connection() as conn:
            row = conn.execute("SELECT blob FROM save_slots WHERE slot = ?", (slot,)).fetchone()
        if not row:
            return None
        return bytes(row["blob"])

    def get_info(self, slot: str) -> dict | None:
        """Slot metadata without the blob."""
        with self.db.get_connection() as conn:
            row = conn.execute(
                f"SELECT {_INFO_COLUMNS} FROM save_slots WHERE slot = ?", (slot,)
            ).fetchone()
        return _slot_info(row) if row else None

    def list_slots(self) -> list[dict]:
        """All slots, most recently saved first."""
        with self.db.get_connection() as conn:
            rows = conn.execute(
                f"SELECT {_INFO_COLUMNS} FROM save_slots ORDER BY saved_at DESC"
            ).fetchall()
        return [_slot_info(row) for row in rows]

    def delete(self, slot: str) -> None:
        with self.db.get_connection() as conn:
            conn.execute("DELETE FROM save_slots WHERE slot = ?", (slot,))
