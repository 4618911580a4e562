from __future__ import annotations

from mart_economy.storage.repos.save_slot_repo import SaveSlotRepo

__all__ = [
    "SaveSlotRepo",
]
