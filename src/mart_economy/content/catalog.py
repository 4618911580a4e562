"""Item catalog adapters — read-only lookup from item id to base prices."""
from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Iterable, Protocol

from mart_economy.errors import UnknownItem
from mart_economy.models.item import CatalogEntry, ItemRef

CONTENT_DIR = Path(__file__).parent

# Sell price when an item definition does not state one.
DEFAULT_SELL_RATIO = 0.5


class ItemCatalog(Protocol):
    def lookup(self, item_ref: ItemRef | str) -> CatalogEntry: ...


def _item_id(item_ref: ItemRef | str) -> str:
    return item_ref.item_id if isinstance(item_ref, ItemRef) else item_ref


class DictItemCatalog:
    """Catalog backed by an in-memory mapping; what the host usually hands in."""

    def __init__(self, entries: Iterable[CatalogEntry] = ()) -> None:
        self._entries: dict[str, CatalogEntry] = {e.item_id: e for e in entries}

    def add(self, entry: CatalogEntry) -> None:
        self._entries[entry.item_id] = entry

    def lookup(self, item_ref: ItemRef | str) -> CatalogEntry:
        item_id = _item_id(item_ref)
        entry = self._entries.get(item_id)
        if entry is None:
            raise UnknownItem(item_id)
        return entry

    def items(self) -> list[CatalogEntry]:
        return list(self._entries.values())

    def __contains__(self, item_id: str) -> bool:
        return item_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def load_toml(filepath: Path) -> dict[str, Any]:
    with open(filepath, "rb") as f:
        return tomllib.load(f)


def entry_from_dict(data: dict[str, Any]) -> CatalogEntry:
    buy = int(data["price"])
    sell = data.get("sell_price")
    return CatalogEntry(
        item_id=data["id"],
        name=data.get("name", data["id"]),
        category=data.get("category", ""),
        buy_base_price=buy,
        sell_base_price=int(sell) if sell is not None else int(buy * DEFAULT_SELL_RATIO),
        tradable=data.get("tradable", True),
    )


def load_catalog(items_dir: Path | None = None) -> DictItemCatalog:
    """Build a catalog from every items/*.toml file ([[items]] arrays)."""
    items_dir = items_dir or CONTENT_DIR / "items"
    catalog = DictItemCatalog()
    for f in sorted(items_dir.glob("*.toml")):
        data = load_toml(f)
        for item in data.get("items", []):
            catalog.add(entry_from_dict(item))
    return catalog
