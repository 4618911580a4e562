"""Persistence gateway — serializes every shop instance into one save blob.

Envelope layout (UTF-8 JSON)::

    {"version": 1, "saved_at": <sim time>, "shops": {"<shop_id>": <ShopRecord>, ...}}

Each shop section is decoded on its own, so one damaged section is reported as
``CorruptShopState`` while the remaining shops still load. The raw JSON of a damaged
section is handed back in ``LoadResult.corrupt_sections`` so the next save can write it
through untouched.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any

from pydantic import ValidationError

from mart_economy.config import EconomySettings
from mart_economy.content.catalog import ItemCatalog
from mart_economy.engine.shop_registry import ShopInstance, ShopRegistry
from mart_economy.errors import CorruptSaveData, CorruptShopState, EconomyError
from mart_economy.models.shop import ShopRecord

logger = logging.getLogger(__name__)

ENVELOPE_VERSION = 1


@dataclass
class LoadResult:
    registry: ShopRegistry
    errors: list[CorruptShopState] = field(default_factory=list)
    saved_at: int = 0
    corrupt_sections: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


class PersistenceGateway:
    def __init__(self, catalog: ItemCatalog | None = None, settings: EconomySettings | None = None) -> None:
        self.catalog = catalog
        self.settings = settings or EconomySettings()

    def save_all(self, registry: ShopRegistry, now: int = 0, preserved: dict[str, Any] | None = None) -> bytes:
        """Serialize every shop in *registry*. Each shop is snapshotted under its own lock.

        *preserved* holds sections that failed to load; they are written back as they
        were unless a live shop with the same id now replaces them.
        """
        shops = {}
        for shop in registry.shops():
            shops[shop.shop_id] = shop.to_record().model_dump(mode="json")
        for shop_id, section in (preserved or {}).items():
            if shop_id in shops:
                logger.warning("Shop %s was rebuilt; its unreadable saved section is dropped", shop_id)
                continue
            shops[shop_id] = section
        envelope = {"version": ENVELOPE_VERSION, "saved_at": now, "shops": shops}
        logger.debug("Saving %d shop(s)", len(shops))
        return json.dumps(envelope, separators=(",", ":")).encode("utf-8")

    def load_all(self, blob: bytes) -> LoadResult:
        """Rebuild a registry from *blob*.

        Raises CorruptSaveData when the envelope cannot be read at all.
        """
        envelope = self._read_envelope(blob)
        registry = ShopRegistry(catalog=self.catalog, settings=self.settings)
        result = LoadResult(registry=registry, saved_at=envelope["saved_at"])

        for shop_id, section in envelope["shops"].items():
            try:
                shop = self._load_shop(shop_id, section)
            except CorruptShopState as exc:
                logger.warning("Skipping shop %s: %s", shop_id, exc.reason)
                result.errors.append(exc)
                result.corrupt_sections[shop_id] = section
                continue
            registry.adopt(shop)

        logger.info("Loaded %d shop(s), %d corrupt", len(registry), len(result.errors))
        return result

    @staticmethod
    def _read_envelope(blob: bytes) -> dict:
        try:
            envelope = json.loads(blob)
        except (UnicodeDecodeError, json.JSONDecodeError, TypeError) as exc:
            raise CorruptSaveData(f"Unreadable save data: {exc}") from exc
        if not isinstance(envelope, dict) or not isinstance(envelope.get("shops"), dict):
            raise CorruptSaveData("Save data has no shop table")
        version = envelope.get("version")
        if version != ENVELOPE_VERSION:
            raise CorruptSaveData(f"Unsupported save version: {version!r}")
        saved_at = envelope.get("saved_at") or 0
        if isinstance(saved_at, bool) or not isinstance(saved_at, int) or saved_at < 0:
            raise CorruptSaveData(f"Bad save time: {saved_at!r}")
        envelope["saved_at"] = saved_at
        return envelope

    def _load_shop(self, shop_id: str, section: object) -> ShopInstance:
        try:
            record = ShopRecord.model_validate(section)
        except ValidationError as exc:
            raise CorruptShopState(shop_id, f"{exc.error_count()} invalid field(s)") from exc
        if record.shop_id != shop_id:
            raise CorruptShopState(shop_id, f"section holds shop {record.shop_id!r}")
        try:
            return ShopInstance.from_record(record, catalog=self.catalog, settings=self.settings)
        except EconomyError as exc:
            raise CorruptShopState(shop_id, str(exc)) from exc
