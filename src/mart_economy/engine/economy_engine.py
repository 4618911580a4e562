"""Economy engine — effective shop prices from base prices and active specials."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from mart_economy.config import EconomySettings
from mart_economy.content.catalog import ItemCatalog
from mart_economy.engine.modifier_store import ScopeFilter
from mart_economy.engine.shop_registry import ShopRegistry
from mart_economy.mechanics.pricing import resolve_price
from mart_economy.models.event import TransactionType
from mart_economy.models.item import CatalogEntry, ItemRef
from mart_economy.models.modifier import Modifier


@dataclass
class PriceQuote:
    shop_id: str
    item_id: str
    transaction_type: TransactionType
    base_price: int
    price: int
    override_id: str | None = None
    applied_ids: list[str] = field(default_factory=list)

    @property
    def difference(self) -> int:
        """Positive when the specials make the item dearer than its base price."""
        return self.price - self.base_price


class EconomyEngine:
    """Read-only price computation; never mutates the registry or any store."""

    def __init__(self, registry: ShopRegistry, catalog: ItemCatalog, settings: EconomySettings | None = None) -> None:
        self.registry = registry
        self.catalog = catalog
        self.settings = settings or registry.settings

    def effective_price(
        self,
        shop_id: str,
        item_ref: ItemRef | str,
        transaction_type: TransactionType,
        now: int,
    ) -> int:
        return self.quote(shop_id, item_ref, transaction_type, now).price

    def quote(
        self,
        shop_id: str,
        item_ref: ItemRef | str,
        transaction_type: TransactionType,
        now: int,
    ) -> PriceQuote:
        shop = self.registry.get(shop_id)
        entry = self.catalog.lookup(item_ref)
        modifiers = shop.store.query(ScopeFilter.for_item(entry.ref), now)
        quote = self.price_with(entry, modifiers, transaction_type)
        quote.shop_id = shop_id
        return quote

    def price_with(
        self,
        entry: CatalogEntry,
        modifiers: Iterable[Modifier],
        transaction_type: TransactionType,
    ) -> PriceQuote:
        """Price *entry* against an explicit list of already-active, matching modifiers."""
        base = entry.base_price(selling=transaction_type == TransactionType.SELL)
        resolution = resolve_price(
            base,
            modifiers,
            floor=self.settings.price_floor,
            ceiling=self.settings.price_ceiling,
            global_multiplier=self.settings.global_multiplier,
        )
        return PriceQuote(
            shop_id="",
            item_id=entry.item_id,
            transaction_type=transaction_type,
            base_price=base,
            price=resolution.price,
            override_id=resolution.override_id,
            applied_ids=resolution.applied_ids,
        )
