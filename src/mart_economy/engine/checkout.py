"""Checkout — completes purchases and sales against a shop and emits transaction events."""
from __future__ import annotations

import logging
from typing import Callable

from mart_economy.config import EconomySettings
from mart_economy.engine.economy_engine import EconomyEngine
from mart_economy.engine.ledger import CurrencyLedger, record_purchase, record_sale
from mart_economy.engine.shop_registry import ShopRegistry
from mart_economy.errors import UntradableItem
from mart_economy.mechanics.pricing import calculate_bulk_total
from mart_economy.models.event import HistoryEntry, TransactionEvent, TransactionType
from mart_economy.models.item import ItemRef

logger = logging.getLogger(__name__)

Listener = Callable[[TransactionEvent], None]


class Checkout:
    """The engine's caller for completed transactions.

    Each purchase or sale holds a lease on the shop for its whole duration, so the
    shop cannot be deleted mid-transaction.
    """

    def __init__(self, registry: ShopRegistry, engine: EconomyEngine, settings: EconomySettings | None = None) -> None:
        self.registry = registry
        self.engine = engine
        self.settings = settings or registry.settings
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, event: TransactionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Transaction listener failed for event %s", event.id)

    def buy(
        self,
        shop_id: str,
        item_ref: ItemRef | str,
        player: CurrencyLedger,
        now: int,
        quantity: int = 1,
        holder: str | None = None,
    ) -> TransactionEvent:
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive: {quantity}")
        entry = self.engine.catalog.lookup(item_ref)
        with self.registry.transaction(shop_id, holder or player.owner_id) as shop:
            quote = self.engine.quote(shop_id, entry.ref, TransactionType.BUY, now)
            total, bulk_savings = calculate_bulk_total(quote.price, quantity, self.settings.bulk_discounts)
            base_total = quote.base_price * quantity
            special_total = quote.price * quantity
            with shop.lock:
                player.spend(shop.currency, total, reason=f"buy {quote.item_id}")
                shop.ledger.credit(shop.currency, total, reason=f"sold {quote.item_id}")
                record_purchase(
                    shop.statistics, quote.item_id, quantity, total, now,
                    savings=max(0, base_total - special_total) + bulk_savings,
                    markup_cost=max(0, special_total - base_total),
                )
                shop.history.add(HistoryEntry(
                    transaction_type=TransactionType.BUY, item_id=quote.item_id,
                    quantity=quantity, unit_price=quote.price, total=total, time=now,
                ))
            event = TransactionEvent(
                shop_id=shop_id,
                item_ref=entry.ref,
                transaction_type=TransactionType.BUY,
                quantity=quantity,
                unit_price=quote.price,
                effective_price=total,
                currency=shop.currency,
                timestamp=now,
            )
        logger.info("Bought %dx %s from %s for %d %s", quantity, quote.item_id, shop_id, total, event.currency)
        self._emit(event)
        return event

    def sell(
        self,
        shop_id: str,
        item_ref: ItemRef | str,
        player: CurrencyLedger,
        now: int,
        quantity: int = 1,
        holder: str | None = None,
    ) -> TransactionEvent:
        if quantity <= 0:
            raise ValueError(f"Quantity must be positive: {quantity}")
        entry = self.engine.catalog.lookup(item_ref)
        if not entry.tradable:
            raise UntradableItem(entry.item_id)
        with self.registry.transaction(shop_id, holder or player.owner_id) as shop:
            quote = self.engine.quote(shop_id, entry.ref, TransactionType.SELL, now)
            total = quote.price * quantity
            with shop.lock:
                shop.ledger.spend(shop.currency, total, reason=f"bought back {entry.item_id}")
                player.credit(shop.currency, total, reason=f"sell {entry.item_id}")
                record_sale(shop.statistics, entry.item_id, quantity, total)
                shop.history.add(HistoryEntry(
                    transaction_type=TransactionType.SELL, item_id=entry.item_id,
                    quantity=quantity, unit_price=quote.price, total=total, time=now,
                ))
            event = TransactionEvent(
                shop_id=shop_id,
                item_ref=entry.ref,
                transaction_type=TransactionType.SELL,
                quantity=quantity,
                unit_price=quote.price,
                effective_price=total,
                currency=shop.currency,
                timestamp=now,
            )
        logger.info("Sold %dx %s to %s for %d %s", quantity, entry.item_id, shop_id, total, event.currency)
        self._emit(event)
        return event
