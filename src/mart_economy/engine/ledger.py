"""Currency ledgers, per-shop statistics and transaction history."""
from __future__ import annotations

import logging
import threading
from collections import deque
from typing import Iterable

from mart_economy.errors import InsufficientFunds
from mart_economy.models.event import HistoryEntry, TransactionType
from mart_economy.models.shop import ItemTally, ShopStatistics

logger = logging.getLogger(__name__)


class CurrencyLedger:
    """Running balances per currency for one owner (a shop's takings or a player's funds)."""

    def __init__(
        self,
        owner_id: str,
        balances: dict[str, int] | None = None,
        caps: dict[str, int] | None = None,
        allow_overdraft: bool = False,
    ) -> None:
        self.owner_id = owner_id
        self._balances: dict[str, int] = dict(balances or {})
        self._caps = dict(caps or {})
        self.allow_overdraft = allow_overdraft
        self._lock = threading.Lock()

    def balance(self, currency: str = "money") -> int:
        return self._balances.get(currency, 0)

    def can_afford(self, currency: str, amount: int) -> bool:
        return self.allow_overdraft or self.balance(currency) >= amount

    def spend(self, currency: str, amount: int, reason: str = "purchase") -> int:
        """Deduct *amount*; raises InsufficientFunds rather than going negative."""
        if amount < 0:
            raise ValueError(f"Cannot spend a negative amount: {amount}")
        with self._lock:
            old = self.balance(currency)
            if not self.allow_overdraft and old < amount:
                raise InsufficientFunds(currency, amount, old)
            self._balances[currency] = old - amount
        logger.debug("SPEND %s/%s: %d (%s) %d -> %d", self.owner_id, currency, amount, reason, old, old - amount)
        return old - amount

    def credit(self, currency: str, amount: int, reason: str = "reward") -> int:
        """Add *amount*, capped at the currency's maximum balance if it has one."""
        if amount < 0:
            raise ValueError(f"Cannot credit a negative amount: {amount}")
        with self._lock:
            old = self.balance(currency)
            new = old + amount
            cap = self._caps.get(currency)
            if cap is not None:
                new = min(cap, new)
            self._balances[currency] = new
        logger.debug("ADD %s/%s: %d (%s) %d -> %d", self.owner_id, currency, amount, reason, old, new)
        return new

    def balances(self) -> dict[str, int]:
        return dict(self._balances)


def record_purchase(
    stats: ShopStatistics,
    item_id: str,
    quantity: int,
    total_price: int,
    time: int,
    savings: int = 0,
    markup_cost: int = 0,
) -> None:
    stats.total_spent += total_price
    tally = stats.items_bought.setdefault(item_id, ItemTally())
    tally.count += quantity
    tally.total += total_price
    if stats.first_purchase_time is None:
        stats.first_purchase_time = time
    stats.last_purchase_time = time
    stats.transactions += 1
    if savings > 0:
        stats.saved_from_discounts += savings
    if markup_cost > 0:
        stats.markup_losses += markup_cost
    if total_price == 0:
        stats.free_items_claimed += quantity


def record_sale(stats: ShopStatistics, item_id: str, quantity: int, total_price: int) -> None:
    stats.total_earned += total_price
    tally = stats.items_sold.setdefault(item_id, ItemTally())
    tally.count += quantity
    tally.total += total_price
    stats.transactions += 1


class TransactionHistory:
    """Most-recent-first list of completed transactions, bounded in length."""

    def __init__(self, max_entries: int = 100, entries: Iterable[HistoryEntry] = ()) -> None:
        self.max_entries = max_entries
        self._entries: deque[HistoryEntry] = deque(list(entries)[:max_entries], maxlen=max_entries)

    def add(self, entry: HistoryEntry) -> None:
        self._entries.appendleft(entry)

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def recent(self, transaction_type: TransactionType | None = None, limit: int = 10) -> list[HistoryEntry]:
        selected = [e for e in self._entries if transaction_type is None or e.transaction_type == transaction_type]
        return selected[:limit]

    def for_item(self, item_id: str, limit: int = 10) -> list[HistoryEntry]:
        return [e for e in self._entries if e.item_id == item_id][:limit]

    def __len__(self) -> int:
        return len(self._entries)
