"""Shop instance registry — one live instance per shop id, shared shops included."""
from __future__ import annotations

import contextlib
import logging
import threading
from collections import Counter
from typing import Generator

from mart_economy.config import EconomySettings
from mart_economy.content.catalog import ItemCatalog
from mart_economy.engine.ledger import CurrencyLedger, TransactionHistory
from mart_economy.engine.modifier_store import ModifierStore
from mart_economy.errors import ShopInUse, UnknownShop
from mart_economy.models.event import AuditEntry
from mart_economy.models.shop import ShopRecord, ShopStatistics

logger = logging.getLogger(__name__)


class ShopInstance:
    """A shop id paired with its own modifier store, takings ledger and records."""

    def __init__(
        self,
        shop_id: str,
        shared: bool = False,
        currency: str = "money",
        catalog: ItemCatalog | None = None,
        settings: EconomySettings | None = None,
    ) -> None:
        settings = settings or EconomySettings()
        self.shop_id = shop_id
        self.shared = shared
        self.currency = currency
        self.lock = threading.RLock()
        self.store = ModifierStore(lock=self.lock, catalog=catalog)
        self.ledger = CurrencyLedger(shop_id, allow_overdraft=True)
        self.audit_log: list[AuditEntry] = []
        self.statistics = ShopStatistics()
        self.history = TransactionHistory(settings.history_size)

    def append_audit(self, entry: AuditEntry) -> None:
        with self.lock:
            self.audit_log.append(entry)

    def to_record(self) -> ShopRecord:
        with self.lock:
            return ShopRecord(
                shop_id=self.shop_id,
                shared=self.shared,
                currency=self.currency,
                next_seq=self.store.next_seq,
                ledger=self.ledger.balances(),
                modifiers=self.store.all(),
                audit_log=list(self.audit_log),
                statistics=self.statistics.model_copy(deep=True),
                history=self.history.entries(),
            )

    @classmethod
    def from_record(
        cls,
        record: ShopRecord,
        catalog: ItemCatalog | None = None,
        settings: EconomySettings | None = None,
    ) -> ShopInstance:
        settings = settings or EconomySettings()
        shop = cls(record.shop_id, shared=record.shared, currency=record.currency, catalog=catalog, settings=settings)
        shop.store.restore(record.modifiers, record.next_seq)
        shop.ledger = CurrencyLedger(record.shop_id, balances=record.ledger, allow_overdraft=True)
        shop.audit_log = list(record.audit_log)
        shop.statistics = record.statistics
        shop.history = TransactionHistory(settings.history_size, record.history)
        return shop

    def __repr__(self) -> str:
        return f"ShopInstance({self.shop_id!r}, shared={self.shared}, modifiers={len(self.store)})"


class ShopRegistry:
    """Maps shop ids to their single live instance.

    Lock order is always shop lock before registry lock.
    """

    def __init__(self, catalog: ItemCatalog | None = None, settings: EconomySettings | None = None) -> None:
        self.catalog = catalog
        self.settings = settings or EconomySettings()
        self._shops: dict[str, ShopInstance] = {}
        self._leases: dict[str, Counter[str]] = {}
        self._lock = threading.RLock()

    def get_or_create(self, shop_id: str, shared: bool = False) -> ShopInstance:
        """Return the instance for *shop_id*, creating it on first reference.

        A shop requested as shared stays shared from then on; sharing is never revoked here.
        """
        if not shop_id:
            raise UnknownShop(shop_id)
        with self._lock:
            shop = self._shops.get(shop_id)
            if shop is None:
                shop = ShopInstance(shop_id, shared=shared, catalog=self.catalog, settings=self.settings)
                self._shops[shop_id] = shop
                logger.info("Created shop %s (shared=%s)", shop_id, shared)
            elif shared and not shop.shared:
                shop.shared = True
                logger.info("Shop %s is now shared", shop_id)
            return shop

    def get(self, shop_id: str) -> ShopInstance:
        shop = self._shops.get(shop_id)
        if shop is None:
            raise UnknownShop(shop_id)
        return shop

    def adopt(self, shop: ShopInstance) -> None:
        """Register an already-built instance (used when loading saved data)."""
        with self._lock:
            self._shops[shop.shop_id] = shop

    def shop_ids(self) -> list[str]:
        return list(self._shops)

    def shops(self) -> list[ShopInstance]:
        return list(self._shops.values())

    def __contains__(self, shop_id: str) -> bool:
        return shop_id in self._shops

    def __len__(self) -> int:
        return len(self._shops)

    @contextlib.contextmanager
    def mutating(self, shop_id: str) -> Generator[ShopInstance, None, None]:
        """Exclusive access to one shop's state for a multi-step mutation."""
        shop = self.get(shop_id)
        with shop.lock:
            yield shop

    @contextlib.contextmanager
    def transaction(self, shop_id: str, holder: str) -> Generator[ShopInstance, None, None]:
        """Hold a lease on *shop_id* for an in-flight purchase or sale."""
        with self._lock:
            shop = self.get(shop_id)
            self._leases.setdefault(shop_id, Counter())[holder] += 1
        try:
            yield shop
        finally:
            with self._lock:
                leases = self._leases.get(shop_id)
                if leases is not None:
                    leases[holder] -= 1
                    if leases[holder] <= 0:
                        del leases[holder]
                    if not leases:
                        del self._leases[shop_id]

    def active_holders(self, shop_id: str) -> list[str]:
        with self._lock:
            return sorted(self._leases.get(shop_id, Counter()))

    def delete(self, shop_id: str, requester: str) -> None:
        """Remove a shop and its store. Fails with ShopInUse while others hold a lease."""
        shop = self.get(shop_id)
        with shop.lock:
            with self._lock:
                others = [h for h in self.active_holders(shop_id) if h != requester]
                if others:
                    raise ShopInUse(shop_id, others)
                self._shops.pop(shop_id, None)
                self._leases.pop(shop_id, None)
        logger.info("Deleted shop %s (requested by %s)", shop_id, requester)
