from __future__ import annotations

from pydantic import BaseModel, Field

from mart_economy.models.event import AuditEntry, HistoryEntry
from mart_economy.models.modifier import Modifier


class ItemTally(BaseModel):
    count: int = 0
    total: int = 0


class ShopStatistics(BaseModel):
    """Running totals for one shop, from the player's point of view."""

    total_spent: int = 0
    total_earned: int = 0
    transactions: int = 0
    saved_from_discounts: int = 0
    markup_losses: int = 0
    free_items_claimed: int = 0
    first_purchase_time: int | None = None
    last_purchase_time: int | None = None
    items_bought: dict[str, ItemTally] = Field(default_factory=dict)
    items_sold: dict[str, ItemTally] = Field(default_factory=dict)

    @property
    def items_bought_count(self) -> int:
        return sum(t.count for t in self.items_bought.values())

    @property
    def items_sold_count(self) -> int:
        return sum(t.count for t in self.items_sold.values())

    def summary(self) -> dict[str, int]:
        return {
            "total_spent": self.total_spent,
            "total_earned": self.total_earned,
            "net": self.total_earned - self.total_spent,
            "items_bought": self.items_bought_count,
            "items_sold": self.items_sold_count,
            "unique_bought": len(self.items_bought),
            "unique_sold": len(self.items_sold),
            "saved_from_discounts": self.saved_from_discounts,
            "markup_losses": self.markup_losses,
            "free_items": self.free_items_claimed,
            "transactions": self.transactions,
        }


class ShopRecord(BaseModel):
    """Serialized form of one shop instance inside a save blob."""

    shop_id: str
    shared: bool = False
    currency: str = "money"
    next_seq: int = 1
    ledger: dict[str, int] = Field(default_factory=dict)
    modifiers: list[Modifier] = Field(default_factory=list)
    audit_log: list[AuditEntry] = Field(default_factory=list)
    statistics: ShopStatistics = Field(default_factory=ShopStatistics)
    history: list[HistoryEntry] = Field(default_factory=list)
