from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from mart_economy.models.item import ItemRef


class TransactionType(str, Enum):
    BUY = "buy"
    SELL = "sell"


class AuditAction(str, Enum):
    CREATE = "create"
    EDIT = "edit"
    REMOVE = "remove"


class TransactionEvent(BaseModel):
    """Emitted once a purchase or sale has completed."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    shop_id: str
    item_ref: ItemRef
    transaction_type: TransactionType
    quantity: int = 1
    unit_price: int = 0
    effective_price: int = 0
    currency: str = "money"
    timestamp: int = 0


class AuditEntry(BaseModel):
    """One append-only record of a Specials Editor change."""

    actor: str
    timestamp: int
    action: AuditAction
    modifier_id: str
    before: Optional[dict[str, Any]] = None
    after: Optional[dict[str, Any]] = None


class HistoryEntry(BaseModel):
    transaction_type: TransactionType
    item_id: str
    quantity: int
    unit_price: int
    total: int
    time: int
