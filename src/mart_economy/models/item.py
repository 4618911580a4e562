from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class ItemRef(BaseModel):
    """Opaque item identifier plus the category tag used for category-scoped specials."""

    model_config = ConfigDict(frozen=True)

    item_id: str
    category: str = ""


class CatalogEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    item_id: str
    name: str = ""
    category: str = ""
    buy_base_price: int = Field(gt=0)
    sell_base_price: int = Field(default=0, ge=0)
    tradable: bool = True

    @property
    def ref(self) -> ItemRef:
        return ItemRef(item_id=self.item_id, category=self.category)

    def base_price(self, selling: bool = False) -> int:
        return self.sell_base_price if selling else self.buy_base_price
