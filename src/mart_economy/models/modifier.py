from __future__ import annotations

import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ModifierScope(str, Enum):
    ITEM = "item"
    CATEGORY = "category"
    SHOP = "shop"


class ModifierKind(str, Enum):
    MARKUP = "markup"
    MARKDOWN = "markdown"
    FIXED_OVERRIDE = "fixed_override"


class MagnitudeUnit(str, Enum):
    PERCENT = "percent"
    ABSOLUTE = "absolute"


class SpecialSource(str, Enum):
    CUSTOM = "custom"
    THEMED = "themed"
    RANDOM = "random"


# Lookup order when resolving a price: exact item first, then category, then shop-wide.
SCOPE_RANK = {ModifierScope.ITEM: 0, ModifierScope.CATEGORY: 1, ModifierScope.SHOP: 2}


class ActivationWindow(BaseModel):
    """Simulated-time window. ``end`` is exclusive; ``manual`` ignores start/end entirely."""

    start: int = 0
    end: Optional[int] = None
    manual: bool = False

    def contains(self, now: int) -> bool:
        if self.manual:
            return True
        if now < self.start:
            return False
        return self.end is None or now < self.end

    def is_past(self, now: int) -> bool:
        return not self.manual and self.end is not None and self.end <= now


class Modifier(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    scope: ModifierScope = ModifierScope.SHOP
    target: Optional[str] = None
    kind: ModifierKind = ModifierKind.MARKUP
    magnitude: float = 0
    unit: MagnitudeUnit = MagnitudeUnit.PERCENT
    priority: int = 0
    window: ActivationWindow = Field(default_factory=ActivationWindow)
    enabled: bool = True
    created_seq: int = 0
    created_by: str = ""
    source: SpecialSource = SpecialSource.CUSTOM

    @property
    def is_override(self) -> bool:
        return self.kind == ModifierKind.FIXED_OVERRIDE

    def is_active(self, now: int) -> bool:
        return self.enabled and self.window.contains(now)

    def matches(self, item_id: str, category: str) -> bool:
        if self.scope == ModifierScope.ITEM:
            return self.target == item_id
        if self.scope == ModifierScope.CATEGORY:
            return bool(category) and self.target == category
        return True


class ModifierDraft(BaseModel):
    """Author input for the Specials Editor; every field optional so edits can be partial."""

    id: Optional[str] = None
    name: Optional[str] = None
    scope: Optional[ModifierScope] = None
    target: Optional[str] = None
    kind: Optional[ModifierKind] = None
    magnitude: Optional[float] = None
    unit: Optional[MagnitudeUnit] = None
    priority: Optional[int] = None
    start: Optional[int] = None
    end: Optional[int] = None
    manual: Optional[bool] = None
    enabled: Optional[bool] = None

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)
