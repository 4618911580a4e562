"""Exception taxonomy for the economy core.

Validation errors (``InvalidModifier``, ``NoopModifier``, ``AlreadyExpired``) are meant
to be shown to the author and corrected. ``UnknownItem`` / ``UnknownShop`` are bad
caller input. ``ShopInUse`` is transient and may be retried once the in-flight
transaction finishes. ``CorruptShopState`` is reported per shop by the load path.
"""
from __future__ import annotations


class EconomyError(Exception):
    """Base class for every error raised by the economy core."""

    retryable = False


class UnknownItem(EconomyError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Unknown item: {item_id}")
        self.item_id = item_id


class UnknownShop(EconomyError):
    def __init__(self, shop_id: str) -> None:
        super().__init__(f"Unknown shop: {shop_id}")
        self.shop_id = shop_id


class ModifierValidationError(EconomyError):
    """A modifier definition was rejected before reaching the store."""


class InvalidModifier(ModifierValidationError):
    pass


class NoopModifier(ModifierValidationError):
    pass


class AlreadyExpired(ModifierValidationError):
    pass


class ShopInUse(EconomyError):
    retryable = True

    def __init__(self, shop_id: str, holders: list[str]) -> None:
        super().__init__(f"Shop {shop_id} has transactions in flight ({', '.join(holders)})")
        self.shop_id = shop_id
        self.holders = holders


class CorruptShopState(EconomyError):
    def __init__(self, shop_id: str, reason: str = "") -> None:
        super().__init__(f"Corrupt state for shop {shop_id}: {reason}" if reason else f"Corrupt state for shop {shop_id}")
        self.shop_id = shop_id
        self.reason = reason


class CorruptSaveData(EconomyError):
    """The save envelope itself could not be read; no shop could be located."""


class InsufficientFunds(EconomyError):
    def __init__(self, currency: str, needed: int, balance: int) -> None:
        super().__init__(f"Need {needed} {currency}, have {balance}")
        self.currency = currency
        self.needed = needed
        self.balance = balance


class UntradableItem(EconomyError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"Item cannot be traded: {item_id}")
        self.item_id = item_id
