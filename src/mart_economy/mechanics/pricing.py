"""Pricing mechanics — pure calculations for specials, clamping and bulk totals, no I/O."""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

from mart_economy.models.modifier import MagnitudeUnit, Modifier, ModifierKind

_HUNDRED = Decimal(100)


@dataclass
class PriceResolution:
    price: int
    override_id: str | None = None
    applied_ids: list[str] = field(default_factory=list)


def round_half_up(value: Decimal | float | int) -> int:
    """Round to a whole currency unit, halves away from zero (2.5 -> 3)."""
    return int(Decimal(str(value)).quantize(Decimal(1), rounding=ROUND_HALF_UP))


def apply_adjustment(running: Decimal, modifier: Modifier) -> Decimal:
    """Apply one markup/markdown to the running price.

    Markups always raise and markdowns always lower the price; the sign of the
    magnitude is ignored so "-10" and "10" describe the same markdown.
    """
    amount = abs(Decimal(str(modifier.magnitude)))
    if modifier.unit == MagnitudeUnit.PERCENT:
        delta = running * amount / _HUNDRED
    else:
        delta = amount
    if modifier.kind == ModifierKind.MARKDOWN:
        return running - delta
    return running + delta


def clamp_price(price: Decimal, floor: int = 1, ceiling: int | None = None) -> Decimal:
    if ceiling is not None and price > ceiling:
        price = Decimal(ceiling)
    if price < floor:
        price = Decimal(floor)
    return price


def pick_override(modifiers: Iterable[Modifier]) -> Modifier | None:
    """Highest priority wins; equal priorities go to the most recently created."""
    overrides = [m for m in modifiers if m.is_override]
    if not overrides:
        return None
    return max(overrides, key=lambda m: (m.priority, m.created_seq))


def resolve_price(
    base_price: int,
    modifiers: Iterable[Modifier],
    floor: int = 1,
    ceiling: int | None = None,
    global_multiplier: float = 1.0,
) -> PriceResolution:
    """Turn a base price into an effective price given the already-active modifiers.

    Args:
        base_price: Catalog price for the transaction side being priced.
        modifiers: Modifiers that match the item and are active right now.
        floor: Lowest price markups/markdowns may produce.
        ceiling: Optional highest price.
        global_multiplier: Shop-wide factor applied after the specials.

    Returns:
        The rounded price plus the ids of whatever shaped it.
    """
    modifiers = list(modifiers)
    override = pick_override(modifiers)
    if override is not None:
        return PriceResolution(
            price=round_half_up(max(0, override.magnitude)),
            override_id=override.id,
            applied_ids=[override.id],
        )
    if base_price <= 0:
        # Free items stay free; specials only reshape priced stock.
        return PriceResolution(price=0)

    adjustments = sorted(
        (m for m in modifiers if not m.is_override),
        key=lambda m: (m.priority, m.created_seq),
    )
    running = Decimal(base_price)
    for m in adjustments:
        running = apply_adjustment(running, m)
    if global_multiplier != 1.0:
        running = running * Decimal(str(global_multiplier))
    running = clamp_price(running, floor, ceiling)
    return PriceResolution(
        price=round_half_up(running),
        applied_ids=[m.id for m in adjustments],
    )


def bulk_discount_percent(quantity: int, thresholds: dict[int, int]) -> int:
    """Discount for buying *quantity* at once; the highest threshold reached applies."""
    reached = [q for q in thresholds if quantity >= q]
    if not reached:
        return 0
    return thresholds[max(reached)]


def calculate_bulk_total(unit_price: int, quantity: int, thresholds: dict[int, int]) -> tuple[int, int]:
    """Return (total charged, amount saved) for a multi-unit purchase."""
    total = unit_price * quantity
    discount = bulk_discount_percent(quantity, thresholds)
    if discount <= 0:
        return total, 0
    savings = round_half_up(Decimal(total) * discount / _HUNDRED)
    return total - savings, savings
