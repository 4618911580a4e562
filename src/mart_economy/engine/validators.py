"""Validates modifier definitions before they reach a store."""
from __future__ import annotations

import math

from mart_economy.content.catalog import ItemCatalog
from mart_economy.errors import AlreadyExpired, InvalidModifier, NoopModifier, UnknownItem
from mart_economy.models.modifier import MagnitudeUnit, Modifier, ModifierKind, ModifierScope


def check_structure(modifier: Modifier) -> None:
    """Invariants every stored modifier must satisfy. Raises InvalidModifier."""
    if not modifier.id:
        raise InvalidModifier("Modifier id must not be empty.")
    if modifier.scope in (ModifierScope.ITEM, ModifierScope.CATEGORY) and not (modifier.target or "").strip():
        raise InvalidModifier(f"{modifier.scope.value} scope needs a target.")
    window = modifier.window
    if window.end is not None and window.end <= window.start:
        raise InvalidModifier(f"Window end ({window.end}) must be after start ({window.start}).")
    if not math.isfinite(modifier.magnitude):
        raise InvalidModifier("Magnitude must be a finite number.")

    if modifier.kind == ModifierKind.FIXED_OVERRIDE:
        if modifier.unit != MagnitudeUnit.ABSOLUTE:
            raise InvalidModifier("A fixed override is an absolute price, not a percentage.")
        if modifier.magnitude < 0:
            raise InvalidModifier("A fixed override price cannot be negative.")
    elif modifier.kind == ModifierKind.MARKDOWN and modifier.unit == MagnitudeUnit.PERCENT:
        if abs(modifier.magnitude) >= 100:
            raise InvalidModifier("A markdown of 100% or more prices every item at nothing.")


def check_against_catalog(modifier: Modifier, catalog: ItemCatalog | None) -> None:
    """Item-scoped absolute markdowns must leave the item a positive price."""
    if catalog is None or modifier.scope != ModifierScope.ITEM:
        return
    try:
        entry = catalog.lookup(modifier.target or "")
    except UnknownItem as e:
        raise InvalidModifier(f"Target item is not in the catalog: {modifier.target}") from e
    if modifier.kind == ModifierKind.MARKDOWN and modifier.unit == MagnitudeUnit.ABSOLUTE:
        if abs(modifier.magnitude) >= entry.buy_base_price:
            raise InvalidModifier(
                f"Markdown of {abs(modifier.magnitude):g} takes {entry.item_id} "
                f"(base {entry.buy_base_price}) to nothing."
            )


def check_authoring(modifier: Modifier, now: int, allow_expired: bool = False) -> None:
    """Editor-level rules on top of the structural ones."""
    if modifier.kind != ModifierKind.FIXED_OVERRIDE and modifier.magnitude == 0:
        raise NoopModifier("A markup or markdown of zero changes nothing.")
    if modifier.window.is_past(now) and not allow_expired:
        raise AlreadyExpired(
            f"Window ended at {modifier.window.end}, which is not after now ({now})."
        )
