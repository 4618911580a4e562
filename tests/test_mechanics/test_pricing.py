"""Tests for src/mart_economy/mechanics/pricing.py."""
from __future__ import annotations

from decimal import Decimal

import pytest

from mart_economy.mechanics.pricing import (
    bulk_discount_percent,
    calculate_bulk_total,
    clamp_price,
    pick_override,
    resolve_price,
    round_half_up,
)
from mart_economy.models.modifier import MagnitudeUnit, Modifier, ModifierKind


def _mod(kind=ModifierKind.MARKUP, magnitude=10, unit=MagnitudeUnit.PERCENT, priority=0, seq=1, mid=None):
    if kind == ModifierKind.FIXED_OVERRIDE:
        unit = MagnitudeUnit.ABSOLUTE
    return Modifier(
        id=mid or f"m{seq}", kind=kind, magnitude=magnitude, unit=unit,
        priority=priority, created_seq=seq,
    )


class TestRoundHalfUp:
    @pytest.mark.parametrize("value, expected", [
        (2.5, 3), (3.5, 4), (2.4, 2), (Decimal("107.5"), 108), (0, 0), (99.49, 99),
    ])
    def test_rounding(self, value, expected):
        assert round_half_up(value) == expected


class TestResolvePrice:
    def test_no_modifiers_is_identity(self):
        assert resolve_price(100, []).price == 100

    def test_single_markup(self):
        assert resolve_price(100, [_mod(magnitude=20, priority=1)]).price == 120

    def test_markup_then_markdown_compounds_in_priority_order(self):
        mods = [
            _mod(ModifierKind.MARKDOWN, 10, priority=2, seq=1),
            _mod(ModifierKind.MARKUP, 20, priority=1, seq=2),
        ]
        result = resolve_price(100, mods)
        assert result.price == 108
        assert result.applied_ids == ["m2", "m1"]

    def test_equal_priority_uses_creation_order(self):
        # 100 - 50 = 50, then +10% = 55 (the other order would give 60)
        mods = [
            _mod(ModifierKind.MARKUP, 10, priority=0, seq=2),
            _mod(ModifierKind.MARKDOWN, 50, unit=MagnitudeUnit.ABSOLUTE, priority=0, seq=1),
        ]
        assert resolve_price(100, mods).price == 55

    def test_absolute_amounts(self):
        mods = [_mod(ModifierKind.MARKUP, 25, unit=MagnitudeUnit.ABSOLUTE)]
        assert resolve_price(100, mods).price == 125

    def test_markdown_sign_is_ignored(self):
        a = resolve_price(100, [_mod(ModifierKind.MARKDOWN, 10)]).price
        b = resolve_price(100, [_mod(ModifierKind.MARKDOWN, -10)]).price
        assert a == b == 90

    def test_override_wins_over_markup(self):
        mods = [
            _mod(ModifierKind.FIXED_OVERRIDE, 50, priority=5, seq=1),
            _mod(ModifierKind.MARKUP, 20, priority=1, seq=2),
        ]
        result = resolve_price(100, mods)
        assert result.price == 50
        assert result.override_id == "m1"
        assert result.applied_ids == ["m1"]

    def test_override_ignores_floor(self):
        mods = [_mod(ModifierKind.FIXED_OVERRIDE, 0)]
        assert resolve_price(100, mods, floor=1).price == 0

    def test_floor_clamps_markdowns(self):
        mods = [_mod(ModifierKind.MARKDOWN, 99.9)]
        assert resolve_price(10, mods, floor=1).price == 1

    def test_ceiling(self):
        mods = [_mod(ModifierKind.MARKUP, 500)]
        assert resolve_price(100, mods, ceiling=250).price == 250

    def test_global_multiplier_applied_after_specials(self):
        mods = [_mod(ModifierKind.MARKUP, 20)]
        assert resolve_price(100, mods, global_multiplier=1.5).price == 180

    def test_free_base_stays_free(self):
        assert resolve_price(0, [_mod(ModifierKind.MARKUP, 50)]).price == 0

    def test_half_rounds_up(self):
        # 15 * 1.1 = 16.5
        assert resolve_price(15, [_mod(ModifierKind.MARKUP, 10)]).price == 17


class TestPickOverride:
    def test_none_when_no_overrides(self):
        assert pick_override([_mod()]) is None

    def test_highest_priority(self):
        low = _mod(ModifierKind.FIXED_OVERRIDE, 10, priority=1, seq=5, mid="low")
        high = _mod(ModifierKind.FIXED_OVERRIDE, 20, priority=9, seq=1, mid="high")
        assert pick_override([low, high]).id == "high"

    def test_tie_goes_to_most_recent(self):
        old = _mod(ModifierKind.FIXED_OVERRIDE, 10, priority=3, seq=1, mid="old")
        new = _mod(ModifierKind.FIXED_OVERRIDE, 20, priority=3, seq=2, mid="new")
        assert pick_override([new, old]).id == "new"


class TestClampPrice:
    def test_within_bounds(self):
        assert clamp_price(Decimal(50), 1, 100) == Decimal(50)

    def test_below_floor(self):
        assert clamp_price(Decimal("0.2"), 1) == Decimal(1)


THRESHOLDS = {10: 5, 25: 10, 50: 15}


class TestBulkDiscount:
    @pytest.mark.parametrize("qty, expected", [
        (1, 0), (9, 0), (10, 5), (24, 5), (25, 10), (49, 10), (50, 15), (99, 15),
    ])
    def test_thresholds(self, qty, expected):
        assert bulk_discount_percent(qty, THRESHOLDS) == expected

    def test_total_without_discount(self):
        assert calculate_bulk_total(100, 3, THRESHOLDS) == (300, 0)

    def test_total_with_discount(self):
        # 10 x 100 = 1000, 5% off
        assert calculate_bulk_total(100, 10, THRESHOLDS) == (950, 50)
