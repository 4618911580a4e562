"""Rolled specials — day-of-week themed events and per-shop random sales/markups.

Only one kind of special runs in a shop at a time. Any special already active in the
shop, authored or rolled, suppresses rolling; otherwise a themed event may trigger for
the current weekday, and failing that the shop rolls its own random sale and markup.

The developer tools can also force a random special or a chosen theme, skipping the
chance rolls, and clear rolled specials early.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass

from mart_economy.config import SpecialsSettings
from mart_economy.engine.shop_registry import ShopInstance
from mart_economy.errors import InvalidModifier
from mart_economy.mechanics.sim_clock import day_of_week, hours
from mart_economy.models.item import CatalogEntry
from mart_economy.models.modifier import (
    ActivationWindow,
    MagnitudeUnit,
    Modifier,
    ModifierKind,
    ModifierScope,
    SpecialSource,
)

logger = logging.getLogger(__name__)

RANDOM_PRIORITY = 10
ROLLER_ACTOR = "specials-roller"

_RANDOM_NAMES = {ModifierKind.MARKDOWN: "Random Sale", ModifierKind.MARKUP: "Random Markup"}


@dataclass(frozen=True)
class ThemedEvent:
    name: str
    days: tuple[int, ...]
    sale_categories: tuple[str, ...] = ()
    markup_categories: tuple[str, ...] = ()
    sale_percent: tuple[int, int] = (5, 25)
    markup_percent: tuple[int, int] = (5, 25)


# 0=Sunday .. 6=Saturday
THEMED_EVENTS: dict[str, ThemedEvent] = {
    "medicine_monday": ThemedEvent("Medicine Monday", (1,), sale_categories=("medicine",)),
    "tm_tuesday": ThemedEvent("TM Tuesday", (2,), sale_categories=("tms",)),
    "wellness_wednesday": ThemedEvent("Wellness Wednesday", (3,), sale_categories=("medicine", "berries")),
    "throwback_thursday": ThemedEvent("Throwback Thursday", (4,), markup_categories=("items",)),
    "battle_friday": ThemedEvent("Battle Friday", (5,), sale_categories=("battle_items",)),
    "ball_weekend": ThemedEvent("Ball Bonanza", (0, 6), sale_categories=("balls",)),
}


class SpecialsRoller:
    def __init__(
        self,
        settings: SpecialsSettings | None = None,
        rng: random.Random | None = None,
        themes: dict[str, ThemedEvent] | None = None,
    ) -> None:
        self.settings = settings or SpecialsSettings()
        self.rng = rng or random.Random()
        self.themes = THEMED_EVENTS if themes is None else themes

    def _chance(self, percent: int) -> bool:
        return self.rng.randint(1, 100) <= percent

    def roll(
        self,
        shop: ShopInstance,
        stock: list[CatalogEntry],
        now: int,
        weekday: int | None = None,
    ) -> list[Modifier]:
        """Roll specials for a shop visit. Returns the modifiers that were added."""
        weekday = day_of_week(now) if weekday is None else weekday
        with shop.lock:
            self.clear_expired(shop, now)
            active = shop.store.query(None, now)
            if active:
                return []
            added = self._roll_themed(shop, stock, now, weekday)
            if not added:
                added = self._roll_random(shop, stock, now)
        if added:
            logger.info("Rolled %d special(s) for shop %s", len(added), shop.shop_id)
        return added

    def force_random(
        self,
        shop: ShopInstance,
        stock: list[CatalogEntry],
        now: int,
        kind: ModifierKind,
    ) -> list[Modifier]:
        """Start a random sale or markup right away.

        A running themed event is cleared, and an earlier random special of the same
        kind is replaced. Items already in the other random special are not picked.
        """
        if kind not in _RANDOM_NAMES:
            raise InvalidModifier(f"Only sales and markups can be rolled, not {kind.value}")
        with shop.lock:
            self.clear(shop, source=SpecialSource.THEMED)
            self.clear(shop, source=SpecialSource.RANDOM, kind=kind)
            taken = {
                m.target for m in shop.store.all()
                if m.source == SpecialSource.RANDOM and m.window.contains(now)
            }
            pool = [i for i in self._random_pool(stock) if i not in taken]
            if not pool:
                return []
            count = min(len(pool), self.rng.randint(1, 2))
            added = self._add_random(shop, self.rng.sample(pool, count), kind, now)
        logger.info("Forced %s for shop %s", _RANDOM_NAMES[kind].lower(), shop.shop_id)
        return added

    def force_themed(
        self,
        shop: ShopInstance,
        stock: list[CatalogEntry],
        now: int,
        theme_id: str,
    ) -> list[Modifier]:
        """Start the themed event *theme_id* whatever the weekday, replacing rolled specials."""
        event = self.themes.get(theme_id)
        if event is None:
            raise InvalidModifier(f"Unknown themed event: {theme_id}")
        with shop.lock:
            self.clear(shop)
            added = self._apply_theme(shop, event, {e.category for e in stock}, now)
        logger.info("Forced themed event %s for shop %s", event.name, shop.shop_id)
        return added

    def clear(
        self,
        shop: ShopInstance,
        source: SpecialSource | None = None,
        kind: ModifierKind | None = None,
    ) -> list[str]:
        """Remove rolled specials, optionally only one source or kind. Authored ones stay."""
        if source == SpecialSource.CUSTOM:
            raise InvalidModifier("Authored specials are removed through the editor")
        removed = []
        with shop.lock:
            for m in shop.store.all():
                if m.source == SpecialSource.CUSTOM:
                    continue
                if (source is None or m.source == source) and (kind is None or m.kind == kind):
                    shop.store.remove(m.id)
                    removed.append(m.id)
        if removed:
            logger.info("Cleared %d rolled special(s) from shop %s", len(removed), shop.shop_id)
        return removed

    def clear_expired(self, shop: ShopInstance, now: int) -> list[str]:
        """Drop rolled specials whose window has ended; authored ones are left alone."""
        removed = []
        with shop.lock:
            for m in shop.store.all():
                if m.source != SpecialSource.CUSTOM and m.window.is_past(now):
                    shop.store.remove(m.id)
                    removed.append(m.id)
        return removed

    def _make(
        self,
        name: str,
        scope: ModifierScope,
        target: str,
        kind: ModifierKind,
        percent: int,
        priority: int,
        source: SpecialSource,
        now: int,
    ) -> Modifier:
        return Modifier(
            name=name,
            scope=scope,
            target=target,
            kind=kind,
            magnitude=percent,
            unit=MagnitudeUnit.PERCENT,
            priority=priority,
            window=ActivationWindow(start=now, end=now + hours(self.settings.duration_hours)),
            created_by=ROLLER_ACTOR,
            source=source,
        )

    def _roll_themed(self, shop: ShopInstance, stock: list[CatalogEntry], now: int, weekday: int) -> list[Modifier]:
        stocked = {e.category for e in stock}
        for event in self.themes.values():
            if weekday not in event.days:
                continue
            if not self._stocked_categories(event, stocked) or not self._chance(self.settings.themed_chance):
                continue
            return self._apply_theme(shop, event, stocked, now)
        return []

    @staticmethod
    def _stocked_categories(event: ThemedEvent, stocked: set[str]) -> list[str]:
        return [c for c in (*event.sale_categories, *event.markup_categories) if c in stocked]

    def _apply_theme(self, shop: ShopInstance, event: ThemedEvent, stocked: set[str], now: int) -> list[Modifier]:
        added = []
        for category in (c for c in event.sale_categories if c in stocked):
            pct = self.rng.randint(*event.sale_percent)
            added.append(shop.store.add(self._make(
                event.name, ModifierScope.CATEGORY, category, ModifierKind.MARKDOWN,
                pct, self.settings.themed_priority, SpecialSource.THEMED, now,
            )))
        for category in (c for c in event.markup_categories if c in stocked):
            pct = self.rng.randint(*event.markup_percent)
            added.append(shop.store.add(self._make(
                event.name, ModifierScope.CATEGORY, category, ModifierKind.MARKUP,
                pct, self.settings.themed_priority, SpecialSource.THEMED, now,
            )))
        return added

    @staticmethod
    def _random_pool(stock: list[CatalogEntry]) -> list[str]:
        return sorted(e.item_id for e in stock if e.tradable and e.buy_base_price > 1)

    def _pick_items(self, pool: list[str]) -> list[str]:
        count = 2 if len(pool) >= 2 and self._chance(self.settings.random_multi_item_chance) else 1
        return self.rng.sample(pool, count)

    def _add_random(self, shop: ShopInstance, items: list[str], kind: ModifierKind, now: int) -> list[Modifier]:
        lo, hi = self.settings.random_min_percent, self.settings.random_max_percent
        return [
            shop.store.add(self._make(
                _RANDOM_NAMES[kind], ModifierScope.ITEM, item_id, kind,
                self.rng.randint(lo, hi), RANDOM_PRIORITY, SpecialSource.RANDOM, now,
            ))
            for item_id in items
        ]

    def _roll_random(self, shop: ShopInstance, stock: list[CatalogEntry], now: int) -> list[Modifier]:
        pool = self._random_pool(stock)
        added = []
        sale_items: list[str] = []
        if pool and self._chance(self.settings.random_sale_chance):
            sale_items = self._pick_items(pool)
            added += self._add_random(shop, sale_items, ModifierKind.MARKDOWN, now)
        remaining = [i for i in pool if i not in sale_items]
        if remaining and self._chance(self.settings.random_markup_chance):
            added += self._add_random(shop, self._pick_items(remaining), ModifierKind.MARKUP, now)
        return added
