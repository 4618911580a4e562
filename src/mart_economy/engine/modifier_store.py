"""Modifier store — the set of specials owned by one shop instance."""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from mart_economy.content.catalog import ItemCatalog
from mart_economy.engine.validators import check_against_catalog, check_structure
from mart_economy.errors import InvalidModifier
from mart_economy.models.item import ItemRef
from mart_economy.models.modifier import SCOPE_RANK, Modifier, ModifierScope

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScopeFilter:
    """Which modifiers a query should see. An empty filter admits everything."""

    item_id: str | None = None
    category: str | None = None
    scope: ModifierScope | None = None

    @classmethod
    def for_item(cls, item_ref: ItemRef) -> ScopeFilter:
        return cls(item_id=item_ref.item_id, category=item_ref.category)

    def admits(self, modifier: Modifier) -> bool:
        if self.scope is not None and modifier.scope != self.scope:
            return False
        if self.item_id is None and self.category is None:
            return True
        return modifier.matches(self.item_id or "", self.category or "")


class ModifierStore:
    """Ordered collection of modifiers keyed by id.

    Stored modifiers are never mutated in place; enable/disable/replace swap in a
    copy so concurrent readers keep a consistent view. Mutations run under the
    owning shop's lock.
    """

    def __init__(
        self,
        lock: threading.RLock | None = None,
        catalog: ItemCatalog | None = None,
        next_seq: int = 1,
    ) -> None:
        self._modifiers: dict[str, Modifier] = {}
        self._lock = lock if lock is not None else threading.RLock()
        self._catalog = catalog
        self._next_seq = next_seq

    @property
    def next_seq(self) -> int:
        return self._next_seq

    def __len__(self) -> int:
        return len(self._modifiers)

    def __contains__(self, modifier_id: str) -> bool:
        return modifier_id in self._modifiers

    def get(self, modifier_id: str) -> Modifier | None:
        return self._modifiers.get(modifier_id)

    def all(self) -> list[Modifier]:
        """Every modifier, in creation order."""
        return sorted(self._modifiers.values(), key=lambda m: m.created_seq)

    # -- Mutations --

    def add(self, modifier: Modifier) -> Modifier:
        """Insert a new modifier; an enabled item override supersedes the previous one."""
        with self._lock:
            if modifier.id in self._modifiers:
                raise InvalidModifier(f"Modifier id already present: {modifier.id}")
            check_structure(modifier)
            check_against_catalog(modifier, self._catalog)
            stored = modifier.model_copy(update={"created_seq": self._next_seq}, deep=True)
            self._next_seq += 1
            self._supersede(stored)
            self._modifiers[stored.id] = stored
            return stored

    def replace(self, modifier: Modifier) -> Modifier:
        """Swap in a new definition for an existing id, keeping its creation order."""
        with self._lock:
            current = self._modifiers.get(modifier.id)
            if current is None:
                raise InvalidModifier(f"No modifier with id {modifier.id}")
            check_structure(modifier)
            check_against_catalog(modifier, self._catalog)
            stored = modifier.model_copy(update={"created_seq": current.created_seq}, deep=True)
            self._supersede(stored)
            self._modifiers[stored.id] = stored
            return stored

    def remove(self, modifier_id: str) -> None:
        """Delete a modifier. Removing an absent id is a no-op."""
        with self._lock:
            self._modifiers.pop(modifier_id, None)

    def enable(self, modifier_id: str) -> Modifier:
        return self._set_enabled(modifier_id, True)

    def disable(self, modifier_id: str) -> Modifier:
        return self._set_enabled(modifier_id, False)

    def restore(self, modifiers: Iterable[Modifier], next_seq: int) -> None:
        """Reload saved modifiers verbatim, keeping their creation sequence numbers."""
        with self._lock:
            restored: dict[str, Modifier] = {}
            for m in modifiers:
                if m.id in restored:
                    raise InvalidModifier(f"Duplicate modifier id in saved data: {m.id}")
                check_structure(m)
                restored[m.id] = m
            seen: set[str] = set()
            for m in restored.values():
                if m.is_override and m.enabled and m.scope == ModifierScope.ITEM:
                    if m.target in seen:
                        raise InvalidModifier(f"Two enabled overrides saved for item {m.target}")
                    seen.add(m.target or "")
            highest = max((m.created_seq for m in restored.values()), default=0)
            self._modifiers = restored
            self._next_seq = max(next_seq, highest + 1)

    def _set_enabled(self, modifier_id: str, enabled: bool) -> Modifier:
        with self._lock:
            current = self._modifiers.get(modifier_id)
            if current is None:
                raise InvalidModifier(f"No modifier with id {modifier_id}")
            if current.enabled == enabled:
                return current
            updated = current.model_copy(update={"enabled": enabled})
            self._supersede(updated)
            self._modifiers[modifier_id] = updated
            return updated

    def _supersede(self, incoming: Modifier) -> None:
        """Disable any other enabled override on the same item as *incoming*."""
        if not (incoming.is_override and incoming.enabled and incoming.scope == ModifierScope.ITEM):
            return
        for other in list(self._modifiers.values()):
            if (
                other.id != incoming.id
                and other.is_override
                and other.enabled
                and other.scope == ModifierScope.ITEM
                and other.target == incoming.target
            ):
                self._modifiers[other.id] = other.model_copy(update={"enabled": False})
                logger.info("Override %s superseded by %s on %s", other.id, incoming.id, incoming.target)

    # -- Reads --

    def query(self, scope_filter: ScopeFilter | None = None, now: int | None = None) -> list[Modifier]:
        """Matching modifiers, item scope first, then category, then shop-wide.

        ``now=None`` skips the activity check (listing view).
        """
        scope_filter = scope_filter or ScopeFilter()
        snapshot = list(self._modifiers.values())
        matches = [
            m for m in snapshot
            if scope_filter.admits(m) and (now is None or m.is_active(now))
        ]
        return sorted(matches, key=lambda m: (SCOPE_RANK[m.scope], m.created_seq))
