"""Specials editor — authoring, validation, preview and audit for shop specials."""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any, Callable

from pydantic import ValidationError

from mart_economy.engine.economy_engine import EconomyEngine
from mart_economy.engine.modifier_store import ScopeFilter
from mart_economy.engine.shop_registry import ShopInstance, ShopRegistry
from mart_economy.engine.validators import check_authoring, check_structure
from mart_economy.errors import InvalidModifier, ModifierValidationError
from mart_economy.models.event import AuditAction, AuditEntry, TransactionType
from mart_economy.models.item import CatalogEntry, ItemRef
from mart_economy.models.modifier import (
    ActivationWindow,
    MagnitudeUnit,
    Modifier,
    ModifierDraft,
    ModifierKind,
    ModifierScope,
)

logger = logging.getLogger(__name__)

_WINDOW_FIELDS = ("start", "end", "manual")


@dataclass(frozen=True)
class PriceInvalidation:
    """Prices for this scope may have changed; subscribers recompute on their next read."""

    shop_id: str
    scope: ModifierScope
    target: str | None = None


Subscriber = Callable[[PriceInvalidation], None]


def _as_draft(data: ModifierDraft | dict[str, Any]) -> ModifierDraft:
    if isinstance(data, ModifierDraft):
        return data
    try:
        return ModifierDraft.model_validate(data)
    except ValidationError as e:
        raise InvalidModifier(str(e)) from e


class SpecialsEditor:
    """Entry point used by the developer "Specials Creator" tool."""

    def __init__(self, registry: ShopRegistry, engine: EconomyEngine) -> None:
        self.registry = registry
        self.engine = engine
        self._subscribers: list[Subscriber] = []

    # -- Subscriptions --

    def subscribe(self, callback: Subscriber) -> None:
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    def _notify(self, invalidation: PriceInvalidation) -> None:
        for callback in list(self._subscribers):
            try:
                callback(invalidation)
            except Exception:
                logger.exception("Price invalidation subscriber failed for shop %s", invalidation.shop_id)

    # -- Authoring --

    def create(
        self,
        shop_id: str,
        draft: ModifierDraft | dict[str, Any],
        actor: str,
        now: int,
        allow_expired: bool = False,
    ) -> Modifier:
        shop = self.registry.get(shop_id)
        modifier = self._build(_as_draft(draft), actor, now)
        self._validate(modifier, now, allow_expired)
        with shop.lock:
            stored = shop.store.add(modifier)
            shop.append_audit(AuditEntry(
                actor=actor, timestamp=now, action=AuditAction.CREATE,
                modifier_id=stored.id, after=stored.model_dump(mode="json"),
            ))
        logger.info("%s created special %s in shop %s", actor, stored.id, shop_id)
        self._notify(PriceInvalidation(shop_id, stored.scope, stored.target))
        return stored

    def edit(
        self,
        shop_id: str,
        modifier_id: str,
        changes: ModifierDraft | dict[str, Any],
        actor: str,
        now: int,
        allow_expired: bool = False,
    ) -> Modifier:
        """Apply a partial change. Expiry is only checked when the window itself changes."""
        shop = self.registry.get(shop_id)
        delta = _as_draft(changes).changes()
        if delta.get("id", modifier_id) != modifier_id:
            raise InvalidModifier("A special's id cannot be changed.")
        delta.pop("id", None)
        with shop.lock:
            current = shop.store.get(modifier_id)
            if current is None:
                raise InvalidModifier(f"No special with id {modifier_id} in shop {shop_id}")
            window_changed = any(k in delta for k in _WINDOW_FIELDS)
            updated = self._apply(current, dict(delta))
            self._validate(updated, now, allow_expired or not window_changed)
            stored = shop.store.replace(updated)
            shop.append_audit(AuditEntry(
                actor=actor, timestamp=now, action=AuditAction.EDIT, modifier_id=modifier_id,
                before=current.model_dump(mode="json"), after=stored.model_dump(mode="json"),
            ))
        logger.info("%s edited special %s in shop %s", actor, modifier_id, shop_id)
        self._notify(PriceInvalidation(shop_id, stored.scope, stored.target))
        if (current.scope, current.target) != (stored.scope, stored.target):
            self._notify(PriceInvalidation(shop_id, current.scope, current.target))
        return stored

    def set_enabled(self, shop_id: str, modifier_id: str, enabled: bool, actor: str, now: int) -> Modifier:
        return self.edit(shop_id, modifier_id, {"enabled": enabled}, actor, now)

    def remove(self, shop_id: str, modifier_id: str, actor: str, now: int) -> None:
        shop = self.registry.get(shop_id)
        with shop.lock:
            current = shop.store.get(modifier_id)
            if current is None:
                return
            shop.store.remove(modifier_id)
            shop.append_audit(AuditEntry(
                actor=actor, timestamp=now, action=AuditAction.REMOVE,
                modifier_id=modifier_id, before=current.model_dump(mode="json"),
            ))
        self._notify(PriceInvalidation(shop_id, current.scope, current.target))

    # -- Reads --

    def list_specials(self, shop_id: str, now: int | None = None, scope_filter: ScopeFilter | None = None) -> list[Modifier]:
        return self.registry.get(shop_id).store.query(scope_filter, now)

    def audit_log(self, shop_id: str) -> list[AuditEntry]:
        return list(self.registry.get(shop_id).audit_log)

    def preview(
        self,
        shop_id: str,
        modifier_id: str,
        item_ref: ItemRef | str,
        now: int,
        transaction_type: TransactionType = TransactionType.BUY,
    ) -> int:
        """Price *item_ref* as if the special were enabled. Nothing is changed."""
        shop = self.registry.get(shop_id)
        candidate = shop.store.get(modifier_id)
        if candidate is None:
            raise InvalidModifier(f"No special with id {modifier_id} in shop {shop_id}")
        entry = self.engine.catalog.lookup(item_ref)
        return self._price_including(shop, entry, candidate.model_copy(update={"enabled": True}), now, transaction_type)

    def preview_draft(
        self,
        shop_id: str,
        draft: ModifierDraft | dict[str, Any],
        item_ref: ItemRef | str,
        now: int,
        transaction_type: TransactionType = TransactionType.BUY,
    ) -> int:
        """Price *item_ref* with a special that has not been created yet."""
        shop = self.registry.get(shop_id)
        candidate = self._build(_as_draft(draft), "preview", now)
        check_structure(candidate)
        candidate = candidate.model_copy(update={"created_seq": shop.store.next_seq})
        entry = self.engine.catalog.lookup(item_ref)
        return self._price_including(shop, entry, candidate, now, transaction_type)

    # -- Helpers --

    def _price_including(
        self,
        shop: ShopInstance,
        entry: CatalogEntry,
        candidate: Modifier,
        now: int,
        transaction_type: TransactionType,
    ) -> int:
        active = [m for m in shop.store.query(ScopeFilter.for_item(entry.ref), now) if m.id != candidate.id]
        if candidate.matches(entry.item_id, entry.category) and candidate.is_active(now):
            if candidate.is_override and candidate.scope == ModifierScope.ITEM:
                active = [
                    m for m in active
                    if not (m.is_override and m.scope == ModifierScope.ITEM and m.target == candidate.target)
                ]
            active.append(candidate)
        return self.engine.price_with(entry, active, transaction_type).price

    def _validate(self, modifier: Modifier, now: int, allow_expired: bool) -> None:
        try:
            check_structure(modifier)
            check_authoring(modifier, now, allow_expired)
        except ModifierValidationError as e:
            logger.debug("Rejected special %s: %s", modifier.id, e)
            raise

    @staticmethod
    def _build(draft: ModifierDraft, actor: str, now: int) -> Modifier:
        kind = draft.kind or ModifierKind.MARKUP
        unit = draft.unit or (MagnitudeUnit.ABSOLUTE if kind == ModifierKind.FIXED_OVERRIDE else MagnitudeUnit.PERCENT)
        magnitude = draft.magnitude if draft.magnitude is not None else 0
        if draft.scope is None:
            raise InvalidModifier("A special needs a scope: item, category or shop.")
        scope = draft.scope
        return Modifier(
            id=draft.id or str(uuid.uuid4()),
            name=draft.name or f"{kind.value.replace('_', ' ').title()} {magnitude:g}",
            scope=scope,
            target=draft.target if scope != ModifierScope.SHOP else None,
            kind=kind,
            magnitude=magnitude,
            unit=unit,
            priority=draft.priority if draft.priority is not None else 0,
            window=ActivationWindow(
                start=draft.start if draft.start is not None else now,
                end=draft.end,
                manual=bool(draft.manual),
            ),
            enabled=draft.enabled if draft.enabled is not None else True,
            created_by=actor,
        )

    @staticmethod
    def _apply(current: Modifier, delta: dict[str, Any]) -> Modifier:
        data = current.model_dump()
        window = dict(data["window"])
        for key in _WINDOW_FIELDS:
            if key in delta:
                value = delta.pop(key)
                window[key] = bool(value) if key == "manual" else value
        if delta.get("kind") == ModifierKind.FIXED_OVERRIDE and "unit" not in delta:
            delta["unit"] = MagnitudeUnit.ABSOLUTE
        if delta.get("scope") == ModifierScope.SHOP:
            delta["target"] = None
        data.update({k: v for k, v in delta.items() if v is not None or k == "target"})
        data["window"] = window
        try:
            return Modifier.model_validate(data)
        except ValidationError as e:
            raise InvalidModifier(str(e)) from e
