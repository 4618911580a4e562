"""Tests for src/mart_economy/engine/specials_editor.py."""
from __future__ import annotations

import logging

import pytest

from mart_economy.errors import AlreadyExpired, InvalidModifier, NoopModifier, UnknownShop
from mart_economy.models.event import AuditAction, TransactionType
from mart_economy.models.modifier import ModifierDraft, ModifierKind, ModifierScope

SHOP = "viridian_mart"
AUTHOR = "dev"


def _potion_sale(**kw):
    draft = {"scope": "item", "target": "POTION", "kind": "markdown", "magnitude": 20}
    draft.update(kw)
    return draft


class TestCreate:
    def test_create_stores_and_audits(self, editor, engine):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=10)
        assert m.created_by == AUTHOR
        assert m.window.start == 10
        assert engine.effective_price(SHOP, "POTION", TransactionType.BUY, 10) == 80
        log = editor.audit_log(SHOP)
        assert len(log) == 1
        assert log[0].action == AuditAction.CREATE
        assert log[0].modifier_id == m.id
        assert log[0].before is None
        assert log[0].after["magnitude"] == 20

    def test_accepts_draft_model(self, editor):
        draft = ModifierDraft(scope=ModifierScope.SHOP, kind=ModifierKind.MARKUP, magnitude=5, target="POTION")
        m = editor.create(SHOP, draft, AUTHOR, now=0)
        assert m.scope == ModifierScope.SHOP
        assert m.target is None

    def test_missing_scope_rejected(self, editor, registry):
        with pytest.raises(InvalidModifier):
            editor.create(SHOP, {"kind": "markup", "magnitude": 20}, AUTHOR, now=0)
        assert len(registry.get(SHOP).store) == 0
        assert editor.audit_log(SHOP) == []

    def test_missing_scope_rejected_in_preview(self, editor):
        with pytest.raises(InvalidModifier):
            editor.preview_draft(SHOP, {"kind": "markdown", "magnitude": 20}, "POTION", now=0)

    def test_empty_target_rejected(self, editor):
        with pytest.raises(InvalidModifier):
            editor.create(SHOP, _potion_sale(target=""), AUTHOR, now=0)

    def test_zero_markup_is_noop(self, editor):
        with pytest.raises(NoopModifier):
            editor.create(SHOP, {"scope": "shop", "kind": "markup", "magnitude": 0}, AUTHOR, now=0)

    def test_zero_override_is_a_free_item(self, editor, engine):
        editor.create(SHOP, _potion_sale(kind="fixed_override", magnitude=0), AUTHOR, now=0)
        assert engine.effective_price(SHOP, "POTION", TransactionType.BUY, 0) == 0

    def test_override_defaults_to_absolute(self, editor):
        m = editor.create(SHOP, _potion_sale(kind="fixed_override", magnitude=75), AUTHOR, now=0)
        assert m.unit.value == "absolute"

    def test_expired_window_rejected(self, editor):
        with pytest.raises(AlreadyExpired):
            editor.create(SHOP, _potion_sale(start=0, end=100), AUTHOR, now=100)

    def test_expired_window_allowed_with_flag(self, editor):
        m = editor.create(SHOP, _potion_sale(start=0, end=100), AUTHOR, now=500, allow_expired=True)
        assert m.window.end == 100

    def test_bad_enum_value_rejected(self, editor):
        with pytest.raises(InvalidModifier):
            editor.create(SHOP, {"kind": "discountish", "magnitude": 5}, AUTHOR, now=0)

    def test_unknown_shop(self, editor):
        with pytest.raises(UnknownShop):
            editor.create("nowhere", _potion_sale(), AUTHOR, now=0)

    def test_rejections_not_audited(self, editor):
        with pytest.raises(NoopModifier):
            editor.create(SHOP, {"scope": "shop", "magnitude": 0}, AUTHOR, now=0)
        assert editor.audit_log(SHOP) == []

    def test_rejection_logged_at_debug(self, editor, caplog):
        with caplog.at_level(logging.DEBUG, logger="mart_economy.engine.specials_editor"):
            with pytest.raises(NoopModifier):
                editor.create(SHOP, {"scope": "shop", "magnitude": 0}, AUTHOR, now=0)
        assert any(r.levelno == logging.DEBUG and "Rejected" in r.getMessage() for r in caplog.records)


class TestEdit:
    def test_edit_updates_and_audits(self, editor, engine):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        updated = editor.edit(SHOP, m.id, {"magnitude": 50}, "other_dev", now=5)
        assert updated.magnitude == 50
        assert updated.created_seq == m.created_seq
        assert engine.effective_price(SHOP, "POTION", TransactionType.BUY, 5) == 50
        entry = editor.audit_log(SHOP)[-1]
        assert entry.action == AuditAction.EDIT
        assert entry.actor == "other_dev"
        assert entry.before["magnitude"] == 20
        assert entry.after["magnitude"] == 50

    def test_edit_window_fields(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        updated = editor.edit(SHOP, m.id, {"end": 3600}, AUTHOR, now=0)
        assert updated.window.end == 3600
        assert updated.window.start == 0

    def test_edit_to_zero_is_noop(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        with pytest.raises(NoopModifier):
            editor.edit(SHOP, m.id, {"magnitude": 0}, AUTHOR, now=0)
        assert len(editor.audit_log(SHOP)) == 1

    def test_edit_into_the_past_rejected(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=100)
        with pytest.raises(AlreadyExpired):
            editor.edit(SHOP, m.id, {"end": 150}, AUTHOR, now=200)
        assert editor.list_specials(SHOP)[0].window.end is None
        assert len(editor.audit_log(SHOP)) == 1

    def test_edit_into_the_past_allowed_with_flag(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=100)
        updated = editor.edit(SHOP, m.id, {"end": 150}, AUTHOR, now=200, allow_expired=True)
        assert updated.window.end == 150

    def test_clearing_manual_on_expired_window_rejected(self, editor):
        m = editor.create(SHOP, _potion_sale(start=0, end=100, manual=True), AUTHOR, now=0)
        with pytest.raises(AlreadyExpired):
            editor.edit(SHOP, m.id, {"manual": False}, AUTHOR, now=500)

    def test_expired_special_can_be_renamed(self, editor):
        m = editor.create(SHOP, _potion_sale(start=0, end=100), AUTHOR, now=0)
        updated = editor.edit(SHOP, m.id, {"name": "Old Sale"}, AUTHOR, now=500)
        assert updated.name == "Old Sale"

    def test_unknown_id(self, editor):
        with pytest.raises(InvalidModifier):
            editor.edit(SHOP, "missing", {"magnitude": 5}, AUTHOR, now=0)

    def test_id_cannot_change(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        with pytest.raises(InvalidModifier):
            editor.edit(SHOP, m.id, {"id": "other"}, AUTHOR, now=0)

    def test_set_enabled(self, editor, engine):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        editor.set_enabled(SHOP, m.id, False, AUTHOR, now=0)
        assert engine.effective_price(SHOP, "POTION", TransactionType.BUY, 0) == 100


class TestRemove:
    def test_remove_audited(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        editor.remove(SHOP, m.id, AUTHOR, now=1)
        assert editor.list_specials(SHOP) == []
        assert editor.audit_log(SHOP)[-1].action == AuditAction.REMOVE

    def test_remove_twice_is_harmless(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        editor.remove(SHOP, m.id, AUTHOR, now=1)
        editor.remove(SHOP, m.id, AUTHOR, now=2)
        assert len(editor.audit_log(SHOP)) == 2


class TestPreview:
    def test_preview_disabled_special(self, editor, engine, registry):
        m = editor.create(SHOP, _potion_sale(enabled=False), AUTHOR, now=0)
        assert editor.preview(SHOP, m.id, "POTION", now=0) == 80
        assert engine.effective_price(SHOP, "POTION", TransactionType.BUY, 0) == 100
        assert not registry.get(SHOP).store.get(m.id).enabled

    def test_preview_sell_side(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        assert editor.preview(SHOP, m.id, "POTION", now=0, transaction_type=TransactionType.SELL) == 40

    def test_preview_unrelated_item(self, editor):
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        assert editor.preview(SHOP, m.id, "ANTIDOTE", now=0) == 40

    def test_preview_draft_has_no_side_effects(self, editor, registry):
        price = editor.preview_draft(SHOP, _potion_sale(magnitude=50), "POTION", now=0)
        assert price == 50
        assert len(registry.get(SHOP).store) == 0
        assert editor.audit_log(SHOP) == []

    def test_preview_draft_override_replaces_current_override(self, editor):
        editor.create(SHOP, _potion_sale(kind="fixed_override", magnitude=70), AUTHOR, now=0)
        assert editor.preview_draft(SHOP, _potion_sale(kind="fixed_override", magnitude=30), "POTION", now=0) == 30


class TestSubscribers:
    def test_invalidation_on_create_and_edit(self, editor):
        seen = []
        editor.subscribe(seen.append)
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        editor.edit(SHOP, m.id, {"magnitude": 30}, AUTHOR, now=0)
        assert len(seen) == 2
        assert seen[0].shop_id == SHOP
        assert seen[0].scope == ModifierScope.ITEM
        assert seen[0].target == "POTION"

    def test_failing_subscriber_does_not_reach_author(self, editor, caplog):
        def broken(_):
            raise RuntimeError("ui gone")

        seen = []
        editor.subscribe(broken)
        editor.subscribe(seen.append)
        m = editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        assert m.id in {x.id for x in editor.list_specials(SHOP)}
        assert len(seen) == 1
        assert "subscriber failed" in caplog.text

    def test_unsubscribe(self, editor):
        seen = []
        editor.subscribe(seen.append)
        editor.unsubscribe(seen.append)
        editor.create(SHOP, _potion_sale(), AUTHOR, now=0)
        assert seen == []
