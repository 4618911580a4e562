"""Tests for src/mart_economy/engine/checkout.py."""
from __future__ import annotations

import pytest

from mart_economy.engine.checkout import Checkout
from mart_economy.engine.ledger import CurrencyLedger
from mart_economy.errors import InsufficientFunds, UnknownItem, UntradableItem
from mart_economy.models.event import TransactionType
from mart_economy.models.modifier import MagnitudeUnit, Modifier, ModifierKind, ModifierScope

SHOP = "viridian_mart"


@pytest.fixture
def checkout(registry, engine, settings) -> Checkout:
    return Checkout(registry, engine, settings)


@pytest.fixture
def player() -> CurrencyLedger:
    return CurrencyLedger("red", balances={"money": 3000}, caps={"money": 9_999_999})


class TestBuy:
    def test_moves_money_and_records(self, checkout, registry, player):
        event = checkout.buy(SHOP, "POTION", player, now=60, quantity=2)
        shop = registry.get(SHOP)
        assert event.effective_price == 200
        assert event.unit_price == 100
        assert event.transaction_type == TransactionType.BUY
        assert player.balance("money") == 2800
        assert shop.ledger.balance("money") == 200
        assert shop.statistics.total_spent == 200
        assert shop.statistics.items_bought["POTION"].count == 2
        assert shop.statistics.first_purchase_time == 60
        assert shop.history.entries()[0].total == 200

    def test_bulk_discount(self, checkout, player):
        event = checkout.buy(SHOP, "ANTIDOTE", player, now=0, quantity=10)
        # 10 x 40 = 400, 5% off
        assert event.effective_price == 380

    def test_uses_special_price(self, checkout, registry, player):
        registry.get(SHOP).store.add(Modifier(kind=ModifierKind.MARKDOWN, magnitude=50))
        event = checkout.buy(SHOP, "POTION", player, now=0)
        assert event.effective_price == 50
        assert registry.get(SHOP).statistics.saved_from_discounts == 50

    def test_markup_losses(self, checkout, registry, player):
        registry.get(SHOP).store.add(Modifier(kind=ModifierKind.MARKUP, magnitude=20))
        checkout.buy(SHOP, "POTION", player, now=0)
        assert registry.get(SHOP).statistics.markup_losses == 20

    def test_free_item_counted(self, checkout, registry, player):
        registry.get(SHOP).store.add(Modifier(
            scope=ModifierScope.ITEM, target="POTION", kind=ModifierKind.FIXED_OVERRIDE,
            magnitude=0, unit=MagnitudeUnit.ABSOLUTE,
        ))
        checkout.buy(SHOP, "POTION", player, now=0)
        assert registry.get(SHOP).statistics.free_items_claimed == 1
        assert player.balance("money") == 3000

    def test_insufficient_funds_changes_nothing(self, checkout, registry, player):
        with pytest.raises(InsufficientFunds):
            checkout.buy(SHOP, "GREATBALL", player, now=0, quantity=6)
        shop = registry.get(SHOP)
        assert player.balance("money") == 3000
        assert shop.ledger.balance("money") == 0
        assert shop.statistics.transactions == 0
        assert registry.active_holders(SHOP) == []

    def test_unknown_item(self, checkout, player):
        with pytest.raises(UnknownItem):
            checkout.buy(SHOP, "MASTERBALL", player, now=0)

    def test_bad_quantity(self, checkout, player):
        with pytest.raises(ValueError):
            checkout.buy(SHOP, "POTION", player, now=0, quantity=0)

    def test_event_emitted(self, checkout, player):
        events = []
        checkout.subscribe(events.append)
        checkout.buy(SHOP, "POTION", player, now=0)
        assert len(events) == 1
        assert events[0].shop_id == SHOP
        assert events[0].item_ref.item_id == "POTION"

    def test_lease_held_during_purchase(self, checkout, registry, player, monkeypatch):
        seen = []
        original = checkout.engine.quote

        def spying_quote(*args, **kwargs):
            seen.append(registry.active_holders(SHOP))
            return original(*args, **kwargs)

        monkeypatch.setattr(checkout.engine, "quote", spying_quote)
        checkout.buy(SHOP, "POTION", player, now=0, holder="link-session-1")
        assert seen == [["link-session-1"]]
        assert registry.active_holders(SHOP) == []


class TestSell:
    def test_sell_pays_player(self, checkout, registry, player):
        event = checkout.sell(SHOP, "POKEBALL", player, now=0, quantity=3)
        shop = registry.get(SHOP)
        assert event.effective_price == 300
        assert player.balance("money") == 3300
        assert shop.ledger.balance("money") == -300
        assert shop.statistics.total_earned == 300
        assert shop.statistics.items_sold["POKEBALL"].count == 3

    def test_no_bulk_discount_on_sales(self, checkout, player):
        event = checkout.sell(SHOP, "ANTIDOTE", player, now=0, quantity=10)
        assert event.effective_price == 200

    def test_untradable(self, checkout, player):
        with pytest.raises(UntradableItem):
            checkout.sell(SHOP, "BIKEVOUCHER", player, now=0)
