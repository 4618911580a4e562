"""Shared fixtures for the mart economy test suite."""
from __future__ import annotations

import pytest

from mart_economy.config import EconomySettings
from mart_economy.content.catalog import DictItemCatalog
from mart_economy.engine.economy_engine import EconomyEngine
from mart_economy.engine.shop_registry import ShopRegistry
from mart_economy.engine.specials_editor import SpecialsEditor
from mart_economy.models.item import CatalogEntry
from mart_economy.storage.database import Database

SHOP = "viridian_mart"


@pytest.fixture
def catalog() -> DictItemCatalog:
    return DictItemCatalog([
        CatalogEntry(item_id="POTION", name="Potion", category="medicine", buy_base_price=100, sell_base_price=50),
        CatalogEntry(item_id="ANTIDOTE", name="Antidote", category="medicine", buy_base_price=40, sell_base_price=20),
        CatalogEntry(item_id="POKEBALL", name="Poke Ball", category="balls", buy_base_price=200, sell_base_price=100),
        CatalogEntry(item_id="GREATBALL", name="Great Ball", category="balls", buy_base_price=600, sell_base_price=300),
        CatalogEntry(item_id="XATTACK", name="X Attack", category="battle_items", buy_base_price=500, sell_base_price=250),
        CatalogEntry(
            item_id="BIKEVOUCHER", name="Bike Voucher", category="key_items",
            buy_base_price=1, sell_base_price=0, tradable=False,
        ),
    ])


@pytest.fixture
def settings() -> EconomySettings:
    return EconomySettings()


@pytest.fixture
def registry(catalog, settings) -> ShopRegistry:
    reg = ShopRegistry(catalog=catalog, settings=settings)
    reg.get_or_create(SHOP)
    return reg


@pytest.fixture
def engine(registry, catalog, settings) -> EconomyEngine:
    return EconomyEngine(registry, catalog, settings)


@pytest.fixture
def editor(registry, engine) -> SpecialsEditor:
    return SpecialsEditor(registry, engine)


@pytest.fixture
def in_memory_db():
    db = Database(":memory:")
    db.initialize()
    yield db
    db.close()
