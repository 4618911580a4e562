"""Application bootstrap — wires the economy core to storage and the developer menu."""
from __future__ import annotations

import logging
import random
from pathlib import Path

from mart_economy.config import load_settings
from mart_economy.storage.gateway import LoadResult

logger = logging.getLogger(__name__)


class EconomyApp:
    """Owns one live shop registry plus the services built around it."""

    def __init__(self, config_path: Path | None = None, db_path: str | None = None, seed: int | None = None):
        self.settings, self.storage_settings = load_settings(config_path)
        if db_path is not None:
            self.storage_settings.db_path = db_path
        self.seed = seed

        # Lazy-initialized components
        self._db = None
        self._catalog = None
        self._registry = None
        self._engine = None
        self._editor = None
        self._checkout = None
        self._gateway = None
        self._roller = None
        self._services = None
        self._dev_menu = None
        self._slots = None
        # Shop sections from the last load that could not be decoded
        self.corrupt_sections: dict = {}

    # -- Component initialization (lazy) --

    @property
    def db(self):
        if self._db is None:
            from mart_economy.storage.database import Database

            self._db = Database(self.storage_settings.db_path)
            self._db.initialize()
        return self._db

    @property
    def slots(self):
        if self._slots is None:
            from mart_economy.storage.repos import SaveSlotRepo

            self._slots = SaveSlotRepo(self.db)
        return self._slots

    @property
    def catalog(self):
        if self._catalog is None:
            from mart_economy.content.catalog import load_catalog

            self._catalog = load_catalog()
        return self._catalog

    @property
    def registry(self):
        if self._registry is None:
            from mart_economy.engine.shop_registry import ShopRegistry

            self._registry = ShopRegistry(catalog=self.catalog, settings=self.settings)
        return self._registry

    @property
    def engine(self):
        if self._engine is None:
            from mart_economy.engine.economy_engine import EconomyEngine

            self._engine = EconomyEngine(self.registry, self.catalog, self.settings)
        return self._engine

    @property
    def editor(self):
        if self._editor is None:
            from mart_economy.engine.specials_editor import SpecialsEditor

            self._editor = SpecialsEditor(self.registry, self.engine)
        return self._editor

    @property
    def checkout(self):
        if self._checkout is None:
            from mart_economy.engine.checkout import Checkout

            self._checkout = Checkout(self.registry, self.engine, self.settings)
        return self._checkout

    @property
    def gateway(self):
        if self._gateway is None:
            from mart_economy.storage.gateway import PersistenceGateway

            self._gateway = PersistenceGateway(self.catalog, self.settings)
        return self._gateway

    @property
    def roller(self):
        if self._roller is None:
            from mart_economy.engine.specials_roller import SpecialsRoller

            self._roller = SpecialsRoller(self.settings.specials, rng=random.Random(self.seed))
        return self._roller

    @property
    def services(self):
        if self._services is None:
            from mart_economy.devtools.menu import SPECIALS_EDITOR_SERVICE, ServiceRegistry

            self._services = ServiceRegistry()
            self._services.register(SPECIALS_EDITOR_SERVICE, self.editor)
        return self._services

    def dev_menu(self, notify, launch):
        """The developer menu with the Specials Creator contributed to it."""
        if self._dev_menu is None:
            from mart_economy.devtools.menu import DevToolsMenu, register_specials_creator

            self._dev_menu = DevToolsMenu()
            register_specials_creator(self._dev_menu, self.services, notify, launch)
        return self._dev_menu

    # -- Save slots --

    def save(self, slot: str | None = None, now: int = 0) -> None:
        slot = slot or self.storage_settings.default_slot
        blob = self.gateway.save_all(self.registry, now, preserved=self.corrupt_sections)
        shop_count = len(set(self.registry.shop_ids()) | set(self.corrupt_sections))
        self.slots.write(slot, blob, sim_time=now, shop_count=shop_count)
        logger.info("Saved %d shop(s) to slot %s", shop_count, slot)

    def load(self, slot: str | None = None) -> LoadResult | None:
        """Replace the live registry with the one stored in *slot*.

        Returns None (and leaves the registry untouched) when the slot is empty.
        """
        slot = slot or self.storage_settings.default_slot
        blob = self.slots.read(slot)
        if blob is None:
            logger.info("Slot %s is empty", slot)
            return None
        result = self.gateway.load_all(blob)
        self._set_registry(result.registry)
        self.corrupt_sections = dict(result.corrupt_sections)
        logger.info("Loaded slot %s", slot)
        return result

    def discard_corrupt(self, shop_id: str) -> bool:
        """Forget an unreadable shop section so the next save drops it."""
        if shop_id not in self.corrupt_sections:
            return False
        del self.corrupt_sections[shop_id]
        logger.warning("Discarding unreadable saved state for shop %s", shop_id)
        return True

    def _set_registry(self, registry) -> None:
        self._registry = registry
        # Everything built on the old registry is rebuilt on next access.
        self._engine = None
        self._editor = None
        self._checkout = None
        self._services = None
        self._dev_menu = None

    def close(self) -> None:
        if self._db is not None:
            self._db.close()
            self._db = None
            self._slots = None
