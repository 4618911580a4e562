"""Settings loading — config.toml at the project root, parsed into pydantic models."""
from __future__ import annotations

import tomllib
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config.toml"


class CurrencySettings(BaseModel):
    name: str = ""
    symbol: str = ""
    max: Optional[int] = None


class SpecialsSettings(BaseModel):
    """Odds and ranges for rolled (random / themed) specials."""

    random_sale_chance: int = 75
    random_markup_chance: int = 50
    random_min_percent: int = 5
    random_max_percent: int = 50
    random_multi_item_chance: int = 50
    duration_hours: int = 5
    themed_chance: int = 15
    themed_priority: int = 50


def _default_currencies() -> dict[str, CurrencySettings]:
    return {
        "money": CurrencySettings(name="Money", symbol="$", max=9_999_999),
        "bp": CurrencySettings(name="Battle Points", symbol="BP", max=9_999),
        "platinum": CurrencySettings(name="Platinum", symbol="Pt"),
        "coins": CurrencySettings(name="Coins", symbol="C", max=99_999),
    }


class EconomySettings(BaseModel):
    price_floor: int = 1
    price_ceiling: Optional[int] = None
    global_multiplier: float = 1.0
    history_size: int = 100
    bulk_discounts: dict[int, int] = Field(default_factory=lambda: {10: 5, 25: 10, 50: 15})
    specials: SpecialsSettings = Field(default_factory=SpecialsSettings)
    currencies: dict[str, CurrencySettings] = Field(default_factory=_default_currencies)

    def currency_caps(self) -> dict[str, int]:
        return {cid: c.max for cid, c in self.currencies.items() if c.max is not None}


class StorageSettings(BaseModel):
    db_path: str = "saves/economy.db"
    default_slot: str = "slot1"


def load_config(path: Path | None = None) -> dict[str, Any]:
    """Load config.toml, returning an empty dict when it does not exist."""
    config_path = path or DEFAULT_CONFIG_PATH
    if config_path.exists():
        with open(config_path, "rb") as f:
            return tomllib.load(f)
    return {}


def load_settings(path: Path | None = None) -> tuple[EconomySettings, StorageSettings]:
    raw = load_config(path)
    return (
        EconomySettings.model_validate(raw.get("economy", {})),
        StorageSettings.model_validate(raw.get("storage", {})),
    )
