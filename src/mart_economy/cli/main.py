"""Typer CLI application — the Specials Creator front-end over a save slot."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import typer

from mart_economy.errors import EconomyError

app = typer.Typer(
    name="mart-economy",
    help="Create and inspect shop specials stored in an economy save slot",
    no_args_is_help=True,
)

ACTOR = "cli"


@dataclass
class CliState:
    slot: Optional[str] = None
    db_path: Optional[str] = None
    now: Optional[int] = None
    seed: Optional[int] = None


def _state(ctx: typer.Context) -> CliState:
    if ctx.obj is None:
        ctx.obj = CliState()
    return ctx.obj


@app.callback()
def main(
    ctx: typer.Context,
    slot: Optional[str] = typer.Option(None, "--slot", "-s", help="Save slot to work on"),
    db_path: Optional[str] = typer.Option(None, "--db", help="Path to the save database"),
    now: Optional[int] = typer.Option(None, "--time", "-t", help="Simulated time in seconds (defaults to the slot's)"),
    seed: Optional[int] = typer.Option(None, "--seed", help="Seed for rolled specials"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ctx.obj = CliState(slot=slot, db_path=db_path, now=now, seed=seed)


class _Session:
    """Loads the slot on entry and writes it back on a clean exit when *write* is set."""

    def __init__(self, state: CliState, write: bool = False):
        from mart_economy.app import EconomyApp
        from mart_economy.cli.display import Display

        self.app = EconomyApp(db_path=state.db_path, seed=state.seed)
        self.display = Display()
        self.slot = state.slot or self.app.storage_settings.default_slot
        self.write = write
        self._requested_time = state.now
        self.now = 0

    def __enter__(self) -> _Session:
        try:
            result = self.app.load(self.slot)
        except EconomyError as e:
            self.app.close()
            self.display.show_error(str(e))
            raise typer.Exit(1)
        if result is not None:
            for err in result.errors:
                self.display.show_warning(str(err))
        info = self.app.slots.get_info(self.slot)
        saved_time = info["sim_time"] if info else 0
        self.now = self._requested_time if self._requested_time is not None else saved_time
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None and self.write:
                self.app.save(self.slot, self.now)
        finally:
            self.app.close()
        if isinstance(exc, EconomyError):
            self.display.show_error(str(exc))
            raise typer.Exit(1)
        return False

    def live_shop(self, shop_id: str, shared: bool = False):
        """Get or create *shop_id*, refusing ids whose saved state could not be read."""
        if shop_id in self.app.corrupt_sections:
            self.display.show_error(
                f"Saved state for shop {shop_id} is unreadable; run delete-shop {shop_id} to discard it"
            )
            raise typer.Exit(1)
        return self.app.registry.get_or_create(shop_id, shared=shared)

    def resolve_id(self, shop_id: str, prefix: str) -> str:
        """Expand an id prefix as shown in listings to the full special id."""
        shop = self.app.registry.get(shop_id)
        matches = [m.id for m in shop.store.all() if m.id.startswith(prefix)]
        if len(matches) != 1:
            self.display.show_error(
                f"No special matching '{prefix}'" if not matches else f"'{prefix}' is ambiguous"
            )
            raise typer.Exit(1)
        return matches[0]


@app.command()
def specials(
    ctx: typer.Context,
    shop_id: str = typer.Argument(..., help="Shop id"),
    active: bool = typer.Option(False, "--active", help="Only specials active right now"),
) -> None:
    """List the specials in a shop."""
    with _Session(_state(ctx)) as s:
        s.app.registry.get(shop_id)
        found = s.app.editor.list_specials(shop_id, s.now if active else None)
        s.display.show_specials(shop_id, found, s.now)


@app.command()
def create(
    ctx: typer.Context,
    shop_id: str = typer.Argument(..., help="Shop id (created if new)"),
    kind: str = typer.Option("markdown", "--kind", "-k", help="markup, markdown or fixed_override"),
    magnitude: float = typer.Option(..., "--magnitude", "-m", help="Percent, amount, or fixed price"),
    unit: Optional[str] = typer.Option(None, "--unit", "-u", help="percent or absolute"),
    scope: str = typer.Option("shop", "--scope", help="item, category or shop"),
    target: Optional[str] = typer.Option(None, "--target", help="Item id or category"),
    name: Optional[str] = typer.Option(None, "--name", "-n"),
    priority: int = typer.Option(0, "--priority", "-p"),
    duration: Optional[float] = typer.Option(None, "--hours", help="Length in simulated hours"),
    manual: bool = typer.Option(False, "--manual", help="Active until switched off"),
    shared: bool = typer.Option(False, "--shared", help="Mark the shop as shared"),
    allow_expired: bool = typer.Option(False, "--allow-expired"),
) -> None:
    """Create a special in a shop."""
    from mart_economy.mechanics.sim_clock import hours

    with _Session(_state(ctx), write=True) as s:
        s.live_shop(shop_id, shared=shared)
        draft = {
            "name": name,
            "kind": kind,
            "magnitude": magnitude,
            "unit": unit,
            "scope": scope,
            "target": target,
            "priority": priority,
            "start": s.now,
            "end": s.now + hours(duration) if duration is not None else None,
            "manual": manual,
        }
        created = s.app.editor.create(
            shop_id, {k: v for k, v in draft.items() if v is not None}, ACTOR, s.now, allow_expired=allow_expired
        )
        s.display.show_success(f"Created {created.name} ({created.id[:8]}) in {shop_id}")


@app.command()
def remove(
    ctx: typer.Context,
    shop_id: str = typer.Argument(...),
    special_id: str = typer.Argument(..., help="Special id or prefix"),
) -> None:
    """Remove a special."""
    with _Session(_state(ctx), write=True) as s:
        full_id = s.resolve_id(shop_id, special_id)
        s.app.editor.remove(shop_id, full_id, ACTOR, s.now)
        s.display.show_success(f"Removed {full_id[:8]}")


@app.command()
def toggle(
    ctx: typer.Context,
    shop_id: str = typer.Argument(...),
    special_id: str = typer.Argument(..., help="Special id or prefix"),
) -> None:
    """Switch a special on or off."""
    with _Session(_state(ctx), write=True) as s:
        full_id = s.resolve_id(shop_id, special_id)
        current = s.app.registry.get(shop_id).store.get(full_id)
        updated = s.app.editor.set_enabled(shop_id, full_id, not current.enabled, ACTOR, s.now)
        s.display.show_success(f"{updated.name} is now {'enabled' if updated.enabled else 'disabled'}")


@app.command()
def price(
    ctx: typer.Context,
    shop_id: str = typer.Argument(...),
    item_id: str = typer.Argument(...),
    sell: bool = typer.Option(False, "--sell", help="Price as a sale to the shop"),
) -> None:
    """Show the effective price of an item."""
    from mart_economy.models.event import TransactionType

    with _Session(_state(ctx)) as s:
        txn = TransactionType.SELL if sell else TransactionType.BUY
        s.display.show_quote(s.app.engine.quote(shop_id, item_id, txn, s.now))


@app.command()
def stats(ctx: typer.Context, shop_id: str = typer.Argument(...)) -> None:
    """Show a shop's sales statistics."""
    with _Session(_state(ctx)) as s:
        shop = s.app.registry.get(shop_id)
        s.display.show_statistics(shop_id, shop.statistics, shop.ledger.balances())


@app.command()
def audit(ctx: typer.Context, shop_id: str = typer.Argument(...)) -> None:
    """Show who changed a shop's specials."""
    with _Session(_state(ctx)) as s:
        s.display.show_audit(shop_id, s.app.editor.audit_log(shop_id))


@app.command()
def roll(ctx: typer.Context, shop_id: str = typer.Argument(...)) -> None:
    """Roll random or themed specials for a shop visit."""
    with _Session(_state(ctx), write=True) as s:
        shop = s.live_shop(shop_id)
        added = s.app.roller.roll(shop, s.app.catalog.items(), s.now)
        if not added:
            s.display.show_info("No new specials rolled.")
        else:
            s.display.show_specials(shop_id, added, s.now)


@app.command()
def force(
    ctx: typer.Context,
    shop_id: str = typer.Argument(...),
    kind: str = typer.Option("markdown", "--kind", "-k", help="markdown (sale) or markup"),
) -> None:
    """Start a random sale or markup now, replacing any themed event."""
    from mart_economy.models.modifier import ModifierKind

    with _Session(_state(ctx), write=True) as s:
        try:
            chosen = ModifierKind(kind)
        except ValueError:
            s.display.show_error(f"Unknown kind '{kind}'")
            raise typer.Exit(1)
        shop = s.live_shop(shop_id)
        added = s.app.roller.force_random(shop, s.app.catalog.items(), s.now, chosen)
        if not added:
            s.display.show_info("No tradable items left to pick from.")
        else:
            s.display.show_specials(shop_id, added, s.now)


@app.command()
def theme(
    ctx: typer.Context,
    shop_id: str = typer.Argument(...),
    theme_id: Optional[str] = typer.Argument(None, help="Themed event id; omit to list them"),
) -> None:
    """Start a themed event in a shop whatever the weekday."""
    with _Session(_state(ctx), write=theme_id is not None) as s:
        if theme_id is None:
            s.display.show_themes(s.app.roller.themes)
            return
        shop = s.live_shop(shop_id)
        added = s.app.roller.force_themed(shop, s.app.catalog.items(), s.now, theme_id)
        if not added:
            s.display.show_info("The shop stocks nothing this event covers.")
        else:
            s.display.show_specials(shop_id, added, s.now)


@app.command()
def clear(
    ctx: typer.Context,
    shop_id: str = typer.Argument(...),
    only: Optional[str] = typer.Option(None, "--only", help="sales, markups or events"),
) -> None:
    """Clear rolled specials from a shop. Authored specials are kept."""
    from mart_economy.models.modifier import ModifierKind, SpecialSource

    filters = {
        None: {},
        "sales": {"source": SpecialSource.RANDOM, "kind": ModifierKind.MARKDOWN},
        "markups": {"source": SpecialSource.RANDOM, "kind": ModifierKind.MARKUP},
        "events": {"source": SpecialSource.THEMED},
    }
    with _Session(_state(ctx), write=True) as s:
        if only not in filters:
            s.display.show_error(f"--only must be sales, markups or events, not '{only}'")
            raise typer.Exit(1)
        removed = s.app.roller.clear(s.app.registry.get(shop_id), **filters[only])
        if not removed:
            s.display.show_info("No rolled specials to clear.")
        else:
            s.display.show_success(f"Cleared {len(removed)} special(s) from {shop_id}")


@app.command("delete-shop")
def delete_shop(ctx: typer.Context, shop_id: str = typer.Argument(...)) -> None:
    """Delete a shop and all its specials."""
    with _Session(_state(ctx), write=True) as s:
        if shop_id not in s.app.registry and s.app.discard_corrupt(shop_id):
            s.display.show_success(f"Discarded unreadable shop {shop_id}")
            return
        s.app.registry.delete(shop_id, ACTOR)
        s.display.show_success(f"Deleted shop {shop_id}")


@app.command()
def slots(ctx: typer.Context) -> None:
    """List save slots."""
    with _Session(_state(ctx)) as s:
        s.display.show_slots(s.app.slots.list_slots())


if __name__ == "__main__":
    app()
