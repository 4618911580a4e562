"""Rich terminal display for the specials CLI."""
from __future__ import annotations

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from mart_economy.engine.economy_engine import PriceQuote
from mart_economy.mechanics.sim_clock import format_remaining, format_time, time_remaining
from mart_economy.models.event import AuditEntry
from mart_economy.models.modifier import MagnitudeUnit, Modifier, ModifierKind
from mart_economy.models.shop import ShopStatistics

console = Console()


def describe_effect(m: Modifier) -> str:
    if m.kind == ModifierKind.FIXED_OVERRIDE:
        return f"= {m.magnitude:g}"
    sign = "+" if m.kind == ModifierKind.MARKUP else "-"
    suffix = "%" if m.unit == MagnitudeUnit.PERCENT else ""
    return f"{sign}{abs(m.magnitude):g}{suffix}"


class Display:
    def __init__(self, width: int = 100):
        self.console = console
        self.width = width

    def show_specials(self, shop_id: str, specials: list[Modifier], now: int) -> None:
        if not specials:
            self.console.print(f"[dim]No specials in shop {shop_id}.[/dim]")
            return
        table = Table(title=f"Specials — {shop_id}", box=box.ROUNDED, border_style="cyan")
        table.add_column("Id", style="dim")
        table.add_column("Name", style="bold")
        table.add_column("Applies to")
        table.add_column("Effect", justify="right")
        table.add_column("Priority", justify="right")
        table.add_column("Status")
        for m in specials:
            target = m.scope.value if m.target is None else f"{m.scope.value}:{m.target}"
            if not m.enabled:
                status = "[red]disabled[/red]"
            elif m.window.manual:
                status = "[green]manual[/green]"
            elif m.is_active(now):
                status = f"[green]{format_remaining(time_remaining(now, m.window.end))}[/green]"
            elif m.window.is_past(now):
                status = "[dim]expired[/dim]"
            else:
                status = "[yellow]scheduled[/yellow]"
            table.add_row(m.id[:8], m.name, target, describe_effect(m), str(m.priority), status)
        self.console.print(table)

    def show_quote(self, quote: PriceQuote) -> None:
        diff = quote.difference
        if diff < 0:
            change = f"[green]{diff}[/green]"
        elif diff > 0:
            change = f"[red]+{diff}[/red]"
        else:
            change = "[dim]0[/dim]"
        lines = [
            f"[bold]{quote.item_id}[/bold] ({quote.transaction_type.value})",
            f"Base: {quote.base_price}   Effective: [bold]{quote.price}[/bold]   Change: {change}",
        ]
        if quote.override_id:
            lines.append(f"Fixed price from {quote.override_id[:8]}")
        elif quote.applied_ids:
            lines.append("Applied: " + ", ".join(i[:8] for i in quote.applied_ids))
        self.console.print(Panel("\n".join(lines), title=quote.shop_id, border_style="green", box=box.ROUNDED))

    def show_statistics(self, shop_id: str, stats: ShopStatistics, balances: dict[str, int]) -> None:
        table = Table(title=f"Statistics — {shop_id}", box=box.SIMPLE, show_header=False)
        table.add_column("Stat", style="bold")
        table.add_column("Value", justify="right")
        for key, value in stats.summary().items():
            table.add_row(key.replace("_", " ").title(), str(value))
        for currency, amount in sorted(balances.items()):
            table.add_row(f"Takings ({currency})", str(amount))
        self.console.print(table)

    def show_audit(self, shop_id: str, entries: list[AuditEntry]) -> None:
        if not entries:
            self.console.print(f"[dim]No audit entries for {shop_id}.[/dim]")
            return
        table = Table(title=f"Audit — {shop_id}", box=box.ROUNDED, border_style="cyan")
        table.add_column("Time")
        table.add_column("Actor")
        table.add_column("Action")
        table.add_column("Special", style="dim")
        for e in entries:
            table.add_row(format_time(e.timestamp), e.actor, e.action.value, e.modifier_id[:8])
        self.console.print(table)

    def show_themes(self, themes: dict) -> None:
        days = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
        table = Table(title="Themed Events", box=box.ROUNDED, border_style="cyan")
        table.add_column("Id", style="bold", no_wrap=True)
        table.add_column("Name")
        table.add_column("Days")
        table.add_column("Sales")
        table.add_column("Markups")
        for theme_id, event in themes.items():
            table.add_row(
                theme_id,
                event.name,
                ", ".join(days[d] for d in event.days),
                ", ".join(event.sale_categories) or "-",
                ", ".join(event.markup_categories) or "-",
            )
        self.console.print(table)

    def show_slots(self, slots: list[dict]) -> None:
        if not slots:
            self.console.print("[dim]No save slots found.[/dim]")
            return
        table = Table(title="Save Slots", box=box.ROUNDED, border_style="cyan")
        table.add_column("Slot", style="bold")
        table.add_column("Shops", justify="right")
        table.add_column("Sim time")
        table.add_column("Saved")
        for s in slots:
            table.add_row(s.get("slot", "?"), str(s.get("shop_count", 0)), format_time(s.get("sim_time") or 0), (s.get("saved_at") or "?")[:19])
        self.console.print(table)

    def show_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def show_warning(self, message: str) -> None:
        self.console.print(f"[bold yellow]Warning:[/bold yellow] {message}")

    def show_info(self, message: str) -> None:
        self.console.print(f"[bold blue]Info:[/bold blue] {message}")

    def show_success(self, message: str) -> None:
        self.console.print(f"[bold green]{message}[/bold green]")
