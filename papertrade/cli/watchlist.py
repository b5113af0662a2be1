"""Watchlist and alert commands for papertrade CLI.

Supports multiple named watchlists and price alerts evaluated against
the latest recorded quotes.
"""

from typing import Optional

import click
from rich.table import Table

from papertrade.cli.common import console, fail, get_data_store, get_gateway, money

list_option = click.option(
    "--list", "list_name",
    default="default",
    help="Name of the watchlist (default: 'default').",
)


def _get_watchlist_service():
    """Build the watchlist service from the settings."""
    from papertrade.config import get_settings
    from papertrade.services import WatchlistService

    store = get_data_store()
    return WatchlistService(store, get_gateway(store), quote_timeout=get_settings().trading.quote_timeout_seconds)


@click.group()
def watch() -> None:
    """Manage watchlists.

    \b
    Examples:
      papertrade watch add RELIANCE          # Add to default watchlist
      papertrade watch add INFY --list tech  # Add to 'tech' watchlist
      papertrade watch list --list tech      # Show 'tech' watchlist
    """
    pass


@watch.command("add")
@click.argument("symbol")
@list_option
def add_symbol(symbol: str, list_name: str) -> None:
    """Add a symbol to a watchlist."""
    from papertrade.exceptions import PaperTradeError

    symbol = symbol.upper()
    try:
        added = _get_watchlist_service().add(symbol, list_name)
    except PaperTradeError as e:
        fail(e.message)

    if added:
        console.print(f"[green]✓ Added {symbol} to watchlist '{list_name}'[/green]")
    else:
        console.print(f"[yellow]{symbol} is already in watchlist '{list_name}'[/yellow]")


@watch.command("remove")
@click.argument("symbol")
@list_option
def remove_symbol(symbol: str, list_name: str) -> None:
    """Remove a symbol from a watchlist."""
    symbol = symbol.upper()
    if _get_watchlist_service().remove(symbol, list_name):
        console.print(f"[green]✓ Removed {symbol} from watchlist '{list_name}'[/green]")
    else:
        console.print(f"[yellow]{symbol} is not in watchlist '{list_name}'[/yellow]")


@watch.command("list")
@list_option
@click.option("-a", "--all", "show_all", is_flag=True, default=False, help="Show all watchlist names.")
def list_symbols(list_name: str, show_all: bool) -> None:
    """Show a watchlist with last prices."""
    from papertrade.quotes.fetch import fetch_quotes

    service = _get_watchlist_service()

    if show_all:
        names = service.data_store.get_watchlist_names()
        if not names:
            console.print("[dim]No watchlists yet[/dim]")
            return
        for name in names:
            console.print(f"[bold]{name}[/bold] ({len(service.symbols(name))} symbols)")
        return

    symbols = service.symbols(list_name)
    if not symbols:
        console.print(f"[dim]Watchlist '{list_name}' is empty[/dim]")
        return

    table = Table(title=f"Watchlist: {list_name}", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("LTP", justify="right")
    table.add_column("Change", justify="right")

    quotes = fetch_quotes(service.gateway, symbols, timeout=service.quote_timeout)
    for symbol in symbols:
        q = quotes.get(symbol.upper())
        if q is None:
            table.add_row(symbol, "[dim]-[/dim]", "[dim]-[/dim]")
            continue
        color = "green" if q.change >= 0 else "red"
        change = f"[{color}]{q.change_percent:+.2f}%[/{color}]" if q.previous_close else "-"
        table.add_row(symbol, money(q.price), change)
    console.print(table)


@click.group()
def alert() -> None:
    """Manage price alerts.

    \b
    Examples:
      papertrade alert add RELIANCE above 2600
      papertrade alert add INFY percent_down 3
      papertrade alert check
    """
    pass


@alert.command("add")
@click.argument("symbol")
@click.argument("condition", type=click.Choice(["above", "below", "percent_up", "percent_down"]))
@click.argument("threshold", type=float)
@list_option
def add_alert(symbol: str, condition: str, threshold: float, list_name: str) -> None:
    """Set an alert on a symbol (adds it to the watchlist)."""
    from papertrade.exceptions import PaperTradeError

    try:
        rule = _get_watchlist_service().set_alert(symbol, condition, threshold, list_name)
    except PaperTradeError as e:
        fail(e.message)

    console.print(f"[green]✓ Alert #{rule.id}: {rule.symbol} {rule.condition} {rule.threshold:g}[/green]")


@alert.command("check")
@click.option("--list", "list_name", default=None, help="Only check alerts of this watchlist.")
def check_alerts(list_name: Optional[str]) -> None:
    """Evaluate alerts against the latest quotes."""
    results = _get_watchlist_service().check_alerts(list_name)
    if not results:
        console.print("[dim]No alerts set[/dim]")
        return

    table = Table(title="Alerts", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Condition")
    table.add_column("Threshold", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Status")

    for r in results:
        if r.error:
            status = f"[yellow]{r.error}[/yellow]"
        elif r.triggered:
            status = "[bold green]TRIGGERED[/bold green]"
        else:
            status = "[dim]waiting[/dim]"
        table.add_row(
            r.symbol,
            r.condition,
            f"{r.threshold:g}",
            money(r.price) if r.price is not None else "-",
            status,
        )
    console.print(table)
