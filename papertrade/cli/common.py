"""Shared helpers for papertrade CLI commands."""

from typing import NoReturn, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from papertrade.config import get_settings
from papertrade.db.store import DataStore
from papertrade.models import Ledger

console = Console()


def fail(message: str, title: str = "Error") -> NoReturn:
    """Print an error panel and exit with status 1."""
    console.print(Panel(
        f"[red]{message}[/red]",
        title=f"[bold red]{title}[/bold red]",
        border_style="red",
    ))
    raise SystemExit(1)


def get_data_store() -> DataStore:
    """Get the data store for the configured database."""
    return DataStore(get_settings().db_path)


def get_gateway(store: DataStore):
    """Quote gateway serving the prices recorded with ``papertrade quote``."""
    from papertrade.quotes.store import StoreQuoteGateway

    return StoreQuoteGateway(store, max_age_hours=get_settings().trading.quote_max_age_hours)


def get_trading_service():
    """Build a TradingService from the settings."""
    from papertrade.services import TradingService

    store = get_data_store()
    return TradingService(store, get_gateway(store), settings=get_settings().trading)


def get_contest_service():
    """Build a ContestService from the settings."""
    from papertrade.services import ContestService

    return ContestService(get_trading_service())


def resolve_ledger(contest_id: Optional[int], trading=None) -> Ledger:
    """Ledger a command acts on: the contest entry, or the standing portfolio."""
    from papertrade.services import ContestService

    trading = trading or get_trading_service()
    user = get_settings().username
    if contest_id is None:
        return trading.get_or_create_portfolio(user)
    return ContestService(trading).get_entry(contest_id, user)


def money(value: float) -> str:
    return f"₹{value:,.2f}"


def pnl_text(value: float, percent: Optional[float] = None) -> str:
    """Colour a P&L figure."""
    color = "green" if value >= 0 else "red"
    sign = "+" if value >= 0 else ""
    text = f"[{color}]{sign}{money(value)}"
    if percent is not None:
        text += f" ({sign}{percent:.2f}%)"
    return text + f"[/{color}]"


def ledger_summary(ledger: Ledger, title: str) -> Panel:
    """Panel with a ledger's balance and metrics."""
    body = (
        f"Cash:          {money(ledger.balance)}\n"
        f"Holdings:      {money(ledger.portfolio_value)}\n"
        f"Total value:   {money(ledger.total_value)}\n"
        f"Returns:       {pnl_text(ledger.total_returns, ledger.total_returns_percent)}\n"
        f"Trades:        {ledger.total_trades} (win rate {ledger.win_rate:.1f}%)\n"
        f"Max drawdown:  {ledger.max_drawdown:.2f}%"
    )
    if ledger.rank is not None:
        body += f"\nRank:          #{ledger.rank}"
    return Panel(body, title=f"[bold cyan]{title}[/bold cyan]", border_style="cyan")


def positions_table(ledger: Ledger) -> Table:
    """Table of equity positions."""
    table = Table(title="Positions", show_header=True, header_style="bold cyan")
    table.add_column("Symbol", style="bold")
    table.add_column("Qty", justify="right")
    table.add_column("Avg Price", justify="right")
    table.add_column("LTP", justify="right")
    table.add_column("Value", justify="right")
    table.add_column("P&L", justify="right")

    for p in ledger.positions:
        table.add_row(
            p.symbol,
            str(p.quantity),
            money(p.average_price),
            money(p.current_price),
            money(p.current_value),
            pnl_text(p.profit_loss, p.profit_loss_percent),
        )
    return table
