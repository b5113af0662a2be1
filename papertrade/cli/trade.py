"""Equity trading commands for papertrade CLI.

Handles buy, sell, positions and balance for the standing portfolio or,
with --contest, for a contest entry.
"""

from typing import Optional

import click
from rich.panel import Panel

from papertrade.cli.common import (
    console,
    fail,
    get_trading_service,
    ledger_summary,
    money,
    pnl_text,
    positions_table,
    resolve_ledger,
)

contest_option = click.option(
    "-c", "--contest", "contest_id",
    type=int,
    default=None,
    help="Act on your entry in this contest instead of the standing portfolio.",
)


def _execute(side: str, symbol: str, qty: int, price: Optional[float], contest_id: Optional[int]) -> None:
    from papertrade.config import get_settings
    from papertrade.exceptions import PaperTradeError
    from papertrade.services import ContestService

    symbol = symbol.upper()
    user = get_settings().username
    try:
        trading = get_trading_service()
        if contest_id is None:
            ledger = trading.trade(user, symbol, side, qty, price)
        else:
            ledger = ContestService(trading).trade(contest_id, user, symbol, side, qty, price)
    except PaperTradeError as e:
        fail(e.message, title="Order Rejected")

    txn = ledger.transactions[-1]
    color = "green" if side == "BUY" else "red"
    result_text = (
        f"[bold green]Order Executed[/bold green]\n\n"
        f"Symbol:   {txn.symbol}\n"
        f"Side:     [{color}]{side}[/{color}]\n"
        f"Quantity: {txn.quantity}\n"
        f"Price:    {money(txn.price)}\n"
        f"Value:    {money(txn.total_amount)}"
    )
    if txn.realized_pnl is not None:
        result_text += f"\nRealized: {pnl_text(txn.realized_pnl)}"
    result_text += f"\n\n[dim]Balance: {money(ledger.balance)}[/dim]"
    console.print(Panel(result_text, title="[bold green]Success[/bold green]", border_style="green"))


@click.command()
@click.argument("symbol")
@click.argument("qty", type=int)
@click.option(
    "-p", "--price",
    type=float,
    default=None,
    help="Execution price. If not specified, uses the last recorded quote.",
)
@contest_option
def buy(symbol: str, qty: int, price: Optional[float], contest_id: Optional[int]) -> None:
    """Buy shares of a symbol.

    SYMBOL is the trading symbol (e.g., RELIANCE, INFY, TCS).
    QTY is the number of shares to buy.

    \b
    Examples:
      papertrade buy RELIANCE 10              # Buy at last quote
      papertrade buy INFY 5 --price 1500      # Buy at ₹1500
      papertrade buy TCS 2 --contest 1        # Buy inside contest 1
    """
    _execute("BUY", symbol, qty, price, contest_id)


@click.command()
@click.argument("symbol")
@click.argument("qty", type=int)
@click.option(
    "-p", "--price",
    type=float,
    default=None,
    help="Execution price. If not specified, uses the last recorded quote.",
)
@contest_option
def sell(symbol: str, qty: int, price: Optional[float], contest_id: Optional[int]) -> None:
    """Sell shares of a symbol.

    SYMBOL is the trading symbol.
    QTY is the number of shares to sell.

    \b
    Examples:
      papertrade sell RELIANCE 10
      papertrade sell INFY 5 --price 1550
    """
    _execute("SELL", symbol, qty, price, contest_id)


@click.command()
@contest_option
def positions(contest_id: Optional[int]) -> None:
    """Show holdings marked to the latest quotes.

    \b
    Examples:
      papertrade positions
      papertrade positions --contest 1
    """
    from papertrade.exceptions import PaperTradeError

    try:
        trading = get_trading_service()
        ledger = trading.revalue(resolve_ledger(contest_id, trading).id)
    except PaperTradeError as e:
        fail(e.message)

    if not ledger.positions:
        console.print("[dim]No open positions[/dim]")
    else:
        console.print(positions_table(ledger))
        console.print(f"\nTotal P&L: {pnl_text(sum(p.profit_loss for p in ledger.positions))}")


@click.command()
@contest_option
def balance(contest_id: Optional[int]) -> None:
    """Show cash, holdings value and returns.

    \b
    Examples:
      papertrade balance
      papertrade balance --contest 1
    """
    from papertrade.exceptions import PaperTradeError

    try:
        trading = get_trading_service()
        ledger = trading.revalue(resolve_ledger(contest_id, trading).id)
    except PaperTradeError as e:
        fail(e.message)

    title = "Portfolio" if contest_id is None else f"Contest {contest_id} Entry"
    console.print(ledger_summary(ledger, title))
