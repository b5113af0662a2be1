"""Options and futures commands for papertrade CLI.

Opens, lists and closes derivative positions, and shows Greeks, payoff
tables and simulated option chains.
"""

from typing import Optional

import click
from rich.panel import Panel
from rich.table import Table

from papertrade.cli.common import (
    console,
    fail,
    get_trading_service,
    money,
    pnl_text,
    resolve_ledger,
)
from papertrade.cli.trade import contest_option

option_type_arg = click.argument("option_type", type=click.Choice(["CALL", "PUT"], case_sensitive=False))
side_option = click.option(
    "--side",
    type=click.Choice(["BUY", "SELL"], case_sensitive=False),
    default="BUY",
    help="Position side (default: BUY).",
)


def _payoff_table(title: str, curve) -> Table:
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Price at Expiry", justify="right")
    table.add_column("P&L", justify="right")
    for point in curve.points():
        table.add_row(money(point.price), pnl_text(point.pnl))
    return table


def _opened_panel(position, ledger) -> Panel:
    color = "green" if position.side == "BUY" else "red"
    label = position.symbol
    if position.kind == "OPTION":
        label += f" {position.strike:g} {position.option_type}"
    else:
        label += " FUT"
    body = (
        f"[bold green]Position Opened[/bold green]\n\n"
        f"ID:        {position.id}\n"
        f"Contract:  {label}\n"
        f"Side:      [{color}]{position.side}[/{color}]\n"
        f"Lots:      {position.quantity} x {position.lot_size}\n"
        f"Price:     {money(position.entry_price)}"
    )
    if position.margin_blocked:
        body += f"\nMargin:    {money(position.margin_blocked)}"
    body += f"\n\n[dim]Balance: {money(ledger.balance)}[/dim]"
    return Panel(body, title="[bold green]Success[/bold green]", border_style="green")


# ==================== Options ====================


@click.group()
def option() -> None:
    """Trade and analyse options.

    \b
    Examples:
      papertrade option chain NIFTY --spot 22000
      papertrade option buy NIFTY 22000 CALL --premium 150
      papertrade option greeks 100 100 20 30
      papertrade option payoff 22000 150 --type CALL
    """
    pass


def _open_option(
    side: str,
    symbol: str,
    strike: float,
    option_type: str,
    premium: Optional[float],
    lots: int,
    spot: Optional[float],
    contest_id: Optional[int],
) -> None:
    from pydantic import ValidationError as PydanticValidationError

    from papertrade.config import get_settings
    from papertrade.engine.pricing import build_option_chain
    from papertrade.exceptions import PaperTradeError, ValidationError
    from papertrade.models import OptionContract

    symbol = symbol.upper()
    option_type = option_type.upper()
    lot_size = get_settings().trading.lot_size

    try:
        trading = get_trading_service()
        ledger = resolve_ledger(contest_id, trading)
        if premium is not None:
            contract = OptionContract(
                symbol=symbol,
                strike=strike,
                option_type=option_type,
                premium=premium,
                lot_size=lot_size,
                underlying_price=spot,
            )
        else:
            spot = trading.resolve_price(symbol, spot)
            chain = build_option_chain(symbol, spot, lot_size=lot_size)
            row = next((r for r in chain.rows if r.strike == strike), None)
            if row is None:
                strikes = ", ".join(f"{r.strike:g}" for r in chain.rows)
                raise ValidationError(f"Strike {strike:g} not in chain. Available: {strikes}")
            contract = row.call if option_type == "CALL" else row.put

        ledger, position = trading.open_position(ledger.id, contract, side, lots)
    except PaperTradeError as e:
        fail(e.message, title="Order Rejected")
    except PydanticValidationError as e:
        fail(f"Invalid contract: {e.errors()[0]['msg']}", title="Order Rejected")

    console.print(_opened_panel(position, ledger))


@option.command("buy")
@click.argument("symbol")
@click.argument("strike", type=float)
@option_type_arg
@click.option("-p", "--premium", type=float, default=None, help="Premium per unit. Defaults to the chain premium.")
@click.option("-l", "--lots", type=int, default=1, help="Number of lots (default: 1).")
@click.option("--spot", type=float, default=None, help="Underlying price. Defaults to the last quote.")
@contest_option
def option_buy(symbol, strike, option_type, premium, lots, spot, contest_id) -> None:
    """Buy an option (pay the premium).

    \b
    Examples:
      papertrade option buy NIFTY 22000 CALL --premium 150
      papertrade option buy RELIANCE 2500 PUT --lots 2
    """
    _open_option("BUY", symbol, strike, option_type, premium, lots, spot, contest_id)


@option.command("sell")
@click.argument("symbol")
@click.argument("strike", type=float)
@option_type_arg
@click.option("-p", "--premium", type=float, default=None, help="Premium per unit. Defaults to the chain premium.")
@click.option("-l", "--lots", type=int, default=1, help="Number of lots (default: 1).")
@click.option("--spot", type=float, default=None, help="Underlying price. Defaults to the last quote.")
@contest_option
def option_sell(symbol, strike, option_type, premium, lots, spot, contest_id) -> None:
    """Write an option (receive the premium).

    \b
    Examples:
      papertrade option sell NIFTY 22500 CALL --premium 80
    """
    _open_option("SELL", symbol, strike, option_type, premium, lots, spot, contest_id)


@option.command("greeks")
@click.argument("spot", type=float)
@click.argument("strike", type=float)
@click.argument("iv", type=float)
@click.argument("days", type=float)
@click.option("-t", "--type", "option_type", type=click.Choice(["CALL", "PUT"], case_sensitive=False), default="CALL")
@click.option("-r", "--rate", type=float, default=None, help="Risk-free rate (default from config).")
def greeks(spot: float, strike: float, iv: float, days: float, option_type: str, rate: Optional[float]) -> None:
    """Black-Scholes Greeks.

    SPOT and STRIKE are prices, IV is implied volatility in percent and
    DAYS is calendar days to expiry.

    \b
    Examples:
      papertrade option greeks 100 100 20 30
      papertrade option greeks 22000 22500 14 7 --type PUT
    """
    from papertrade.config import get_settings
    from papertrade.engine.pricing import compute_greeks
    from papertrade.exceptions import PaperTradeError

    if rate is None:
        rate = get_settings().trading.risk_free_rate
    try:
        g = compute_greeks(spot, strike, iv, days, rate=rate, option_type=option_type.upper()).rounded()
    except PaperTradeError as e:
        fail(e.message)

    table = Table(title=f"{option_type.upper()} {strike:g} Greeks", show_header=True, header_style="bold cyan")
    table.add_column("Greek", style="bold")
    table.add_column("Value", justify="right")
    table.add_row("Delta", f"{g.delta:.2f}")
    table.add_row("Gamma", f"{g.gamma:.4f}")
    table.add_row("Theta", f"{g.theta:.2f}")
    table.add_row("Vega", f"{g.vega:.2f}")
    table.add_row("Rho", f"{g.rho:.2f}")
    console.print(table)


@option.command("payoff")
@click.argument("strike", type=float)
@click.argument("premium", type=float)
@click.option("-t", "--type", "option_type", type=click.Choice(["CALL", "PUT"], case_sensitive=False), default="CALL")
@side_option
@click.option("--lot-size", type=int, default=None, help="Contract multiplier (default from config).")
def option_payoff_cmd(strike: float, premium: float, option_type: str, side: str, lot_size: Optional[int]) -> None:
    """Payoff at expiry of one option lot.

    \b
    Examples:
      papertrade option payoff 22000 150
      papertrade option payoff 22000 150 --type PUT --side SELL
    """
    from papertrade.config import get_settings
    from papertrade.engine.pricing import option_payoff
    from papertrade.exceptions import PaperTradeError

    lot_size = lot_size or get_settings().trading.lot_size
    try:
        curve = option_payoff(option_type.upper(), strike, premium, side=side.upper(), lot_size=lot_size)
    except PaperTradeError as e:
        fail(e.message)

    console.print(_payoff_table(f"{side.upper()} {strike:g} {option_type.upper()} @ {premium:g}", curve))


@option.command("chain")
@click.argument("symbol")
@click.option("--spot", type=float, default=None, help="Underlying price. Defaults to the last quote.")
@click.option("-w", "--width", type=int, default=6, help="Strikes on each side of the money.")
@click.option("-d", "--days", type=int, default=14, help="Days to expiry.")
def chain(symbol: str, spot: Optional[float], width: int, days: int) -> None:
    """Simulated option chain around the spot price.

    \b
    Examples:
      papertrade option chain NIFTY --spot 22000
      papertrade option chain RELIANCE --width 3
    """
    from papertrade.config import get_settings
    from papertrade.engine.pricing import build_option_chain
    from papertrade.exceptions import PaperTradeError

    symbol = symbol.upper()
    try:
        spot = get_trading_service().resolve_price(symbol, spot)
        oc = build_option_chain(
            symbol, spot, lot_size=get_settings().trading.lot_size, expiry_days=days, width=width
        )
    except PaperTradeError as e:
        fail(e.message)

    table = Table(
        title=f"{symbol} Options (spot {money(spot)}, expiry {oc.expiry:%d %b %Y})",
        show_header=True,
        header_style="bold cyan",
    )
    table.add_column("Call OI", justify="right")
    table.add_column("Call IV", justify="right")
    table.add_column("Call", justify="right", style="green")
    table.add_column("Strike", justify="center", style="bold")
    table.add_column("Put", justify="right", style="red")
    table.add_column("Put IV", justify="right")
    table.add_column("Put OI", justify="right")
    for row in oc.rows:
        table.add_row(
            f"{row.call.open_interest:,}",
            f"{row.call.iv:.1f}%",
            money(row.call.premium),
            f"{row.strike:g}",
            money(row.put.premium),
            f"{row.put.iv:.1f}%",
            f"{row.put.open_interest:,}",
        )
    console.print(table)
    console.print(f"[dim]Lot size: {oc.lot_size}[/dim]")


# ==================== Futures ====================


@click.group()
def future() -> None:
    """Trade futures.

    \b
    Examples:
      papertrade future buy NIFTY --lots 1
      papertrade future payoff 22220 --side SELL
    """
    pass


def _open_future(side: str, symbol: str, lots: int, spot: Optional[float], contest_id: Optional[int]) -> None:
    from papertrade.config import get_settings
    from papertrade.engine.pricing import build_future_contract
    from papertrade.exceptions import PaperTradeError

    symbol = symbol.upper()
    settings = get_settings().trading
    try:
        trading = get_trading_service()
        ledger = resolve_ledger(contest_id, trading)
        contract = build_future_contract(
            symbol,
            trading.resolve_price(symbol, spot),
            lot_size=settings.lot_size,
            margin_percent=settings.futures_margin_percent,
        )
        ledger, position = trading.open_position(ledger.id, contract, side, lots)
    except PaperTradeError as e:
        fail(e.message, title="Order Rejected")

    console.print(_opened_panel(position, ledger))


@future.command("buy")
@click.argument("symbol")
@click.option("-l", "--lots", type=int, default=1, help="Number of lots (default: 1).")
@click.option("--spot", type=float, default=None, help="Underlying price. Defaults to the last quote.")
@contest_option
def future_buy(symbol: str, lots: int, spot: Optional[float], contest_id: Optional[int]) -> None:
    """Go long a futures contract (blocks margin)."""
    _open_future("BUY", symbol, lots, spot, contest_id)


@future.command("sell")
@click.argument("symbol")
@click.option("-l", "--lots", type=int, default=1, help="Number of lots (default: 1).")
@click.option("--spot", type=float, default=None, help="Underlying price. Defaults to the last quote.")
@contest_option
def future_sell(symbol: str, lots: int, spot: Optional[float], contest_id: Optional[int]) -> None:
    """Go short a futures contract (blocks margin)."""
    _open_future("SELL", symbol, lots, spot, contest_id)


@future.command("payoff")
@click.argument("entry_price", type=float)
@side_option
@click.option("--lot-size", type=int, default=None, help="Contract multiplier (default from config).")
def future_payoff_cmd(entry_price: float, side: str, lot_size: Optional[int]) -> None:
    """Payoff of one futures lot around the entry price."""
    from papertrade.config import get_settings
    from papertrade.engine.pricing import future_payoff
    from papertrade.exceptions import PaperTradeError

    lot_size = lot_size or get_settings().trading.lot_size
    try:
        curve = future_payoff(entry_price, lot_size=lot_size, side=side.upper())
    except PaperTradeError as e:
        fail(e.message)

    console.print(_payoff_table(f"{side.upper()} FUT @ {entry_price:g}", curve))


# ==================== Positions ====================


@click.command()
@click.option("-a", "--all", "show_all", is_flag=True, default=False, help="Include closed positions.")
@contest_option
def derivatives(show_all: bool, contest_id: Optional[int]) -> None:
    """List option and futures positions.

    \b
    Examples:
      papertrade derivatives
      papertrade derivatives --all --contest 1
    """
    from papertrade.exceptions import PaperTradeError

    try:
        trading = get_trading_service()
        ledger = trading.revalue(resolve_ledger(contest_id, trading).id)
    except PaperTradeError as e:
        fail(e.message)

    rows = ledger.derivatives if show_all else ledger.open_derivatives()
    if not rows:
        console.print("[dim]No derivative positions[/dim]")
        return

    table = Table(title="Derivatives", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="dim")
    table.add_column("Contract", style="bold")
    table.add_column("Side")
    table.add_column("Lots", justify="right")
    table.add_column("Entry", justify="right")
    table.add_column("Mark", justify="right")
    table.add_column("Margin", justify="right")
    table.add_column("P&L", justify="right")
    table.add_column("Status")

    for d in rows:
        contract = f"{d.symbol} {d.strike:g} {d.option_type}" if d.kind == "OPTION" else f"{d.symbol} FUT"
        side_color = "green" if d.side == "BUY" else "red"
        table.add_row(
            d.id,
            contract,
            f"[{side_color}]{d.side}[/{side_color}]",
            f"{d.quantity} x {d.lot_size}",
            money(d.entry_price),
            money(d.current_price),
            money(d.margin_blocked) if d.margin_blocked else "-",
            pnl_text(d.pnl),
            "OPEN" if d.is_open else "CLOSED",
        )
    console.print(table)


@click.command()
@click.argument("position_id")
@click.option("-p", "--price", type=float, default=None, help="Exit price (required for options).")
@contest_option
def close(position_id: str, price: Optional[float], contest_id: Optional[int]) -> None:
    """Close a derivative position.

    POSITION_ID is the ID shown by `papertrade derivatives`.

    \b
    Examples:
      papertrade close DRV_1A2B3C4D5E6F --price 180
    """
    from papertrade.exceptions import PaperTradeError

    try:
        trading = get_trading_service()
        ledger = trading.close_position(resolve_ledger(contest_id, trading).id, position_id.upper(), price)
    except PaperTradeError as e:
        fail(e.message)

    closed = ledger.get_derivative(position_id.upper())
    console.print(Panel(
        f"[bold green]Position Closed[/bold green]\n\n"
        f"ID:      {closed.id}\n"
        f"Exit:    {money(closed.current_price)}\n"
        f"P&L:     {pnl_text(closed.pnl)}\n\n"
        f"[dim]Balance: {money(ledger.balance)}[/dim]",
        title="[bold green]Success[/bold green]",
        border_style="green",
    ))
