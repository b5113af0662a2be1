"""Quote command for papertrade CLI.

Prices are recorded locally; every valuation reads the latest recorded
price through the store-backed quote gateway.
"""

from typing import Optional

import click
from rich.panel import Panel

from papertrade.cli.common import console, fail, get_data_store, get_gateway, money


@click.command()
@click.argument("symbol")
@click.option("-s", "--set", "price", type=float, default=None, help="Record a new last price.")
@click.option("--prev-close", type=float, default=None, help="Previous close to record with --set.")
def quote(symbol: str, price: Optional[float], prev_close: Optional[float]) -> None:
    """Show or record the last price of a symbol.

    \b
    Examples:
      papertrade quote RELIANCE                              # Show last price
      papertrade quote RELIANCE --set 2510 --prev-close 2480  # Record a price
    """
    from datetime import datetime

    from pydantic import ValidationError as PydanticValidationError

    from papertrade.config import get_settings
    from papertrade.exceptions import PaperTradeError
    from papertrade.quotes.base import Quote
    from papertrade.quotes.fetch import fetch_quote

    symbol = symbol.upper()
    store = get_data_store()

    if price is not None:
        try:
            store.save_quote(Quote(symbol=symbol, price=price, previous_close=prev_close, timestamp=datetime.now()))
        except PydanticValidationError:
            fail(f"Price must be positive, got {price}")
        console.print(f"[green]✓ Recorded {symbol} at {money(price)}[/green]")
        return

    try:
        q = fetch_quote(get_gateway(store), symbol, timeout=get_settings().trading.quote_timeout_seconds)
    except PaperTradeError as e:
        fail(e.message, title="Quote Unavailable")

    body = f"Price:      {money(q.price)}\nAs of:      {q.timestamp:%Y-%m-%d %H:%M:%S}"
    if q.previous_close:
        color = "green" if q.change >= 0 else "red"
        body += (
            f"\nPrev close: {money(q.previous_close)}"
            f"\nChange:     [{color}]{q.change:+,.2f} ({q.change_percent:+.2f}%)[/{color}]"
        )
    console.print(Panel(body, title=f"[bold cyan]{symbol}[/bold cyan]", border_style="cyan"))
