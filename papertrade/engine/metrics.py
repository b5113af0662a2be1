"""Derived metrics recomputation for a ledger."""

import logging
from typing import Mapping, Optional

from papertrade.engine.ledger import build_position
from papertrade.exceptions import ConfigurationError
from papertrade.models import Ledger, Position

logger = logging.getLogger(__name__)


def _usable_quote(price: Optional[float]) -> bool:
    return isinstance(price, (int, float)) and price > 0


def mark_positions(positions: list[Position], live_quotes: Mapping[str, float]) -> list[Position]:
    """Mark equity positions to market.

    A symbol missing from ``live_quotes`` (or quoted at a non-positive
    price) keeps its last-known price.
    """
    marked = []
    for position in positions:
        price = live_quotes.get(position.symbol)
        if not _usable_quote(price):
            logger.warning(
                "No live quote for %s, keeping last price %.2f",
                position.symbol, position.current_price,
            )
            price = position.current_price
        marked.append(
            build_position(position.symbol, position.quantity, position.average_price, price)
        )
    return marked


def count_profitable_trades(ledger: Ledger) -> int:
    """Number of trades counted as profitable.

    Every SELL transaction counts, regardless of its realized P&L.
    """
    return sum(1 for t in ledger.transactions if t.type == "SELL")


def recompute_metrics(ledger: Ledger, live_quotes: Mapping[str, float]) -> Ledger:
    """Recompute position values and aggregate metrics.

    The result depends only on the ledger and the quotes, so calling this
    twice with the same quotes yields identical metrics. Version and
    timestamps are left for the store to stamp.

    Args:
        ledger: Ledger to revalue.
        live_quotes: Latest price per symbol.

    Returns:
        Ledger with marked positions and refreshed metrics.

    Raises:
        ConfigurationError: If the ledger's initial balance is not positive.
    """
    if not ledger.initial_balance > 0:
        raise ConfigurationError(
            f"Ledger {ledger.id} has a non-positive initial balance ({ledger.initial_balance})",
            details={"ledger_id": ledger.id, "initial_balance": ledger.initial_balance},
        )

    positions = mark_positions(ledger.positions, live_quotes)
    portfolio_value = sum(p.current_value for p in positions)
    total_value = ledger.balance + portfolio_value
    total_returns = total_value - ledger.initial_balance
    total_returns_percent = total_returns / ledger.initial_balance * 100

    total_trades = len(ledger.transactions)
    profitable_trades = count_profitable_trades(ledger)
    win_rate = (profitable_trades / total_trades * 100) if total_trades > 0 else 0.0

    peak_value = max(ledger.peak_value or ledger.initial_balance, total_value)
    drawdown = (peak_value - total_value) / peak_value * 100 if peak_value > 0 else 0.0
    max_drawdown = max(ledger.max_drawdown, drawdown)

    return ledger.model_copy(
        update={
            "positions": positions,
            "portfolio_value": portfolio_value,
            "total_value": total_value,
            "total_returns": total_returns,
            "total_returns_percent": total_returns_percent,
            "total_trades": total_trades,
            "profitable_trades": profitable_trades,
            "win_rate": win_rate,
            "peak_value": peak_value,
            "max_drawdown": max_drawdown,
        }
    )
