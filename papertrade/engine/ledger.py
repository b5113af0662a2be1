"""Equity trade execution against a ledger.

Implements BUY/SELL with weighted-average cost basis. Every check runs
before any state is built, and the input ledger is never mutated, so a
rejected trade leaves balance and holdings exactly as they were.
"""

import logging
from datetime import datetime
from typing import Optional

from papertrade.exceptions import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    ValidationError,
)
from papertrade.models import Ledger, Position, TradeRequest, Transaction

logger = logging.getLogger(__name__)


def build_position(
    symbol: str,
    quantity: int,
    average_price: float,
    current_price: float,
) -> Position:
    """Build a position with its derived value fields filled in.

    Args:
        symbol: Trading symbol.
        quantity: Shares held (must be positive).
        average_price: Weighted-average cost per share.
        current_price: Last known market price.

    Returns:
        Position whose invested/current value and P&L are consistent.
    """
    invested = quantity * average_price
    current_value = quantity * current_price
    profit_loss = current_value - invested
    profit_loss_percent = (profit_loss / invested * 100) if invested > 0 else 0.0
    return Position(
        symbol=symbol,
        quantity=quantity,
        average_price=average_price,
        invested_amount=invested,
        current_price=current_price,
        current_value=current_value,
        profit_loss=profit_loss,
        profit_loss_percent=profit_loss_percent,
    )


def validate_trade_request(request: TradeRequest) -> TradeRequest:
    """Check the request ranges and normalise the symbol.

    Raises:
        ValidationError: If symbol is empty, quantity or price is not positive.
    """
    symbol = (request.symbol or "").strip().upper()
    if not symbol:
        raise ValidationError("Symbol is required")
    if request.quantity <= 0:
        raise ValidationError(
            f"Quantity must be positive, got {request.quantity}",
            details={"quantity": request.quantity},
        )
    if request.price is None:
        raise ValidationError("Execution price is required", details={"symbol": symbol})
    if not request.price > 0:
        raise ValidationError(
            f"Price must be positive, got {request.price}",
            details={"price": request.price},
        )
    return request.model_copy(update={"symbol": symbol})


def execute_trade(
    ledger: Ledger,
    request: TradeRequest,
    now: Optional[datetime] = None,
) -> Ledger:
    """Execute an equity BUY or SELL against a ledger.

    Args:
        ledger: Ledger to trade in.
        request: Trade request with a resolved execution price.
        now: Execution timestamp (defaults to the current time).

    Returns:
        A new ledger with balance, positions and transactions updated.

    Raises:
        ValidationError: If the request is malformed.
        InsufficientFundsError: If a BUY costs more than the balance.
        InsufficientHoldingsError: If a SELL exceeds the holding.
    """
    request = validate_trade_request(request)
    symbol, quantity, price = request.symbol, request.quantity, request.price
    total_amount = quantity * price
    existing = ledger.get_position(symbol)
    realized_pnl = None

    if request.side == "BUY":
        if ledger.balance < total_amount:
            logger.info(
                "Rejected BUY %s x%d for %s: need %.2f, have %.2f",
                symbol, quantity, ledger.user, total_amount, ledger.balance,
            )
            raise InsufficientFundsError(
                f"Insufficient balance. Required: {total_amount:.2f}, Available: {ledger.balance:.2f}",
                details={"required": total_amount, "available": ledger.balance},
            )
        balance = ledger.balance - total_amount

        if existing:
            new_qty = existing.quantity + quantity
            new_avg = (existing.quantity * existing.average_price + quantity * price) / new_qty
            updated = build_position(symbol, new_qty, new_avg, price)
            positions = [updated if p.symbol == symbol else p for p in ledger.positions]
        else:
            positions = [*ledger.positions, build_position(symbol, quantity, price, price)]
    else:
        if existing is None or existing.quantity < quantity:
            held = existing.quantity if existing else 0
            logger.info(
                "Rejected SELL %s x%d for %s: holding %d",
                symbol, quantity, ledger.user, held,
            )
            raise InsufficientHoldingsError(
                f"Insufficient holdings to sell. Held: {held}, Requested: {quantity}",
                details={"held": held, "requested": quantity},
            )
        balance = ledger.balance + total_amount
        realized_pnl = (price - existing.average_price) * quantity

        remaining = existing.quantity - quantity
        if remaining == 0:
            positions = [p for p in ledger.positions if p.symbol != symbol]
        else:
            updated = build_position(symbol, remaining, existing.average_price, price)
            positions = [updated if p.symbol == symbol else p for p in ledger.positions]

    transaction = Transaction(
        type=request.side,
        symbol=symbol,
        quantity=quantity,
        price=price,
        total_amount=total_amount,
        timestamp=now or datetime.now(),
        realized_pnl=realized_pnl,
    )

    logger.info(
        "Executed %s %s x%d @ %.2f for %s (balance %.2f -> %.2f)",
        request.side, symbol, quantity, price, ledger.user, ledger.balance, balance,
    )

    return ledger.model_copy(
        update={
            "balance": balance,
            "positions": positions,
            "transactions": [*ledger.transactions, transaction],
        }
    )
