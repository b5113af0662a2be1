"""Option and future positions: open, mark and close."""

import logging
import uuid
from datetime import datetime
from typing import Literal, Mapping, Optional, Union

from papertrade.exceptions import InsufficientFundsError, ValidationError
from papertrade.models import DerivativePosition, FutureContract, Ledger, OptionContract

logger = logging.getLogger(__name__)

Contract = Union[OptionContract, FutureContract]


def option_cost(contract: OptionContract, quantity: int) -> float:
    """Premium paid (or received) for ``quantity`` lots."""
    return contract.premium * contract.lot_size * quantity


def future_margin(contract: FutureContract, quantity: int) -> float:
    """Initial margin blocked for ``quantity`` lots."""
    return contract.price * contract.lot_size * quantity * contract.margin_percent / 100


def derivative_pnl(position: DerivativePosition, mark: float) -> float:
    """P&L of a derivative position at ``mark``, sign-adjusted for side."""
    pnl = (mark - position.entry_price) * position.lot_size * position.quantity
    return -pnl if position.side == "SELL" else pnl


def _new_position_id() -> str:
    return f"DRV_{uuid.uuid4().hex[:12].upper()}"


def open_derivative(
    ledger: Ledger,
    contract: Contract,
    side: Literal["BUY", "SELL"],
    quantity: int = 1,
    now: Optional[datetime] = None,
) -> tuple[Ledger, DerivativePosition]:
    """Open a new option or future position.

    Option buys debit the premium, option writes credit it (no margin is
    modelled for short options). Futures on either side debit the initial
    margin. Every call creates a new position; repeated opens of the same
    contract are not netted.

    Args:
        ledger: Ledger to trade in.
        contract: Option or future contract.
        side: BUY or SELL.
        quantity: Number of lots.
        now: Open timestamp.

    Returns:
        Tuple of (updated ledger, new position).

    Raises:
        ValidationError: If quantity or side is invalid.
        InsufficientFundsError: If the balance cannot cover cost or margin.
    """
    if quantity <= 0:
        raise ValidationError(f"Quantity must be positive, got {quantity}")
    if side not in ("BUY", "SELL"):
        raise ValidationError(f"Side must be BUY or SELL, got {side}")

    opened_at = now or datetime.now()
    options_trades = ledger.options_trades

    if isinstance(contract, OptionContract):
        cost = option_cost(contract, quantity)
        if side == "BUY":
            if ledger.balance < cost:
                raise InsufficientFundsError(
                    f"Insufficient balance. Required: {cost:.2f}, Available: {ledger.balance:.2f}",
                    details={"required": cost, "available": ledger.balance},
                )
            balance = ledger.balance - cost
        else:
            balance = ledger.balance + cost
        options_trades += 1
        position = DerivativePosition(
            id=_new_position_id(),
            kind="OPTION",
            side=side,
            symbol=contract.symbol.upper(),
            strike=contract.strike,
            option_type=contract.option_type,
            expiry=contract.expiry,
            lot_size=contract.lot_size,
            quantity=quantity,
            entry_price=contract.premium,
            current_price=contract.premium,
            margin_blocked=0.0,
            opened_at=opened_at,
        )
    else:
        margin = future_margin(contract, quantity)
        if ledger.balance < margin:
            raise InsufficientFundsError(
                f"Insufficient margin. Required: {margin:.2f}, Available: {ledger.balance:.2f}",
                details={"required": margin, "available": ledger.balance},
            )
        balance = ledger.balance - margin
        position = DerivativePosition(
            id=_new_position_id(),
            kind="FUTURE",
            side=side,
            symbol=contract.symbol.upper(),
            expiry=contract.expiry,
            lot_size=contract.lot_size,
            quantity=quantity,
            entry_price=contract.price,
            current_price=contract.price,
            margin_blocked=margin,
            opened_at=opened_at,
        )

    logger.info(
        "Opened %s %s %s x%d for %s (balance %.2f -> %.2f)",
        side, position.kind, position.symbol, quantity, ledger.user, ledger.balance, balance,
    )
    updated = ledger.model_copy(
        update={
            "balance": balance,
            "derivatives": [*ledger.derivatives, position],
            "options_trades": options_trades,
        }
    )
    return updated, position


def mark_derivatives(ledger: Ledger, marks: Mapping[str, float]) -> Ledger:
    """Re-mark open derivative positions.

    Args:
        ledger: Ledger holding the positions.
        marks: Current price per position id. Positions without a usable
            mark keep their previous price.

    Returns:
        Ledger with ``current_price`` and ``pnl`` refreshed.
    """
    derivatives = []
    for position in ledger.derivatives:
        mark = marks.get(position.id)
        if not position.is_open or mark is None or not mark > 0:
            derivatives.append(position)
            continue
        derivatives.append(
            position.model_copy(update={"current_price": mark, "pnl": derivative_pnl(position, mark)})
        )
    return ledger.model_copy(update={"derivatives": derivatives})


def close_derivative(
    ledger: Ledger,
    position_id: str,
    exit_price: float,
    now: Optional[datetime] = None,
) -> Ledger:
    """Close an open derivative position at ``exit_price``.

    Long options are sold back for ``exit_price * lot_size * quantity``;
    written options are bought back for the same amount. Futures release
    their blocked margin together with the realised P&L.

    Raises:
        ValidationError: If the position is unknown, closed, or the price is not positive.
        InsufficientFundsError: If settling would drive the balance negative.
    """
    position = ledger.get_derivative(position_id)
    if position is None:
        raise ValidationError(f"Unknown derivative position {position_id}")
    if not position.is_open:
        raise ValidationError(f"Derivative position {position_id} is already closed")
    if not exit_price > 0:
        raise ValidationError(f"Exit price must be positive, got {exit_price}")

    pnl = derivative_pnl(position, exit_price)
    if position.kind == "OPTION":
        value = exit_price * position.lot_size * position.quantity
        cash_flow = value if position.side == "BUY" else -value
    else:
        cash_flow = position.margin_blocked + pnl

    balance = ledger.balance + cash_flow
    if balance < 0:
        raise InsufficientFundsError(
            f"Insufficient balance to close {position_id}. Required: {-cash_flow:.2f}, "
            f"Available: {ledger.balance:.2f}",
            details={"required": -cash_flow, "available": ledger.balance},
        )

    closed = position.model_copy(
        update={
            "current_price": exit_price,
            "pnl": pnl,
            "closed_at": now or datetime.now(),
            "is_open": False,
        }
    )
    logger.info(
        "Closed %s %s for %s at %.2f, pnl %.2f",
        position.kind, position_id, ledger.user, exit_price, pnl,
    )
    return ledger.model_copy(
        update={
            "balance": balance,
            "derivatives": [closed if d.id == position_id else d for d in ledger.derivatives],
        }
    )
