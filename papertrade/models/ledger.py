"""Ledger data model."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from papertrade.models.derivative import DerivativePosition
from papertrade.models.position import Position
from papertrade.models.transaction import Transaction


class Ledger(BaseModel):
    """A user's balance, holdings and metrics.

    One ledger per (user, contest) pair for contest entries and one
    standing ledger per user (``contest_id`` is None) for the regular
    portfolio. Ledgers are immutable values: the engine returns an
    updated copy from every operation and the store persists it.
    """

    id: Optional[int] = Field(default=None, description="Database ID")
    user: str = Field(..., min_length=1, description="Owner username")
    contest_id: Optional[int] = Field(default=None, description="Contest ID, None for the standing portfolio")
    initial_balance: float = Field(..., description="Starting virtual balance")
    balance: float = Field(..., ge=0, description="Available cash")

    positions: list[Position] = Field(default_factory=list, description="Open equity positions")
    transactions: list[Transaction] = Field(default_factory=list, description="Append-only trade log")
    derivatives: list[DerivativePosition] = Field(default_factory=list, description="Option/future positions")

    # Metrics, written only by recompute_metrics / rank_entries
    portfolio_value: float = Field(default=0.0, description="Sum of position values")
    total_value: float = Field(default=0.0, description="balance + portfolio_value")
    total_returns: float = Field(default=0.0, description="total_value - initial_balance")
    total_returns_percent: float = Field(default=0.0, description="Returns as percent of initial balance")
    total_trades: int = Field(default=0, ge=0, description="Number of transactions")
    profitable_trades: int = Field(default=0, ge=0, description="Number of SELL transactions")
    win_rate: float = Field(default=0.0, ge=0, le=100, description="profitable_trades / total_trades * 100")
    options_trades: int = Field(default=0, ge=0, description="Number of option positions opened")
    peak_value: Optional[float] = Field(default=None, description="Highest total value observed")
    max_drawdown: float = Field(default=0.0, ge=0, description="Largest peak-to-trough drop in percent")
    rank: Optional[int] = Field(default=None, ge=1, description="Contest rank")

    achievements: list[str] = Field(default_factory=list, description="Achievement names earned here")

    version: int = Field(default=0, ge=0, description="Optimistic concurrency version")
    joined_at: datetime = Field(default_factory=datetime.now, description="Creation timestamp")
    last_updated: datetime = Field(default_factory=datetime.now, description="Last persisted change")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_unique_symbols(self) -> "Ledger":
        symbols = [p.symbol for p in self.positions]
        if len(symbols) != len(set(symbols)):
            raise ValueError("positions must be unique by symbol")
        return self

    @property
    def is_contest_entry(self) -> bool:
        return self.contest_id is not None

    def get_position(self, symbol: str) -> Optional[Position]:
        return next((p for p in self.positions if p.symbol == symbol), None)

    def get_derivative(self, position_id: str) -> Optional[DerivativePosition]:
        return next((d for d in self.derivatives if d.id == position_id), None)

    def open_derivatives(self) -> list[DerivativePosition]:
        return [d for d in self.derivatives if d.is_open]
