"""Derivative contract and position data models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

OptionType = Literal["CALL", "PUT"]
Side = Literal["BUY", "SELL"]


class OptionContract(BaseModel):
    """A tradable option contract with its quoted premium."""

    symbol: str = Field(..., min_length=1, description="Underlying symbol")
    strike: float = Field(..., gt=0, description="Strike price")
    option_type: OptionType = Field(..., description="CALL or PUT")
    premium: float = Field(..., gt=0, description="Premium per unit")
    lot_size: int = Field(default=25, gt=0, description="Contract multiplier")
    expiry: Optional[datetime] = Field(default=None, description="Contract expiry")
    underlying_price: Optional[float] = Field(default=None, gt=0, description="Spot when quoted")
    iv: Optional[float] = Field(default=None, ge=0, description="Implied volatility percent")
    open_interest: Optional[int] = Field(default=None, ge=0, description="Open interest")

    model_config = {"frozen": True}


class FutureContract(BaseModel):
    """A tradable futures contract."""

    symbol: str = Field(..., min_length=1, description="Underlying symbol")
    price: float = Field(..., gt=0, description="Futures price")
    lot_size: int = Field(default=25, gt=0, description="Contract multiplier")
    margin_percent: float = Field(default=15.0, gt=0, le=100, description="Initial margin percent")
    expiry: Optional[datetime] = Field(default=None, description="Contract expiry")
    underlying_price: Optional[float] = Field(default=None, gt=0, description="Spot when quoted")

    model_config = {"frozen": True}


class DerivativePosition(BaseModel):
    """An option or future position opened in a ledger."""

    id: str = Field(..., min_length=1, description="Position identifier")
    kind: Literal["OPTION", "FUTURE"] = Field(..., description="Instrument kind")
    side: Side = Field(..., description="BUY (long) or SELL (short/written)")
    symbol: str = Field(..., min_length=1, description="Underlying symbol")
    strike: Optional[float] = Field(default=None, gt=0, description="Strike (options only)")
    option_type: Optional[OptionType] = Field(default=None, description="CALL/PUT (options only)")
    expiry: Optional[datetime] = Field(default=None, description="Contract expiry")
    lot_size: int = Field(..., gt=0, description="Contract multiplier")
    quantity: int = Field(..., gt=0, description="Number of lots")
    entry_price: float = Field(..., gt=0, description="Premium for options, price for futures")
    current_price: float = Field(..., ge=0, description="Last mark")
    pnl: float = Field(default=0.0, description="Mark-to-market P&L")
    margin_blocked: float = Field(default=0.0, ge=0, description="Margin debited on open")
    opened_at: datetime = Field(default_factory=datetime.now, description="Open timestamp")
    closed_at: Optional[datetime] = Field(default=None, description="Close timestamp")
    is_open: bool = Field(default=True, description="Whether the position is open")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_option_fields(self) -> "DerivativePosition":
        if self.kind == "OPTION" and (self.strike is None or self.option_type is None):
            raise ValueError("option positions need a strike and an option_type")
        return self
