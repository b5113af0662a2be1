"""Transaction data model."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field


class Transaction(BaseModel):
    """Immutable record of an executed equity trade."""

    id: Optional[int] = Field(default=None, description="Database ID")
    type: Literal["BUY", "SELL"] = Field(..., description="Trade side")
    symbol: str = Field(..., min_length=1, description="Trading symbol")
    quantity: int = Field(..., gt=0, description="Executed quantity")
    price: float = Field(..., gt=0, description="Execution price")
    total_amount: float = Field(..., gt=0, description="quantity * price")
    timestamp: datetime = Field(default_factory=datetime.now, description="Execution timestamp")
    realized_pnl: Optional[float] = Field(
        default=None, description="Realized P&L against the average cost (SELL only)"
    )

    model_config = {"frozen": True}
