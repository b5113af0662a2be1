"""TradeRequest data model."""

from typing import Literal, Optional

from pydantic import BaseModel, Field


class TradeRequest(BaseModel):
    """An equity order submitted to a ledger.

    Range checks (positive quantity and price, non-empty symbol) are
    done by the ledger engine so that they surface as
    :class:`papertrade.exceptions.ValidationError`.
    """

    symbol: str = Field(..., description="Trading symbol")
    side: Literal["BUY", "SELL"] = Field(..., description="Order side")
    quantity: int = Field(..., description="Order quantity")
    price: Optional[float] = Field(
        default=None, description="Execution price; None means use the live quote"
    )

    model_config = {"frozen": True}
