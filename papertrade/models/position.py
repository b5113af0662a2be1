"""Position data model."""

from pydantic import BaseModel, Field


class Position(BaseModel):
    """Represents an open equity holding in a ledger."""

    symbol: str = Field(..., min_length=1, description="Trading symbol")
    quantity: int = Field(..., gt=0, description="Shares held")
    average_price: float = Field(..., gt=0, description="Weighted-average cost per share")
    invested_amount: float = Field(..., ge=0, description="quantity * average_price")
    current_price: float = Field(..., ge=0, description="Last known market price")
    current_value: float = Field(..., ge=0, description="quantity * current_price")
    profit_loss: float = Field(..., description="current_value - invested_amount")
    profit_loss_percent: float = Field(..., description="profit_loss as a percentage of invested_amount")

    model_config = {"frozen": True}
