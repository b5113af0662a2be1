"""Watchlist alert data models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

AlertCondition = Literal["above", "below", "percent_up", "percent_down"]


class AlertRule(BaseModel):
    """A price alert attached to a watchlist."""

    id: Optional[int] = Field(default=None, description="Database ID")
    list_name: str = Field(default="default", description="Watchlist name")
    symbol: str = Field(..., min_length=1, description="Trading symbol")
    condition: AlertCondition = Field(..., description="Trigger condition")
    threshold: float = Field(..., description="Price, or percent for percent_* conditions")
    enabled: bool = Field(default=True, description="Whether the rule is evaluated")
    last_triggered_at: Optional[datetime] = Field(default=None, description="Last trigger time")

    model_config = {"frozen": True}


class AlertResult(BaseModel):
    """Outcome of evaluating one alert rule."""

    symbol: str = Field(..., description="Trading symbol")
    condition: AlertCondition = Field(..., description="Trigger condition")
    threshold: float = Field(..., description="Rule threshold")
    price: Optional[float] = Field(default=None, description="Price used for evaluation")
    triggered: bool = Field(default=False, description="Whether the rule fired")
    error: Optional[str] = Field(default=None, description="Why the rule could not be evaluated")

    model_config = {"frozen": True}
