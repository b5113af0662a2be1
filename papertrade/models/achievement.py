"""Achievement catalog and award data models."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

CriteriaType = Literal[
    "trades_count",
    "win_rate",
    "returns_percent",
    "drawdown",
    "sharpe_ratio",
    "options_trades",
    "contest_rank",
    "custom",
]
Comparison = Literal["greater_than", "less_than", "equals", "greater_equal", "less_equal"]


class AchievementCriteria(BaseModel):
    """Unlock rule: compare one entry metric against a threshold."""

    type: CriteriaType = Field(..., description="Metric the rule reads")
    value: float = Field(..., description="Threshold")
    comparison: Comparison = Field(..., description="Comparison operator")

    model_config = {"frozen": True}


class Achievement(BaseModel):
    """A catalog achievement."""

    name: str = Field(..., min_length=1, description="Unique achievement name")
    description: str = Field(..., description="What the user did")
    icon: str = Field(default="🏆", description="Display icon")
    category: Literal["trading", "performance", "risk", "milestone", "social"] = Field(
        ..., description="Catalog category"
    )
    tier: Literal["bronze", "silver", "gold", "platinum"] = Field(default="bronze", description="Tier")
    criteria: AchievementCriteria = Field(..., description="Unlock rule")
    points: int = Field(default=10, ge=0, description="Points granted")
    rarity: Literal["common", "rare", "epic", "legendary"] = Field(default="common", description="Rarity")
    is_active: bool = Field(default=True, description="Whether the achievement can be earned")

    model_config = {"frozen": True}


class AwardSnapshot(BaseModel):
    """Entry metrics captured when an achievement was awarded."""

    returns_percent: float = Field(..., description="total_returns_percent at award time")
    rank: Optional[int] = Field(default=None, description="Contest rank at award time")
    win_rate: float = Field(..., description="Win rate at award time")
    total_trades: int = Field(..., ge=0, description="Trade count at award time")

    model_config = {"frozen": True}


class AchievementAward(BaseModel):
    """An achievement earned by a user, at most once per (user, achievement)."""

    id: Optional[int] = Field(default=None, description="Database ID")
    user: str = Field(..., min_length=1, description="Username")
    achievement: str = Field(..., min_length=1, description="Achievement name")
    contest_id: Optional[int] = Field(default=None, description="Contest it was earned in")
    earned_at: datetime = Field(default_factory=datetime.now, description="Award timestamp")
    snapshot: AwardSnapshot = Field(..., description="Metrics at award time")

    model_config = {"frozen": True}
