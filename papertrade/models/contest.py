"""Contest data model."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator

ContestStatus = Literal["upcoming", "active", "completed"]

DEFAULT_CONTEST_RULES = [
    "Only virtual money will be used",
    "All trades are simulated with real market prices",
    "Contest ends automatically at end date",
    "Top performers win badges and recognition",
]


class Contest(BaseModel):
    """A time-boxed trading competition."""

    id: Optional[int] = Field(default=None, description="Database ID")
    name: str = Field(..., min_length=1, description="Contest name")
    description: str = Field(default="", description="Contest description")
    start_date: datetime = Field(..., description="Start of trading")
    end_date: datetime = Field(..., description="End of trading")
    initial_balance: float = Field(default=100000.0, gt=0, description="Virtual balance per entry")
    prize_pool: str = Field(default="Virtual Badges & Glory", description="Prize description")
    max_participants: Optional[int] = Field(default=None, gt=0, description="Entry cap, None = unlimited")
    contest_type: Literal["weekly", "monthly", "custom"] = Field(default="weekly", description="Contest type")
    rules: list[str] = Field(default_factory=lambda: list(DEFAULT_CONTEST_RULES), description="Rules")
    participant_count: int = Field(default=0, ge=0, description="Number of entries")
    created_by: Optional[str] = Field(default=None, description="Creator username")

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def _check_dates(self) -> "Contest":
        if self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self

    def status_at(self, now: Optional[datetime] = None) -> ContestStatus:
        """Derive the contest status from its dates."""
        now = now or datetime.now()
        if now < self.start_date:
            return "upcoming"
        if now <= self.end_date:
            return "active"
        return "completed"

    @property
    def is_full(self) -> bool:
        return self.max_participants is not None and self.participant_count >= self.max_participants
