"""Data models for papertrade."""

from papertrade.models.achievement import (
    Achievement,
    AchievementAward,
    AchievementCriteria,
    AwardSnapshot,
)
from papertrade.models.alert import AlertResult, AlertRule
from papertrade.models.contest import Contest
from papertrade.models.derivative import DerivativePosition, FutureContract, OptionContract
from papertrade.models.ledger import Ledger
from papertrade.models.order import TradeRequest
from papertrade.models.position import Position
from papertrade.models.transaction import Transaction

__all__ = [
    "Achievement",
    "AchievementAward",
    "AchievementCriteria",
    "AlertResult",
    "AlertRule",
    "AwardSnapshot",
    "Contest",
    "DerivativePosition",
    "FutureContract",
    "Ledger",
    "OptionContract",
    "Position",
    "TradeRequest",
    "Transaction",
]
