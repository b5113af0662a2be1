"""Achievement catalog and unlock evaluation."""

import logging
from datetime import datetime
from typing import Iterable, MutableSet, Optional

from papertrade.models import (
    Achievement,
    AchievementAward,
    AchievementCriteria,
    AwardSnapshot,
    Ledger,
)

logger = logging.getLogger(__name__)


def _achievement(name, description, icon, category, tier, criteria, points, rarity) -> Achievement:
    ctype, value, comparison = criteria
    return Achievement(
        name=name,
        description=description,
        icon=icon,
        category=category,
        tier=tier,
        criteria=AchievementCriteria(type=ctype, value=value, comparison=comparison),
        points=points,
        rarity=rarity,
    )


DEFAULT_ACHIEVEMENTS: list[Achievement] = [
    _achievement("First Trade", "Execute your first trade in any contest", "🎯",
                 "milestone", "bronze", ("trades_count", 1, "greater_equal"), 10, "common"),
    _achievement("Active Trader", "Complete 10 trades", "📈",
                 "trading", "silver", ("trades_count", 10, "greater_equal"), 25, "common"),
    _achievement("Day Trader", "Execute 50+ trades in a contest", "⚡",
                 "trading", "gold", ("trades_count", 50, "greater_equal"), 50, "rare"),
    _achievement("Profitable Trader", "Achieve positive returns (>0%)", "💰",
                 "performance", "silver", ("returns_percent", 0, "greater_than"), 20, "common"),
    _achievement("Double Digit Returns", "Achieve 10%+ returns in a contest", "🚀",
                 "performance", "gold", ("returns_percent", 10, "greater_equal"), 50, "rare"),
    _achievement("Master Trader", "Achieve 25%+ returns - Elite performance!", "👑",
                 "performance", "platinum", ("returns_percent", 25, "greater_equal"), 100, "legendary"),
    _achievement("Consistent Winner", "Win rate above 60%", "🎖️",
                 "performance", "gold", ("win_rate", 60, "greater_equal"), 75, "epic"),
    _achievement("Podium Finish", "Finish in Top 3 of any contest", "🥉",
                 "milestone", "gold", ("contest_rank", 3, "less_equal"), 100, "epic"),
    _achievement("Champion", "Win 1st place in a contest!", "🏆",
                 "milestone", "platinum", ("contest_rank", 1, "equals"), 200, "legendary"),
    _achievement("Options Enthusiast", "Execute your first options trade", "📊",
                 "trading", "silver", ("options_trades", 1, "greater_equal"), 30, "common"),
    _achievement("Risk Manager", "Keep drawdown under 5%", "🛡️",
                 "risk", "gold", ("drawdown", 5, "less_equal"), 60, "rare"),
]


def compare(value: float, target: float, comparison: str) -> bool:
    """Apply a catalog comparison operator."""
    if comparison == "greater_than":
        return value > target
    if comparison == "less_than":
        return value < target
    if comparison == "equals":
        return value == target
    if comparison == "greater_equal":
        return value >= target
    if comparison == "less_equal":
        return value <= target
    return False


def metric_for(entry: Ledger, criteria: AchievementCriteria) -> Optional[float]:
    """Read the entry metric a criteria type refers to.

    Returns:
        The metric value, or None when the criteria cannot be evaluated
        for this entry (no source metric, or no rank assigned yet).
    """
    ctype = criteria.type
    if ctype == "trades_count":
        return entry.total_trades
    if ctype == "win_rate":
        return entry.win_rate
    if ctype == "returns_percent":
        return entry.total_returns_percent
    if ctype == "contest_rank":
        return entry.rank
    if ctype == "options_trades":
        return entry.options_trades
    if ctype == "drawdown":
        # An untraded entry has no drawdown history worth rewarding
        return entry.max_drawdown if entry.total_trades > 0 else None
    # sharpe_ratio and custom have no source metric
    return None


def evaluate_achievements(
    entry: Ledger,
    catalog: Iterable[Achievement],
    already_awarded: MutableSet[tuple[str, str]],
    now: Optional[datetime] = None,
) -> tuple[Ledger, list[AchievementAward]]:
    """Evaluate unlock criteria for one entry.

    Achievements already awarded to the user (in any contest) are skipped.
    Each new award is added to ``already_awarded`` in place, so repeated
    calls with the same set never award twice.

    Args:
        entry: Entry with its final metrics for this pass.
        catalog: Achievement catalog.
        already_awarded: Set of (user, achievement name) pairs.
        now: Award timestamp.

    Returns:
        Tuple of (entry with new achievement names appended, new awards).
    """
    awards: list[AchievementAward] = []
    earned = list(entry.achievements)

    for achievement in catalog:
        key = (entry.user, achievement.name)
        if not achievement.is_active or key in already_awarded:
            continue

        value = metric_for(entry, achievement.criteria)
        if value is None:
            continue
        if not compare(value, achievement.criteria.value, achievement.criteria.comparison):
            continue

        already_awarded.add(key)
        if achievement.name not in earned:
            earned.append(achievement.name)
        awards.append(
            AchievementAward(
                user=entry.user,
                achievement=achievement.name,
                contest_id=entry.contest_id,
                earned_at=now or datetime.now(),
                snapshot=AwardSnapshot(
                    returns_percent=entry.total_returns_percent,
                    rank=entry.rank,
                    win_rate=entry.win_rate,
                    total_trades=entry.total_trades,
                ),
            )
        )
        logger.info("Awarded '%s' to %s", achievement.name, entry.user)

    if not awards:
        return entry, awards
    return entry.model_copy(update={"achievements": earned}), awards
