"""Property-based tests for achievement evaluation.

**Feature: paper-trading-core**
"""

from datetime import datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from papertrade.engine.achievements import (
    DEFAULT_ACHIEVEMENTS,
    compare,
    evaluate_achievements,
    metric_for,
)
from papertrade.models import Achievement, AchievementCriteria, Ledger


def entry(**metrics) -> Ledger:
    fields = {
        "id": 1,
        "user": "alice",
        "contest_id": 7,
        "initial_balance": 100000.0,
        "balance": 100000.0,
    }
    fields.update(metrics)
    return Ledger(**fields)


def names(awards) -> set[str]:
    return {a.achievement for a in awards}


class TestAchievementUniqueness:
    """
    **Feature: paper-trading-core, Property 17: Achievement Uniqueness**

    *For any* entry evaluated repeatedly with the same awarded set, each
    achievement is awarded to a user at most once.
    """

    def test_first_trade_awarded_once(self):
        already: set[tuple[str, str]] = set()
        updated, awards = evaluate_achievements(entry(total_trades=1), DEFAULT_ACHIEVEMENTS, already)

        assert "First Trade" in names(awards)
        assert "First Trade" in updated.achievements
        assert ("alice", "First Trade") in already

        again, second = evaluate_achievements(updated, DEFAULT_ACHIEVEMENTS, already)
        assert second == []
        assert again.achievements.count("First Trade") == 1

    def test_awarded_in_another_contest(self):
        already = {("alice", "First Trade")}
        _, awards = evaluate_achievements(entry(total_trades=3), DEFAULT_ACHIEVEMENTS, already)
        assert "First Trade" not in names(awards)

    def test_other_user_not_blocked(self):
        already = {("bob", "First Trade")}
        _, awards = evaluate_achievements(entry(total_trades=1), DEFAULT_ACHIEVEMENTS, already)
        assert "First Trade" in names(awards)

    @given(
        total_trades=st.integers(min_value=0, max_value=100),
        returns=st.floats(min_value=-50, max_value=50),
        win_rate=st.floats(min_value=0, max_value=100),
        rank=st.one_of(st.none(), st.integers(min_value=1, max_value=10)),
    )
    @settings(max_examples=100)
    def test_never_twice(self, total_trades, returns, win_rate, rank):
        already: set[tuple[str, str]] = set()
        e = entry(total_trades=total_trades, total_returns_percent=returns, win_rate=win_rate, rank=rank)
        e, first = evaluate_achievements(e, DEFAULT_ACHIEVEMENTS, already)
        _, second = evaluate_achievements(e, DEFAULT_ACHIEVEMENTS, already)

        assert second == []
        assert len(names(first)) == len(first)
        assert len(e.achievements) == len(set(e.achievements))


class TestCriteria:
    """
    **Feature: paper-trading-core, Property 18: Unlock Criteria**

    *For any* entry, an achievement unlocks exactly when its metric
    satisfies the catalog comparison.
    """

    def test_snapshot_is_recorded(self):
        now = datetime(2026, 3, 1, 12, 0)
        _, awards = evaluate_achievements(
            entry(total_trades=12, total_returns_percent=11.0, win_rate=50.0, rank=2),
            DEFAULT_ACHIEVEMENTS,
            set(),
            now=now,
        )
        award = next(a for a in awards if a.achievement == "Double Digit Returns")
        assert award.earned_at == now
        assert award.contest_id == 7
        assert award.snapshot.returns_percent == 11.0
        assert award.snapshot.rank == 2
        assert award.snapshot.total_trades == 12

    def test_rank_achievements(self):
        _, awards = evaluate_achievements(entry(rank=1), DEFAULT_ACHIEVEMENTS, set())
        assert {"Champion", "Podium Finish"} <= names(awards)

        _, awards = evaluate_achievements(entry(rank=3), DEFAULT_ACHIEVEMENTS, set())
        assert "Podium Finish" in names(awards)
        assert "Champion" not in names(awards)

    def test_unranked_entry_skips_rank_achievements(self):
        _, awards = evaluate_achievements(entry(rank=None), DEFAULT_ACHIEVEMENTS, set())
        assert not {"Champion", "Podium Finish"} & names(awards)

    def test_zero_returns_not_profitable(self):
        _, awards = evaluate_achievements(entry(total_returns_percent=0.0), DEFAULT_ACHIEVEMENTS, set())
        assert "Profitable Trader" not in names(awards)

    def test_options_trades(self):
        _, awards = evaluate_achievements(entry(options_trades=1), DEFAULT_ACHIEVEMENTS, set())
        assert "Options Enthusiast" in names(awards)

    def test_drawdown_needs_trading_history(self):
        _, awards = evaluate_achievements(entry(total_trades=0), DEFAULT_ACHIEVEMENTS, set())
        assert "Risk Manager" not in names(awards)

        _, awards = evaluate_achievements(entry(total_trades=4, max_drawdown=2.0), DEFAULT_ACHIEVEMENTS, set())
        assert "Risk Manager" in names(awards)

        _, awards = evaluate_achievements(entry(total_trades=4, max_drawdown=8.0), DEFAULT_ACHIEVEMENTS, set())
        assert "Risk Manager" not in names(awards)

    def test_unevaluable_criteria(self):
        sharpe = Achievement(
            name="Sharp",
            description="High Sharpe ratio",
            icon="📐",
            category="performance",
            tier="gold",
            criteria=AchievementCriteria(type="sharpe_ratio", value=0, comparison="greater_equal"),
            points=10,
            rarity="rare",
        )
        assert metric_for(entry(), sharpe.criteria) is None
        _, awards = evaluate_achievements(entry(), [sharpe], set())
        assert awards == []

    def test_inactive_achievement_skipped(self):
        inactive = DEFAULT_ACHIEVEMENTS[0].model_copy(update={"is_active": False})
        _, awards = evaluate_achievements(entry(total_trades=5), [inactive], set())
        assert awards == []

    def test_no_awards_returns_same_entry(self):
        e = entry(total_trades=0)
        updated, awards = evaluate_achievements(e, [DEFAULT_ACHIEVEMENTS[0]], set())
        assert awards == []
        assert updated is e

    @pytest.mark.parametrize(
        "value,target,comparison,expected",
        [
            (5, 5, "equals", True),
            (5, 5, "greater_than", False),
            (6, 5, "greater_than", True),
            (5, 5, "greater_equal", True),
            (4, 5, "less_than", True),
            (5, 5, "less_equal", True),
            (6, 5, "less_equal", False),
            (5, 5, "unknown", False),
        ],
    )
    def test_compare(self, value, target, comparison, expected):
        assert compare(value, target, comparison) is expected


class TestDefaultCatalog:
    """Built-in achievement catalog."""

    def test_catalog_names_unique(self):
        catalog_names = [a.name for a in DEFAULT_ACHIEVEMENTS]
        assert len(catalog_names) == len(set(catalog_names))
        assert "First Trade" in catalog_names
        assert len(DEFAULT_ACHIEVEMENTS) == 11
