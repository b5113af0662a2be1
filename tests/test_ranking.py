"""Property-based tests for contest ranking.

**Feature: paper-trading-core**
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from papertrade.engine.ranking import rank_entries
from papertrade.models import Ledger


def entry(user: str, returns_percent: float, ledger_id: int = 0) -> Ledger:
    return Ledger(
        id=ledger_id,
        user=user,
        contest_id=1,
        initial_balance=100000.0,
        balance=100000.0,
        total_returns_percent=returns_percent,
    )


class TestRankingDeterminism:
    """
    **Feature: paper-trading-core, Property 16: Ranking Determinism**

    *For any* set of entries, ranks are 1..n in order of descending
    returns and ties keep their input order.
    """

    def test_ties_keep_input_order(self):
        ranked = rank_entries([entry("A", 5.0), entry("B", 5.0), entry("C", 10.0)])
        ranks = {e.user: e.rank for e in ranked}
        assert ranks == {"C": 1, "A": 2, "B": 3}
        assert [e.user for e in ranked] == ["C", "A", "B"]

    def test_empty(self):
        assert rank_entries([]) == []

    def test_inputs_not_modified(self):
        entries = [entry("A", 1.0), entry("B", 2.0)]
        rank_entries(entries)
        assert all(e.rank is None for e in entries)

    @given(returns=st.lists(st.integers(min_value=-100, max_value=100).map(float), max_size=30))
    @settings(max_examples=100)
    def test_rank_properties(self, returns):
        entries = [entry(f"user{i}", r, ledger_id=i) for i, r in enumerate(returns)]
        ranked = rank_entries(entries)

        assert [e.rank for e in ranked] == list(range(1, len(entries) + 1))
        values = [e.total_returns_percent for e in ranked]
        assert values == sorted(values, reverse=True)

        # Equal returns keep their original relative order
        for a, b in zip(ranked, ranked[1:]):
            if a.total_returns_percent == b.total_returns_percent:
                assert a.id < b.id

    @given(returns=st.lists(st.integers(min_value=-50, max_value=50).map(float), max_size=20))
    @settings(max_examples=50)
    def test_repeatable(self, returns):
        entries = [entry(f"user{i}", r, ledger_id=i) for i, r in enumerate(returns)]
        assert rank_entries(entries) == rank_entries(entries)
