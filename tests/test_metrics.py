"""Property-based tests for metrics recomputation.

**Feature: paper-trading-core**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from papertrade.engine.ledger import build_position, execute_trade
from papertrade.engine.metrics import recompute_metrics
from papertrade.exceptions import ConfigurationError
from papertrade.models import Ledger, TradeRequest


def holding_ledger(balance: float = 99000.0, initial: float = 100000.0, **positions) -> Ledger:
    """Ledger holding ``symbol=(quantity, average_price)`` positions."""
    return Ledger(
        id=1,
        user="alice",
        initial_balance=initial,
        balance=balance,
        positions=[build_position(s, q, avg, avg) for s, (q, avg) in positions.items()],
    )


class TestRecomputeValues:
    """
    **Feature: paper-trading-core, Property 5: Mark-to-Market Totals**

    *For any* ledger and quote set, total_value equals balance plus the
    sum of position values and returns are measured against the initial
    balance.
    """

    def test_marks_positions(self):
        ledger = recompute_metrics(holding_ledger(RELIANCE=(10, 100.0)), {"RELIANCE": 110.0})

        position = ledger.get_position("RELIANCE")
        assert position.current_price == 110.0
        assert position.current_value == 1100.0
        assert position.profit_loss == 100.0
        assert ledger.portfolio_value == 1100.0
        assert ledger.total_value == 100100.0
        assert ledger.total_returns == 100.0
        assert ledger.total_returns_percent == pytest.approx(0.1)

    def test_missing_quote_keeps_last_price(self):
        ledger = recompute_metrics(holding_ledger(RELIANCE=(10, 100.0)), {})
        assert ledger.get_position("RELIANCE").current_price == 100.0
        assert ledger.total_value == 100000.0

    @pytest.mark.parametrize("bad_quote", [0.0, -1.0, None])
    def test_unusable_quote_keeps_last_price(self, bad_quote):
        ledger = recompute_metrics(holding_ledger(RELIANCE=(10, 100.0)), {"RELIANCE": bad_quote})
        assert ledger.get_position("RELIANCE").current_price == 100.0

    def test_non_positive_initial_balance(self):
        ledger = Ledger(user="alice", initial_balance=0.0, balance=0.0)
        with pytest.raises(ConfigurationError):
            recompute_metrics(ledger, {})

    @given(
        quantity=st.integers(min_value=1, max_value=1000),
        avg=st.integers(min_value=1, max_value=10000),
        quote=st.integers(min_value=1, max_value=10000),
        balance=st.integers(min_value=0, max_value=1_000_000),
    )
    @settings(max_examples=100)
    def test_total_value_identity(self, quantity: int, avg: int, quote: int, balance: int):
        ledger = holding_ledger(balance=float(balance), INFY=(quantity, float(avg)))
        ledger = recompute_metrics(ledger, {"INFY": float(quote)})

        assert ledger.total_value == pytest.approx(ledger.balance + ledger.portfolio_value)
        assert ledger.total_returns == pytest.approx(ledger.total_value - ledger.initial_balance)
        assert ledger.get_position("INFY").invested_amount == quantity * float(avg)


class TestRecomputeIdempotence:
    """
    **Feature: paper-trading-core, Property 6: Recompute Idempotence**

    *For any* ledger and fixed quotes, recomputing twice yields the same
    metrics as recomputing once.
    """

    @given(
        quotes=st.fixed_dictionaries(
            {
                "RELIANCE": st.integers(min_value=1, max_value=5000).map(float),
                "INFY": st.integers(min_value=1, max_value=5000).map(float),
            }
        )
    )
    @settings(max_examples=50)
    def test_idempotent(self, quotes: dict):
        ledger = holding_ledger(balance=50000.0, RELIANCE=(10, 2500.0), INFY=(20, 1500.0))
        once = recompute_metrics(ledger, quotes)
        twice = recompute_metrics(once, quotes)
        assert once == twice


class TestTradeStatistics:
    """
    **Feature: paper-trading-core, Property 7: Trade Statistics**

    *For any* trade history, total_trades counts every transaction and
    win_rate is the share of SELL transactions.
    """

    def test_win_rate_counts_sells(self):
        ledger = Ledger(user="alice", initial_balance=10000.0, balance=10000.0)
        ledger = execute_trade(ledger, TradeRequest(symbol="TCS", side="BUY", quantity=10, price=100.0))
        # A losing sell still counts as profitable
        ledger = execute_trade(ledger, TradeRequest(symbol="TCS", side="SELL", quantity=5, price=50.0))
        ledger = recompute_metrics(ledger, {"TCS": 50.0})

        assert ledger.total_trades == 2
        assert ledger.profitable_trades == 1
        assert ledger.win_rate == 50.0

    def test_no_trades(self):
        ledger = recompute_metrics(Ledger(user="alice", initial_balance=100.0, balance=100.0), {})
        assert ledger.total_trades == 0
        assert ledger.win_rate == 0.0
        assert ledger.total_value == 100.0


class TestDrawdown:
    """
    **Feature: paper-trading-core, Property 8: Peak and Drawdown Tracking**

    *For any* series of valuations, peak_value is the highest total value
    seen and max_drawdown the largest percentage drop from a peak.
    """

    def test_running_drawdown(self):
        ledger = holding_ledger(balance=0.0, initial=1000.0, INFY=(10, 100.0))

        ledger = recompute_metrics(ledger, {"INFY": 120.0})
        assert ledger.peak_value == 1200.0
        assert ledger.max_drawdown == 0.0

        ledger = recompute_metrics(ledger, {"INFY": 90.0})
        assert ledger.peak_value == 1200.0
        assert ledger.max_drawdown == pytest.approx(25.0)

        ledger = recompute_metrics(ledger, {"INFY": 150.0})
        assert ledger.peak_value == 1500.0
        assert ledger.max_drawdown == pytest.approx(25.0)

    @given(prices=st.lists(st.integers(min_value=1, max_value=1000).map(float), min_size=1, max_size=20))
    @settings(max_examples=50)
    def test_drawdown_bounds(self, prices):
        ledger = holding_ledger(balance=0.0, initial=1000.0, INFY=(10, 100.0))
        previous = 0.0
        for price in prices:
            ledger = recompute_metrics(ledger, {"INFY": price})
            assert 0.0 <= ledger.max_drawdown <= 100.0
            assert ledger.max_drawdown >= previous
            assert ledger.peak_value >= ledger.total_value
            previous = ledger.max_drawdown
