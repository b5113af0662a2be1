"""Property-based tests for equity trade execution.

**Feature: paper-trading-core**
"""

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from papertrade.engine.ledger import build_position, execute_trade
from papertrade.exceptions import (
    InsufficientFundsError,
    InsufficientHoldingsError,
    ValidationError,
)
from papertrade.models import Ledger, TradeRequest


def make_ledger(balance: float = 100000.0) -> Ledger:
    return Ledger(id=1, user="alice", initial_balance=balance, balance=balance)


def buy(symbol: str, quantity: int, price: float) -> TradeRequest:
    return TradeRequest(symbol=symbol, side="BUY", quantity=quantity, price=price)


def sell(symbol: str, quantity: int, price: float) -> TradeRequest:
    return TradeRequest(symbol=symbol, side="SELL", quantity=quantity, price=price)


class TestWeightedAverageCost:
    """
    **Feature: paper-trading-core, Property 1: Weighted Average Cost**

    *For any* two buys of the same symbol, the resulting average price is
    the quantity-weighted mean of the two prices.
    """

    def test_two_buys_average(self):
        ledger = execute_trade(make_ledger(), buy("RELIANCE", 10, 100.0))
        ledger = execute_trade(ledger, buy("RELIANCE", 10, 200.0))

        position = ledger.get_position("RELIANCE")
        assert position.quantity == 20
        assert position.average_price == 150.0
        assert position.invested_amount == 3000.0
        assert ledger.balance == 100000.0 - 3000.0

    @given(
        q1=st.integers(min_value=1, max_value=500),
        p1=st.integers(min_value=1, max_value=5000),
        q2=st.integers(min_value=1, max_value=500),
        p2=st.integers(min_value=1, max_value=5000),
    )
    @settings(max_examples=100)
    def test_average_between_prices(self, q1: int, p1: int, q2: int, p2: int):
        """
        *For any* two buys, the average lies between the two prices.
        """
        ledger = make_ledger(balance=10_000_000.0)
        ledger = execute_trade(ledger, buy("INFY", q1, float(p1)))
        ledger = execute_trade(ledger, buy("INFY", q2, float(p2)))

        position = ledger.get_position("INFY")
        assert position.quantity == q1 + q2
        assert min(p1, p2) - 1e-9 <= position.average_price <= max(p1, p2) + 1e-9
        assert position.average_price == pytest.approx((q1 * p1 + q2 * p2) / (q1 + q2))


class TestRoundTrip:
    """
    **Feature: paper-trading-core, Property 2: Buy/Sell Round Trip**

    *For any* buy followed by a sell of the full quantity, the position is
    removed and the balance reflects both cash flows.
    """

    def test_buy_then_sell_all(self):
        ledger = execute_trade(make_ledger(), buy("TCS", 10, 100.0))
        ledger = execute_trade(ledger, sell("TCS", 10, 120.0))

        assert ledger.get_position("TCS") is None
        assert ledger.balance == 100000.0 - 1000.0 + 1200.0
        assert [t.type for t in ledger.transactions] == ["BUY", "SELL"]
        assert ledger.transactions[-1].realized_pnl == 200.0

    def test_partial_sell_keeps_average(self):
        ledger = execute_trade(make_ledger(), buy("TCS", 10, 100.0))
        ledger = execute_trade(ledger, sell("TCS", 4, 130.0))

        position = ledger.get_position("TCS")
        assert position.quantity == 6
        assert position.average_price == 100.0
        assert position.invested_amount == 600.0
        assert position.current_price == 130.0
        assert ledger.transactions[-1].realized_pnl == 120.0

    def test_symbol_is_normalised(self):
        ledger = execute_trade(make_ledger(), buy("  reliance ", 1, 10.0))
        assert ledger.get_position("RELIANCE") is not None
        assert ledger.transactions[0].symbol == "RELIANCE"


class TestRejections:
    """
    **Feature: paper-trading-core, Property 3: Rejected Trades Leave State Unchanged**

    *For any* trade that is rejected, the ledger keeps its balance,
    holdings and transaction log.
    """

    def test_insufficient_funds(self):
        ledger = make_ledger(balance=500.0)
        with pytest.raises(InsufficientFundsError) as exc_info:
            execute_trade(ledger, buy("RELIANCE", 10, 100.0))

        assert exc_info.value.code == "INSUFFICIENT_FUNDS"
        assert exc_info.value.details["required"] == 1000.0
        assert ledger.balance == 500.0
        assert ledger.positions == []
        assert ledger.transactions == []

    def test_exact_balance_is_allowed(self):
        ledger = execute_trade(make_ledger(balance=1000.0), buy("RELIANCE", 10, 100.0))
        assert ledger.balance == 0.0

    def test_sell_without_position(self):
        with pytest.raises(InsufficientHoldingsError):
            execute_trade(make_ledger(), sell("RELIANCE", 1, 100.0))

    def test_sell_more_than_held(self):
        ledger = execute_trade(make_ledger(), buy("RELIANCE", 5, 100.0))
        with pytest.raises(InsufficientHoldingsError):
            execute_trade(ledger, sell("RELIANCE", 6, 100.0))
        assert ledger.get_position("RELIANCE").quantity == 5

    @pytest.mark.parametrize(
        "request_kwargs",
        [
            {"symbol": "", "quantity": 1, "price": 10.0},
            {"symbol": "   ", "quantity": 1, "price": 10.0},
            {"symbol": "INFY", "quantity": 0, "price": 10.0},
            {"symbol": "INFY", "quantity": -3, "price": 10.0},
            {"symbol": "INFY", "quantity": 1, "price": None},
            {"symbol": "INFY", "quantity": 1, "price": 0.0},
            {"symbol": "INFY", "quantity": 1, "price": -5.0},
        ],
    )
    def test_invalid_requests(self, request_kwargs: dict):
        ledger = make_ledger()
        with pytest.raises(ValidationError):
            execute_trade(ledger, TradeRequest(side="BUY", **request_kwargs))
        assert ledger.balance == 100000.0

    def test_validation_error_is_value_error(self):
        with pytest.raises(ValueError):
            execute_trade(make_ledger(), buy("INFY", 0, 10.0))


trade_steps = st.lists(
    st.tuples(
        st.sampled_from(["BUY", "SELL"]),
        st.sampled_from(["RELIANCE", "INFY", "TCS"]),
        st.integers(min_value=1, max_value=50),
        st.integers(min_value=1, max_value=100000).map(lambda cents: cents / 100),
    ),
    min_size=1,
    max_size=30,
)


class TestLedgerInvariants:
    """
    **Feature: paper-trading-core, Property 4: Ledger Invariants**

    *For any* sequence of trades, the balance never goes negative and every
    position satisfies invested_amount == quantity * average_price.
    """

    @given(steps=trade_steps, start=st.integers(min_value=0, max_value=50000))
    @settings(max_examples=100)
    def test_invariants_hold(self, steps, start: int):
        ledger = make_ledger(balance=float(start))
        for side, symbol, quantity, price in steps:
            before = ledger
            try:
                ledger = execute_trade(
                    ledger, TradeRequest(symbol=symbol, side=side, quantity=quantity, price=price)
                )
            except (InsufficientFundsError, InsufficientHoldingsError):
                assert ledger is before
                continue

            assert ledger.balance >= 0
            symbols = [p.symbol for p in ledger.positions]
            assert len(symbols) == len(set(symbols))
            for position in ledger.positions:
                assert position.quantity > 0
                assert position.invested_amount == position.quantity * position.average_price

    @given(steps=trade_steps)
    @settings(max_examples=50)
    def test_transaction_log_is_append_only(self, steps):
        ledger = make_ledger(balance=1_000_000.0)
        for side, symbol, quantity, price in steps:
            previous = list(ledger.transactions)
            try:
                ledger = execute_trade(
                    ledger, TradeRequest(symbol=symbol, side=side, quantity=quantity, price=price)
                )
            except InsufficientHoldingsError:
                continue
            assert ledger.transactions[: len(previous)] == previous
            assert len(ledger.transactions) == len(previous) + 1


class TestBuildPosition:
    """Derived position fields."""

    def test_profit_loss(self):
        position = build_position("INFY", 10, 100.0, 110.0)
        assert position.invested_amount == 1000.0
        assert position.current_value == 1100.0
        assert position.profit_loss == 100.0
        assert position.profit_loss_percent == pytest.approx(10.0)
