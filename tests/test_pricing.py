"""Property-based tests for option pricing, payoffs and mock contracts.

**Feature: paper-trading-core**
"""

import math
import random
from datetime import datetime

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from papertrade.engine.pricing import (
    build_future_contract,
    build_option_chain,
    compute_greeks,
    future_payoff,
    normal_cdf,
    option_payoff,
)
from papertrade.exceptions import InvalidInputError


class TestGreeks:
    """
    **Feature: paper-trading-core, Property 9: Black-Scholes Greeks**

    *For any* valid inputs, Greeks are finite, call delta lies in [0, 1],
    put delta in [-1, 0], and gamma and vega are non-negative.
    """

    def test_at_the_money_call(self):
        greeks = compute_greeks(100, 100, 20, 30, rate=0.06, option_type="CALL")
        assert 0.5 < greeks.delta < 0.6
        assert greeks.gamma > 0
        assert greeks.vega > 0
        assert greeks.theta < 0
        assert greeks.rho > 0

    def test_rounded_precision(self):
        rounded = compute_greeks(100, 100, 20, 30).rounded()
        assert rounded.delta == round(rounded.delta, 2)
        assert rounded.gamma == round(rounded.gamma, 4)
        assert rounded.delta == pytest.approx(0.55, abs=0.01)

    def test_put_call_delta_parity(self):
        call = compute_greeks(100, 105, 25, 45, option_type="CALL")
        put = compute_greeks(100, 105, 25, 45, option_type="PUT")
        assert call.delta - put.delta == pytest.approx(1.0)
        assert call.gamma == pytest.approx(put.gamma)
        assert call.vega == pytest.approx(put.vega)
        assert put.rho < 0

    def test_expiry_day_is_finite(self):
        greeks = compute_greeks(100, 90, 20, 0)
        for value in greeks.model_dump().values():
            assert math.isfinite(value)
        assert greeks.delta == pytest.approx(1.0)

    @pytest.mark.parametrize(
        "args",
        [
            (0, 100, 20, 30),
            (100, 0, 20, 30),
            (100, 100, 0, 30),
            (100, 100, 20, -1),
            (-100, 100, 20, 30),
            (float("nan"), 100, 20, 30),
            (100, float("inf"), 20, 30),
            (100, 100, 20, float("nan")),
        ],
    )
    def test_invalid_inputs(self, args):
        with pytest.raises(InvalidInputError):
            compute_greeks(*args)

    def test_invalid_option_type(self):
        with pytest.raises(InvalidInputError):
            compute_greeks(100, 100, 20, 30, option_type="STRADDLE")

    def test_invalid_input_is_value_error(self):
        with pytest.raises(ValueError):
            compute_greeks(100, 100, -5, 30)

    @given(
        spot=st.floats(min_value=1, max_value=50000),
        strike=st.floats(min_value=1, max_value=50000),
        iv=st.floats(min_value=1, max_value=150),
        days=st.floats(min_value=0, max_value=730),
        option_type=st.sampled_from(["CALL", "PUT"]),
    )
    @settings(max_examples=200)
    def test_greek_bounds(self, spot, strike, iv, days, option_type):
        greeks = compute_greeks(spot, strike, iv, days, option_type=option_type)
        for value in greeks.model_dump().values():
            assert math.isfinite(value)
        if option_type == "CALL":
            assert 0.0 <= greeks.delta <= 1.0
        else:
            assert -1.0 <= greeks.delta <= 0.0
        assert greeks.gamma >= 0
        assert greeks.vega >= 0

    def test_normal_cdf(self):
        assert normal_cdf(0) == pytest.approx(0.5)
        assert normal_cdf(1.96) == pytest.approx(0.975, abs=1e-3)


class TestOptionPayoff:
    """
    **Feature: paper-trading-core, Property 10: Option Payoff Curves**

    *For any* option, the payoff curve spans 60%..140% of strike and a
    written option's payoff is the negation of the bought one.
    """

    def test_long_call(self):
        curve = option_payoff("CALL", 100, 5, side="BUY", lot_size=25)
        points = curve.points()
        by_price = {p.price: p.pnl for p in points}

        assert len(curve) == 41
        assert points[0].price == 60.0
        assert points[-1].price == 140.0
        assert by_price[100.0] == -125.0
        assert by_price[140.0] == 875.0
        assert by_price[60.0] == -125.0

    def test_long_put(self):
        by_price = {p.price: p.pnl for p in option_payoff("PUT", 100, 5, lot_size=25).points()}
        assert by_price[60.0] == (40 - 5) * 25
        assert by_price[140.0] == -125.0

    @given(
        strike=st.integers(min_value=10, max_value=50000),
        premium=st.integers(min_value=0, max_value=1000),
        option_type=st.sampled_from(["CALL", "PUT"]),
    )
    @settings(max_examples=50)
    def test_short_is_negated_long(self, strike, premium, option_type):
        long_points = list(option_payoff(option_type, strike, premium, side="BUY"))
        short_points = list(option_payoff(option_type, strike, premium, side="SELL"))
        assert len(long_points) == len(short_points)
        for long_point, short_point in zip(long_points, short_points):
            assert long_point.price == short_point.price
            assert short_point.pnl == pytest.approx(-long_point.pnl)

    def test_curve_is_restartable(self):
        curve = option_payoff("CALL", 22000, 150)
        assert list(curve) == list(curve)
        assert len(list(curve)) == len(curve)

    def test_prices_ascend(self):
        prices = [p.price for p in option_payoff("CALL", 2500, 40)]
        assert prices == sorted(prices)
        assert prices[0] == pytest.approx(1500.0)

    @pytest.mark.parametrize(
        "args",
        [
            ("CALL", 0, 5),
            ("CALL", 100, -1),
            ("STRADDLE", 100, 5),
        ],
    )
    def test_invalid_inputs(self, args):
        with pytest.raises(InvalidInputError):
            option_payoff(*args)

    def test_invalid_side(self):
        with pytest.raises(InvalidInputError):
            option_payoff("CALL", 100, 5, side="HOLD")


class TestFuturePayoff:
    """
    **Feature: paper-trading-core, Property 11: Futures Payoff**

    *For any* futures entry price, the payoff is linear in price across
    90%..110% of entry, sign-flipped for shorts.
    """

    def test_long_and_short(self):
        long_points = future_payoff(1000, lot_size=25, side="BUY").points()
        short_points = future_payoff(1000, lot_size=25, side="SELL").points()

        assert len(long_points) == 21
        assert long_points[0].price == 900.0
        assert long_points[0].pnl == -2500.0
        assert long_points[-1].price == 1100.0
        assert long_points[-1].pnl == 2500.0
        assert short_points[-1].pnl == -2500.0

    def test_invalid_entry(self):
        with pytest.raises(InvalidInputError):
            future_payoff(0)


class TestMockContracts:
    """
    **Feature: paper-trading-core, Property 12: Simulated Contracts**

    *For any* spot price, the simulated chain is centred on spot with
    ascending strikes, and the futures price carries a 1% basis.
    """

    def test_chain_shape(self):
        now = datetime(2026, 1, 5, 10, 0)
        chain = build_option_chain("nifty", 22000, rng=random.Random(7), now=now)

        strikes = [row.strike for row in chain.rows]
        assert chain.symbol == "NIFTY"
        assert len(chain.rows) == 13
        assert strikes == sorted(strikes)
        assert 22000 in strikes
        assert strikes[1] - strikes[0] == 220
        assert (chain.expiry - now).days == 14

        atm = next(row for row in chain.rows if row.strike == 22000)
        assert atm.call.iv == pytest.approx(18.0)
        assert atm.call.option_type == "CALL"
        assert atm.put.option_type == "PUT"
        for row in chain.rows:
            assert row.call.premium >= 2
            assert row.put.premium >= 2
            assert row.call.lot_size == 25
            assert row.call.iv >= atm.call.iv

    def test_chain_is_reproducible_with_seed(self):
        now = datetime(2026, 1, 5, 10, 0)
        first = build_option_chain("INFY", 1500, rng=random.Random(1), now=now)
        second = build_option_chain("INFY", 1500, rng=random.Random(1), now=now)
        assert first == second

    def test_small_spot_uses_minimum_step(self):
        chain = build_option_chain("PENNY", 100, rng=random.Random(0))
        strikes = [row.strike for row in chain.rows]
        assert strikes[1] - strikes[0] == 5

    def test_future_contract(self):
        contract = build_future_contract("reliance", 1000)
        assert contract.symbol == "RELIANCE"
        assert contract.price == 1010.0
        assert contract.lot_size == 25
        assert contract.margin_percent == 15.0
        assert contract.underlying_price == 1000
