"""Property-based tests for watchlist alert evaluation.

**Feature: paper-trading-core**
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from papertrade.engine.alerts import evaluate_alert
from papertrade.models import AlertRule
from papertrade.quotes import Quote


def rule(condition: str, threshold: float) -> AlertRule:
    return AlertRule(symbol="INFY", condition=condition, threshold=threshold)


class TestPriceConditions:
    """
    **Feature: paper-trading-core, Property 19: Price Alert Conditions**

    *For any* threshold and price, ``above`` fires only when the price is
    strictly above the threshold and ``below`` only when strictly below.
    """

    @given(
        threshold=st.floats(min_value=1, max_value=10000),
        price=st.floats(min_value=1, max_value=10000),
    )
    @settings(max_examples=100)
    def test_above(self, threshold: float, price: float):
        result = evaluate_alert(rule("above", threshold), Quote(symbol="INFY", price=price))
        assert result.triggered == (price > threshold)
        assert result.price == price
        assert result.error is None

    @given(
        threshold=st.floats(min_value=1, max_value=10000),
        price=st.floats(min_value=1, max_value=10000),
    )
    @settings(max_examples=100)
    def test_below(self, threshold: float, price: float):
        result = evaluate_alert(rule("below", threshold), Quote(symbol="INFY", price=price))
        assert result.triggered == (price < threshold)

    def test_equal_price_does_not_fire(self):
        quote = Quote(symbol="INFY", price=1500.0)
        assert not evaluate_alert(rule("above", 1500.0), quote).triggered
        assert not evaluate_alert(rule("below", 1500.0), quote).triggered


class TestPercentConditions:
    """
    **Feature: paper-trading-core, Property 20: Percent Move Alerts**

    *For any* quote with a previous close, percent alerts compare the day
    change to the threshold; without a previous close they never fire.
    """

    def test_percent_up(self):
        quote = Quote(symbol="INFY", price=110.0, previous_close=100.0)
        assert evaluate_alert(rule("percent_up", 5.0), quote).triggered
        assert not evaluate_alert(rule("percent_up", 15.0), quote).triggered

    def test_percent_down_uses_magnitude(self):
        quote = Quote(symbol="INFY", price=90.0, previous_close=100.0)
        assert evaluate_alert(rule("percent_down", 5.0), quote).triggered
        assert evaluate_alert(rule("percent_down", -5.0), quote).triggered
        assert not evaluate_alert(rule("percent_down", 15.0), quote).triggered

    def test_rise_does_not_fire_percent_down(self):
        quote = Quote(symbol="INFY", price=110.0, previous_close=100.0)
        assert not evaluate_alert(rule("percent_down", 5.0), quote).triggered

    def test_no_previous_close(self):
        quote = Quote(symbol="INFY", price=200.0)
        assert not evaluate_alert(rule("percent_up", 1.0), quote).triggered
        assert not evaluate_alert(rule("percent_down", 1.0), quote).triggered
