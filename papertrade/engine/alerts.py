"""Watchlist price alert evaluation."""

from papertrade.models import AlertResult, AlertRule
from papertrade.quotes.base import Quote


def evaluate_alert(rule: AlertRule, quote: Quote) -> AlertResult:
    """Check one alert rule against a quote.

    ``above``/``below`` compare the price to the threshold. The percent
    conditions need a previous close; without one they never trigger.
    ``percent_down`` treats its threshold as a magnitude.
    """
    price = quote.price
    triggered = False

    if rule.condition == "above":
        triggered = price > rule.threshold
    elif rule.condition == "below":
        triggered = price < rule.threshold
    elif quote.previous_close:
        change = (price - quote.previous_close) / quote.previous_close * 100
        if rule.condition == "percent_up":
            triggered = change >= rule.threshold
        else:
            triggered = change <= -abs(rule.threshold)

    return AlertResult(
        symbol=rule.symbol,
        condition=rule.condition,
        threshold=rule.threshold,
        price=price,
        triggered=triggered,
    )
