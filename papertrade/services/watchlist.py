"""Watchlists and price alert checks."""

import logging
from datetime import datetime
from typing import Optional

from papertrade.db.store import DataStore
from papertrade.engine.alerts import evaluate_alert
from papertrade.exceptions import ValidationError
from papertrade.models import AlertResult, AlertRule
from papertrade.quotes.base import BaseQuoteGateway
from papertrade.quotes.fetch import fetch_quotes

logger = logging.getLogger(__name__)


class WatchlistService:
    """Watchlist membership plus alert rules evaluated against live quotes."""

    def __init__(self, data_store: DataStore, gateway: BaseQuoteGateway, quote_timeout: float = 5.0):
        self.data_store = data_store
        self.gateway = gateway
        self.quote_timeout = quote_timeout

    def add(self, symbol: str, list_name: str = "default") -> bool:
        """Add a symbol. Returns False if it was already listed."""
        symbol = symbol.strip().upper()
        if not symbol:
            raise ValidationError("Symbol is required")
        if symbol in self.data_store.get_watchlist(list_name):
            return False
        self.data_store.add_to_watchlist(symbol, list_name)
        return True

    def remove(self, symbol: str, list_name: str = "default") -> bool:
        """Remove a symbol. Returns False if it was not listed."""
        symbol = symbol.strip().upper()
        if symbol not in self.data_store.get_watchlist(list_name):
            return False
        self.data_store.remove_from_watchlist(symbol, list_name)
        return True

    def symbols(self, list_name: str = "default") -> list[str]:
        return self.data_store.get_watchlist(list_name)

    def set_alert(self, symbol: str, condition: str, threshold: float, list_name: str = "default") -> AlertRule:
        """Create or replace an alert rule; the symbol joins the watchlist."""
        symbol = symbol.strip().upper()
        if condition in ("above", "below") and not threshold > 0:
            raise ValidationError(f"Price threshold must be positive, got {threshold}")
        rule = AlertRule(list_name=list_name, symbol=symbol, condition=condition, threshold=threshold)
        self.add(symbol, list_name)
        rule_id = self.data_store.save_alert_rule(rule)
        return rule.model_copy(update={"id": rule_id})

    def check_alerts(self, list_name: Optional[str] = None, now: Optional[datetime] = None) -> list[AlertResult]:
        """Evaluate every enabled rule against one quote snapshot.

        A symbol whose quote cannot be fetched yields a result with an
        ``error`` instead of aborting the check.
        """
        rules = [r for r in self.data_store.get_alert_rules(list_name) if r.enabled]
        quotes = fetch_quotes(self.gateway, {r.symbol for r in rules}, timeout=self.quote_timeout)
        now = now or datetime.now()

        results = []
        for rule in rules:
            quote = quotes.get(rule.symbol)
            if quote is None:
                results.append(
                    AlertResult(
                        symbol=rule.symbol,
                        condition=rule.condition,
                        threshold=rule.threshold,
                        error="quote unavailable",
                    )
                )
                continue
            result = evaluate_alert(rule, quote)
            if result.triggered:
                logger.info("Alert %s %s %.2f triggered at %.2f", rule.symbol, rule.condition, rule.threshold, quote.price)
                self.data_store.mark_alert_triggered(rule.id, now)
            results.append(result)
        return results
