"""Valuation and settlement engine for papertrade."""

from papertrade.engine.achievements import DEFAULT_ACHIEVEMENTS, evaluate_achievements
from papertrade.engine.alerts import evaluate_alert
from papertrade.engine.derivatives import close_derivative, mark_derivatives, open_derivative
from papertrade.engine.ledger import execute_trade
from papertrade.engine.metrics import recompute_metrics
from papertrade.engine.pricing import (
    build_future_contract,
    build_option_chain,
    compute_greeks,
    future_payoff,
    option_payoff,
)
from papertrade.engine.ranking import rank_entries

__all__ = [
    "DEFAULT_ACHIEVEMENTS",
    "build_future_contract",
    "build_option_chain",
    "close_derivative",
    "compute_greeks",
    "evaluate_achievements",
    "evaluate_alert",
    "execute_trade",
    "future_payoff",
    "mark_derivatives",
    "open_derivative",
    "option_payoff",
    "rank_entries",
    "recompute_metrics",
]
