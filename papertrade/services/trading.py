"""Trading service: orchestrates quotes, the ledger engine and the store.

Each operation loads the ledger under its lock, applies a pure engine
function, recomputes metrics, evaluates achievements and persists the
result with a version check.
"""

import logging
import sqlite3
from typing import Iterable, Literal, Optional

from papertrade.config import TradingSettings
from papertrade.db.store import DataStore
from papertrade.engine.achievements import DEFAULT_ACHIEVEMENTS, evaluate_achievements
from papertrade.engine.derivatives import (
    Contract,
    close_derivative,
    mark_derivatives,
    open_derivative,
)
from papertrade.engine.ledger import execute_trade
from papertrade.engine.metrics import recompute_metrics
from papertrade.engine.pricing import build_future_contract
from papertrade.exceptions import NotFoundError, ValidationError
from papertrade.models import (
    Achievement,
    AchievementAward,
    DerivativePosition,
    Ledger,
    TradeRequest,
)
from papertrade.quotes.base import BaseQuoteGateway
from papertrade.quotes.fetch import fetch_quote, fetch_quotes, price_map
from papertrade.services.locks import LedgerLocks

logger = logging.getLogger(__name__)


def _last_prices(ledger: Ledger) -> dict[str, float]:
    return {p.symbol: p.current_price for p in ledger.positions}


class TradingService:
    """Trade execution for standing portfolios and contest entries."""

    def __init__(
        self,
        data_store: DataStore,
        gateway: BaseQuoteGateway,
        settings: Optional[TradingSettings] = None,
        locks: Optional[LedgerLocks] = None,
    ):
        self.data_store = data_store
        self.gateway = gateway
        self.settings = settings or TradingSettings()
        self.locks = locks or LedgerLocks()

    # ==================== Ledgers ====================

    def get_or_create_portfolio(self, user: str) -> Ledger:
        """Get the user's standing portfolio, creating it on first use."""
        ledger = self.data_store.find_ledger(user)
        if ledger is not None:
            return ledger

        balance = self.settings.starting_balance
        try:
            ledger = self.data_store.create_ledger(
                Ledger(user=user, initial_balance=balance, balance=balance,
                       total_value=balance, peak_value=balance)
            )
            logger.info("Created portfolio for %s with balance %.2f", user, balance)
            return ledger
        except sqlite3.IntegrityError:
            # Created concurrently by another writer
            return self.data_store.find_ledger(user)

    def get_ledger(self, ledger_id: int) -> Ledger:
        ledger = self.data_store.get_ledger(ledger_id)
        if ledger is None:
            raise NotFoundError(f"Ledger {ledger_id} not found", details={"ledger_id": ledger_id})
        return ledger

    # ==================== Quotes ====================

    def resolve_price(self, symbol: str, price: Optional[float] = None) -> float:
        """Use the given price, or fetch a live quote.

        The fetch waits at most ``quote_timeout_seconds``.

        Raises:
            QuoteUnavailableError: If no price was given and the gateway has
                none or does not answer in time.
        """
        if price is not None:
            return price
        return fetch_quote(self.gateway, symbol, timeout=self.settings.quote_timeout_seconds).price

    def quote_snapshot(self, symbols: Iterable[str]) -> dict[str, float]:
        """Fetch one price snapshot; symbols that fail are left out."""
        return price_map(fetch_quotes(self.gateway, symbols, timeout=self.settings.quote_timeout_seconds))

    # ==================== Achievements ====================

    def catalog(self) -> list[Achievement]:
        """Active achievement catalog (the built-in one if none is stored)."""
        return self.data_store.get_achievements() or list(DEFAULT_ACHIEVEMENTS)

    def apply_achievements(
        self,
        ledger: Ledger,
        catalog: Optional[list[Achievement]] = None,
        already_awarded: Optional[set[tuple[str, str]]] = None,
    ) -> tuple[Ledger, list[AchievementAward]]:
        if catalog is None:
            catalog = self.catalog()
        if already_awarded is None:
            already_awarded = self.data_store.get_awarded_pairs([ledger.user])
        return evaluate_achievements(ledger, catalog, already_awarded)

    def record_awards(self, awards: list[AchievementAward]) -> list[AchievementAward]:
        return [award for award in awards if self.data_store.award_achievement(award)]

    def _persist(self, ledger: Ledger) -> Ledger:
        # contest_rank is only evaluated by leaderboard passes
        catalog = [a for a in self.catalog() if a.criteria.type != "contest_rank"]
        ledger, awards = self.apply_achievements(ledger, catalog)
        saved = self.data_store.save_ledger(ledger)
        self.record_awards(awards)
        return saved

    # ==================== Equity ====================

    def trade_ledger(
        self,
        ledger_id: int,
        symbol: str,
        side: Literal["BUY", "SELL"],
        quantity: int,
        price: Optional[float] = None,
    ) -> Ledger:
        """Execute an equity trade in a specific ledger.

        Args:
            ledger_id: Ledger to trade in.
            symbol: Trading symbol.
            side: BUY or SELL.
            quantity: Number of shares.
            price: Execution price; None uses the live quote.

        Returns:
            The persisted ledger.

        Raises:
            QuoteUnavailableError: If no price was given and none can be fetched.
            ValidationError, InsufficientFundsError, InsufficientHoldingsError:
                If the trade is rejected. Nothing is persisted.
        """
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValidationError("Symbol is required")
        price = self.resolve_price(symbol, price)
        request = TradeRequest(symbol=symbol, side=side, quantity=quantity, price=price)

        with self.locks.hold(ledger_id):
            ledger = self.get_ledger(ledger_id)
            updated = execute_trade(ledger, request)
            updated = recompute_metrics(updated, {**_last_prices(ledger), symbol: price})
            return self._persist(updated)

    def trade(
        self,
        user: str,
        symbol: str,
        side: Literal["BUY", "SELL"],
        quantity: int,
        price: Optional[float] = None,
    ) -> Ledger:
        """Execute an equity trade in the user's standing portfolio."""
        portfolio = self.get_or_create_portfolio(user)
        return self.trade_ledger(portfolio.id, symbol, side, quantity, price)

    # ==================== Derivatives ====================

    def open_position(
        self,
        ledger_id: int,
        contract: Contract,
        side: Literal["BUY", "SELL"],
        quantity: int = 1,
    ) -> tuple[Ledger, DerivativePosition]:
        """Open an option or future position in a ledger."""
        with self.locks.hold(ledger_id):
            ledger = self.get_ledger(ledger_id)
            updated, position = open_derivative(ledger, contract, side, quantity)
            updated = recompute_metrics(updated, _last_prices(ledger))
            return self._persist(updated), position

    def close_position(
        self,
        ledger_id: int,
        position_id: str,
        exit_price: Optional[float] = None,
    ) -> Ledger:
        """Close a derivative position.

        Futures default to the current futures price (spot plus basis).
        Options need an explicit exit premium. The spot quote is fetched
        before the ledger lock is taken.
        """
        spot = None
        if exit_price is None:
            position = self._find_derivative(self.get_ledger(ledger_id), position_id)
            if position.kind == "OPTION":
                raise ValidationError("Exit premium is required to close an option")
            spot = self.resolve_price(position.symbol)

        with self.locks.hold(ledger_id):
            ledger = self.get_ledger(ledger_id)
            position = self._find_derivative(ledger, position_id)
            if exit_price is None:
                exit_price = self._future_mark(position.symbol, spot)
            updated = close_derivative(ledger, position_id, exit_price)
            updated = recompute_metrics(updated, _last_prices(ledger))
            return self._persist(updated)

    @staticmethod
    def _find_derivative(ledger: Ledger, position_id: str) -> DerivativePosition:
        position = ledger.get_derivative(position_id)
        if position is None:
            raise NotFoundError(
                f"Derivative position {position_id} not found",
                details={"position_id": position_id},
            )
        return position

    def _future_mark(self, symbol: str, spot: float) -> float:
        return build_future_contract(
            symbol, spot,
            lot_size=self.settings.lot_size,
            margin_percent=self.settings.futures_margin_percent,
        ).price

    def _derivative_marks(self, ledger: Ledger, quotes: dict[str, float]) -> dict[str, float]:
        marks = {}
        for position in ledger.open_derivatives():
            spot = quotes.get(position.symbol)
            if position.kind == "FUTURE" and spot:
                marks[position.id] = self._future_mark(position.symbol, spot)
        return marks

    # ==================== Valuation ====================

    def revalue(self, ledger_id: int) -> Ledger:
        """Mark a ledger to market with fresh quotes and persist it."""
        ledger = self.get_ledger(ledger_id)
        symbols = {p.symbol for p in ledger.positions} | {d.symbol for d in ledger.open_derivatives()}
        quotes = self.quote_snapshot(symbols)

        with self.locks.hold(ledger_id):
            ledger = self.get_ledger(ledger_id)
            updated = mark_derivatives(ledger, self._derivative_marks(ledger, quotes))
            updated = recompute_metrics(updated, quotes)
            return self._persist(updated)
