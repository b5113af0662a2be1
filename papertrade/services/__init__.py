"""Service layer: ledgers, contests and watchlists on top of the engine and store."""

from papertrade.services.contests import ContestService
from papertrade.services.locks import LedgerLocks
from papertrade.services.trading import TradingService
from papertrade.services.watchlist import WatchlistService

__all__ = [
    "ContestService",
    "LedgerLocks",
    "TradingService",
    "WatchlistService",
]
