"""Quote gateway backed by prices recorded in the data store."""

from datetime import datetime, timedelta
from typing import Optional

from papertrade.db.store import DataStore
from papertrade.exceptions import QuoteUnavailableError
from papertrade.quotes.base import BaseQuoteGateway, Quote


class StoreQuoteGateway(BaseQuoteGateway):
    """Serve the last price recorded for each symbol.

    Prices are written with ``DataStore.save_quote`` (the ``quote`` CLI
    command, or a feed process). A price older than ``max_age_hours`` is
    treated as unavailable so that stale data never masquerades as live.
    """

    def __init__(self, data_store: DataStore, max_age_hours: Optional[float] = 24.0):
        self._data_store = data_store
        self._max_age = timedelta(hours=max_age_hours) if max_age_hours else None

    def get_quote(self, symbol: str) -> Quote:
        symbol = symbol.upper()
        quote = self._data_store.get_quote(symbol)
        if quote is None:
            raise QuoteUnavailableError(symbol)
        if self._max_age is not None and datetime.now() - quote.timestamp > self._max_age:
            raise QuoteUnavailableError(symbol, f"last price from {quote.timestamp:%Y-%m-%d %H:%M} is stale")
        return quote
