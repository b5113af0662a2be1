"""Quote gateways for papertrade."""

from papertrade.quotes.base import BaseQuoteGateway, Quote, StaticQuoteGateway
from papertrade.quotes.fetch import fetch_quote, fetch_quotes, price_map

__all__ = [
    "BaseQuoteGateway",
    "Quote",
    "StaticQuoteGateway",
    "fetch_quote",
    "fetch_quotes",
    "price_map",
]
