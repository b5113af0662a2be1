"""Quote gateway interface for papertrade."""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Mapping, Optional

from pydantic import BaseModel, Field

from papertrade.exceptions import QuoteUnavailableError


class Quote(BaseModel):
    """Represents a current quote for a symbol."""

    symbol: str = Field(..., description="Trading symbol")
    price: float = Field(..., gt=0, description="Last traded price")
    previous_close: Optional[float] = Field(default=None, gt=0, description="Previous close")
    timestamp: datetime = Field(default_factory=datetime.now, description="Quote time")

    model_config = {"frozen": True}

    @property
    def change(self) -> float:
        return self.price - self.previous_close if self.previous_close else 0.0

    @property
    def change_percent(self) -> float:
        return self.change / self.previous_close * 100 if self.previous_close else 0.0


class BaseQuoteGateway(ABC):
    """Abstract source of live prices.

    Implementations may be slow or fail; callers treat every failure as
    transient and fall back to the last known price where they can.
    """

    @abstractmethod
    def get_quote(self, symbol: str) -> Quote:
        """Get the current quote for a symbol.

        Args:
            symbol: Trading symbol.

        Returns:
            Quote with the current price.

        Raises:
            QuoteUnavailableError: If no usable price can be obtained.
        """
        pass


class StaticQuoteGateway(BaseQuoteGateway):
    """Gateway serving prices from an in-memory mapping."""

    def __init__(
        self,
        prices: Optional[Mapping[str, float]] = None,
        previous_closes: Optional[Mapping[str, float]] = None,
    ):
        self._prices = {k.upper(): v for k, v in (prices or {}).items()}
        self._previous = {k.upper(): v for k, v in (previous_closes or {}).items()}

    def set_price(self, symbol: str, price: float, previous_close: Optional[float] = None) -> None:
        self._prices[symbol.upper()] = price
        if previous_close is not None:
            self._previous[symbol.upper()] = previous_close

    def get_quote(self, symbol: str) -> Quote:
        symbol = symbol.upper()
        price = self._prices.get(symbol)
        if price is None or not price > 0:
            raise QuoteUnavailableError(symbol)
        return Quote(symbol=symbol, price=price, previous_close=self._previous.get(symbol))
