"""Quote fetches with a bounded timeout."""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from typing import Iterable

from papertrade.exceptions import QuoteUnavailableError
from papertrade.quotes.base import BaseQuoteGateway, Quote

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 5.0
MAX_WORKERS = 8


def fetch_quotes(
    gateway: BaseQuoteGateway,
    symbols: Iterable[str],
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> dict[str, Quote]:
    """Fetch quotes for many symbols concurrently.

    Symbols that fail or do not answer within ``timeout`` seconds are left
    out of the result so callers keep their last-known price.

    Args:
        gateway: Quote source.
        symbols: Symbols to fetch (duplicates are collapsed).
        timeout: Overall deadline for the batch in seconds.

    Returns:
        Mapping of symbol to quote for every symbol that answered.
    """
    unique = sorted({s.upper() for s in symbols})
    if not unique:
        return {}

    executor = ThreadPoolExecutor(max_workers=min(MAX_WORKERS, len(unique)))
    try:
        futures = {executor.submit(gateway.get_quote, symbol): symbol for symbol in unique}
        done, pending = wait(futures, timeout=timeout)

        quotes: dict[str, Quote] = {}
        for future in done:
            symbol = futures[future]
            try:
                quotes[symbol] = future.result()
            except QuoteUnavailableError as e:
                logger.warning("%s", e.message)
            except Exception as e:
                logger.warning("Quote fetch for %s failed: %s", symbol, e)

        for future in pending:
            future.cancel()
            logger.warning("Quote fetch for %s timed out after %.1fs", futures[future], timeout)

        return quotes
    finally:
        executor.shutdown(wait=False)


def fetch_quote(
    gateway: BaseQuoteGateway,
    symbol: str,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
) -> Quote:
    """Fetch one quote, waiting at most ``timeout`` seconds.

    Raises:
        QuoteUnavailableError: If the gateway fails or does not answer in time.
    """
    symbol = symbol.strip().upper()
    executor = ThreadPoolExecutor(max_workers=1)
    try:
        future = executor.submit(gateway.get_quote, symbol)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            future.cancel()
            logger.warning("Quote fetch for %s timed out after %.1fs", symbol, timeout)
            raise QuoteUnavailableError(symbol, f"no answer within {timeout:.1f}s")
        except QuoteUnavailableError:
            raise
        except Exception as e:
            raise QuoteUnavailableError(symbol, str(e)) from e
    finally:
        executor.shutdown(wait=False)


def price_map(quotes: dict[str, Quote]) -> dict[str, float]:
    """Reduce a quote snapshot to symbol -> price."""
    return {symbol: quote.price for symbol, quote in quotes.items()}
