"""Error hierarchy for papertrade.

Every error raised by the ledger, pricing, ranking and service layers
derives from PaperTradeError and carries a stable ``code`` so callers
(the CLI, tests, any outer API) can branch on the reason without
parsing messages.
"""

from typing import Any, Optional


class PaperTradeError(Exception):
    """Base typed exception for papertrade."""

    code = "INTERNAL_ERROR"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> dict[str, Any]:
        """Serialize the error for display or transport."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(PaperTradeError, ValueError):
    """Bad input shape or range, rejected before any mutation."""

    code = "VALIDATION_ERROR"


class InsufficientFundsError(PaperTradeError):
    """Balance cannot cover the cost or margin of a trade."""

    code = "INSUFFICIENT_FUNDS"


class InsufficientHoldingsError(PaperTradeError):
    """Sell quantity exceeds what the ledger holds."""

    code = "INSUFFICIENT_HOLDINGS"


class QuoteUnavailableError(PaperTradeError):
    """Transient failure fetching a quote."""

    code = "QUOTE_UNAVAILABLE"

    def __init__(self, symbol: str, reason: str = "no quote available"):
        super().__init__(f"Quote unavailable for {symbol}: {reason}", details={"symbol": symbol})
        self.symbol = symbol


class ConfigurationError(PaperTradeError):
    """Invariant violation in setup, e.g. a non-positive initial balance."""

    code = "CONFIGURATION_ERROR"


class InvalidInputError(PaperTradeError, ValueError):
    """Degenerate numeric input to a pricing formula."""

    code = "INVALID_INPUT"


class NotFoundError(PaperTradeError):
    """A ledger, contest or position does not exist."""

    code = "NOT_FOUND"


class ContestError(PaperTradeError):
    """Contest rule rejection (closed, full, already joined)."""

    code = "CONTEST_RULE"


class StaleLedgerError(PaperTradeError):
    """A ledger was modified by another writer since it was loaded."""

    code = "STALE_LEDGER"

    def __init__(self, ledger_id: int, expected_version: int):
        super().__init__(
            f"Ledger {ledger_id} changed since version {expected_version}",
            details={"ledger_id": ledger_id, "expected_version": expected_version},
        )
        self.ledger_id = ledger_id
        self.expected_version = expected_version
