"""
Trading Error Taxonomy
PaperTrade Virtual Trading Platform

Every error raised by the order evaluation and settlement core derives
from TradingError. Each class carries the HTTP status and machine-readable
code used by the API error envelope:

    {"success": false, "error": {"message": ..., "code": ...}}

Validation errors are raised before a settlement transaction begins;
everything else aborts the enclosing transaction.
"""

from typing import Any, Dict, Optional


class TradingError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500
    code: str = "trading_error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        error: Dict[str, Any] = {"message": self.message, "code": self.code}
        if self.details:
            error["details"] = self.details
        return error


class ValidationError(TradingError):
    """Malformed or missing request fields."""
    status_code = 400
    code = "validation_error"


class InvalidOrderError(ValidationError):
    """Order request failed validation."""
    code = "invalid_order"


class SymbolNotFoundError(TradingError):
    status_code = 400
    code = "symbol_not_found"

    def __init__(self, symbol: str):
        super().__init__("Symbol not found or not supported", {"symbol": symbol})
        self.symbol = symbol


class QuoteUnavailableError(TradingError):
    """The quote feed could not be reached."""
    status_code = 503
    code = "quote_unavailable"


class InsufficientBalanceError(TradingError):
    status_code = 400
    code = "insufficient_balance"


class InsufficientHoldingsError(TradingError):
    status_code = 400
    code = "insufficient_holdings"


class AccountNotFoundError(TradingError):
    status_code = 404
    code = "wallet_not_found"

    def __init__(self, user_id: str):
        super().__init__("Wallet not found", {"user_id": user_id})


class AccountExistsError(TradingError):
    status_code = 409
    code = "wallet_exists"

    def __init__(self, user_id: str):
        super().__init__("Wallet already exists", {"user_id": user_id})


class OrderNotFoundError(TradingError):
    status_code = 404
    code = "order_not_found"


class InvalidStateError(TradingError):
    """Order is not in the status required by the requested transition."""
    status_code = 404
    code = "invalid_state"


class TransactionAbortError(TradingError):
    """The atomic commit failed, e.g. on a concurrent write conflict."""
    status_code = 500
    code = "transaction_aborted"
