"""
Trading Error Taxonomy
PaperTrade Platform

Typed failures raised by the market, wallet, holdings and settlement
components. Each error carries a stable code, an HTTP-equivalent status,
a retryable flag and the details a caller needs to render a message
without re-querying.
"""

from decimal import Decimal
from typing import Any, Dict, Iterable, Optional


class TradingError(Exception):
    """Base class for all trading failures."""

    code: str = "TRADING_ERROR"
    status_code: int = 400
    retryable: bool = False

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
            "retryable": self.retryable,
        }
        for key, value in self.details.items():
            payload[key] = float(value) if isinstance(value, Decimal) else value
        return payload


class InvalidOrder(TradingError):
    """Malformed quantity, mode or symbol."""
    code = "INVALID_ORDER"

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        super().__init__(message, field=field, value=value)


class UnknownSymbol(TradingError):
    """Symbol not tracked by the price oracle."""
    code = "UNKNOWN_SYMBOL"
    status_code = 404

    def __init__(self, symbol: str, available_symbols: Iterable[str]):
        super().__init__(
            f"Symbol {symbol} not found",
            symbol=symbol,
            available_symbols=list(available_symbols),
        )


class InsufficientFunds(TradingError):
    """Wallet balance does not cover the debit."""
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            f"Insufficient balance: required {required}, available {available}",
            required=required,
            available=available,
        )


class InsufficientPosition(TradingError):
    """Holding does not cover the quantity being sold."""
    code = "INSUFFICIENT_POSITION"

    def __init__(self, symbol: str, requested: int, available: int):
        super().__init__(
            f"Insufficient quantity of {symbol} to sell: requested {requested}, available {available}",
            symbol=symbol,
            requested=requested,
            available=available,
        )


class ConcurrencyConflict(TradingError):
    """Contention on a user's wallet or holding. Safe to retry."""
    code = "CONCURRENCY_CONFLICT"
    status_code = 409
    retryable = True

    def __init__(self, user_id: str, message: Optional[str] = None):
        super().__init__(
            message or "Concurrent update detected, please retry",
            user_id=user_id,
        )


class Busy(ConcurrencyConflict):
    """Settlement lock could not be acquired in time."""
    code = "BUSY"
    status_code = 503

    def __init__(self, user_id: str, timeout: Optional[float] = None):
        super().__init__(user_id, "Another order for this account is in progress, retry shortly")
        if timeout is not None:
            self.details["timeout"] = timeout


class StorageFailure(TradingError):
    """The store could not commit. Details are logged, never returned."""
    code = "STORAGE_FAILURE"
    status_code = 500

    def __init__(self, message: str = "Order could not be processed, please try again later"):
        super().__init__(message)


class Unauthorized(TradingError):
    """No authenticated user id was supplied."""
    code = "UNAUTHORIZED"
    status_code = 401

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message)


def require_user(user_id: Optional[str]) -> str:
    """Fail fast when the caller boundary supplied no user id."""
    if user_id is None or not str(user_id).strip():
        raise Unauthorized()
    return str(user_id)
