"""
Tests for the trading error taxonomy.
"""

from decimal import Decimal

import pytest

from papertrade.core.exceptions import (
    Busy,
    ConcurrencyConflict,
    InsufficientFunds,
    StorageFailure,
    TradingError,
    Unauthorized,
    UnknownSymbol,
    require_user,
)


class TestTradingErrors:
    """Tests for error codes, statuses and payloads."""
    
    def test_insufficient_funds_payload(self):
        error = InsufficientFunds(required=Decimal("1500.00"), available=Decimal("200.50"))
        assert error.to_dict() == {
            "error": "INSUFFICIENT_FUNDS",
            "message": error.message,
            "retryable": False,
            "required": 1500.0,
            "available": 200.5,
        }
        assert error.status_code == 400
    
    def test_unknown_symbol(self):
        error = UnknownSymbol("NOPE", ["INFY", "TCS"])
        assert error.status_code == 404
        assert error.details["available_symbols"] == ["INFY", "TCS"]
    
    def test_busy_is_retryable_conflict(self):
        error = Busy("user-1", 5.0)
        assert isinstance(error, ConcurrencyConflict)
        assert error.retryable is True
        assert error.status_code == 503
        assert error.to_dict()["timeout"] == 5.0
    
    def test_storage_failure_is_generic(self):
        error = StorageFailure()
        assert error.status_code == 500
        assert set(error.to_dict()) == {"error", "message", "retryable"}
    
    def test_all_are_trading_errors(self):
        for error in (StorageFailure(), Unauthorized(), ConcurrencyConflict("u")):
            assert isinstance(error, TradingError)


class TestRequireUser:
    """Tests for require_user()."""
    
    def test_passes_through(self):
        assert require_user("user-1") == "user-1"
    
    @pytest.mark.parametrize("user_id", [None, "", "   "])
    def test_rejects_missing(self, user_id):
        with pytest.raises(Unauthorized):
            require_user(user_id)
