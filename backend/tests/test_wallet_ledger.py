"""
Tests for the wallet ledger.
"""

import asyncio
from decimal import Decimal

import pytest

from papertrade.core.exceptions import InsufficientFunds, InvalidOrder, Unauthorized
from papertrade.db.repositories import WalletRepository
from papertrade.services.unit_of_work import UnitOfWork


TRADE = {"symbol": "AAPL", "quantity": 10, "price": Decimal("150.00")}


class TestWalletCreation:
    """Tests for lazy wallet creation."""
    
    @pytest.mark.asyncio
    async def test_created_with_starting_balance(self, ledger):
        wallet = await ledger.get_or_create_wallet("user-1")
        assert wallet.balance == Decimal("100000.00")
        assert wallet.currency == "USD"
        assert wallet.version == 1
    
    @pytest.mark.asyncio
    async def test_get_balance(self, ledger):
        assert await ledger.get_balance("user-1") == Decimal("100000.00")
    
    @pytest.mark.asyncio
    async def test_second_access_returns_same_wallet(self, ledger):
        first = await ledger.get_or_create_wallet("user-1")
        second = await ledger.get_or_create_wallet("user-1")
        assert first.id == second.id
    
    @pytest.mark.asyncio
    async def test_concurrent_first_access_creates_one_wallet(self, ledger, session_factory):
        wallets = await asyncio.gather(*[ledger.get_or_create_wallet("user-1") for _ in range(5)])
        assert len({w.id for w in wallets}) == 1
        
        async with UnitOfWork(session_factory) as uow:
            assert await WalletRepository(uow.session).count({"user_id": "user-1"}) == 1
    
    @pytest.mark.asyncio
    async def test_missing_user_is_unauthorized(self, ledger):
        with pytest.raises(Unauthorized):
            await ledger.get_or_create_wallet("")
        with pytest.raises(Unauthorized):
            await ledger.get_balance(None)


class TestApplyTransaction:
    """Tests for apply_transaction()."""
    
    @pytest.mark.asyncio
    async def test_buy_debits(self, ledger):
        entry = await ledger.apply_transaction("user-1", "BUY", Decimal("1500.00"), TRADE)
        assert entry.balance_after == Decimal("98500.00")
        assert await ledger.get_balance("user-1") == Decimal("98500.00")
    
    @pytest.mark.asyncio
    async def test_sell_credits(self, ledger):
        await ledger.apply_transaction("user-1", "SELL", Decimal("250.55"), TRADE)
        assert await ledger.get_balance("user-1") == Decimal("100250.55")
    
    @pytest.mark.asyncio
    async def test_insufficient_funds_writes_nothing(self, ledger):
        with pytest.raises(InsufficientFunds) as exc_info:
            await ledger.apply_transaction("user-1", "BUY", Decimal("100000.01"), TRADE)
        
        assert exc_info.value.details["required"] == Decimal("100000.01")
        assert exc_info.value.details["available"] == Decimal("100000.00")
        assert await ledger.get_balance("user-1") == Decimal("100000.00")
        assert await ledger.get_transaction_history("user-1") == []
    
    @pytest.mark.asyncio
    async def test_exact_balance_can_be_spent(self, ledger):
        await ledger.apply_transaction("user-1", "BUY", Decimal("100000.00"), TRADE)
        assert await ledger.get_balance("user-1") == Decimal("0.00")
    
    @pytest.mark.asyncio
    async def test_rejects_unknown_type(self, ledger):
        with pytest.raises(InvalidOrder):
            await ledger.apply_transaction("user-1", "HOLD", Decimal("1"), TRADE)
    
    @pytest.mark.asyncio
    async def test_version_bumps_on_update(self, ledger):
        await ledger.apply_transaction("user-1", "BUY", Decimal("10"), TRADE)
        wallet = await ledger.get_or_create_wallet("user-1")
        assert wallet.version == 2
    
    @pytest.mark.asyncio
    async def test_joined_unit_rolls_back_with_caller(self, ledger, session_factory):
        async with UnitOfWork(session_factory) as uow:
            await ledger.apply_transaction("user-1", "BUY", Decimal("500"), TRADE, uow=uow)
            # caller never commits
        
        assert await ledger.get_balance("user-1") == Decimal("100000.00")
        assert await ledger.get_transaction_history("user-1") == []


class TestTransactionHistory:
    """Tests for get_transaction_history()."""
    
    @pytest.mark.asyncio
    async def test_newest_first_and_limited(self, ledger):
        for amount in ("100", "200", "300"):
            await ledger.apply_transaction("user-1", "BUY", Decimal(amount), TRADE)
        
        history = await ledger.get_transaction_history("user-1", limit=2)
        assert [h.amount for h in history] == [Decimal("300.00"), Decimal("200.00")]
    
    @pytest.mark.asyncio
    async def test_latest_balance_after_matches_balance(self, ledger):
        await ledger.apply_transaction("user-1", "BUY", Decimal("1000"), TRADE)
        await ledger.apply_transaction("user-1", "SELL", Decimal("400"), TRADE)
        
        latest = (await ledger.get_transaction_history("user-1"))[0]
        assert latest.balance_after == await ledger.get_balance("user-1")
    
    @pytest.mark.asyncio
    async def test_records_trade_details(self, ledger):
        await ledger.apply_transaction("user-1", "BUY", Decimal("1500"), TRADE)
        entry = (await ledger.get_transaction_history("user-1"))[0]
        assert entry.type == "BUY"
        assert entry.symbol == "AAPL"
        assert entry.quantity == 10
        assert entry.price == Decimal("150.00")
