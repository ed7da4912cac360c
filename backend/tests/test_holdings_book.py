"""
Tests for the holdings book.
"""

from decimal import Decimal

import pytest

from papertrade.core.exceptions import InsufficientPosition
from papertrade.services.holdings_book import HoldingSnapshot, weighted_average


class TestWeightedAverage:
    """Tests for the average-cost formula."""
    
    def test_two_lots(self):
        avg = weighted_average(10, Decimal("150"), 5, Decimal("120"))
        assert avg == Decimal("140.0000")
    
    def test_rounds_to_four_places(self):
        avg = weighted_average(3, Decimal("10"), 4, Decimal("11"))
        assert avg == Decimal("10.5714")


class TestApplyBuy:
    """Tests for apply_buy()."""
    
    @pytest.mark.asyncio
    async def test_first_buy_creates_holding(self, holdings):
        snapshot = await holdings.apply_buy("user-1", "aapl", 10, Decimal("150.00"))
        assert snapshot == HoldingSnapshot("AAPL", 10, Decimal("150.0000"), Decimal("150.00"))
    
    @pytest.mark.asyncio
    async def test_second_buy_reaverages(self, holdings):
        await holdings.apply_buy("user-1", "AAPL", 10, Decimal("150.00"))
        snapshot = await holdings.apply_buy("user-1", "AAPL", 10, Decimal("160.00"))
        
        assert snapshot.qty == 20
        assert snapshot.avg_cost == Decimal("155.0000")
        assert snapshot.last_price == Decimal("160.00")
    
    @pytest.mark.asyncio
    async def test_holdings_are_per_user(self, holdings):
        await holdings.apply_buy("user-1", "AAPL", 10, Decimal("150.00"))
        assert await holdings.get_holding("user-2", "AAPL") is None


class TestApplySell:
    """Tests for apply_sell()."""
    
    @pytest.mark.asyncio
    async def test_partial_sell_keeps_avg_cost(self, holdings):
        await holdings.apply_buy("user-1", "AAPL", 10, Decimal("150.00"))
        snapshot = await holdings.apply_sell("user-1", "AAPL", 4, Decimal("170.00"))
        
        assert snapshot.qty == 6
        assert snapshot.avg_cost == Decimal("150.0000")
        assert snapshot.last_price == Decimal("170.00")
    
    @pytest.mark.asyncio
    async def test_full_sell_deletes_holding(self, holdings):
        await holdings.apply_buy("user-1", "AAPL", 10, Decimal("150.00"))
        assert await holdings.apply_sell("user-1", "AAPL", 10, Decimal("160.00")) is None
        assert await holdings.get_holding("user-1", "AAPL") is None
        assert await holdings.get_holdings("user-1") == []
    
    @pytest.mark.asyncio
    async def test_sell_without_holding(self, holdings):
        with pytest.raises(InsufficientPosition) as exc_info:
            await holdings.apply_sell("user-1", "AAPL", 1, Decimal("150.00"))
        assert exc_info.value.details["available"] == 0
        assert exc_info.value.details["requested"] == 1
    
    @pytest.mark.asyncio
    async def test_oversell_leaves_holding_untouched(self, holdings):
        await holdings.apply_buy("user-1", "AAPL", 5, Decimal("150.00"))
        with pytest.raises(InsufficientPosition) as exc_info:
            await holdings.apply_sell("user-1", "AAPL", 6, Decimal("150.00"))
        
        assert exc_info.value.details["available"] == 5
        assert (await holdings.get_holding("user-1", "AAPL")).qty == 5


class TestReads:
    """Tests for holding queries."""
    
    @pytest.mark.asyncio
    async def test_get_holdings_ordered_by_symbol(self, holdings):
        await holdings.apply_buy("user-1", "TCS", 1, Decimal("3200.00"))
        await holdings.apply_buy("user-1", "AAPL", 2, Decimal("150.00"))
        
        result = await holdings.get_holdings("user-1")
        assert [h.symbol for h in result] == ["AAPL", "TCS"]
    
    @pytest.mark.asyncio
    async def test_get_quantity(self, holdings):
        assert await holdings.get_quantity("user-1", "AAPL") == 0
        await holdings.apply_buy("user-1", "AAPL", 7, Decimal("150.00"))
        assert await holdings.get_quantity("user-1", "aapl") == 7
    
    def test_snapshot_to_dict(self):
        snapshot = HoldingSnapshot("AAPL", 10, Decimal("150.0000"), Decimal("160.00"))
        data = snapshot.to_dict()
        assert data["cost_basis"] == 1500.0
        assert data["market_value"] == 1600.0
