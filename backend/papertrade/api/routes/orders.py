"""Orders and holdings API endpoints"""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query

from papertrade.api.deps import get_current_user_id, get_services
from papertrade.market.price_oracle import normalize_symbol
from papertrade.schemas.trading import (
    HoldingResponse,
    OrderRecordResponse,
    OrderRequest,
    OrderResponse,
)
from papertrade.services.registry import ServiceRegistry

router = APIRouter()


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def place_order(
    order: OrderRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceRegistry = Depends(get_services),
):
    """
    Place a market order, settled at the current simulated price.
    """
    result = await services.settlement.place_order(
        user_id,
        order.symbol,
        order.qty,
        order.mode,
        client_price=order.price,
    )
    return result.to_dict()


@router.get("/orders", response_model=List[OrderRecordResponse])
async def get_orders(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    services: ServiceRegistry = Depends(get_services),
):
    """Order history, newest first."""
    return await services.settlement.get_order_history(user_id, limit=limit)


@router.get("/holdings", response_model=List[HoldingResponse])
async def get_holdings(
    user_id: str = Depends(get_current_user_id),
    services: ServiceRegistry = Depends(get_services),
):
    holdings = await services.holdings.get_holdings(user_id)
    return [h.to_dict() for h in holdings]


@router.get("/holdings/{symbol}", response_model=HoldingResponse)
async def get_holding(
    symbol: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceRegistry = Depends(get_services),
):
    holding = await services.holdings.get_holding(user_id, symbol)
    if holding is None:
        raise HTTPException(status_code=404, detail=f"No holding in {normalize_symbol(symbol)}")
    return holding.to_dict()
