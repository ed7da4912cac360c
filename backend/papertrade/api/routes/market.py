"""Market data API endpoints"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from loguru import logger

from papertrade.api.deps import get_services
from papertrade.core.exceptions import UnknownSymbol
from papertrade.market.price_oracle import normalize_symbol
from papertrade.schemas.trading import (
    PriceHistoryResponse,
    PriceListResponse,
    PriceResponse,
    WatchlistItem,
)
from papertrade.services.registry import ServiceRegistry

router = APIRouter()


@router.get("/prices", response_model=PriceListResponse)
async def get_prices(
    symbols: Optional[str] = Query(None, description="Comma-separated symbols; all if omitted"),
    services: ServiceRegistry = Depends(get_services),
):
    """
    Get current prices for a list of symbols.
    Unknown symbols are reported in not_found instead of failing the request.
    """
    oracle = services.oracle
    if not symbols:
        prices = [s.to_dict() for s in oracle.get_all_prices()]
        return PriceListResponse(prices=prices, not_found=[], count=len(prices))
    
    found, not_found = [], []
    for symbol in (s for s in symbols.split(",") if s.strip()):
        state = oracle.get_price(symbol)
        if state is None:
            not_found.append(normalize_symbol(symbol))
        else:
            found.append(state.to_dict())
    return PriceListResponse(prices=found, not_found=not_found, count=len(found))


@router.get("/price/{symbol}", response_model=PriceResponse)
async def get_price(symbol: str, services: ServiceRegistry = Depends(get_services)):
    """Get the current price of one symbol."""
    state = services.oracle.get_price(symbol)
    if state is None:
        raise UnknownSymbol(normalize_symbol(symbol), services.oracle.get_symbols())
    return state.to_dict()


@router.get("/all", response_model=List[PriceResponse])
async def get_all_prices(services: ServiceRegistry = Depends(get_services)):
    return [s.to_dict() for s in services.oracle.get_all_prices()]


@router.get("/symbols")
async def get_symbols(services: ServiceRegistry = Depends(get_services)):
    symbols = services.oracle.get_symbols()
    return {"symbols": symbols, "count": len(symbols)}


@router.get("/watchlist", response_model=List[WatchlistItem])
async def get_watchlist(services: ServiceRegistry = Depends(get_services)):
    return services.oracle.get_watchlist_prices()


@router.get("/history/{symbol}", response_model=PriceHistoryResponse)
async def get_price_history(
    symbol: str,
    limit: int = Query(50, ge=1, le=1000),
    services: ServiceRegistry = Depends(get_services),
):
    """Recent prices of a symbol, oldest first."""
    oracle = services.oracle
    base = oracle.get_base_price(symbol)
    if base is None:
        raise UnknownSymbol(normalize_symbol(symbol), oracle.get_symbols())
    history = oracle.get_price_history(symbol, limit=limit)
    return PriceHistoryResponse(
        symbol=normalize_symbol(symbol),
        base_price=float(base),
        prices=[float(p) for p in history],
        count=len(history),
    )


@router.post("/reset")
async def reset_prices(
    symbol: Optional[str] = Query(None, description="Reset a single symbol"),
    services: ServiceRegistry = Depends(get_services),
):
    """
    Restore prices to their base values.
    Only touches the simulated market; wallets and holdings are unaffected.
    """
    oracle = services.oracle
    if symbol:
        state = oracle.reset(symbol)
        if state is None:
            raise UnknownSymbol(normalize_symbol(symbol), oracle.get_symbols())
        return {"status": "success", "reset": [state.symbol]}
    
    states = oracle.reset()
    logger.info("Market prices reset via API")
    return {"status": "success", "reset": [s.symbol for s in states]}
