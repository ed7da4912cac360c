"""API router initialization"""
from fastapi import APIRouter

from papertrade.api.routes import market, orders, wallet, websocket

api_router = APIRouter()

api_router.include_router(market.router, prefix="/market", tags=["market"])
api_router.include_router(wallet.router, prefix="/wallet", tags=["wallet"])
api_router.include_router(orders.router, tags=["orders"])
# Real-time WebSocket streaming API
api_router.include_router(websocket.router, prefix="/realtime", tags=["realtime"])
