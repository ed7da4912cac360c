"""
WebSocket API for Real-Time Market Data
PaperTrade Platform

Streams watchlist prices to the frontend. Each connection receives only
the symbols it subscribed to, once per market tick.
"""

import json
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

from papertrade.api.deps import get_ws_services
from papertrade.market.broadcaster import Broadcaster


router = APIRouter()


# =============================================================================
# WebSocket Endpoint
# =============================================================================

@router.websocket("/ws/market")
async def websocket_market(websocket: WebSocket):
    """
    Watchlist streaming endpoint.
    
    Protocol:
    1. Client connects
    2. Server sends: {"type": "connected", "client_id": "xxx"}
    3. Client can send commands:
       - Subscribe: {"action": "subscribe_watchlist", "symbols": ["INFY", "TCS"]}
       - Unsubscribe: {"action": "unsubscribe_watchlist"}
       - Ping: {"action": "ping"}
    4. Server streams data:
       - Snapshot right after subscribing, then on every tick:
         {"type": "watchlist_update", "tick": 12, "data": [...]}
    """
    await websocket.accept()
    
    broadcaster = get_ws_services(websocket).broadcaster
    client_id = None
    
    try:
        client_id = await broadcaster.connect(websocket)
        
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                await broadcaster.send(client_id, {
                    "type": "error",
                    "message": "Invalid JSON",
                })
                continue
            
            await handle_client_message(broadcaster, client_id, message)
    
    except WebSocketDisconnect:
        logger.debug(f"WebSocket client {client_id} closed the connection")
    except Exception as e:
        logger.error(f"WebSocket error for client {client_id}: {e}")
    finally:
        if client_id:
            await broadcaster.disconnect(client_id)


async def handle_client_message(
    broadcaster: Broadcaster,
    client_id: str,
    message: Any,
) -> None:
    """Handle incoming client message."""
    if not isinstance(message, dict):
        await broadcaster.send(client_id, {"type": "error", "message": "Message must be a JSON object"})
        return
    
    action = message.get("action", "")
    
    if action == "subscribe_watchlist":
        symbols = message.get("symbols", [])
        if isinstance(symbols, str):
            symbols = [symbols]
        if not isinstance(symbols, list):
            await broadcaster.send(client_id, {"type": "error", "message": "symbols must be a list"})
            return
        await broadcaster.subscribe(client_id, [s for s in symbols if isinstance(s, str)])
    
    elif action == "unsubscribe_watchlist":
        await broadcaster.unsubscribe(client_id)
    
    elif action == "ping":
        await broadcaster.send(client_id, {
            "type": "pong",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
    
    else:
        await broadcaster.send(client_id, {
            "type": "error",
            "message": f"Unknown action: {action}",
        })
