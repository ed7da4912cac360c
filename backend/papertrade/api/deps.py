"""
API Dependencies
PaperTrade Platform

FastAPI dependencies resolving the application's services and the
authenticated user.
"""

from typing import Optional

from fastapi import Header, Request, WebSocket

from papertrade.core.exceptions import require_user
from papertrade.services.registry import ServiceRegistry


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


def get_ws_services(websocket: WebSocket) -> ServiceRegistry:
    return websocket.app.state.services


def get_current_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    The verified user id forwarded by the authentication layer.
    
    Raises Unauthorized (401) when the header is missing or blank.
    """
    return require_user(x_user_id)
