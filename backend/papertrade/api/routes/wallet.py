"""Wallet API endpoints"""
from typing import List

from fastapi import APIRouter, Depends, Query

from papertrade.api.deps import get_current_user_id, get_services
from papertrade.schemas.trading import WalletResponse, WalletTransactionResponse
from papertrade.services.registry import ServiceRegistry

router = APIRouter()


@router.get("/balance", response_model=WalletResponse)
async def get_balance(
    user_id: str = Depends(get_current_user_id),
    services: ServiceRegistry = Depends(get_services),
):
    """
    Get the user's wallet, created with the starting balance on first access.
    """
    return await services.ledger.get_or_create_wallet(user_id)


@router.get("/transactions", response_model=List[WalletTransactionResponse])
async def get_transactions(
    limit: int = Query(50, ge=1, le=500),
    user_id: str = Depends(get_current_user_id),
    services: ServiceRegistry = Depends(get_services),
):
    """Wallet transactions, newest first."""
    return await services.ledger.get_transaction_history(user_id, limit=limit)
