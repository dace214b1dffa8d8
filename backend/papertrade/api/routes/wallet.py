"""
Wallet API Routes
PaperTrade Virtual Trading Platform
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from papertrade.api.deps import get_engine, get_ledger, get_user_id
from papertrade.execution.ledger import PositionLedger
from papertrade.execution.settlement import SettlementEngine
from papertrade.schemas.common import ApiResponse
from papertrade.schemas.wallet import (
    AmountRequest,
    OpenWalletRequest,
    ResetBalanceRequest,
    TransactionResponse,
    WalletOperationResponse,
    WalletResponse,
)


router = APIRouter()


@router.post("", response_model=ApiResponse[WalletResponse], status_code=status.HTTP_201_CREATED)
async def open_wallet(
    body: Optional[OpenWalletRequest] = None,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    """Create the caller's wallet with the demo balance (or ``initialBalance``)."""
    initial = body.initial_balance if body else None
    account = await engine.open_account(user_id, initial)
    return ApiResponse(data=WalletResponse.model_validate(account))


@router.get("", response_model=ApiResponse[WalletResponse])
async def get_wallet(
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    account = await ledger.get_account(user_id)
    return ApiResponse(data=WalletResponse.model_validate(account))


@router.get("/transactions", response_model=ApiResponse[List[TransactionResponse]])
async def get_transactions(
    limit: int = Query(50, ge=1, le=500),
    type: Optional[str] = Query(None, description="Filter by entry type"),
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    """Ledger entries, newest first."""
    entries = await ledger.transactions(user_id, limit=limit, entry_type=type)
    return ApiResponse(data=[TransactionResponse.model_validate(e) for e in entries])


@router.post("/deposit", response_model=ApiResponse[WalletOperationResponse])
async def deposit(
    body: AmountRequest,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    posting = await engine.deposit(user_id, body.amount, body.description)
    return ApiResponse(data=WalletOperationResponse.model_validate(posting))


@router.post("/withdraw", response_model=ApiResponse[WalletOperationResponse])
async def withdraw(
    body: AmountRequest,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    posting = await engine.withdraw(user_id, body.amount, body.description)
    return ApiResponse(data=WalletOperationResponse.model_validate(posting))


@router.post("/reset", response_model=ApiResponse[WalletOperationResponse])
async def reset_balance(
    body: Optional[ResetBalanceRequest] = None,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    """Reset the balance; pending orders are cancelled."""
    posting = await engine.reset_balance(
        user_id,
        body.new_balance if body else None,
        body.reason if body else None,
    )
    return ApiResponse(data=WalletOperationResponse.model_validate(posting))
