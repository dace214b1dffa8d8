"""
Trades API Routes
PaperTrade Virtual Trading Platform

Order placement, closing, modification and cancellation, plus the
portfolio, position, pending-order and statistics projections.
"""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from papertrade.api.deps import get_engine, get_ledger, get_user_id
from papertrade.api.docs import example_place_trade
from papertrade.execution.ledger import PositionLedger
from papertrade.execution.settlement import SettlementEngine
from papertrade.schemas.common import ApiResponse
from papertrade.schemas.trading import (
    CancelOrderResponse,
    CloseTradeRequest,
    CloseTradeResponse,
    HoldingResponse,
    ModifyTradeRequest,
    OpenPositionResponse,
    PendingOrderResponse,
    PlaceTradeRequest,
    PlaceTradeResponse,
    PortfolioResponse,
    TradeHistoryResponse,
    TradeResponse,
    TradeStatsResponse,
)


router = APIRouter()


@router.post(
    "",
    response_model=ApiResponse[PlaceTradeResponse],
    status_code=status.HTTP_201_CREATED,
    responses={201: {"content": {"application/json": {"example": example_place_trade}}}},
)
async def place_trade(
    body: PlaceTradeRequest,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    """
    Place a buy or sell order.

    Market orders, and limit/stop orders whose condition the current quote
    already meets, fill immediately. Everything else rests as pending.
    """
    result = await engine.place_order(user_id, body.to_order_request())
    return ApiResponse(data=PlaceTradeResponse(
        trade=TradeResponse.model_validate(result.order),
        new_balance=result.new_balance,
        executed=result.executed,
        order_type=result.order.order_type,
        execution_price=result.execution_price,
        message=result.message,
    ))


@router.get("", response_model=ApiResponse[TradeHistoryResponse])
async def get_trades(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    status: Optional[str] = Query(None, description="Filter by status"),
    symbol: Optional[str] = Query(None, description="Filter by symbol"),
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    """Trade history, newest first."""
    history = await ledger.trade_history(user_id, page=page, limit=limit, status=status, symbol=symbol)
    return ApiResponse(data=TradeHistoryResponse.model_validate(history))


@router.get("/stats", response_model=ApiResponse[TradeStatsResponse])
async def get_trade_stats(
    timeframe: str = Query("all", description="today, week, month, year or all"),
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    stats = await ledger.trade_stats(user_id, timeframe)
    return ApiResponse(data=TradeStatsResponse.model_validate(stats))


@router.get("/portfolio", response_model=ApiResponse[PortfolioResponse])
async def get_portfolio(
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    """Cash, holdings at current prices and overall statistics."""
    portfolio = await ledger.portfolio(user_id)
    return ApiResponse(data=PortfolioResponse.model_validate(portfolio))


@router.get("/holdings", response_model=ApiResponse[List[HoldingResponse]])
async def get_holdings(
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    holdings = await ledger.holdings(user_id)
    return ApiResponse(data=[HoldingResponse.model_validate(h) for h in holdings])


@router.get("/positions", response_model=ApiResponse[List[OpenPositionResponse]])
async def get_open_positions(
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    positions = await ledger.open_positions(user_id)
    return ApiResponse(data=[OpenPositionResponse.model_validate(p) for p in positions])


@router.get("/pending", response_model=ApiResponse[List[PendingOrderResponse]])
async def get_pending_orders(
    user_id: str = Depends(get_user_id),
    ledger: PositionLedger = Depends(get_ledger),
):
    pending = await ledger.pending_orders(user_id)
    return ApiResponse(data=[PendingOrderResponse.model_validate(p) for p in pending])


@router.delete("/pending/{order_id}", response_model=ApiResponse[CancelOrderResponse])
async def cancel_pending_order(
    order_id: UUID,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    order = await engine.cancel_order(user_id, order_id)
    return ApiResponse(data=CancelOrderResponse(trade=TradeResponse.model_validate(order)))


@router.put("/{order_id}/close", response_model=ApiResponse[CloseTradeResponse])
async def close_trade(
    order_id: UUID,
    body: CloseTradeRequest,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    """Close an open position at ``exitPrice`` and realize its P&L."""
    result = await engine.close_trade(user_id, order_id, body.exit_price)
    return ApiResponse(data=CloseTradeResponse(
        trade=TradeResponse.model_validate(result.order),
        new_balance=result.new_balance,
        message=result.message,
    ))


@router.patch("/{order_id}", response_model=ApiResponse[TradeResponse])
async def modify_trade(
    order_id: UUID,
    body: ModifyTradeRequest,
    user_id: str = Depends(get_user_id),
    engine: SettlementEngine = Depends(get_engine),
):
    """Update stop-loss and/or take-profit of an open position."""
    order = await engine.modify_trade(user_id, order_id, body.stop_loss, body.take_profit)
    return ApiResponse(data=TradeResponse.model_validate(order))
