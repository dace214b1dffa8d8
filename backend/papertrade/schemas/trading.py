"""
Pydantic Schemas - Trading
PaperTrade Virtual Trading Platform

API schemas for:
- Order placement, close and modification
- Trades (orders) and trade history
- Holdings, portfolio, open positions and pending orders
- Trade statistics
- Market quotes
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import Field

from papertrade.execution.orders import OrderRequest
from papertrade.schemas.common import BaseSchema, Money


# =============================================================================
# Requests
# =============================================================================

class PlaceTradeRequest(BaseSchema):
    """Body of POST /api/trades."""
    symbol: str = Field(..., min_length=1, max_length=10)
    action: str
    quantity: Decimal
    order_type: str = "market"
    limit_price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    take_profit_price: Optional[Decimal] = None
    stop_loss_price: Optional[Decimal] = None
    time_in_force: str = "GTC"
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = Field(None, max_length=500)

    def to_order_request(self) -> OrderRequest:
        return OrderRequest(
            symbol=self.symbol,
            action=self.action,
            quantity=self.quantity,
            order_type=self.order_type,
            limit_price=self.limit_price,
            stop_price=self.stop_price,
            take_profit=self.take_profit_price,
            stop_loss=self.stop_loss_price,
            time_in_force=self.time_in_force,
            expiry_date=self.expiry_date,
            notes=self.notes,
        )


class CloseTradeRequest(BaseSchema):
    exit_price: Optional[Decimal] = None


class ModifyTradeRequest(BaseSchema):
    stop_loss: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None


# =============================================================================
# Trades
# =============================================================================

class TradeResponse(BaseSchema):
    """An order with its execution and P&L details."""
    id: UUID
    user_id: str
    symbol: str
    action: str
    order_type: str
    status: str
    settlement_type: Optional[str] = None
    time_in_force: str
    quantity: Money

    limit_price: Optional[Money] = None
    stop_price: Optional[Money] = None
    requested_price: Money
    entry_price: Money
    exit_price: Optional[Money] = None
    current_price: Optional[Money] = None
    trade_value: Money

    stop_loss: Optional[Money] = None
    take_profit: Optional[Money] = None
    risk_reward: Optional[Money] = None

    commission: Money
    swap: Money
    slippage: Money
    reserved_amount: Money
    margin: Money
    leverage: int
    market_conditions: Optional[Dict[str, Any]] = None

    profit: Money
    loss: Money
    net_profit_loss: Money
    profit_loss_percentage: Money

    close_reason: Optional[str] = None
    cancel_reason: Optional[str] = None
    notes: Optional[str] = None

    expiration_time: Optional[datetime] = None
    open_time: Optional[datetime] = None
    close_time: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    duration_seconds: Optional[int] = None
    created_at: datetime


class PlaceTradeResponse(BaseSchema):
    trade: TradeResponse
    new_balance: Money
    executed: bool
    order_type: str
    execution_price: Optional[Money] = None
    message: str


class CloseTradeResponse(BaseSchema):
    trade: TradeResponse
    new_balance: Money
    message: str


class TradeHistoryResponse(BaseSchema):
    items: List[TradeResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class CancelOrderResponse(BaseSchema):
    trade: TradeResponse
    message: str = "Order cancelled successfully"


# =============================================================================
# Positions
# =============================================================================

class HoldingResponse(BaseSchema):
    symbol: str
    quantity: Money
    total_bought: Money
    total_sold: Money
    total_invested: Money
    total_returns: Money
    average_cost: Money
    current_price: Money
    current_value: Money
    unrealized_pl: Money
    unrealized_pl_percent: Money


class TradeStatsResponse(BaseSchema):
    total_trades: int
    winning_trades: int
    losing_trades: int
    win_rate: Money
    total_profit: Money
    total_loss: Money
    net_profit_loss: Money
    best_trade: Money
    worst_trade: Money
    avg_trade_size: Money
    avg_duration: Money
    profit_factor: Money


class PortfolioResponse(BaseSchema):
    total_portfolio_value: Money
    cash_balance: Money
    holdings: List[HoldingResponse]
    stats: TradeStatsResponse


class OpenPositionResponse(BaseSchema):
    trade: TradeResponse = Field(..., validation_alias="order")
    current_price: Money
    unrealized_pl: Money
    unrealized_pl_percent: Money


class TriggerStateResponse(BaseSchema):
    would_execute: bool
    distance_to_trigger: Money
    distance_percent: Money


class PendingOrderResponse(BaseSchema):
    trade: TradeResponse = Field(..., validation_alias="order")
    current_price: Optional[Money] = None
    trigger: Optional[TriggerStateResponse] = None
    is_expired: bool


# =============================================================================
# Market
# =============================================================================

class QuoteResponse(BaseSchema):
    symbol: str
    company_name: Optional[str] = None
    price: Money
    change: Money
    change_percent: Money
    sentiment: str
    volatility: str
    timestamp: datetime
