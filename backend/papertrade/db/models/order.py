"""
Domain Models - Orders
PaperTrade Virtual Trading Platform

One row per buy/sell request with its full lifecycle. Orders are never
deleted; cancellation and expiry are status changes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint, DateTime, Index, Integer, Numeric, String, Text, Uuid
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from papertrade.db.base import Amount, Base, JSONType, as_utc, utcnow
from papertrade.execution.orders import OrderAction, OrderStatus


class Order(Base):
    """
    Order records with full lifecycle tracking.
    """
    __tablename__ = "orders"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)

    # Order Details
    symbol: Mapped[str] = mapped_column(String(10), nullable=False)
    symbol_type: Mapped[str] = mapped_column(String(20), default="stock")
    action: Mapped[str] = mapped_column(String(4), nullable=False)  # buy, sell
    order_type: Mapped[str] = mapped_column(String(20), nullable=False)  # market, limit, stop, stop-limit, trailing-stop
    time_in_force: Mapped[str] = mapped_column(String(3), default="GTC")
    quantity: Mapped[Decimal] = mapped_column(Amount, nullable=False)

    # Requested prices
    limit_price: Mapped[Optional[Decimal]] = mapped_column(Amount)
    stop_price: Mapped[Optional[Decimal]] = mapped_column(Amount)
    requested_price: Mapped[Decimal] = mapped_column(Amount, nullable=False)

    # Pricing
    entry_price: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    exit_price: Mapped[Optional[Decimal]] = mapped_column(Amount)
    current_price: Mapped[Optional[Decimal]] = mapped_column(Amount)

    # Risk management
    stop_loss: Mapped[Optional[Decimal]] = mapped_column(Amount)
    take_profit: Mapped[Optional[Decimal]] = mapped_column(Amount)
    risk_reward: Mapped[Optional[Decimal]] = mapped_column(Amount)

    # Status
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=OrderStatus.PENDING.value)
    settlement_type: Mapped[Optional[str]] = mapped_column(String(10))  # cash, margin
    close_reason: Mapped[Optional[str]] = mapped_column(String(20))
    cancel_reason: Mapped[Optional[str]] = mapped_column(Text)

    # Execution
    commission: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    swap: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    slippage: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    reserved_amount: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    margin: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    leverage: Mapped[int] = mapped_column(Integer, default=1)
    market_conditions: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSONType)

    # P&L (set at close time only)
    profit: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    loss: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    net_profit_loss: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    profit_loss_percentage: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"))

    notes: Mapped[Optional[str]] = mapped_column(String(500))

    # Timing
    open_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    close_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    expiration_time: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("quantity > 0", name="quantity_positive"),
        CheckConstraint("entry_price > 0", name="entry_price_positive"),
        Index("idx_order_user_status", "user_id", "status"),
        Index("idx_order_user_symbol", "user_id", "symbol"),
        Index("idx_order_user_created", "user_id", "created_at"),
        Index("idx_order_status_expiry", "status", "expiration_time"),
    )

    @property
    def is_buy(self) -> bool:
        return self.action == OrderAction.BUY.value

    @property
    def trade_value(self) -> Decimal:
        return self.quantity * self.entry_price

    @property
    def unrealized_pl(self) -> Decimal:
        if self.status != OrderStatus.OPEN.value or not self.current_price:
            return Decimal("0")
        diff = self.current_price - self.entry_price
        return (diff if self.is_buy else -diff) * self.quantity

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expiration = as_utc(self.expiration_time)
        if expiration is None:
            return False
        return (now or utcnow()) > expiration

    def __repr__(self) -> str:
        return (
            f"<Order {self.id} {self.action} {self.quantity} {self.symbol} "
            f"{self.order_type} {self.status}>"
        )
