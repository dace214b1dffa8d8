"""
Order Repository
PaperTrade Virtual Trading Platform

Data access for orders, including the holdings aggregation that derives
positions from filled orders.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.db.base import to_decimal
from papertrade.db.models.order import Order
from papertrade.db.repository import BaseRepository, Page, PaginationParams
from papertrade.execution.orders import OrderAction, OrderStatus, SettlementType


@dataclass
class PositionTotals:
    """Aggregated cash fills for one symbol."""
    symbol: str
    total_bought: Decimal
    total_sold: Decimal
    total_invested: Decimal
    total_returns: Decimal

    @property
    def net_quantity(self) -> Decimal:
        return self.total_bought - self.total_sold

    @property
    def average_cost(self) -> Optional[Decimal]:
        if not self.total_bought:
            return None
        return self.total_invested / self.total_bought


class OrderRepository(BaseRepository[Order]):
    """Repository for orders."""

    def __init__(self, session: AsyncSession):
        super().__init__(Order, session)

    async def get_for_user(
        self,
        user_id: str,
        order_id: UUID,
        *,
        for_update: bool = False,
    ) -> Optional[Order]:
        query = select(Order).where(and_(Order.id == order_id, Order.user_id == user_id))
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_status(
        self,
        user_id: str,
        status: OrderStatus,
    ) -> List[Order]:
        """Orders in one status for a user, newest first."""
        result = await self.session.execute(
            select(Order)
            .where(and_(Order.user_id == user_id, Order.status == status.value))
            .order_by(Order.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_active_orders(self) -> List[Order]:
        """All pending and open orders across users, oldest first."""
        result = await self.session.execute(
            select(Order)
            .where(Order.status.in_([OrderStatus.PENDING.value, OrderStatus.OPEN.value]))
            .order_by(Order.created_at)
        )
        return list(result.scalars().all())

    async def get_history(
        self,
        user_id: str,
        pagination: PaginationParams,
        status: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> Page:
        return await self.get_paginated(
            pagination,
            filters={
                "user_id": user_id,
                "status": status,
                "symbol": symbol.upper() if symbol else None,
            },
            order_by=Order.created_at.desc(),
        )

    async def get_closed_since(
        self,
        user_id: str,
        since: Optional[datetime] = None,
    ) -> List[Order]:
        conditions = [Order.user_id == user_id, Order.status == OrderStatus.CLOSED.value]
        if since is not None:
            conditions.append(Order.close_time >= since)
        result = await self.session.execute(
            select(Order).where(and_(*conditions)).order_by(Order.close_time)
        )
        return list(result.scalars().all())

    async def aggregate_positions(
        self,
        user_id: str,
        symbol: Optional[str] = None,
    ) -> List[PositionTotals]:
        """
        Sum cash-settled closed buys and sells per symbol.

        Margin round trips leave no residual holding and are excluded.
        """
        is_buy = Order.action == OrderAction.BUY.value
        is_sell = Order.action == OrderAction.SELL.value
        notional = Order.quantity * Order.entry_price

        query = (
            select(
                Order.symbol,
                func.sum(case((is_buy, Order.quantity), else_=0)).label("total_bought"),
                func.sum(case((is_sell, Order.quantity), else_=0)).label("total_sold"),
                func.sum(case((is_buy, notional), else_=0)).label("total_invested"),
                func.sum(case((is_sell, notional), else_=0)).label("total_returns"),
            )
            .where(
                and_(
                    Order.user_id == user_id,
                    Order.status == OrderStatus.CLOSED.value,
                    Order.settlement_type == SettlementType.CASH.value,
                )
            )
            .group_by(Order.symbol)
            .order_by(Order.symbol)
        )
        if symbol:
            query = query.where(Order.symbol == symbol.upper())

        result = await self.session.execute(query)
        return [
            PositionTotals(
                symbol=row.symbol,
                total_bought=to_decimal(row.total_bought),
                total_sold=to_decimal(row.total_sold),
                total_invested=to_decimal(row.total_invested),
                total_returns=to_decimal(row.total_returns),
            )
            for row in result.all()
        ]

    async def net_quantity(self, user_id: str, symbol: str) -> Decimal:
        totals = await self.aggregate_positions(user_id, symbol)
        return totals[0].net_quantity if totals else Decimal("0")

    async def pending_sell_quantity(
        self,
        user_id: str,
        symbol: str,
        exclude: Optional[UUID] = None,
    ) -> Decimal:
        """Shares already promised to resting sell orders."""
        conditions = [
            Order.user_id == user_id,
            Order.symbol == symbol.upper(),
            Order.action == OrderAction.SELL.value,
            Order.status == OrderStatus.PENDING.value,
        ]
        if exclude is not None:
            conditions.append(Order.id != exclude)
        result = await self.session.execute(
            select(func.sum(Order.quantity)).where(and_(*conditions))
        )
        return to_decimal(result.scalar())

    async def available_to_sell(
        self,
        user_id: str,
        symbol: str,
        exclude: Optional[UUID] = None,
    ) -> Decimal:
        held = await self.net_quantity(user_id, symbol)
        return held - await self.pending_sell_quantity(user_id, symbol, exclude=exclude)
