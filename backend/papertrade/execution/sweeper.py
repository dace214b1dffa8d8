"""
Order Sweeper
PaperTrade Virtual Trading Platform

Background task that keeps resting orders current:
- expires pending orders past their expiration time
- fills pending orders whose trigger condition a fresh quote satisfies
- closes open positions whose stop-loss or take-profit is hit

Each order is settled in its own SettlementEngine transaction, so one
failure never blocks the rest of the sweep.

Usage:
    sweeper = OrderSweeper(engine, AsyncSessionLocal, interval_seconds=10)
    await sweeper.start()
    ...
    await sweeper.stop()
"""

import asyncio
from dataclasses import dataclass
from typing import Dict, Optional

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.core.exceptions import TradingError
from papertrade.db.base import utcnow
from papertrade.db.repositories import OrderRepository
from papertrade.execution.orders import OrderStatus
from papertrade.execution.quotes import Quote
from papertrade.execution.settlement import SettlementEngine


@dataclass
class SweepReport:
    """Counts from one sweep."""
    checked: int = 0
    expired: int = 0
    triggered: int = 0
    cancelled: int = 0
    closed: int = 0
    errors: int = 0


class OrderSweeper:
    """
    Periodic expiry, trigger and stop/target checks for resting orders.
    """

    def __init__(
        self,
        engine: SettlementEngine,
        session_factory: async_sessionmaker[AsyncSession],
        interval_seconds: float = 10.0,
    ):
        self.engine = engine
        self.session_factory = session_factory
        self.interval_seconds = interval_seconds

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.last_report: Optional[SweepReport] = None

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Order sweeper started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        self._running = False

        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass

        logger.info("Order sweeper stopped")

    async def _run(self) -> None:
        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Error in order sweeper: {e}")
                await asyncio.sleep(1)

    async def run_once(self) -> SweepReport:
        """Process every pending and open order once."""
        report = SweepReport()
        async with self.session_factory() as session:
            orders = await OrderRepository(session).get_active_orders()

        now = utcnow()
        quotes: Dict[str, Quote] = {}

        for order in orders:
            report.checked += 1
            try:
                if order.status == OrderStatus.PENDING.value and order.is_expired(now):
                    await self.engine.expire_order(order.id)
                    report.expired += 1
                    continue

                if order.symbol not in quotes:
                    quotes[order.symbol] = await self.engine.quotes.get_quote(order.symbol)
                quote = quotes[order.symbol]

                if order.status == OrderStatus.PENDING.value:
                    updated = await self.engine.trigger_order(order.id, quote)
                    # Buys open a position, sells settle in cash
                    if updated.status in (OrderStatus.OPEN.value, OrderStatus.CLOSED.value):
                        report.triggered += 1
                    elif updated.status == OrderStatus.CANCELLED.value:
                        report.cancelled += 1
                else:
                    updated = await self.engine.mark_to_market(order.id, quote)
                    if updated.status == OrderStatus.CLOSED.value:
                        report.closed += 1
            except TradingError as e:
                # Orders can change state between the scan and settlement
                report.errors += 1
                logger.warning(f"Sweep skipped order {order.id}: {e.message}")

        if report.expired or report.triggered or report.cancelled or report.closed:
            logger.info(
                f"Sweep: {report.checked} checked, {report.expired} expired, "
                f"{report.triggered} triggered, {report.cancelled} cancelled, {report.closed} closed"
            )
        self.last_report = report
        return report
