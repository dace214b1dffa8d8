"""
Tests for the Order Sweeper

Expiry, trigger and stop/target handling across resting orders.
"""

import asyncio
import pytest
from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

from papertrade.core.exceptions import QuoteUnavailableError
from papertrade.db.base import utcnow
from papertrade.execution.orders import OrderRequest, OrderStatus


USER = "user-1"


class TestRunOnce:

    @pytest.mark.asyncio
    async def test_nothing_to_do(self, sweeper, account):
        report = await sweeper.run_once()
        assert report.checked == 0
        assert sweeper.last_report is report

    @pytest.mark.asyncio
    async def test_expires_past_due_orders(self, engine, ledger, sweeper, account, limit_buy):
        request = OrderRequest(
            symbol="AAPL", action="buy", quantity=Decimal("10"), order_type="limit",
            limit_price=Decimal("170"), expiry_date=utcnow() - timedelta(seconds=1),
        )
        await engine.place_order(USER, request)
        await engine.place_order(USER, limit_buy)

        report = await sweeper.run_once()

        assert report.checked == 2
        assert report.expired == 1
        history = await ledger.trade_history(USER, status="expired")
        assert history.total == 1
        # Only the live order's reservation remains
        assert (await ledger.get_account(USER)).margin == Decimal("1701.7")

    @pytest.mark.asyncio
    async def test_triggers_then_takes_profit(self, engine, ledger, quotes, sweeper, account):
        placed = await engine.place_order(USER, OrderRequest(
            symbol="AAPL", action="buy", quantity=Decimal("10"), order_type="limit",
            limit_price=Decimal("170"), take_profit=Decimal("190"),
        ))

        quotes.set_price("AAPL", "169")
        first = await sweeper.run_once()
        assert first.triggered == 1
        [position] = await ledger.open_positions(USER)
        assert position.order.id == placed.order.id
        assert position.order.entry_price == Decimal("169")

        quotes.set_price("AAPL", "191")
        second = await sweeper.run_once()
        assert second.closed == 1

        wallet = await ledger.get_account(USER)
        # (190 - 169) x 10 - 1.69
        assert wallet.balance == Decimal("10208.31")
        assert wallet.margin == Decimal("0")
        assert (await ledger.verify_account(USER)).consistent

    @pytest.mark.asyncio
    async def test_triggered_sell_reduces_holdings(self, engine, ledger, quotes, sweeper, account, market_buy):
        await engine.place_order(USER, market_buy)
        await engine.place_order(USER, OrderRequest(
            symbol="AAPL", action="sell", quantity=Decimal("10"),
            order_type="limit", limit_price=Decimal("180"),
        ))

        quotes.set_price("AAPL", "181")
        report = await sweeper.run_once()

        assert report.checked == 1
        assert report.triggered == 1
        assert await ledger.current_holdings(USER) == {}
        assert await ledger.open_positions(USER) == []
        # 8244.1457 + 1810 - 1.81
        assert (await ledger.get_account(USER)).balance == Decimal("10052.3357")

    @pytest.mark.asyncio
    async def test_quote_errors_are_counted(self, engine, quotes, sweeper, account, limit_buy):
        await engine.place_order(USER, limit_buy)
        sweeper.engine.quotes = AsyncMock()
        sweeper.engine.quotes.get_quote = AsyncMock(side_effect=QuoteUnavailableError("Quote feed unavailable"))

        report = await sweeper.run_once()

        assert report.errors == 1
        assert report.triggered == 0

    @pytest.mark.asyncio
    async def test_quotes_fetched_once_per_symbol(self, engine, quotes, sweeper, account, limit_buy):
        await engine.place_order(USER, limit_buy)
        await engine.place_order(USER, limit_buy)
        spy = AsyncMock(wraps=quotes.get_quote)
        quotes.get_quote = spy

        await sweeper.run_once()

        assert spy.await_count == 1


class TestLifecycle:

    @pytest.mark.asyncio
    async def test_start_and_stop(self, sweeper, account):
        await sweeper.start()
        assert sweeper.is_running
        await asyncio.sleep(0.05)
        await sweeper.stop()

        assert not sweeper.is_running
        assert sweeper.last_report is not None

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, sweeper):
        await sweeper.start()
        task = sweeper._task
        await sweeper.start()
        assert sweeper._task is task
        await sweeper.stop()
