"""
API Dependencies
PaperTrade Virtual Trading Platform

Services are built once by the application factory and kept on
``app.state.services``; routes receive them through these dependencies.
"""

from dataclasses import dataclass
from typing import Optional

from fastapi import Header, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.core.exceptions import ValidationError
from papertrade.db.session import DatabaseService
from papertrade.execution.ledger import PositionLedger
from papertrade.execution.quotes import QuoteSource
from papertrade.execution.settlement import SettlementEngine
from papertrade.execution.sweeper import OrderSweeper


@dataclass
class ServiceRegistry:
    """Registry for the trading services of one application instance."""
    session_factory: async_sessionmaker[AsyncSession]
    quotes: QuoteSource
    engine: SettlementEngine
    ledger: PositionLedger
    database: DatabaseService
    sweeper: Optional[OrderSweeper] = None

    async def start_all(self) -> None:
        if self.sweeper:
            await self.sweeper.start()

    async def stop_all(self) -> None:
        """Stop background work, then release the quote source."""
        if self.sweeper:
            await self.sweeper.stop()
        await self.quotes.close()

    def get_status(self) -> dict:
        return {
            "quote_source": type(self.quotes).__name__,
            "sweeper": self.sweeper.is_running if self.sweeper else False,
            "locked_accounts": len(self.engine.locks),
        }


def get_services(request: Request) -> ServiceRegistry:
    return request.app.state.services


def get_engine(request: Request) -> SettlementEngine:
    return get_services(request).engine


def get_ledger(request: Request) -> PositionLedger:
    return get_services(request).ledger


def get_quote_source(request: Request) -> QuoteSource:
    return get_services(request).quotes


async def get_user_id(x_user_id: str = Header(..., description="Caller's user id")) -> str:
    user_id = x_user_id.strip()
    if not user_id:
        raise ValidationError("X-User-Id header is required")
    return user_id
