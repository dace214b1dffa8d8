"""
Test configuration and shared fixtures for PaperTrade backend tests.
"""

import os

# Configure the environment before the application modules are imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LOG_FILE_ENABLED", "false")
os.environ.setdefault("TRADING_SWEEP_ENABLED", "false")

from decimal import Decimal
from unittest.mock import AsyncMock

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

from papertrade.core.config import TradingSettings
from papertrade.db.session import build_session_factory, init_db
from papertrade.execution.ledger import PositionLedger
from papertrade.execution.orders import OrderRequest
from papertrade.execution.quotes import Quote, StaticQuoteSource
from papertrade.execution.settlement import SettlementEngine
from papertrade.execution.sweeper import OrderSweeper


USER = "user-1"


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def trading_config():
    """Trading settings with the documented defaults and no background sweep."""
    return TradingSettings(
        default_balance=Decimal("10000"),
        commission_rate=Decimal("0.001"),
        default_leverage=1,
        market_timezone="America/New_York",
        sweep_enabled=False,
    )


# =============================================================================
# Database
# =============================================================================

@pytest_asyncio.fixture
async def db_engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    await init_db(bind=engine)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


# =============================================================================
# Market Data
# =============================================================================

@pytest.fixture
def quotes():
    """Fixed prices, movable per test with ``set_price``."""
    return StaticQuoteSource({
        "AAPL": "175.43",
        "TSLA": "248.87",
        "MSFT": "412.87",
    })


@pytest.fixture
def mock_quote_source():
    """A quote source whose lookups can be asserted on."""
    source = AsyncMock()
    source.get_quote = AsyncMock(return_value=Quote(symbol="AAPL", price=Decimal("175.43")))
    source.symbols = lambda: ["AAPL"]
    return source


# =============================================================================
# Services
# =============================================================================

@pytest.fixture
def engine(session_factory, quotes, trading_config):
    return SettlementEngine(session_factory, quotes, trading_config)


@pytest.fixture
def ledger(session_factory, quotes):
    return PositionLedger(session_factory, quotes)


@pytest.fixture
def sweeper(engine, session_factory):
    return OrderSweeper(engine, session_factory, interval_seconds=0.01)


@pytest_asyncio.fixture
async def account(engine):
    """A wallet for USER with the default 10000 balance."""
    return await engine.open_account(USER)


# =============================================================================
# Sample Data Fixtures
# =============================================================================

@pytest.fixture
def market_buy():
    return OrderRequest(symbol="AAPL", action="buy", quantity=Decimal("10"))


@pytest.fixture
def limit_buy():
    return OrderRequest(
        symbol="AAPL",
        action="buy",
        quantity=Decimal("10"),
        order_type="limit",
        limit_price=Decimal("170"),
    )


# =============================================================================
# API
# =============================================================================

@pytest.fixture
def app(session_factory, quotes):
    from papertrade.core.config import Settings
    from papertrade.main import create_application

    return create_application(
        config=Settings(DATABASE_URL="sqlite+aiosqlite://", ENVIRONMENT="test"),
        session_factory=session_factory,
        quote_source=quotes,
        enable_sweeper=False,
    )


@pytest_asyncio.fixture
async def client(app):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def headers():
    return {"X-User-Id": USER}


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests"
    )
