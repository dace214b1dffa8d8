"""
PaperTrade Virtual Trading Platform - FastAPI Application
Main entry point with proper lifecycle management.

Service Architecture:
    QuoteSource (mock table / HTTP feed)
        ↓
    Order Evaluator (fill decision)
        ↓
    SettlementEngine (atomic wallet + ledger + order writes)
        ↓
    PositionLedger (holdings, portfolio, statistics)

    OrderSweeper (background expiry, triggers, stop-loss / take-profit)
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.api import api_router
from papertrade.api.deps import ServiceRegistry
from papertrade.api.docs import openapi_config
from papertrade.core.config import Settings, settings as default_settings
from papertrade.core.exceptions import TradingError
from papertrade.core.logging import setup_logging
from papertrade.db.session import AsyncSessionLocal, DatabaseService, init_db
from papertrade.execution.ledger import PositionLedger
from papertrade.execution.quotes import QuoteSource, create_quote_source
from papertrade.execution.settlement import SettlementEngine
from papertrade.execution.sweeper import OrderSweeper
from papertrade.schemas.common import ErrorBody, ErrorResponse


# =============================================================================
# Application Lifecycle
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # -------------------------------------------------------------------------
    # Startup
    # -------------------------------------------------------------------------
    config: Settings = app.state.settings
    services: ServiceRegistry = app.state.services

    setup_logging(config.logging)
    logger.info("=" * 60)
    logger.info("Starting PaperTrade Virtual Trading Platform...")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info(f"Debug Mode: {config.DEBUG}")
    logger.info("=" * 60)

    if config.is_development or config.is_sqlite:
        await init_db(services.session_factory.kw.get("bind"))
        logger.info("✓ Database tables ensured")

    if await services.database.health_check():
        logger.info("✓ Database connection established")
    else:
        logger.warning("⚠ Database connection failed - trading endpoints will error")

    await services.start_all()

    logger.info("-" * 60)
    logger.info("PaperTrade API ready to accept requests")
    logger.info("-" * 60)

    yield

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------
    logger.info("=" * 60)
    logger.info("Shutting down PaperTrade Virtual Trading Platform...")

    await services.stop_all()
    await services.database.close()
    logger.info("✓ Services stopped and database connections closed")

    logger.info("PaperTrade API shutdown complete")
    logger.info("=" * 60)


# =============================================================================
# Error Handlers
# =============================================================================

def _error_response(status_code: int, message: str, code: str, details: Optional[dict] = None) -> JSONResponse:
    body = ErrorResponse(error=ErrorBody(message=message, code=code, details=details or None))
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


async def trading_error_handler(request: Request, exc: TradingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.code} - {exc.message}")
    return _error_response(exc.status_code, exc.message, exc.code, exc.details)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request")
    return _error_response(
        status.HTTP_400_BAD_REQUEST,
        f"{location}: {message}" if location else message,
        "validation_error",
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error", "internal_error")


# =============================================================================
# Application Factory
# =============================================================================

def create_application(
    config: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
    quote_source: Optional[QuoteSource] = None,
    enable_sweeper: Optional[bool] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Collaborators can be injected for tests; by default they come from
    configuration.
    """
    config = config or default_settings
    trading = config.trading
    session_factory = session_factory or AsyncSessionLocal
    quotes = quote_source or create_quote_source(trading)

    engine = SettlementEngine(session_factory, quotes, trading)
    sweep = trading.sweep_enabled if enable_sweeper is None else enable_sweeper

    application = FastAPI(
        title=openapi_config["title"],
        version=config.APP_VERSION,
        description=openapi_config["description"],
        license_info=openapi_config["license_info"],
        openapi_tags=openapi_config["openapi_tags"],
        lifespan=lifespan,
        docs_url="/docs" if config.DEBUG else None,
        redoc_url="/redoc" if config.DEBUG else None,
    )

    application.state.settings = config
    application.state.services = ServiceRegistry(
        session_factory=session_factory,
        quotes=quotes,
        engine=engine,
        ledger=PositionLedger(session_factory, quotes),
        database=DatabaseService(session_factory),
        sweeper=OrderSweeper(engine, session_factory, trading.sweep_interval_seconds) if sweep else None,
    )

    # CORS Configuration
    origins = list(config.api.cors_origins)
    if config.ALLOWED_ORIGINS:
        origins.extend(config.ALLOWED_ORIGINS)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(TradingError, trading_error_handler)
    application.add_exception_handler(RequestValidationError, validation_error_handler)
    application.add_exception_handler(Exception, unhandled_error_handler)

    # Include API routes
    application.include_router(api_router, prefix=config.API_PREFIX)

    # -------------------------------------------------------------------------
    # Health & Info Endpoints
    # -------------------------------------------------------------------------

    @application.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """
        Health check endpoint for load balancers and monitoring.
        """
        services: ServiceRegistry = request.app.state.services
        db_healthy = await services.database.health_check()
        return {
            "status": "healthy" if db_healthy else "degraded",
            "version": config.APP_VERSION,
            "environment": config.ENVIRONMENT,
            "database": "connected" if db_healthy else "disconnected",
            "services": services.get_status(),
        }

    @application.get("/", tags=["Health"])
    async def root():
        """
        Root endpoint with API information.
        """
        return {
            "message": "Welcome to PaperTrade Virtual Trading API",
            "version": config.APP_VERSION,
            "docs": "/docs" if config.DEBUG else "Disabled in production",
            "health": "/health",
        }

    return application


# Create application instance
app = create_application()
