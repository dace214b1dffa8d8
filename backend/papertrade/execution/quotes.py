"""
Quote Sources
PaperTrade Virtual Trading Platform

Supplies the current price for a symbol. Implementations:
- MockQuoteSource: fixed eight-symbol table with seeded random jitter
- StaticQuoteSource: fixed prices, no jitter (tests and replays)
- HttpQuoteSource: proxies a JSON quote feed over httpx

Usage:
    source = create_quote_source(settings.trading)
    quote = await source.get_quote("AAPL")
"""

import random
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Mapping, Optional, Union

import httpx
from loguru import logger

from papertrade.core.config import TradingSettings
from papertrade.core.exceptions import QuoteUnavailableError, SymbolNotFoundError


CENT = Decimal("0.01")


@dataclass(frozen=True)
class StockInfo:
    """Reference data for a listed symbol."""
    company_name: str
    price: Decimal
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")


MOCK_STOCKS: Dict[str, StockInfo] = {
    "AAPL": StockInfo("Apple Inc.", Decimal("175.43"), Decimal("2.31"), Decimal("1.34")),
    "GOOGL": StockInfo("Alphabet Inc.", Decimal("2847.63"), Decimal("-15.42"), Decimal("-0.54")),
    "TSLA": StockInfo("Tesla Inc.", Decimal("248.87"), Decimal("8.94"), Decimal("3.72")),
    "AMZN": StockInfo("Amazon.com Inc.", Decimal("3247.15"), Decimal("-21.33"), Decimal("-0.65")),
    "MSFT": StockInfo("Microsoft Corp.", Decimal("412.87"), Decimal("5.67"), Decimal("1.39")),
    "NFLX": StockInfo("Netflix Inc.", Decimal("487.21"), Decimal("-12.45"), Decimal("-2.49")),
    "META": StockInfo("Meta Platforms Inc.", Decimal("334.56"), Decimal("7.89"), Decimal("2.41")),
    "NVDA": StockInfo("NVIDIA Corp.", Decimal("891.23"), Decimal("34.78"), Decimal("4.06")),
}


@dataclass
class Quote:
    """Point-in-time price for one symbol."""
    symbol: str
    price: Decimal
    change: Decimal = Decimal("0")
    change_percent: Decimal = Decimal("0")
    company_name: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def sentiment(self) -> str:
        return market_sentiment(self.change_percent)

    @property
    def volatility(self) -> str:
        return volatility_level(self.change_percent)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "symbol": self.symbol,
            "companyName": self.company_name,
            "price": float(self.price),
            "change": float(self.change),
            "changePercent": float(self.change_percent),
            "sentiment": self.sentiment,
            "lastUpdated": self.timestamp.isoformat(),
        }


def market_sentiment(change_percent: Decimal) -> str:
    if change_percent > 1:
        return "Bullish"
    if change_percent < -1:
        return "Bearish"
    return "Neutral"


def volatility_level(change_percent: Decimal) -> str:
    magnitude = abs(change_percent)
    if magnitude > 3:
        return "high"
    if magnitude > 1:
        return "medium"
    return "low"


def round_price(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


class QuoteSource(ABC):
    """Interface for price lookups. Implementations are read-only."""

    @abstractmethod
    async def get_quote(self, symbol: str) -> Quote:
        """Return the current quote or raise SymbolNotFoundError."""

    @abstractmethod
    def symbols(self) -> List[str]:
        """Symbols this source can price."""

    async def get_quotes(self, symbols: Optional[List[str]] = None) -> List[Quote]:
        return [await self.get_quote(symbol) for symbol in (symbols or self.symbols())]

    def supports(self, symbol: str) -> bool:
        return symbol.upper() in self.symbols()

    async def close(self) -> None:
        """Release any held resources."""


class MockQuoteSource(QuoteSource):
    """
    Fixed price table with uniform random jitter.

    Each lookup moves the price by up to ``jitter`` (a fraction, 0.02 = 2%)
    around the table price. Pass ``seed`` for reproducible sequences.
    """

    def __init__(
        self,
        stocks: Optional[Mapping[str, StockInfo]] = None,
        jitter: Decimal = Decimal("0.02"),
        seed: Optional[int] = None,
    ):
        self.stocks = dict(stocks or MOCK_STOCKS)
        self.jitter = Decimal(str(jitter))
        self._random = random.Random(seed)

    def symbols(self) -> List[str]:
        return list(self.stocks)

    async def get_quote(self, symbol: str) -> Quote:
        key = symbol.upper()
        stock = self.stocks.get(key)
        if stock is None:
            raise SymbolNotFoundError(symbol)

        variation = Decimal(str(self._random.uniform(-1.0, 1.0))) * self.jitter
        price = round_price(stock.price * (1 + variation))
        change = price - stock.price
        change_percent = round_price(change / stock.price * 100)

        return Quote(
            symbol=key,
            price=price,
            change=change,
            change_percent=change_percent,
            company_name=stock.company_name,
        )


class StaticQuoteSource(QuoteSource):
    """Fixed prices with no jitter. Prices can be moved with ``set_price``."""

    def __init__(self, prices: Mapping[str, Union[Decimal, str, int, float]]):
        self.prices: Dict[str, Decimal] = {
            symbol.upper(): Decimal(str(price)) for symbol, price in prices.items()
        }

    def symbols(self) -> List[str]:
        return list(self.prices)

    def set_price(self, symbol: str, price: Union[Decimal, str, int, float]) -> None:
        self.prices[symbol.upper()] = Decimal(str(price))

    async def get_quote(self, symbol: str) -> Quote:
        key = symbol.upper()
        if key not in self.prices:
            raise SymbolNotFoundError(symbol)
        stock = MOCK_STOCKS.get(key)
        return Quote(
            symbol=key,
            price=self.prices[key],
            company_name=stock.company_name if stock else None,
        )


class HttpQuoteSource(QuoteSource):
    """
    Quote feed client.

    Expects ``GET {base_url}/quotes/{symbol}`` to return a JSON object
    with ``price`` and optionally ``change``, ``changePercent`` and
    ``companyName``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 5.0,
        symbols: Optional[List[str]] = None,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._symbols = [s.upper() for s in (symbols or list(MOCK_STOCKS))]
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10),
        )

    def symbols(self) -> List[str]:
        return list(self._symbols)

    async def get_quote(self, symbol: str) -> Quote:
        key = symbol.upper()
        try:
            response = await self._client.get(f"/quotes/{key}")
            if response.status_code == 404:
                raise SymbolNotFoundError(symbol)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(f"Quote feed HTTP error for {key}: {e.response.status_code}")
            raise QuoteUnavailableError(
                "Quote feed returned an error", {"symbol": key, "status": e.response.status_code}
            ) from e
        except httpx.HTTPError as e:
            logger.error(f"Quote feed request failed for {key}: {e}")
            raise QuoteUnavailableError("Quote feed unavailable", {"symbol": key}) from e

        try:
            payload = response.json()
            price = Decimal(str(payload["price"]))
            # Missing or null change fields read as unchanged
            change = Decimal(str(payload.get("change") or 0))
            change_percent = Decimal(str(payload.get("changePercent") or 0))
        except (ValueError, KeyError, TypeError, ArithmeticError) as e:
            raise QuoteUnavailableError("Malformed quote payload", {"symbol": key}) from e
        if not price.is_finite() or price <= 0:
            raise QuoteUnavailableError("Quote feed returned a non-positive price", {"symbol": key})

        return Quote(
            symbol=key,
            price=price,
            change=change,
            change_percent=change_percent,
            company_name=payload.get("companyName"),
        )

    async def close(self) -> None:
        await self._client.aclose()
        logger.info("Quote feed client closed")


def create_quote_source(config: TradingSettings) -> QuoteSource:
    """Build the quote source selected by configuration."""
    if config.quote_source == "http":
        logger.info(f"Using HTTP quote feed at {config.quote_feed_url}")
        return HttpQuoteSource(config.quote_feed_url, timeout=config.quote_timeout)

    logger.info(f"Using mock quotes (jitter={config.quote_jitter}, seed={config.quote_seed})")
    return MockQuoteSource(jitter=config.quote_jitter, seed=config.quote_seed)
