"""
Tests for Quote Sources

Mock table jitter, static prices, the HTTP feed client and the
sentiment/volatility helpers.
"""

import pytest
from decimal import Decimal

import httpx

from papertrade.core.config import TradingSettings
from papertrade.core.exceptions import QuoteUnavailableError, SymbolNotFoundError
from papertrade.execution.quotes import (
    MOCK_STOCKS,
    HttpQuoteSource,
    MockQuoteSource,
    StaticQuoteSource,
    create_quote_source,
    market_sentiment,
    volatility_level,
)


class TestHelpers:

    @pytest.mark.parametrize("change,expected", [
        (Decimal("1.34"), "Bullish"),
        (Decimal("1"), "Neutral"),
        (Decimal("-0.54"), "Neutral"),
        (Decimal("-2.49"), "Bearish"),
    ])
    def test_sentiment(self, change, expected):
        assert market_sentiment(change) == expected

    @pytest.mark.parametrize("change,expected", [
        (Decimal("4.06"), "high"),
        (Decimal("-3.72"), "high"),
        (Decimal("2.41"), "medium"),
        (Decimal("0.5"), "low"),
    ])
    def test_volatility(self, change, expected):
        assert volatility_level(change) == expected


class TestMockQuoteSource:

    def test_symbol_table(self):
        source = MockQuoteSource()
        assert sorted(source.symbols()) == sorted(["AAPL", "GOOGL", "TSLA", "AMZN", "MSFT", "NFLX", "META", "NVDA"])
        assert MOCK_STOCKS["AAPL"].price == Decimal("175.43")

    @pytest.mark.asyncio
    async def test_jitter_within_bounds(self):
        source = MockQuoteSource(seed=7)
        base = MOCK_STOCKS["NVDA"].price
        for _ in range(50):
            quote = await source.get_quote("NVDA")
            assert abs(quote.price - base) <= base * Decimal("0.02") + Decimal("0.01")
            assert quote.price == quote.price.quantize(Decimal("0.01"))

    @pytest.mark.asyncio
    async def test_seeded_sequences_repeat(self):
        first = MockQuoteSource(seed=42)
        second = MockQuoteSource(seed=42)
        prices_a = [(await first.get_quote("AAPL")).price for _ in range(5)]
        prices_b = [(await second.get_quote("AAPL")).price for _ in range(5)]
        assert prices_a == prices_b

    @pytest.mark.asyncio
    async def test_zero_jitter_returns_table_price(self):
        source = MockQuoteSource(jitter=Decimal("0"))
        quote = await source.get_quote("msft")
        assert quote.symbol == "MSFT"
        assert quote.price == Decimal("412.87")
        assert quote.change == Decimal("0")
        assert quote.company_name == "Microsoft Corp."

    @pytest.mark.asyncio
    async def test_unknown_symbol(self):
        with pytest.raises(SymbolNotFoundError) as exc_info:
            await MockQuoteSource().get_quote("ZZZZ")
        assert exc_info.value.symbol == "ZZZZ"


class TestStaticQuoteSource:

    @pytest.mark.asyncio
    async def test_set_price(self):
        source = StaticQuoteSource({"AAPL": "175.43"})
        source.set_price("aapl", 170)
        quote = await source.get_quote("AAPL")
        assert quote.price == Decimal("170")
        assert quote.company_name == "Apple Inc."

    @pytest.mark.asyncio
    async def test_get_quotes_for_all_symbols(self):
        source = StaticQuoteSource({"AAPL": 1, "TSLA": 2})
        quotes = await source.get_quotes()
        assert [q.symbol for q in quotes] == ["AAPL", "TSLA"]
        assert source.supports("tsla")
        assert not source.supports("MSFT")


def feed(handler) -> HttpQuoteSource:
    client = httpx.AsyncClient(base_url="http://feed.test", transport=httpx.MockTransport(handler))
    return HttpQuoteSource("http://feed.test", symbols=["AAPL"], client=client)


class TestHttpQuoteSource:

    @pytest.mark.asyncio
    async def test_parses_quote(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/quotes/AAPL"
            return httpx.Response(200, json={
                "price": 180.25, "change": 4.82, "changePercent": 2.75, "companyName": "Apple Inc.",
            })

        source = feed(handler)
        quote = await source.get_quote("aapl")
        assert quote.price == Decimal("180.25")
        assert quote.change_percent == Decimal("2.75")
        assert quote.sentiment == "Bullish"
        await source.close()

    @pytest.mark.asyncio
    async def test_not_found(self):
        source = feed(lambda request: httpx.Response(404))
        with pytest.raises(SymbolNotFoundError):
            await source.get_quote("ZZZZ")

    @pytest.mark.asyncio
    async def test_server_error(self):
        source = feed(lambda request: httpx.Response(502))
        with pytest.raises(QuoteUnavailableError) as exc_info:
            await source.get_quote("AAPL")
        assert exc_info.value.details["status"] == 502

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(QuoteUnavailableError):
            await feed(handler).get_quote("AAPL")

    @pytest.mark.asyncio
    async def test_null_change_reads_as_unchanged(self):
        source = feed(lambda request: httpx.Response(200, json={
            "price": 180.25, "change": None, "changePercent": None,
        }))
        quote = await source.get_quote("AAPL")
        assert quote.change == Decimal("0")
        assert quote.change_percent == Decimal("0")
        assert quote.sentiment == "Neutral"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", [
        {"last": 1},
        {"price": "abc"},
        {"price": 0},
        {"price": 10, "change": "n/a"},
        [1, 2],
    ])
    async def test_malformed_payload(self, payload):
        source = feed(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(QuoteUnavailableError):
            await source.get_quote("AAPL")

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        source = feed(lambda request: httpx.Response(200, content=b"not json"))
        with pytest.raises(QuoteUnavailableError):
            await source.get_quote("AAPL")


class TestFactory:

    def test_mock_by_default(self):
        assert isinstance(create_quote_source(TradingSettings(quote_source="mock")), MockQuoteSource)

    def test_http(self):
        source = create_quote_source(TradingSettings(quote_source="http", quote_feed_url="http://feed.test"))
        assert isinstance(source, HttpQuoteSource)
        assert source.base_url == "http://feed.test"
