"""
API tests for the trades, wallet and market routes.

Runs the FastAPI app over httpx's ASGI transport against the in-memory
database and static quotes from conftest.
"""

import pytest
from uuid import UUID, uuid4


pytestmark = pytest.mark.integration


async def open_wallet(client, headers, **body):
    response = await client.post("/api/wallet", json=body or None, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["services"]["quote_source"] == "StaticQuoteSource"
        assert body["services"]["sweeper"] is False

    @pytest.mark.asyncio
    async def test_root(self, client):
        response = await client.get("/")
        assert response.json()["health"] == "/health"


class TestWalletRoutes:

    @pytest.mark.asyncio
    async def test_open_wallet(self, client, headers):
        wallet = await open_wallet(client, headers)
        assert wallet["balance"] == 10000
        assert wallet["freeMargin"] == 10000
        assert wallet["userId"] == "user-1"

    @pytest.mark.asyncio
    async def test_open_with_initial_balance(self, client, headers):
        wallet = await open_wallet(client, headers, initialBalance=2500)
        assert wallet["initialBalance"] == 2500

    @pytest.mark.asyncio
    async def test_duplicate_wallet(self, client, headers):
        await open_wallet(client, headers)
        response = await client.post("/api/wallet", headers=headers)
        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "error": {"message": "Wallet already exists", "code": "wallet_exists", "details": {"user_id": "user-1"}},
        }

    @pytest.mark.asyncio
    async def test_missing_wallet(self, client, headers):
        response = await client.get("/api/wallet", headers=headers)
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "wallet_not_found"

    @pytest.mark.asyncio
    async def test_missing_user_header(self, client):
        response = await client.get("/api/wallet")
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "validation_error"

    @pytest.mark.asyncio
    async def test_deposit_withdraw_and_transactions(self, client, headers):
        await open_wallet(client, headers)

        deposit = await client.post("/api/wallet/deposit", json={"amount": 500}, headers=headers)
        withdraw = await client.post("/api/wallet/withdraw", json={"amount": 200.5}, headers=headers)
        transactions = await client.get("/api/wallet/transactions", headers=headers)

        assert deposit.status_code == 200
        assert deposit.json()["data"]["transaction"]["type"] == "deposit"
        assert withdraw.json()["data"]["wallet"]["balance"] == 10299.5
        entries = transactions.json()["data"]
        assert [e["type"] for e in entries] == ["withdrawal", "deposit"]
        assert entries[0]["signedAmount"] == -200.5
        assert entries[0]["balanceAfter"] == 10299.5

    @pytest.mark.asyncio
    async def test_overdraw_rejected(self, client, headers):
        await open_wallet(client, headers)
        response = await client.post("/api/wallet/withdraw", json={"amount": 20000}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "insufficient_balance"

    @pytest.mark.asyncio
    async def test_reset(self, client, headers):
        await open_wallet(client, headers)
        response = await client.post("/api/wallet/reset", json={"newBalance": 5000, "reason": "Retry"}, headers=headers)
        data = response.json()["data"]
        assert data["wallet"]["balance"] == 5000
        assert data["transaction"]["type"] == "reset"
        assert data["transaction"]["metadata"]["reason"] == "Retry"


class TestTradeRoutes:

    @pytest.mark.asyncio
    async def test_market_buy(self, client, headers):
        await open_wallet(client, headers)

        response = await client.post("/api/trades", json={
            "symbol": "AAPL", "action": "buy", "quantity": 10, "orderType": "market",
        }, headers=headers)

        assert response.status_code == 201, response.text
        data = response.json()["data"]
        assert data["executed"] is True
        assert data["newBalance"] == 8244.1457
        assert data["executionPrice"] == 175.43
        assert data["orderType"] == "market"
        assert data["trade"]["status"] == "closed"
        assert data["trade"]["commission"] == 1.7543
        assert data["message"] == "Successfully bought 10 shares of AAPL at $175.43"

    @pytest.mark.asyncio
    async def test_pending_limit_and_cancel(self, client, headers):
        await open_wallet(client, headers)

        placed = await client.post("/api/trades", json={
            "symbol": "aapl", "action": "buy", "quantity": 10, "orderType": "limit", "limitPrice": 170,
        }, headers=headers)
        trade_id = placed.json()["data"]["trade"]["id"]
        pending = await client.get("/api/trades/pending", headers=headers)
        cancelled = await client.delete(f"/api/trades/pending/{trade_id}", headers=headers)
        again = await client.delete(f"/api/trades/pending/{trade_id}", headers=headers)

        assert placed.json()["data"]["executed"] is False
        assert placed.json()["data"]["executionPrice"] is None
        [item] = pending.json()["data"]
        assert item["trade"]["id"] == trade_id
        assert item["trigger"]["distanceToTrigger"] == -5.43
        assert item["isExpired"] is False
        assert cancelled.status_code == 200
        assert cancelled.json()["data"]["trade"]["status"] == "cancelled"
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_validation_errors(self, client, headers):
        await open_wallet(client, headers)

        bad_quantity = await client.post("/api/trades", json={
            "symbol": "AAPL", "action": "buy", "quantity": -1,
        }, headers=headers)
        bad_type = await client.post("/api/trades", json={
            "symbol": "AAPL", "action": "buy", "quantity": 1, "orderType": "iceberg",
        }, headers=headers)
        missing = await client.post("/api/trades", json={"symbol": "AAPL"}, headers=headers)
        unknown = await client.post("/api/trades", json={
            "symbol": "ZZZZ", "action": "buy", "quantity": 1,
        }, headers=headers)

        assert bad_quantity.status_code == 400
        assert bad_quantity.json()["error"]["code"] == "invalid_order"
        assert bad_type.json()["error"]["message"] == "Invalid order type"
        assert missing.status_code == 400
        assert missing.json()["error"]["code"] == "validation_error"
        assert unknown.status_code == 400
        assert unknown.json()["error"]["code"] == "symbol_not_found"

    @pytest.mark.asyncio
    async def test_trade_without_wallet(self, client, headers):
        response = await client.post("/api/trades", json={
            "symbol": "AAPL", "action": "buy", "quantity": 1,
        }, headers=headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_sell_without_holdings(self, client, headers):
        await open_wallet(client, headers)
        response = await client.post("/api/trades", json={
            "symbol": "AAPL", "action": "sell", "quantity": 5,
        }, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "insufficient_holdings"

    @pytest.mark.asyncio
    async def test_close_unknown_trade(self, client, headers):
        await open_wallet(client, headers)
        response = await client.put(f"/api/trades/{uuid4()}/close", json={"exitPrice": 180}, headers=headers)
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_close_requires_exit_price(self, client, headers):
        await open_wallet(client, headers)
        response = await client.put(f"/api/trades/{uuid4()}/close", json={}, headers=headers)
        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Valid exit price is required"

    @pytest.mark.asyncio
    async def test_close_and_modify_open_position(self, app, client, headers, quotes):
        await open_wallet(client, headers)
        placed = await client.post("/api/trades", json={
            "symbol": "AAPL", "action": "buy", "quantity": 10, "orderType": "limit", "limitPrice": 170,
        }, headers=headers)
        trade_id = placed.json()["data"]["trade"]["id"]
        quotes.set_price("AAPL", "170")
        await app.state.services.engine.trigger_order(UUID(trade_id), await quotes.get_quote("AAPL"))

        modified = await client.patch(f"/api/trades/{trade_id}", json={"stopLoss": 165, "takeProfit": 190}, headers=headers)
        positions = await client.get("/api/trades/positions", headers=headers)
        closed = await client.put(f"/api/trades/{trade_id}/close", json={"exitPrice": 180}, headers=headers)

        assert modified.json()["data"]["stopLoss"] == 165
        assert positions.json()["data"][0]["trade"]["status"] == "open"
        assert closed.status_code == 200
        data = closed.json()["data"]
        assert data["trade"]["netProfitLoss"] == 98.3
        assert data["newBalance"] == 10098.3
        assert data["message"] == "Trade closed successfully with P&L: 98.30"

    @pytest.mark.asyncio
    async def test_history_portfolio_holdings_stats(self, client, headers):
        await open_wallet(client, headers)
        await client.post("/api/trades", json={"symbol": "AAPL", "action": "buy", "quantity": 10}, headers=headers)
        await client.post("/api/trades", json={"symbol": "TSLA", "action": "buy", "quantity": 2}, headers=headers)

        history = await client.get("/api/trades", params={"symbol": "AAPL"}, headers=headers)
        holdings = await client.get("/api/trades/holdings", headers=headers)
        portfolio = await client.get("/api/trades/portfolio", headers=headers)
        stats = await client.get("/api/trades/stats", params={"timeframe": "month"}, headers=headers)
        bad_stats = await client.get("/api/trades/stats", params={"timeframe": "decade"}, headers=headers)

        assert history.json()["data"]["total"] == 1
        assert history.json()["data"]["totalPages"] == 1
        assert {h["symbol"]: h["quantity"] for h in holdings.json()["data"]} == {"AAPL": 10, "TSLA": 2}
        assert portfolio.json()["data"]["cashBalance"] == pytest.approx(10000 - 1755.8543 - 498.23774)
        assert len(portfolio.json()["data"]["holdings"]) == 2
        assert stats.json()["data"]["totalTrades"] == 2
        assert bad_stats.status_code == 400


class TestMarketRoutes:

    @pytest.mark.asyncio
    async def test_quotes(self, client):
        response = await client.get("/api/market/quotes")
        symbols = [q["symbol"] for q in response.json()["data"]]
        assert symbols == ["AAPL", "TSLA", "MSFT"]

    @pytest.mark.asyncio
    async def test_single_quote(self, client):
        response = await client.get("/api/market/quotes/aapl")
        data = response.json()["data"]
        assert data["price"] == 175.43
        assert data["companyName"] == "Apple Inc."
        assert data["sentiment"] == "Neutral"

    @pytest.mark.asyncio
    async def test_unknown_symbol(self, client):
        response = await client.get("/api/market/quotes/ZZZZ")
        assert response.status_code == 400
        assert response.json()["success"] is False
