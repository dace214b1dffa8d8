"""
API Documentation Configuration

OpenAPI metadata, tags, and examples for the API documentation.
"""

# =============================================================================
# API Tags for Organization
# =============================================================================

tags_metadata = [
    {
        "name": "Health",
        "description": "System health checks and status monitoring",
    },
    {
        "name": "Trades",
        "description": "Order placement, closing, cancellation and trade history",
    },
    {
        "name": "Wallet",
        "description": "Virtual cash wallet, deposits, withdrawals and ledger",
    },
    {
        "name": "Market",
        "description": "Simulated market quotes",
    },
]


# =============================================================================
# API Description
# =============================================================================

description = """
## PaperTrade Virtual Trading API

Practice stock trading with virtual cash:

* **Order types**: market, limit, stop, stop-limit and trailing-stop
* **Atomic settlement**: every balance change is paired with a ledger entry
* **Portfolio tracking**: holdings, open positions and P&L statistics
* **Pending orders**: reserved funds, expiry and automatic triggering

### Identification

Every `/api` request names the caller with the `X-User-Id` header.

### Error Handling

All errors return JSON with:
```json
{
    "success": false,
    "error": {"message": "Insufficient balance", "code": "insufficient_balance"}
}
```
"""


# =============================================================================
# Example Responses
# =============================================================================

example_place_trade = {
    "success": True,
    "data": {
        "trade": {
            "symbol": "AAPL",
            "action": "buy",
            "orderType": "market",
            "status": "closed",
            "quantity": 10,
            "entryPrice": 175.43,
            "commission": 1.7543,
        },
        "newBalance": 8244.1457,
        "executed": True,
        "orderType": "market",
        "executionPrice": 175.43,
        "message": "Successfully bought 10 shares of AAPL at $175.43",
    },
}


# =============================================================================
# OpenAPI Configuration
# =============================================================================

openapi_config = {
    "title": "PaperTrade Virtual Trading API",
    "description": description,
    "version": "1.0.0",
    "license_info": {
        "name": "MIT License",
        "url": "https://opensource.org/licenses/MIT",
    },
    "openapi_tags": tags_metadata,
}
