"""
Order Vocabulary

Enums and the order request value object shared by the evaluator,
the settlement engine and the API layer.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class OrderAction(str, Enum):
    """Order side."""
    BUY = "buy"
    SELL = "sell"


class OrderType(str, Enum):
    """Order type."""
    MARKET = "market"
    LIMIT = "limit"
    STOP = "stop"
    STOP_LIMIT = "stop-limit"
    TRAILING_STOP = "trailing-stop"

    @classmethod
    def parse(cls, value: str) -> "OrderType":
        """Accept the canonical names and the underscore forms used by clients."""
        normalized = ORDER_TYPE_ALIASES.get(value, value)
        return cls(normalized)

    @property
    def requires_limit_price(self) -> bool:
        return self in (OrderType.LIMIT, OrderType.STOP_LIMIT)

    @property
    def requires_stop_price(self) -> bool:
        return self in (OrderType.STOP, OrderType.STOP_LIMIT, OrderType.TRAILING_STOP)


ORDER_TYPE_ALIASES = {
    "stop_loss": "stop",
    "stop-loss": "stop",
    "stop_limit": "stop-limit",
    "trailing_stop": "trailing-stop",
}


class OrderStatus(str, Enum):
    """
    Order status.

    pending -> open | cancelled | expired
    open    -> closed

    Orders that fill at submission go straight from pending to closed.
    """
    PENDING = "pending"
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class TimeInForce(str, Enum):
    GTC = "GTC"  # Good till cancelled (or explicit expiry date)
    DAY = "DAY"  # Expires at end of the market day


class SettlementType(str, Enum):
    """How a filled order touched the wallet."""
    CASH = "cash"  # Full notional debited/credited at fill; counts toward holdings
    MARGIN = "margin"  # Opened as a position; P&L realized on close


class CloseReason(str, Enum):
    FILLED = "filled"
    MANUAL = "manual"
    STOP_LOSS = "stop-loss"
    TAKE_PROFIT = "take-profit"


class LedgerEntryType(str, Enum):
    """Ledger entry types. Amounts are magnitudes; direction comes from the type."""
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TRADE_BUY = "trade_buy"
    TRADE_SELL = "trade_sell"
    TRADE_PROFIT = "trade_profit"
    TRADE_LOSS = "trade_loss"
    FEE = "fee"
    BONUS = "bonus"
    RESET = "reset"

    def apply(self, balance: Decimal, amount: Decimal) -> Decimal:
        """Return the balance after applying an entry of this type."""
        if self is LedgerEntryType.RESET:
            return amount
        if self in CREDIT_TYPES:
            return balance + abs(amount)
        return balance - abs(amount)


CREDIT_TYPES = frozenset({
    LedgerEntryType.DEPOSIT,
    LedgerEntryType.TRADE_SELL,
    LedgerEntryType.TRADE_PROFIT,
    LedgerEntryType.BONUS,
})


@dataclass(frozen=True)
class OrderRequest:
    """A buy/sell request as submitted by a user."""
    symbol: str
    action: str
    quantity: Decimal
    order_type: str = OrderType.MARKET.value
    limit_price: Optional[Decimal] = None
    stop_price: Optional[Decimal] = None
    take_profit: Optional[Decimal] = None
    stop_loss: Optional[Decimal] = None
    time_in_force: str = TimeInForce.GTC.value
    expiry_date: Optional[datetime] = None
    notes: Optional[str] = None

    @property
    def normalized_symbol(self) -> str:
        return self.symbol.strip().upper()
