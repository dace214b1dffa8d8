"""
Position Ledger
PaperTrade Virtual Trading Platform

Read-only projections over orders and wallet entries:
- Holdings derived by aggregating cash-settled fills (no position table)
- Portfolio valuation at current quotes
- Open positions and pending orders with live trigger state
- Trade statistics per timeframe
- Ledger replay to verify the balance against its entries

Nothing here mutates state; all writes go through SettlementEngine.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.core.exceptions import (
    AccountNotFoundError,
    QuoteUnavailableError,
    SymbolNotFoundError,
    ValidationError,
)
from papertrade.db.base import utcnow
from papertrade.db.models import Account, LedgerEntry, Order
from papertrade.db.repositories import (
    AccountRepository,
    LedgerEntryRepository,
    OrderRepository,
)
from papertrade.db.repository import Page, PaginationParams
from papertrade.execution.evaluator import TriggerState, trigger_state
from papertrade.execution.orders import LedgerEntryType, OrderStatus
from papertrade.execution.quotes import QuoteSource


ZERO = Decimal("0")

TIMEFRAMES = ("today", "week", "month", "year", "all")


# =============================================================================
# Projection types
# =============================================================================

@dataclass
class Holding:
    """A symbol the user currently holds through cash-settled fills."""
    symbol: str
    quantity: Decimal
    total_bought: Decimal
    total_sold: Decimal
    total_invested: Decimal
    total_returns: Decimal
    average_cost: Decimal
    current_price: Decimal
    current_value: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal


@dataclass
class TradeStats:
    total_trades: int = 0
    winning_trades: int = 0
    losing_trades: int = 0
    win_rate: Decimal = ZERO
    total_profit: Decimal = ZERO
    total_loss: Decimal = ZERO
    net_profit_loss: Decimal = ZERO
    best_trade: Decimal = ZERO
    worst_trade: Decimal = ZERO
    avg_trade_size: Decimal = ZERO
    avg_duration: Decimal = ZERO
    profit_factor: Decimal = ZERO


@dataclass
class Portfolio:
    cash_balance: Decimal
    holdings: List[Holding]
    total_portfolio_value: Decimal
    stats: TradeStats


@dataclass
class OpenPosition:
    order: Order
    current_price: Decimal
    unrealized_pl: Decimal
    unrealized_pl_percent: Decimal


@dataclass
class PendingOrder:
    order: Order
    current_price: Optional[Decimal]
    trigger: Optional[TriggerState]
    is_expired: bool


@dataclass
class LedgerCheck:
    """Result of replaying a wallet's entries from its initial balance."""
    consistent: bool
    expected_balance: Decimal
    actual_balance: Decimal
    entries_checked: int
    errors: List[str] = field(default_factory=list)


# =============================================================================
# Pure helpers
# =============================================================================

def verify_ledger(account: Account, entries: Sequence[LedgerEntry]) -> LedgerCheck:
    """
    Replay ``entries`` (in sequence order) from ``account.initial_balance``.

    Each entry must start where the previous one ended and move the
    balance in its type's direction; the final balance must equal the
    wallet's.
    """
    running = account.initial_balance
    errors: List[str] = []

    for entry in entries:
        if entry.balance_before != running:
            errors.append(
                f"Entry {entry.id}: balance_before {entry.balance_before} != running balance {running}"
            )
        expected = LedgerEntryType(entry.entry_type).apply(entry.balance_before, entry.amount)
        if expected != entry.balance_after:
            errors.append(
                f"Entry {entry.id}: {entry.entry_type} {entry.amount} gives {expected}, recorded {entry.balance_after}"
            )
        running = entry.balance_after

    if running != account.balance:
        errors.append(f"Replayed balance {running} != wallet balance {account.balance}")

    return LedgerCheck(
        consistent=not errors,
        expected_balance=running,
        actual_balance=account.balance,
        entries_checked=len(entries),
        errors=errors,
    )


def timeframe_start(timeframe: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Start of a statistics window; None for ``all``."""
    if timeframe not in TIMEFRAMES:
        raise ValidationError("Invalid timeframe", {"timeframe": timeframe, "allowed": list(TIMEFRAMES)})

    now = now or utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if timeframe == "today":
        return midnight
    if timeframe == "week":
        return now - timedelta(days=7)
    if timeframe == "month":
        return midnight.replace(day=1)
    if timeframe == "year":
        return midnight.replace(month=1, day=1)
    return None


def summarize_trades(orders: Sequence[Order]) -> TradeStats:
    if not orders:
        return TradeStats()

    results = [order.net_profit_loss for order in orders]
    total_profit = sum((order.profit for order in orders), ZERO)
    total_loss = sum((order.loss for order in orders), ZERO)
    winning = sum(1 for r in results if r > 0)
    durations = [order.duration_seconds or 0 for order in orders]
    count = len(orders)

    return TradeStats(
        total_trades=count,
        winning_trades=winning,
        losing_trades=sum(1 for r in results if r < 0),
        win_rate=Decimal(winning) / count * 100,
        total_profit=total_profit,
        total_loss=total_loss,
        net_profit_loss=sum(results, ZERO),
        best_trade=max(results),
        worst_trade=min(results),
        avg_trade_size=sum((order.trade_value for order in orders), ZERO) / count,
        avg_duration=Decimal(sum(durations)) / count,
        profit_factor=total_profit / total_loss if total_loss > 0 else ZERO,
    )


# =============================================================================
# Ledger service
# =============================================================================

class PositionLedger:
    """Read-side queries for wallets, positions and orders."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        quote_source: QuoteSource,
    ):
        self.session_factory = session_factory
        self.quotes = quote_source

    async def _price_or(self, symbol: str, fallback: Optional[Decimal]) -> Optional[Decimal]:
        """Current quote, or ``fallback`` when the symbol cannot be priced."""
        try:
            return (await self.quotes.get_quote(symbol)).price
        except (SymbolNotFoundError, QuoteUnavailableError) as e:
            logger.warning(f"No quote for {symbol}, using fallback price {fallback}: {e.message}")
            return fallback

    async def _account(self, session: AsyncSession, user_id: str) -> Account:
        account = await AccountRepository(session).get_by_user(user_id)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account

    async def get_account(self, user_id: str) -> Account:
        async with self.session_factory() as session:
            return await self._account(session, user_id)

    # -------------------------------------------------------------------------
    # Holdings
    # -------------------------------------------------------------------------

    async def current_holdings(self, user_id: str, symbol: Optional[str] = None) -> Dict[str, Decimal]:
        """
        Net quantity per symbol from closed cash-settled orders.

        Without ``symbol`` only positive holdings are returned; with it the
        symbol is always present (zero when nothing is held).
        """
        async with self.session_factory() as session:
            totals = await OrderRepository(session).aggregate_positions(user_id, symbol)

        if symbol:
            key = symbol.upper()
            return {key: totals[0].net_quantity if totals else ZERO}
        return {t.symbol: t.net_quantity for t in totals if t.net_quantity > 0}

    async def average_cost(self, user_id: str, symbol: str) -> Optional[Decimal]:
        """Quantity-weighted average price of cash buy fills."""
        async with self.session_factory() as session:
            totals = await OrderRepository(session).aggregate_positions(user_id, symbol)
        return totals[0].average_cost if totals else None

    async def holdings(self, user_id: str) -> List[Holding]:
        async with self.session_factory() as session:
            totals = await OrderRepository(session).aggregate_positions(user_id)

        result: List[Holding] = []
        for t in totals:
            if t.net_quantity <= 0:
                continue
            avg_cost = t.average_cost or ZERO
            price = await self._price_or(t.symbol, avg_cost)
            cost_basis = t.net_quantity * avg_cost
            value = t.net_quantity * price
            unrealized = value - cost_basis
            result.append(Holding(
                symbol=t.symbol,
                quantity=t.net_quantity,
                total_bought=t.total_bought,
                total_sold=t.total_sold,
                total_invested=t.total_invested,
                total_returns=t.total_returns,
                average_cost=avg_cost,
                current_price=price,
                current_value=value,
                unrealized_pl=unrealized,
                unrealized_pl_percent=unrealized / cost_basis * 100 if cost_basis else ZERO,
            ))
        return result

    # -------------------------------------------------------------------------
    # Portfolio & orders
    # -------------------------------------------------------------------------

    async def portfolio(self, user_id: str) -> Portfolio:
        account = await self.get_account(user_id)
        holdings = await self.holdings(user_id)
        stats = await self.trade_stats(user_id, "all")
        total = account.balance + sum((h.current_value for h in holdings), ZERO)
        return Portfolio(
            cash_balance=account.balance,
            holdings=holdings,
            total_portfolio_value=total,
            stats=stats,
        )

    async def open_positions(self, user_id: str) -> List[OpenPosition]:
        async with self.session_factory() as session:
            orders = await OrderRepository(session).get_by_status(user_id, OrderStatus.OPEN)

        positions = []
        for order in orders:
            price = await self._price_or(order.symbol, order.current_price or order.entry_price)
            diff = price - order.entry_price
            unrealized = (diff if order.is_buy else -diff) * order.quantity
            positions.append(OpenPosition(
                order=order,
                current_price=price,
                unrealized_pl=unrealized,
                unrealized_pl_percent=unrealized / order.trade_value * 100 if order.trade_value else ZERO,
            ))
        return positions

    async def pending_orders(self, user_id: str) -> List[PendingOrder]:
        """Pending orders with their trigger state; expiry is reported, not applied."""
        async with self.session_factory() as session:
            orders = await OrderRepository(session).get_by_status(user_id, OrderStatus.PENDING)

        now = utcnow()
        pending = []
        for order in orders:
            try:
                quote = await self.quotes.get_quote(order.symbol)
            except (SymbolNotFoundError, QuoteUnavailableError) as e:
                logger.warning(f"No quote for pending order {order.id}: {e.message}")
                quote = None
            pending.append(PendingOrder(
                order=order,
                current_price=quote.price if quote else None,
                trigger=trigger_state(order, quote) if quote else None,
                is_expired=order.is_expired(now),
            ))
        return pending

    async def trade_stats(self, user_id: str, timeframe: str = "all") -> TradeStats:
        since = timeframe_start(timeframe)
        async with self.session_factory() as session:
            orders = await OrderRepository(session).get_closed_since(user_id, since)
        return summarize_trades(orders)

    async def trade_history(
        self,
        user_id: str,
        page: int = 1,
        limit: int = 50,
        status: Optional[str] = None,
        symbol: Optional[str] = None,
    ) -> Page:
        if status is not None and status not in {s.value for s in OrderStatus}:
            raise ValidationError("Invalid status filter", {"status": status})
        async with self.session_factory() as session:
            return await OrderRepository(session).get_history(
                user_id, PaginationParams(page=page, page_size=limit), status=status, symbol=symbol
            )

    # -------------------------------------------------------------------------
    # Wallet entries
    # -------------------------------------------------------------------------

    async def transactions(
        self,
        user_id: str,
        limit: int = 50,
        entry_type: Optional[str] = None,
    ) -> List[LedgerEntry]:
        if entry_type is not None and entry_type not in {t.value for t in LedgerEntryType}:
            raise ValidationError("Invalid transaction type", {"type": entry_type})
        async with self.session_factory() as session:
            account = await self._account(session, user_id)
            return await LedgerEntryRepository(session).list_for_account(
                account.id, limit=limit, newest_first=True, entry_type=entry_type
            )

    async def verify_account(self, user_id: str) -> LedgerCheck:
        async with self.session_factory() as session:
            account = await self._account(session, user_id)
            entries = await LedgerEntryRepository(session).list_for_account(account.id)
        check = verify_ledger(account, entries)
        if not check.consistent:
            logger.error(f"Ledger mismatch for {user_id}: {check.errors}")
        return check
