"""
Settlement Engine
PaperTrade Virtual Trading Platform

The only code path that mutates a wallet. Every operation:
- runs under a per-account asyncio lock (one writer per wallet)
- runs in exactly one database transaction
- loads the wallet row FOR UPDATE where the backend supports it
- pairs every balance change with an immutable ledger entry

Any error raised inside an operation rolls the whole transaction back.

Architecture:
    OrderRequest -> validate_order -> QuoteSource -> evaluate
                 -> SettlementEngine.place_order -> Account / LedgerEntry / Order

Usage:
    engine = SettlementEngine(AsyncSessionLocal, MockQuoteSource(seed=1))
    result = await engine.place_order("user-1", OrderRequest("AAPL", "buy", Decimal("10")))
"""

import asyncio
import weakref
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, AsyncGenerator, Dict, Optional
from uuid import UUID, uuid4

from loguru import logger
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from papertrade.core.config import TradingSettings, settings
from papertrade.core.exceptions import (
    AccountExistsError,
    AccountNotFoundError,
    InsufficientBalanceError,
    InsufficientHoldingsError,
    InvalidOrderError,
    InvalidStateError,
    OrderNotFoundError,
    TransactionAbortError,
    ValidationError,
)
from papertrade.db.base import as_utc, quantize_amount, utcnow
from papertrade.db.models import Account, LedgerEntry, Order
from papertrade.db.repositories import AccountRepository, OrderRepository
from papertrade.execution.evaluator import evaluate, reference_price, validate_order, validate_protection
from papertrade.execution.orders import (
    CloseReason,
    LedgerEntryType,
    OrderAction,
    OrderRequest,
    OrderStatus,
    SettlementType,
    TimeInForce,
)
from papertrade.execution.pnl import (
    calculate_profit_loss,
    duration_seconds,
    end_of_market_day,
    fill_cost,
    position_margin,
    risk_reward,
)
from papertrade.execution.quotes import Quote, QuoteSource, round_price


ZERO = Decimal("0")


# =============================================================================
# Results
# =============================================================================

@dataclass
class PlacementResult:
    """Outcome of submitting an order."""
    order: Order
    new_balance: Decimal
    executed: bool
    execution_price: Optional[Decimal]
    message: str


@dataclass
class CloseResult:
    """Outcome of closing an open position."""
    order: Order
    new_balance: Decimal
    message: str


@dataclass
class LedgerPosting:
    """A wallet after a cash operation, with the entry that changed it."""
    account: Account
    entry: LedgerEntry


class AccountLocks:
    """
    Lazily created asyncio locks keyed by user id.

    Entries are weak: a lock lives only while some operation holds or
    waits on it, so idle accounts do not accumulate.
    """

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def get(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def __len__(self) -> int:
        return len(self._locks)


def market_conditions(quote: Quote) -> Dict[str, Any]:
    """Snapshot stored with each order at submission."""
    return {
        "marketOpen": True,
        "volatility": quote.volatility,
        "spread": float(round_price(abs(quote.price * Decimal("0.001")))),
        "liquidity": "high",
    }


# =============================================================================
# Engine
# =============================================================================

class SettlementEngine:
    """
    Atomic order settlement and wallet cash operations.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        quote_source: QuoteSource,
        config: Optional[TradingSettings] = None,
        locks: Optional[AccountLocks] = None,
    ):
        self.session_factory = session_factory
        self.quotes = quote_source
        self.config = config or settings.trading
        self.locks = locks or AccountLocks()

    # -------------------------------------------------------------------------
    # Transaction plumbing
    # -------------------------------------------------------------------------

    @asynccontextmanager
    async def _transaction(self, user_id: str) -> AsyncGenerator[AsyncSession, None]:
        async with self.locks.get(user_id):
            async with self.session_factory() as session:
                try:
                    async with session.begin():
                        yield session
                except DBAPIError as e:
                    logger.error(f"Settlement transaction aborted for {user_id}: {e}")
                    raise TransactionAbortError(
                        "Transaction aborted, please retry", {"user_id": user_id}
                    ) from e

    async def _load_account(self, session: AsyncSession, user_id: str) -> Account:
        account = await AccountRepository(session).get_by_user(user_id, for_update=True)
        if account is None:
            raise AccountNotFoundError(user_id)
        return account

    async def _owner_of(self, order_id: UUID) -> str:
        async with self.session_factory() as session:
            order = await OrderRepository(session).get(order_id)
        if order is None:
            raise OrderNotFoundError("Order not found", {"order_id": str(order_id)})
        return order.user_id

    def _post(
        self,
        session: AsyncSession,
        account: Account,
        entry_type: LedgerEntryType,
        amount: Decimal,
        description: str,
        reference: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> LedgerEntry:
        entry = account.post_entry(entry_type, amount, description, reference=reference, details=details)
        session.add(entry)
        return entry

    def _resolve_expiration(self, request: OrderRequest, now: datetime) -> Optional[datetime]:
        if request.time_in_force == TimeInForce.DAY.value:
            return end_of_market_day(now, self.config.market_timezone).astimezone(timezone.utc)
        if request.expiry_date is not None:
            return as_utc(request.expiry_date).astimezone(timezone.utc)
        return None

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    async def place_order(self, user_id: str, request: OrderRequest) -> PlacementResult:
        """
        Validate, price and settle a new order.

        Immediate fills are cash settled (pending -> closed). Orders that
        do not fill rest as pending; pending buys reserve
        ``qty x reference x (1 + commission rate)`` of free margin and
        pending sells hold back their shares from later sells.

        Raises:
            InvalidOrderError: malformed request or protective prices on the wrong side
            SymbolNotFoundError: unknown symbol
            AccountNotFoundError: no wallet for ``user_id``
            InsufficientBalanceError: buy cost exceeds free margin
            InsufficientHoldingsError: sell quantity exceeds holdings
        """
        request = validate_order(request)
        quote = await self.quotes.get_quote(request.symbol)
        evaluation = evaluate(request, quote)
        requested_price = reference_price(request, quote.price)
        entry_price = evaluation.execution_price

        validate_protection(request.action, entry_price, request.stop_loss, request.take_profit)

        now = utcnow()
        rate = self.config.commission_rate
        quantity = Decimal(request.quantity)

        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            orders = OrderRepository(session)

            order = Order(
                id=uuid4(),
                user_id=user_id,
                symbol=request.symbol,
                symbol_type="stock",
                action=request.action,
                order_type=request.order_type,
                time_in_force=request.time_in_force,
                quantity=quantity,
                limit_price=request.limit_price,
                stop_price=request.stop_price,
                requested_price=requested_price,
                entry_price=entry_price,
                current_price=quote.price,
                stop_loss=request.stop_loss,
                take_profit=request.take_profit,
                risk_reward=risk_reward(quantity, entry_price, request.stop_loss, request.take_profit),
                status=OrderStatus.PENDING.value,
                commission=ZERO,
                swap=ZERO,
                slippage=ZERO,
                reserved_amount=ZERO,
                margin=ZERO,
                leverage=account.leverage,
                market_conditions=market_conditions(quote),
                profit=ZERO,
                loss=ZERO,
                net_profit_loss=ZERO,
                profit_loss_percentage=ZERO,
                notes=request.notes,
                expiration_time=self._resolve_expiration(request, now),
                created_at=now,
            )

            is_buy = request.action == OrderAction.BUY.value

            if not is_buy:
                # Shares promised to resting sells are not available again
                available = await orders.available_to_sell(user_id, request.symbol)
                if available < quantity:
                    raise InsufficientHoldingsError(
                        "Insufficient shares to sell",
                        {"symbol": request.symbol, "requested": str(quantity), "available": str(available)},
                    )

            if evaluation.fills_immediately:
                cost = fill_cost(quantity, entry_price, rate)
                if is_buy and account.free_margin < cost.total_cost:
                    raise InsufficientBalanceError(
                        "Insufficient balance",
                        {"required": str(cost.total_cost), "available": str(account.free_margin)},
                    )

                session.add(order)
                await session.flush()

                self._settle_cash_fill(session, account, order, entry_price, now)
                message = (
                    f"Successfully {'bought' if is_buy else 'sold'} {quantity} shares of "
                    f"{request.symbol} at ${entry_price:.2f}"
                )
            else:
                if is_buy:
                    reserve = quantize_amount(quantity * entry_price * (1 + rate))
                    account.reserve(reserve)
                    order.reserved_amount = reserve
                session.add(order)
                message = (
                    f"{request.order_type.replace('-', ' ').upper()} order placed for "
                    f"{quantity} shares of {request.symbol}"
                )

            new_balance = account.balance

        logger.info(
            f"Order {order.id} {request.action} {quantity} {request.symbol} "
            f"{request.order_type} -> {order.status} (balance {new_balance})"
        )
        return PlacementResult(
            order=order,
            new_balance=new_balance,
            executed=evaluation.fills_immediately,
            execution_price=entry_price if evaluation.fills_immediately else None,
            message=message,
        )

    def _settle_cash_fill(
        self,
        session: AsyncSession,
        account: Account,
        order: Order,
        price: Decimal,
        now: datetime,
    ) -> None:
        """Debit (buy) or credit (sell) the full notional and close the order."""
        cost = fill_cost(order.quantity, price, self.config.commission_rate)
        details = {"commission": str(cost.commission), "price": str(price)}
        if order.is_buy:
            self._post(
                session, account, LedgerEntryType.TRADE_BUY, cost.total_cost,
                f"Bought {order.quantity} {order.symbol} @ {price}",
                reference=order.id,
                details=details,
            )
        else:
            self._post(
                session, account, LedgerEntryType.TRADE_SELL, cost.proceeds,
                f"Sold {order.quantity} {order.symbol} @ {price}",
                reference=order.id,
                details=details,
            )
        self._fill_cash(order, price, cost.commission, now)

    def _fill_cash(self, order: Order, price: Decimal, commission: Decimal, now: datetime) -> None:
        order.status = OrderStatus.CLOSED.value
        order.settlement_type = SettlementType.CASH.value
        order.close_reason = CloseReason.FILLED.value
        order.commission = commission
        order.slippage = price - order.requested_price
        order.open_time = now
        order.close_time = now
        order.exit_price = price
        order.current_price = price
        order.duration_seconds = 0

        pnl = calculate_profit_loss(order.action, order.quantity, order.entry_price, price, commission, order.swap)
        order.profit = pnl.profit
        order.loss = pnl.loss
        order.net_profit_loss = pnl.net
        order.profit_loss_percentage = pnl.percentage

    async def close_trade(
        self,
        user_id: str,
        order_id: UUID,
        exit_price: Decimal,
        reason: CloseReason = CloseReason.MANUAL,
    ) -> CloseResult:
        """
        Close an open position and realize its net P&L.

        Raises:
            InvalidOrderError: exit price missing or not positive
            OrderNotFoundError: no such order for this user
            InvalidStateError: the order is not open

        A loss larger than the balance takes the balance to zero; the
        uncovered remainder is kept in the ledger entry as ``shortfall``.
        """
        if exit_price is None or Decimal(exit_price) <= 0:
            raise InvalidOrderError("Valid exit price is required")
        exit_price = Decimal(exit_price)

        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            order = await OrderRepository(session).get_for_user(user_id, order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError("Open trade not found", {"order_id": str(order_id)})
            if order.status != OrderStatus.OPEN.value:
                raise InvalidStateError("Open trade not found", {"order_id": str(order_id), "status": order.status})

            self._settle_close(session, account, order, exit_price, reason)
            new_balance = account.balance

        logger.info(f"Closed {order.id} {order.symbol} @ {exit_price} ({reason.value}) P&L {order.net_profit_loss}")
        return CloseResult(
            order=order,
            new_balance=new_balance,
            message=f"Trade closed successfully with P&L: {order.net_profit_loss:.2f}",
        )

    def _settle_close(
        self,
        session: AsyncSession,
        account: Account,
        order: Order,
        exit_price: Decimal,
        reason: CloseReason,
    ) -> None:
        now = utcnow()
        pnl = calculate_profit_loss(
            order.action, order.quantity, order.entry_price, exit_price, order.commission, order.swap
        )

        account.release(order.margin)
        if pnl.net >= 0:
            self._post(
                session, account, LedgerEntryType.TRADE_PROFIT, pnl.net,
                f"Profit on {order.symbol} ({reason.value})",
                reference=order.id,
                details={"exitPrice": str(exit_price), "grossPL": str(pnl.gross)},
            )
        else:
            details = {"exitPrice": str(exit_price), "grossPL": str(pnl.gross)}
            loss = quantize_amount(-pnl.net)
            # The wallet cannot go negative; the uncovered part is recorded
            if loss > account.balance:
                details["shortfall"] = str(loss - account.balance)
                logger.warning(f"Loss on {order.id} exceeds balance; capped at {account.balance}")
                loss = account.balance
            self._post(
                session, account, LedgerEntryType.TRADE_LOSS, loss,
                f"Loss on {order.symbol} ({reason.value})",
                reference=order.id,
                details=details,
            )

        order.status = OrderStatus.CLOSED.value
        order.close_reason = reason.value
        order.exit_price = exit_price
        order.current_price = exit_price
        order.close_time = now
        order.duration_seconds = duration_seconds(as_utc(order.open_time), now)
        order.profit = pnl.profit
        order.loss = pnl.loss
        order.net_profit_loss = pnl.net
        order.profit_loss_percentage = pnl.percentage

    async def cancel_order(self, user_id: str, order_id: UUID, reason: str = "Cancelled by user") -> Order:
        """Cancel a pending order and release its reservation."""
        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            order = await OrderRepository(session).get_for_user(user_id, order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError("Pending order not found", {"order_id": str(order_id)})
            if order.status != OrderStatus.PENDING.value:
                raise InvalidStateError("Pending order not found", {"order_id": str(order_id), "status": order.status})

            self._retire(account, order, OrderStatus.CANCELLED, reason)

        logger.info(f"Cancelled order {order.id} ({reason})")
        return order

    def _retire(self, account: Account, order: Order, status: OrderStatus, reason: str) -> None:
        account.release(order.reserved_amount)
        order.reserved_amount = ZERO
        order.status = status.value
        order.cancel_reason = reason
        order.cancelled_at = utcnow()

    async def expire_order(self, order_id: UUID) -> Order:
        """Move a pending order past its expiration time to ``expired``."""
        user_id = await self._owner_of(order_id)
        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            order = await OrderRepository(session).get_for_user(user_id, order_id, for_update=True)
            if order is None or order.status != OrderStatus.PENDING.value:
                raise InvalidStateError("Pending order not found", {"order_id": str(order_id)})
            if not order.is_expired():
                raise InvalidStateError("Order has not expired", {"order_id": str(order_id)})

            self._retire(account, order, OrderStatus.EXPIRED, "Expired")

        logger.info(f"Expired order {order.id}")
        return order

    async def trigger_order(self, order_id: UUID, quote: Quote) -> Order:
        """
        Re-evaluate a pending order against a fresh quote.

        A buy fill releases the reservation and opens a margin position at
        the execution price; the commission is charged when the position
        closes. If free margin no longer covers the position the order is
        cancelled instead. A sell fill is cash settled against holdings
        (cancelled if the shares are gone). Orders that still do not fill
        are untouched.
        """
        user_id = await self._owner_of(order_id)
        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            order = await OrderRepository(session).get_for_user(user_id, order_id, for_update=True)
            if order is None or order.status != OrderStatus.PENDING.value:
                raise InvalidStateError("Pending order not found", {"order_id": str(order_id)})

            evaluation = evaluate(order, quote)
            order.current_price = quote.price
            if not evaluation.fills_immediately:
                return order

            price = evaluation.execution_price
            account.release(order.reserved_amount)
            order.reserved_amount = ZERO

            if not order.is_buy:
                return await self._trigger_sell(session, account, order, price)

            required = quantize_amount(position_margin(order.quantity, price, order.leverage or 1))
            if account.free_margin < required:
                order.status = OrderStatus.CANCELLED.value
                order.cancel_reason = "Insufficient margin when triggered"
                order.cancelled_at = utcnow()
                logger.warning(f"Order {order.id} cancelled at trigger: margin {required} > {account.free_margin}")
                return order

            account.reserve(required)
            cost = fill_cost(order.quantity, price, self.config.commission_rate)
            order.status = OrderStatus.OPEN.value
            order.settlement_type = SettlementType.MARGIN.value
            order.entry_price = price
            order.slippage = price - order.requested_price
            order.commission = cost.commission
            order.margin = required
            order.open_time = utcnow()
            order.risk_reward = risk_reward(order.quantity, price, order.stop_loss, order.take_profit)

        logger.info(f"Triggered order {order.id} {order.symbol} @ {price}; position open")
        return order

    async def _trigger_sell(self, session: AsyncSession, account: Account, order: Order, price: Decimal) -> Order:
        """A triggered sell disposes of held shares exactly like an immediate sell."""
        now = utcnow()
        available = await OrderRepository(session).available_to_sell(order.user_id, order.symbol, exclude=order.id)
        if available < order.quantity:
            order.status = OrderStatus.CANCELLED.value
            order.cancel_reason = "Insufficient shares when triggered"
            order.cancelled_at = now
            logger.warning(f"Order {order.id} cancelled at trigger: {order.quantity} > {available} held")
            return order

        order.entry_price = price
        self._settle_cash_fill(session, account, order, price, now)
        logger.info(f"Triggered sell {order.id} {order.quantity} {order.symbol} @ {price}")
        return order

    async def mark_to_market(self, order_id: UUID, quote: Quote) -> Order:
        """
        Update an open position's current price and close it when its
        stop-loss or take-profit is hit (at that level's price).
        """
        user_id = await self._owner_of(order_id)
        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            order = await OrderRepository(session).get_for_user(user_id, order_id, for_update=True)
            if order is None or order.status != OrderStatus.OPEN.value:
                raise InvalidStateError("Open trade not found", {"order_id": str(order_id)})

            price = quote.price
            order.current_price = price
            is_buy = order.is_buy

            if order.stop_loss and (price <= order.stop_loss if is_buy else price >= order.stop_loss):
                self._settle_close(session, account, order, order.stop_loss, CloseReason.STOP_LOSS)
                logger.info(f"Stop loss hit for {order.id} {order.symbol} @ {price}")
            elif order.take_profit and (price >= order.take_profit if is_buy else price <= order.take_profit):
                self._settle_close(session, account, order, order.take_profit, CloseReason.TAKE_PROFIT)
                logger.info(f"Take profit hit for {order.id} {order.symbol} @ {price}")

        return order

    async def modify_trade(
        self,
        user_id: str,
        order_id: UUID,
        stop_loss: Optional[Decimal] = None,
        take_profit: Optional[Decimal] = None,
    ) -> Order:
        """Change the protective levels of an open position."""
        for name, value in (("stopLoss", stop_loss), ("takeProfit", take_profit)):
            if value is not None and Decimal(value) <= 0:
                raise InvalidOrderError(f"{name} must be a positive price")

        async with self._transaction(user_id) as session:
            order = await OrderRepository(session).get_for_user(user_id, order_id, for_update=True)
            if order is None:
                raise OrderNotFoundError("Open trade not found", {"order_id": str(order_id)})
            if order.status != OrderStatus.OPEN.value:
                raise InvalidStateError("Only open trades can be modified", {"order_id": str(order_id)})

            new_stop = stop_loss if stop_loss is not None else order.stop_loss
            new_target = take_profit if take_profit is not None else order.take_profit
            validate_protection(order.action, order.entry_price, new_stop, new_target)

            order.stop_loss = new_stop
            order.take_profit = new_target
            order.risk_reward = risk_reward(order.quantity, order.entry_price, new_stop, new_target)

        logger.info(f"Modified {order.id}: SL={order.stop_loss} TP={order.take_profit}")
        return order

    # -------------------------------------------------------------------------
    # Wallet
    # -------------------------------------------------------------------------

    async def open_account(self, user_id: str, initial_balance: Optional[Decimal] = None) -> Account:
        balance = Decimal(initial_balance) if initial_balance is not None else self.config.default_balance
        if balance < 0:
            raise ValidationError("Initial balance cannot be negative")

        async with self._transaction(user_id) as session:
            repo = AccountRepository(session)
            if await repo.get_by_user(user_id) is not None:
                raise AccountExistsError(user_id)
            account = repo.add(Account.open(
                user_id,
                balance,
                currency=self.config.currency,
                leverage=self.config.default_leverage,
            ))

        logger.info(f"Opened wallet for {user_id} with {balance} {account.currency}")
        return account

    async def _cash_operation(
        self,
        user_id: str,
        entry_type: LedgerEntryType,
        amount: Decimal,
        description: str,
        details: Optional[Dict[str, Any]] = None,
        require_free_margin: bool = False,
    ) -> LedgerPosting:
        amount = Decimal(amount)
        if amount <= 0:
            raise ValidationError("Amount must be positive", {"amount": str(amount)})

        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            if require_free_margin and account.free_margin < amount:
                raise InsufficientBalanceError(
                    "Insufficient balance",
                    {"required": str(amount), "available": str(account.free_margin)},
                )
            entry = self._post(session, account, entry_type, amount, description, details=details)

        logger.info(f"{entry_type.value} {amount} for {user_id}; balance {account.balance}")
        return LedgerPosting(account=account, entry=entry)

    async def deposit(self, user_id: str, amount: Decimal, description: Optional[str] = None) -> LedgerPosting:
        return await self._cash_operation(
            user_id, LedgerEntryType.DEPOSIT, amount, description or f"Deposit of ${Decimal(amount):.2f}"
        )

    async def withdraw(self, user_id: str, amount: Decimal, description: Optional[str] = None) -> LedgerPosting:
        return await self._cash_operation(
            user_id, LedgerEntryType.WITHDRAWAL, amount,
            description or f"Withdrawal of ${Decimal(amount):.2f}",
            require_free_margin=True,
        )

    async def apply_bonus(self, user_id: str, amount: Decimal, description: str = "Bonus credit") -> LedgerPosting:
        return await self._cash_operation(user_id, LedgerEntryType.BONUS, amount, description)

    async def charge_fee(self, user_id: str, amount: Decimal, description: str = "Account fee") -> LedgerPosting:
        return await self._cash_operation(user_id, LedgerEntryType.FEE, amount, description)

    async def reset_balance(
        self,
        user_id: str,
        new_balance: Optional[Decimal] = None,
        reason: Optional[str] = None,
    ) -> LedgerPosting:
        """
        Set the balance to ``new_balance`` (default: the configured demo
        balance). Pending orders are cancelled first; open positions keep
        their margin, which the new balance must still cover.
        """
        amount = Decimal(new_balance) if new_balance is not None else self.config.default_balance
        if amount < 0:
            raise ValidationError("Balance cannot be negative")

        async with self._transaction(user_id) as session:
            account = await self._load_account(session, user_id)
            for order in await OrderRepository(session).get_by_status(user_id, OrderStatus.PENDING):
                self._retire(account, order, OrderStatus.CANCELLED, "Account reset")

            if amount < account.margin:
                raise InsufficientBalanceError(
                    "New balance does not cover margin held by open positions",
                    {"required": str(account.margin), "requested": str(amount)},
                )

            previous = account.balance
            entry = self._post(
                session, account, LedgerEntryType.RESET, amount,
                f"Balance reset to ${amount:.2f}. Reason: {reason or 'User reset'}",
                details={"reason": reason, "previousBalance": str(previous)},
            )

        logger.info(f"Reset wallet for {user_id}: {previous} -> {amount}")
        return LedgerPosting(account=account, entry=entry)
