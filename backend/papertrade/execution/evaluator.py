"""
Order Evaluator
PaperTrade Virtual Trading Platform

Pure functions that validate an order request and decide, given a quote,
whether it fills now and at what price.

Decision table (buy side; sell mirrors the inequalities):

    market         always                           -> quote
    limit          limit >= quote                   -> quote
    stop           quote >= stop                    -> quote
    stop-limit     quote >= stop and limit >= quote -> quote
    trailing-stop  never (rests as pending)

An order that does not fill reports its reference price: the limit for
limit/stop-limit, the stop for stop, the quote for trailing-stop.
"""

from dataclasses import dataclass, replace
from decimal import Decimal, InvalidOperation
from typing import Optional

from papertrade.core.exceptions import InvalidOrderError
from papertrade.execution.orders import (
    OrderAction,
    OrderRequest,
    OrderStatus,
    OrderType,
    TimeInForce,
)
from papertrade.execution.quotes import Quote


@dataclass(frozen=True)
class Evaluation:
    """Outcome of evaluating an order against a quote."""
    execution_price: Decimal
    fills_immediately: bool
    effective_status: OrderStatus
    quote_price: Decimal


@dataclass(frozen=True)
class TriggerState:
    """How close a resting order is to executing."""
    would_execute: bool
    distance_to_trigger: Decimal
    distance_percent: Decimal


def _positive(value: Optional[Decimal]) -> bool:
    try:
        return value is not None and Decimal(value).is_finite() and Decimal(value) > 0
    except (InvalidOperation, TypeError, ValueError):
        return False


def validate_order(request: OrderRequest) -> OrderRequest:
    """
    Check an order request and return it with normalized fields.

    Raises:
        InvalidOrderError: on any malformed or missing field
    """
    if not request.symbol or not request.symbol.strip():
        raise InvalidOrderError("Missing required fields: symbol, action, quantity")

    if not _positive(request.quantity):
        raise InvalidOrderError("Quantity must be a valid positive number", {"quantity": str(request.quantity)})

    action = (request.action or "").lower()
    if action not in (OrderAction.BUY.value, OrderAction.SELL.value):
        raise InvalidOrderError("Action must be either 'buy' or 'sell'", {"action": request.action})

    try:
        order_type = OrderType.parse((request.order_type or "").lower())
    except ValueError:
        raise InvalidOrderError("Invalid order type", {"orderType": request.order_type})

    if order_type.requires_limit_price and not _positive(request.limit_price):
        raise InvalidOrderError(f"Limit price is required for {order_type.value} orders")

    if order_type.requires_stop_price and not _positive(request.stop_price):
        raise InvalidOrderError(f"Stop price is required for {order_type.value} orders")

    time_in_force = (request.time_in_force or TimeInForce.GTC.value).upper()
    if time_in_force not in (TimeInForce.GTC.value, TimeInForce.DAY.value):
        raise InvalidOrderError("Time in force must be GTC or DAY", {"timeInForce": request.time_in_force})

    for name, value in (("stopLoss", request.stop_loss), ("takeProfit", request.take_profit)):
        if value is not None and not _positive(value):
            raise InvalidOrderError(f"{name} must be a positive price")

    return replace(
        request,
        symbol=request.normalized_symbol,
        action=action,
        order_type=order_type.value,
        time_in_force=time_in_force,
    )


def reference_price(order, quote_price: Decimal) -> Decimal:
    """Price an unfilled order is measured against."""
    order_type = OrderType.parse(order.order_type)
    if order_type in (OrderType.LIMIT, OrderType.STOP_LIMIT):
        return order.limit_price
    if order_type is OrderType.STOP:
        return order.stop_price
    return quote_price


def _fills(order, price: Decimal) -> bool:
    order_type = OrderType.parse(order.order_type)
    is_buy = order.action == OrderAction.BUY.value

    if order_type is OrderType.MARKET:
        return True
    if order_type is OrderType.LIMIT:
        return order.limit_price >= price if is_buy else order.limit_price <= price
    if order_type is OrderType.STOP:
        return price >= order.stop_price if is_buy else price <= order.stop_price
    if order_type is OrderType.STOP_LIMIT:
        if is_buy:
            return price >= order.stop_price and order.limit_price >= price
        return price <= order.stop_price and order.limit_price <= price
    # Trailing stops always rest until the sweeper handles them
    return False


def evaluate(order, quote: Quote) -> Evaluation:
    """
    Decide whether ``order`` fills against ``quote``.

    ``order`` is anything exposing ``action``, ``order_type``,
    ``limit_price`` and ``stop_price`` (an OrderRequest or an Order row).
    Deterministic for a given order and quote.
    """
    price = quote.price
    if _fills(order, price):
        return Evaluation(
            execution_price=price,
            fills_immediately=True,
            effective_status=OrderStatus.CLOSED,
            quote_price=price,
        )
    return Evaluation(
        execution_price=reference_price(order, price),
        fills_immediately=False,
        effective_status=OrderStatus.PENDING,
        quote_price=price,
    )


def trigger_state(order, quote: Quote) -> TriggerState:
    """Distance between the quote and the price that would trigger ``order``."""
    price = quote.price
    is_buy = order.action == OrderAction.BUY.value
    order_type = OrderType.parse(order.order_type)

    if order_type is OrderType.LIMIT:
        target = order.limit_price
        distance = target - price if is_buy else price - target
    elif order_type is OrderType.STOP_LIMIT:
        stop_reached = price >= order.stop_price if is_buy else price <= order.stop_price
        if stop_reached:
            target = order.limit_price
            distance = target - price if is_buy else price - target
        else:
            target = order.stop_price
            distance = target - price if is_buy else price - target
    elif order_type in (OrderType.STOP, OrderType.TRAILING_STOP):
        target = order.stop_price or price
        distance = target - price if is_buy else price - target
    else:
        distance = Decimal("0")

    percent = distance / price * 100 if price else Decimal("0")
    return TriggerState(
        would_execute=_fills(order, price),
        distance_to_trigger=distance.quantize(Decimal("0.01")),
        distance_percent=percent.quantize(Decimal("0.01")),
    )


def validate_protection(
    action: str,
    entry_price: Decimal,
    stop_loss: Optional[Decimal] = None,
    take_profit: Optional[Decimal] = None,
) -> None:
    """
    Check stop-loss / take-profit sides against the entry price.

    Buy: stop_loss < entry < take_profit. Sell: reversed.
    """
    is_buy = action == OrderAction.BUY.value

    if stop_loss is not None:
        valid = stop_loss < entry_price if is_buy else stop_loss > entry_price
        if not valid:
            raise InvalidOrderError(
                f"Stop loss must be {'below' if is_buy else 'above'} entry price for {action} orders",
                {"stopLoss": str(stop_loss), "entryPrice": str(entry_price)},
            )

    if take_profit is not None:
        valid = take_profit > entry_price if is_buy else take_profit < entry_price
        if not valid:
            raise InvalidOrderError(
                f"Take profit must be {'above' if is_buy else 'below'} entry price for {action} orders",
                {"takeProfit": str(take_profit), "entryPrice": str(entry_price)},
            )
