"""
Trade Arithmetic
PaperTrade Virtual Trading Platform

Commission, fill cost and profit/loss calculations shared by the
settlement engine and the position projections.
"""

from dataclasses import dataclass
from datetime import datetime, time
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

from papertrade.db.base import quantize_amount
from papertrade.execution.orders import OrderAction


ZERO = Decimal("0")

# DAY orders expire at the end of the calendar day in the exchange timezone
END_OF_DAY = time(23, 59, 59, 999999)


@dataclass(frozen=True)
class FillCost:
    """Money movement for an immediate fill."""
    total_value: Decimal
    commission: Decimal

    @property
    def total_cost(self) -> Decimal:
        """Debit for a buy."""
        return self.total_value + self.commission

    @property
    def proceeds(self) -> Decimal:
        """Credit for a sell."""
        return self.total_value - self.commission


@dataclass(frozen=True)
class ProfitLoss:
    """Realized result of a closed position."""
    gross: Decimal
    net: Decimal
    profit: Decimal
    loss: Decimal
    percentage: Decimal


def fill_cost(quantity: Decimal, price: Decimal, commission_rate: Decimal) -> FillCost:
    total_value = quantity * price
    return FillCost(total_value=total_value, commission=quantize_amount(total_value * commission_rate))


def calculate_profit_loss(
    action: str,
    quantity: Decimal,
    entry_price: Decimal,
    exit_price: Decimal,
    commission: Decimal = ZERO,
    swap: Decimal = ZERO,
) -> ProfitLoss:
    """
    Net P&L of a round trip.

    priceDiff is exit - entry for buys and entry - exit for sells;
    net = priceDiff * quantity - commission - swap.
    """
    diff = exit_price - entry_price
    if action != OrderAction.BUY.value:
        diff = -diff

    gross = diff * quantity
    net = gross - (commission or ZERO) - (swap or ZERO)
    trade_value = quantity * entry_price

    return ProfitLoss(
        gross=gross,
        net=net,
        profit=net if net > 0 else ZERO,
        loss=-net if net < 0 else ZERO,
        percentage=net / trade_value * 100 if trade_value else ZERO,
    )


def risk_reward(
    quantity: Decimal,
    entry_price: Decimal,
    stop_loss: Optional[Decimal],
    take_profit: Optional[Decimal],
) -> Optional[Decimal]:
    if not stop_loss or not take_profit:
        return None
    risk = abs(entry_price - stop_loss) * quantity
    if not risk:
        return None
    reward = abs(take_profit - entry_price) * quantity
    return reward / risk


def position_margin(quantity: Decimal, price: Decimal, leverage: int) -> Decimal:
    return quantity * price / Decimal(max(leverage, 1))


def duration_seconds(open_time: Optional[datetime], close_time: Optional[datetime]) -> Optional[int]:
    if open_time is None or close_time is None:
        return None
    return max(int((close_time - open_time).total_seconds()), 0)


def end_of_market_day(now: datetime, timezone_name: str) -> datetime:
    """Expiry for DAY orders: the last instant of today in the exchange timezone."""
    local = now.astimezone(ZoneInfo(timezone_name))
    return datetime.combine(local.date(), END_OF_DAY, tzinfo=local.tzinfo)
