"""
Pydantic Schemas - Wallet
PaperTrade Virtual Trading Platform
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import Field

from papertrade.schemas.common import BaseSchema, Money


class OpenWalletRequest(BaseSchema):
    initial_balance: Optional[Decimal] = Field(None, ge=0)


class AmountRequest(BaseSchema):
    """Deposit or withdrawal."""
    amount: Decimal
    description: Optional[str] = Field(None, max_length=200)


class ResetBalanceRequest(BaseSchema):
    new_balance: Optional[Decimal] = Field(None, ge=0)
    reason: Optional[str] = Field(None, max_length=200)


class WalletResponse(BaseSchema):
    id: UUID
    user_id: str
    currency: str
    leverage: int
    status: str

    initial_balance: Money
    balance: Money
    equity: Money
    margin: Money
    free_margin: Money

    total_deposits: Money
    total_withdrawals: Money
    total_trading_profit: Money
    total_trading_loss: Money
    total_fees: Money
    net_profit: Money
    profit_loss_percentage: Money
    highest_balance: Money
    lowest_balance: Money
    drawdown: Money

    last_reset_at: Optional[datetime] = None
    last_activity_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class TransactionResponse(BaseSchema):
    """A ledger entry. ``amount`` is a magnitude; ``signedAmount`` carries the direction."""
    id: int
    type: str = Field(..., validation_alias="entry_type")
    amount: Money
    signed_amount: Money
    balance_before: Money
    balance_after: Money
    description: str
    reference: Optional[UUID] = None
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="details")
    status: str
    created_at: datetime


class WalletOperationResponse(BaseSchema):
    wallet: WalletResponse = Field(..., validation_alias="account")
    transaction: TransactionResponse = Field(..., validation_alias="entry")
