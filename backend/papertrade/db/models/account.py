"""
Domain Models - Wallet & Ledger
PaperTrade Virtual Trading Platform

SQLAlchemy models for:
- Account (one cash wallet per user)
- LedgerEntry (append-only record of every balance change)
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional
from uuid import UUID, uuid4

from sqlalchemy import (
    CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid, event
)
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from papertrade.core.exceptions import InsufficientBalanceError
from papertrade.db.base import Amount, Base, JSONType, quantize_amount, utcnow
from papertrade.execution.orders import LedgerEntryType


class Account(Base):
    """
    Simulated cash wallet.

    Only the settlement engine mutates an account, and only through
    ``post_entry``, ``reserve`` and ``release`` so that every balance
    change is paired with a ledger entry.
    """
    __tablename__ = "account"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)

    # Balances
    initial_balance: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    balance: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    equity: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    margin: Mapped[Decimal] = mapped_column(Amount, nullable=False, default=Decimal("0"))
    free_margin: Mapped[Decimal] = mapped_column(Amount, nullable=False)

    # Settings
    currency: Mapped[str] = mapped_column(String(3), default="USD")
    leverage: Mapped[int] = mapped_column(Integer, default=1)
    status: Mapped[str] = mapped_column(String(20), default="active")  # active, suspended, frozen, closed

    # Statistics
    total_deposits: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    total_withdrawals: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    total_trading_profit: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    total_trading_loss: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    total_fees: Mapped[Decimal] = mapped_column(Amount, default=Decimal("0"))
    highest_balance: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    lowest_balance: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    last_reset_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    last_activity_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())
    updated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("balance >= 0", name="balance_non_negative"),
        CheckConstraint("margin >= 0", name="margin_non_negative"),
        Index("idx_account_status", "status"),
    )

    @classmethod
    def open(
        cls,
        user_id: str,
        initial_balance: Decimal,
        currency: str = "USD",
        leverage: int = 1,
    ) -> "Account":
        account = cls(
            id=uuid4(),
            user_id=user_id,
            initial_balance=initial_balance,
            balance=initial_balance,
            margin=Decimal("0"),
            currency=currency,
            leverage=leverage,
            status="active",
            total_deposits=Decimal("0"),
            total_withdrawals=Decimal("0"),
            total_trading_profit=Decimal("0"),
            total_trading_loss=Decimal("0"),
            total_fees=Decimal("0"),
            highest_balance=initial_balance,
            lowest_balance=initial_balance,
            last_activity_at=utcnow(),
        )
        account.recompute()
        return account

    @property
    def net_profit(self) -> Decimal:
        return self.total_trading_profit - self.total_trading_loss

    @property
    def profit_loss_percentage(self) -> Decimal:
        if not self.initial_balance:
            return Decimal("0")
        return (self.balance - self.initial_balance) / self.initial_balance * 100

    @property
    def drawdown(self) -> Decimal:
        if not self.highest_balance:
            return Decimal("0")
        return (self.highest_balance - self.balance) / self.highest_balance * 100

    def recompute(self) -> None:
        """Refresh derived fields. No floating P&L is tracked, so equity is the balance."""
        self.equity = self.balance
        self.free_margin = self.equity - self.margin

    def reserve(self, amount: Decimal) -> None:
        amount = quantize_amount(amount)
        if amount > self.free_margin:
            raise InsufficientBalanceError(
                "Insufficient balance",
                {"required": str(amount), "available": str(self.free_margin)},
            )
        self.margin += amount
        self.recompute()

    def release(self, amount: Decimal) -> None:
        self.margin = max(self.margin - quantize_amount(amount or 0), Decimal("0"))
        self.recompute()

    def post_entry(
        self,
        entry_type: LedgerEntryType,
        amount: Decimal,
        description: str,
        reference: Optional[UUID] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "LedgerEntry":
        """
        Apply one balance change and return its (unsaved) ledger entry.

        Raises InsufficientBalanceError when the balance would go negative;
        the account is left untouched in that case.
        """
        amount = quantize_amount(amount)
        balance_before = self.balance
        balance_after = entry_type.apply(balance_before, amount)
        if balance_after < 0:
            raise InsufficientBalanceError(
                "Insufficient balance for this transaction",
                {"required": str(abs(amount)), "available": str(balance_before)},
            )

        entry = LedgerEntry(
            account_id=self.id,
            entry_type=entry_type.value,
            amount=amount if entry_type is LedgerEntryType.RESET else abs(amount),
            balance_before=balance_before,
            balance_after=balance_after,
            description=description[:200],
            reference=reference,
            details=details,
            status="completed",
        )

        self.balance = balance_after
        self._update_statistics(entry_type, abs(amount))
        self.recompute()
        return entry

    def _update_statistics(self, entry_type: LedgerEntryType, amount: Decimal) -> None:
        if entry_type is LedgerEntryType.DEPOSIT:
            self.total_deposits += amount
        elif entry_type is LedgerEntryType.WITHDRAWAL:
            self.total_withdrawals += amount
        elif entry_type is LedgerEntryType.TRADE_PROFIT:
            self.total_trading_profit += amount
        elif entry_type is LedgerEntryType.TRADE_LOSS:
            self.total_trading_loss += amount
        elif entry_type is LedgerEntryType.FEE:
            self.total_fees += amount
        elif entry_type is LedgerEntryType.RESET:
            self.last_reset_at = utcnow()

        if self.balance > self.highest_balance:
            self.highest_balance = self.balance
        if self.balance < self.lowest_balance:
            self.lowest_balance = self.balance
        self.last_activity_at = utcnow()


class LedgerEntry(Base):
    """
    Immutable record of one balance-affecting event.

    ``amount`` is a magnitude (the new balance for resets); the direction
    is implied by ``entry_type``.
    """
    __tablename__ = "ledger_entry"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    account_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("account.id", ondelete="CASCADE"), nullable=False)

    entry_type: Mapped[str] = mapped_column(String(20), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    balance_before: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(Amount, nullable=False)
    description: Mapped[str] = mapped_column(String(200), nullable=False)
    reference: Mapped[Optional[UUID]] = mapped_column(Uuid, ForeignKey("orders.id"))
    details: Mapped[Optional[Dict[str, Any]]] = mapped_column("metadata", JSONType)
    status: Mapped[str] = mapped_column(String(20), default="completed")

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, server_default=func.now())

    __table_args__ = (
        Index("idx_ledger_account", "account_id", "id"),
        Index("idx_ledger_reference", "reference"),
    )

    @property
    def signed_amount(self) -> Decimal:
        return self.balance_after - self.balance_before

    @property
    def is_consistent(self) -> bool:
        expected = LedgerEntryType(self.entry_type).apply(self.balance_before, self.amount)
        return expected == self.balance_after


@event.listens_for(LedgerEntry, "before_update")
def _reject_ledger_update(mapper, connection, target) -> None:
    raise ValueError("Ledger entries are immutable")


@event.listens_for(LedgerEntry, "before_delete")
def _reject_ledger_delete(mapper, connection, target) -> None:
    raise ValueError("Ledger entries are immutable")
