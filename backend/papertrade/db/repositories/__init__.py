"""
Repository Layer
PaperTrade Virtual Trading Platform

Provides data access abstractions for all domain models.
"""

from papertrade.db.repositories.account import AccountRepository, LedgerEntryRepository
from papertrade.db.repositories.order import OrderRepository, PositionTotals

__all__ = [
    "AccountRepository",
    "LedgerEntryRepository",
    "OrderRepository",
    "PositionTotals",
]
