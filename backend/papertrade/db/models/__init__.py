"""
Database Models Package
PaperTrade Virtual Trading Platform

Exports all SQLAlchemy models for the application.
"""

from papertrade.db.base import Base

from papertrade.db.models.account import Account, LedgerEntry
from papertrade.db.models.order import Order


__all__ = [
    "Base",
    "Account",
    "LedgerEntry",
    "Order",
]
