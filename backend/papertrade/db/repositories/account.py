"""
Wallet Repository
PaperTrade Virtual Trading Platform

Data access for accounts and their ledger entries.
"""

from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.db.models.account import Account, LedgerEntry
from papertrade.db.repository import BaseRepository


class AccountRepository(BaseRepository[Account]):
    """Repository for wallets."""

    def __init__(self, session: AsyncSession):
        super().__init__(Account, session)

    async def get_by_user(self, user_id: str, *, for_update: bool = False) -> Optional[Account]:
        return await self.get_by_field("user_id", user_id, for_update=for_update)


class LedgerEntryRepository(BaseRepository[LedgerEntry]):
    """Append-only access to ledger entries."""

    def __init__(self, session: AsyncSession):
        super().__init__(LedgerEntry, session)

    async def list_for_account(
        self,
        account_id: UUID,
        *,
        limit: Optional[int] = None,
        newest_first: bool = False,
        entry_type: Optional[str] = None,
    ) -> List[LedgerEntry]:
        query = select(LedgerEntry).where(LedgerEntry.account_id == account_id)
        if entry_type:
            query = query.where(LedgerEntry.entry_type == entry_type)
        query = query.order_by(LedgerEntry.id.desc() if newest_first else LedgerEntry.id)
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())
