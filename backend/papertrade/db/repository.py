"""
Base Repository Pattern Implementation
PaperTrade Virtual Trading Platform

Provides generic async data access with:
- Lookup by primary key or field
- Filtering and pagination
- Row locking for settlement transactions
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from pydantic import BaseModel
from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from papertrade.db.base import Base


ModelType = TypeVar("ModelType", bound=Base)


class PaginationParams(BaseModel):
    """Pagination parameters."""
    page: int = 1
    page_size: int = 50

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class Page(BaseModel):
    """Paginated result wrapper."""
    items: List[Any]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size


class BaseRepository(Generic[ModelType]):
    """
    Generic async repository.

    Repositories never commit: the caller owns the transaction.
    """

    def __init__(self, model: Type[ModelType], session: AsyncSession):
        self.model = model
        self.session = session

    def _conditions(self, filters: Optional[Dict[str, Any]]) -> list:
        conditions = []
        for field_name, value in (filters or {}).items():
            if value is None:
                continue
            field = getattr(self.model, field_name, None)
            if field is None:
                raise ValueError(f"Field {field_name} not found on {self.model.__name__}")
            conditions.append(field == value)
        return conditions

    async def get(self, id: Any, *, for_update: bool = False) -> Optional[ModelType]:
        query = select(self.model).where(self.model.id == id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_by_field(
        self,
        field_name: str,
        value: Any,
        *,
        for_update: bool = False,
    ) -> Optional[ModelType]:
        field = getattr(self.model, field_name, None)
        if field is None:
            raise ValueError(f"Field {field_name} not found on {self.model.__name__}")

        query = select(self.model).where(field == value)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def count(self, filters: Optional[Dict[str, Any]] = None) -> int:
        query = select(func.count()).select_from(self.model)
        conditions = self._conditions(filters)
        if conditions:
            query = query.where(and_(*conditions))
        result = await self.session.execute(query)
        return result.scalar() or 0

    async def get_paginated(
        self,
        pagination: PaginationParams,
        filters: Optional[Dict[str, Any]] = None,
        order_by: Any = None,
    ) -> Page:
        query = select(self.model)
        conditions = self._conditions(filters)
        if conditions:
            query = query.where(and_(*conditions))
        if order_by is not None:
            query = query.order_by(order_by)

        total = await self.count(filters)
        result = await self.session.execute(
            query.offset(pagination.offset).limit(pagination.page_size)
        )
        return Page(
            items=list(result.scalars().all()),
            total=total,
            page=pagination.page,
            page_size=pagination.page_size,
        )

    def add(self, instance: ModelType) -> ModelType:
        self.session.add(instance)
        return instance
