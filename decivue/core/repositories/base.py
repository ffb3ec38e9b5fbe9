"""Base repository with common CRUD operations."""

from abc import ABC
from typing import Generic, TypeVar
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import asc, desc

from decivue.core.database.base import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


class BaseRepository(ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Base repository with common CRUD operations."""

    # Schema fields that are not columns (link ids, actor names)
    non_column_fields: set[str] = set()

    def __init__(self, session: AsyncSession, model: type[ModelType]) -> None:
        self._session = session
        self._model = model

    @property
    def session(self) -> AsyncSession:
        return self._session

    def _set_fields(self, obj_in: BaseModel) -> set[str]:
        return obj_in.model_fields_set - self.non_column_fields

    def build(self, obj_in: CreateSchemaType) -> ModelType:
        """Instantiate an unsaved record from a create schema.

        Only top-level fields the caller set are copied; nested models are
        dumped whole so their defaults (e.g. a parameter set's category)
        are stored.
        """
        fields = self._set_fields(obj_in)
        obj_data = obj_in.model_dump(include=fields, exclude_none=True) if fields else {}
        return self._model(**obj_data)

    async def create(self, obj_in: CreateSchemaType) -> ModelType:
        """Create a new record."""
        db_obj = self.build(obj_in)
        self._session.add(db_obj)
        await self._session.commit()
        await self._session.refresh(db_obj)
        return db_obj

    async def get_by_id(self, id: UUID) -> ModelType | None:
        """Get record by ID."""
        stmt = select(self._model).where(self._model.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_many(self, ids: list[UUID]) -> list[ModelType]:
        if not ids:
            return []
        stmt = select(self._model).where(self._model.id.in_(ids))
        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    def _apply_sorting(self, stmt, sort_by: str | None, sort_order: str = "desc"):
        """Apply sorting to a query statement.

        Validates sort_by against actual model columns to prevent injection.
        Defaults to updated_at desc if no sort specified.
        """
        order_fn = desc if sort_order == "desc" else asc

        if sort_by and sort_by in self._model.__table__.columns:
            stmt = stmt.order_by(order_fn(getattr(self._model, sort_by)))
        else:
            stmt = stmt.order_by(desc(self._model.updated_at))

        return stmt

    async def get_all(
        self,
        limit: int | None = None,
        offset: int | None = None,
        sort_by: str | None = None,
        sort_order: str = "desc",
    ) -> list[ModelType]:
        """Get all records with optional pagination and sorting."""
        stmt = select(self._model)
        stmt = self._apply_sorting(stmt, sort_by, sort_order)
        if offset:
            stmt = stmt.offset(offset)
        if limit:
            stmt = stmt.limit(limit)

        result = await self._session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, id: UUID, obj_in: UpdateSchemaType) -> ModelType | None:
        """Update a record by ID."""
        db_obj = await self.get_by_id(id)
        if not db_obj:
            return None

        fields = self._set_fields(obj_in)
        update_data = obj_in.model_dump(include=fields) if fields else {}
        for field, value in update_data.items():
            if hasattr(db_obj, field):
                setattr(db_obj, field, value)

        await self._session.commit()
        await self._session.refresh(db_obj)
        return db_obj

    async def delete(self, id: UUID) -> bool:
        """Delete a record by ID."""
        stmt = delete(self._model).where(self._model.id == id)
        result = await self._session.execute(stmt)
        await self._session.commit()
        return result.rowcount > 0

    async def exists(self, id: UUID) -> bool:
        """Check if record exists."""
        stmt = select(self._model.id).where(self._model.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def count(self) -> int:
        """Count total records."""
        stmt = select(func.count()).select_from(self._model)
        result = await self._session.execute(stmt)
        return result.scalar() or 0
