"""Async repository base shared by the document-style domains.

Subclasses bind a model class and add their domain queries on top of
these primitives. Nothing here commits; callers decide when a unit of
work is complete.
"""

from collections.abc import Sequence
from typing import Any, Generic, TypeVar

from pydantic import BaseModel
from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from goplanit.infra.database import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)


def _as_fields(data: BaseModel | dict[str, Any]) -> dict[str, Any]:
    if isinstance(data, BaseModel):
        return data.model_dump(exclude_unset=True)
    return dict(data)


class GenericRepository(Generic[ModelType, CreateSchemaType, UpdateSchemaType]):
    """Flush-only CRUD over one model keyed by its document id.

    Type Parameters:
        ModelType: Mapped model class
        CreateSchemaType: Pydantic schema accepted by ``create``
        UpdateSchemaType: Pydantic schema accepted by ``update``
    """

    def __init__(self, model: type[ModelType], session: AsyncSession) -> None:
        self._model = model
        self._session = session

    async def create(self, data: CreateSchemaType | dict[str, Any]) -> ModelType:
        """Insert a row and return it with server defaults loaded."""
        row = self._model(**_as_fields(data))
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def get_by_id(self, id: str) -> ModelType | None:
        result = await self._session.execute(
            select(self._model).where(self._model.id == id)
        )
        return result.scalar_one_or_none()

    async def find_many(
        self,
        *conditions: Any,
        skip: int = 0,
        limit: int = 100,
        order_by: Any | None = None,
    ) -> Sequence[ModelType]:
        """Rows matching every condition, one page at a time.

        Args:
            *conditions: SQLAlchemy filter expressions
            skip: Rows to skip
            limit: Page size
            order_by: Column, or list of columns; newest first when omitted
        """
        stmt = select(self._model)
        if conditions:
            stmt = stmt.where(*conditions)
        stmt = self._apply_ordering(stmt, order_by).offset(skip).limit(limit)
        result = await self._session.execute(stmt)
        return result.scalars().all()

    async def count(self, *conditions: Any) -> int:
        stmt = select(func.count()).select_from(self._model)
        if conditions:
            stmt = stmt.where(*conditions)
        result = await self._session.execute(stmt)
        return result.scalar() or 0

    async def update(
        self,
        id: str,
        data: UpdateSchemaType | dict[str, Any],
    ) -> ModelType | None:
        """Set the given attributes on a row.

        Keys that are not model attributes are ignored.

        Returns:
            The refreshed row, or None if the id does not exist
        """
        row = await self.get_by_id(id)
        if row is None:
            return None

        for field, value in _as_fields(data).items():
            if hasattr(row, field):
                setattr(row, field, value)

        await self._session.flush()
        await self._session.refresh(row)
        return row

    def _apply_ordering(
        self,
        stmt: Select[tuple[ModelType]],
        order_by: Any | None,
    ) -> Select[tuple[ModelType]]:
        if order_by is None:
            return stmt.order_by(self._model.created_at.desc())
        if isinstance(order_by, (list, tuple)):
            return stmt.order_by(*order_by)
        return stmt.order_by(order_by)

    async def commit(self) -> None:
        await self._session.commit()
