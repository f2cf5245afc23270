"""Document store collaborator.

Services talk to persistence only through :class:`DocumentStore`: flat,
collection-addressed records (plain dicts with a string ``id``) and equality
filters. :class:`SqlDocumentStore` backs it with PostgreSQL.

Error contract for every implementation:

- failures raise :class:`PersistenceError`;
- an ordered query the backend cannot serve for lack of an index raises
  :class:`IndexMissingError` (the SQL store never does; managed document
  databases may);
- writes to a missing record raise :class:`NotFoundError`;
- ``batch_update`` is all-or-nothing.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shelter_admin.core.exceptions import NotFoundError, PersistenceError
from shelter_admin.core.metrics import persistence_errors_total
from shelter_admin.models import Base, Notification, Role, User

Record = dict[str, Any]

ROLES = "roles"
NOTIFICATIONS = "notifications"
USERS = "users"


class DocumentStore(Protocol):
    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]: ...

    async def get(self, collection: str, doc_id: str) -> Record | None: ...

    async def create(self, collection: str, data: Mapping[str, Any]) -> str: ...

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None: ...

    async def batch_update(
        self, collection: str, updates: Sequence[tuple[str, Mapping[str, Any]]]
    ) -> None: ...

    async def delete(self, collection: str, doc_id: str) -> None: ...


_MODELS: dict[str, type[Base]] = {
    ROLES: Role,
    NOTIFICATIONS: Notification,
    USERS: User,
}


def _parse_id(doc_id: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(str(doc_id))
    except ValueError:
        return None


def _to_record(obj: Base) -> Record:
    record: Record = {}
    for column in obj.__table__.columns:
        value = getattr(obj, column.key)
        if isinstance(value, uuid.UUID):
            value = str(value)
        record[column.key] = value
    return record


class SqlDocumentStore:
    """DocumentStore over an AsyncSession. Each write commits on its own."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # ------------------------------------------------------------------

    def _model(self, collection: str) -> type[Base]:
        try:
            return _MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}") from None

    def _column(self, model: type[Base], field: str):
        if field not in model.__table__.columns:
            raise ValueError(f"Unknown field '{field}' on {model.__tablename__}")
        return getattr(model, field)

    async def _fail(self, operation: str, collection: str, exc: Exception) -> PersistenceError:
        await self._session.rollback()
        persistence_errors_total.labels(operation=operation).inc()
        return PersistenceError(f"{operation} on {collection} failed: {exc}")

    async def _load(self, model: type[Base], doc_id: str) -> Base | None:
        parsed = _parse_id(doc_id)
        if parsed is None:
            return None
        result = await self._session.execute(select(model).where(model.id == parsed))
        return result.scalar_one_or_none()

    # ------------------------------------------------------------------

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Record]:
        model = self._model(collection)
        stmt = select(model)
        for field, value in (filters or {}).items():
            if field == "id":
                value = _parse_id(value)
                if value is None:
                    return []
            stmt = stmt.where(self._column(model, field) == value)
        if order_by:
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            result = await self._session.execute(stmt)
        except SQLAlchemyError as exc:
            raise await self._fail("query", collection, exc) from exc
        return [_to_record(obj) for obj in result.scalars().all()]

    async def get(self, collection: str, doc_id: str) -> Record | None:
        model = self._model(collection)
        try:
            obj = await self._load(model, doc_id)
        except SQLAlchemyError as exc:
            raise await self._fail("get", collection, exc) from exc
        return _to_record(obj) if obj is not None else None

    async def create(self, collection: str, data: Mapping[str, Any]) -> str:
        model = self._model(collection)
        for field in data:
            self._column(model, field)
        obj = model(**data)
        try:
            self._session.add(obj)
            await self._session.flush()
            doc_id = str(obj.id)
            await self._session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("create", collection, exc) from exc
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        await self.batch_update(collection, [(doc_id, fields)])

    async def batch_update(
        self, collection: str, updates: Sequence[tuple[str, Mapping[str, Any]]]
    ) -> None:
        """Apply every update in one transaction; a missing record aborts all of them."""
        if not updates:
            return
        model = self._model(collection)
        for _, fields in updates:
            for field in fields:
                self._column(model, field)
        try:
            for doc_id, fields in updates:
                obj = await self._load(model, doc_id)
                if obj is None:
                    await self._session.rollback()
                    raise NotFoundError(f"{collection}/{doc_id} not found")
                for field, value in fields.items():
                    setattr(obj, field, value)
            await self._session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("batch_update", collection, exc) from exc

    async def delete(self, collection: str, doc_id: str) -> None:
        model = self._model(collection)
        try:
            obj = await self._load(model, doc_id)
            if obj is None:
                raise NotFoundError(f"{collection}/{doc_id} not found")
            await self._session.delete(obj)
            await self._session.commit()
        except SQLAlchemyError as exc:
            raise await self._fail("delete", collection, exc) from exc
