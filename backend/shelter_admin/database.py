"""Async engine and session factory, with pool state exported to Prometheus."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Any, Protocol

from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from shelter_admin.config import settings
from shelter_admin.core.metrics import (
    db_pool_checked_in,
    db_pool_checked_out,
    db_pool_overflow,
    db_pool_size,
)


class _SizedPool(Protocol):
    def size(self) -> int: ...
    def checkedin(self) -> int: ...
    def checkedout(self) -> int: ...
    def overflow(self) -> int: ...


def record_pool_state(pool: _SizedPool) -> None:
    db_pool_size.set(pool.size())
    db_pool_checked_in.set(pool.checkedin())
    db_pool_checked_out.set(pool.checkedout())
    db_pool_overflow.set(pool.overflow())


def instrument_pool(async_engine: AsyncEngine) -> None:
    """Refresh the pool gauges whenever a connection is checked out or returned."""
    pool = async_engine.sync_engine.pool

    def _on_event(*_: Any) -> None:
        record_pool_state(pool)

    event.listen(async_engine.sync_engine, "checkout", _on_event)
    event.listen(async_engine.sync_engine, "checkin", _on_event)


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.DB_POOL_SIZE,
    max_overflow=settings.DB_MAX_OVERFLOW,
    pool_timeout=30,
    pool_recycle=1800,
    pool_pre_ping=True,
)
instrument_pool(engine)

async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session
