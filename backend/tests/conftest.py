"""Shared test fixtures for the Shelter Admin backend.

Provides:
- An in-memory DocumentStore with failure injection (no database needed)
- FastAPI test app + HTTP client with ``get_store`` overridden to that store
- Factory fixtures for roles, users and notifications
- Async PostgreSQL fixtures for SqlDocumentStore tests (skipped when no test
  database is reachable)
"""

from __future__ import annotations

import os

# Set test environment BEFORE any app imports so Settings() picks them up.
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-pytest-only")
os.environ.setdefault("ENVIRONMENT", "development")

import asyncio
import copy
import uuid
from collections.abc import Mapping, Sequence
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from shelter_admin.core.exceptions import NotFoundError
from shelter_admin.core.permissions import MODULES
from shelter_admin.core.security import create_access_token, hash_password
from shelter_admin.services.permission_matrix import PermissionMatrix

# ---------------------------------------------------------------------------
# In-memory document store
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """DocumentStore double.

    ``query_failures`` is a queue: each query pops the first exception (if
    any) and raises it. ``write_failure`` is raised by every write while set.
    """

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.query_failures: list[Exception] = []
        self.write_failure: Exception | None = None
        self.queries: list[dict[str, Any]] = []
        self.updates: list[tuple[str, str, dict[str, Any]]] = []
        self.batches: list[list[tuple[str, dict[str, Any]]]] = []

    def _rows(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    async def query(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        *,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self.queries.append(
            {"collection": collection, "filters": dict(filters or {}),
             "order_by": order_by, "descending": descending, "limit": limit}
        )
        if self.query_failures:
            raise self.query_failures.pop(0)
        rows = [
            r for r in self._rows(collection).values()
            if all(r.get(k) == v for k, v in (filters or {}).items())
        ]
        if order_by:
            rows.sort(key=lambda r: r[order_by], reverse=descending)
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        row = self._rows(collection).get(doc_id)
        return copy.deepcopy(row) if row is not None else None

    async def create(self, collection: str, data: Mapping[str, Any]) -> str:
        if self.write_failure is not None:
            raise self.write_failure
        doc_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        row = {"created_at": now, "updated_at": now, **copy.deepcopy(dict(data)), "id": doc_id}
        self._rows(collection)[doc_id] = row
        return doc_id

    async def update(self, collection: str, doc_id: str, fields: Mapping[str, Any]) -> None:
        if self.write_failure is not None:
            raise self.write_failure
        if doc_id not in self._rows(collection):
            raise NotFoundError(f"{collection}/{doc_id} not found")
        self.updates.append((collection, doc_id, dict(fields)))
        self._rows(collection)[doc_id].update(copy.deepcopy(dict(fields)))

    async def batch_update(
        self, collection: str, updates: Sequence[tuple[str, Mapping[str, Any]]]
    ) -> None:
        if self.write_failure is not None:
            raise self.write_failure
        rows = self._rows(collection)
        for doc_id, _ in updates:
            if doc_id not in rows:
                raise NotFoundError(f"{collection}/{doc_id} not found")
        self.batches.append([(doc_id, dict(fields)) for doc_id, fields in updates])
        for doc_id, fields in updates:
            rows[doc_id].update(copy.deepcopy(dict(fields)))

    async def delete(self, collection: str, doc_id: str) -> None:
        if self.write_failure is not None:
            raise self.write_failure
        if self._rows(collection).pop(doc_id, None) is None:
            raise NotFoundError(f"{collection}/{doc_id} not found")


@pytest.fixture
def store():
    return InMemoryDocumentStore()


# ---------------------------------------------------------------------------
# FastAPI test app + HTTP client
# ---------------------------------------------------------------------------


@pytest.fixture
async def app(store):
    """Minimal FastAPI test app with ``get_store`` overridden to the in-memory store."""
    from fastapi import FastAPI
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded

    from shelter_admin.api.deps import get_store
    from shelter_admin.api.errors import register_exception_handlers
    from shelter_admin.api.v1.router import api_router
    from shelter_admin.config import settings
    from shelter_admin.core.rate_limit import limiter

    test_app = FastAPI()
    test_app.state.limiter = limiter
    test_app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(test_app)
    test_app.include_router(api_router, prefix=settings.API_V1_PREFIX)

    async def _override_get_store():
        return store

    test_app.dependency_overrides[get_store] = _override_get_store
    yield test_app
    test_app.dependency_overrides.clear()


@pytest.fixture
async def client(app):
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as c:
        yield c


# ---------------------------------------------------------------------------
# Cache / limiter cleanup (autouse)
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _clear_permission_cache():
    from shelter_admin.services.permission_service import PermissionService

    PermissionService.invalidate_role_cache()
    yield
    PermissionService.invalidate_role_cache()


@pytest.fixture(autouse=True)
def _disable_rate_limiter():
    """Disable slowapi rate limiting during tests to avoid 429 responses."""
    from shelter_admin.core.rate_limit import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def create_role(store):
    """Insert a role; ``grants`` maps module -> enabled actions, default is everything."""

    async def _create(name="admin", grants=None, permissions=None):
        if permissions is None:
            if grants is None:
                matrix, _ = PermissionMatrix(MODULES).apply_preset("admin")
            else:
                matrix = PermissionMatrix.from_grants(grants, MODULES)
            permissions = [p.model_dump() for p in matrix.serialize()]
        doc_id = await store.create("roles", {"name": name, "permissions": permissions})
        return await store.get("roles", doc_id)

    return _create


@pytest.fixture
def create_user(store):
    async def _create(*, name="Test User", email=None, role="admin", phone="+15551234567"):
        doc_id = await store.create(
            "users",
            {
                "name": name,
                "email": email or f"test-{uuid.uuid4().hex[:8]}@example.com",
                "phone": phone,
                "role": role,
                "password_hash": hash_password("TestPassword1!"),
                "is_active": True,
            },
        )
        return await store.get("users", doc_id)

    return _create


@pytest.fixture
def create_notification(store):
    base = datetime(2026, 1, 1, tzinfo=timezone.utc)

    async def _create(*, user_id, minutes=0, read=False, title="Note", type="info", link=None):
        doc_id = await store.create(
            "notifications",
            {
                "title": title,
                "message": f"{title} body",
                "type": type,
                "user_id": user_id,
                "link": link,
                "read": read,
                "created_at": base + timedelta(minutes=minutes),
            },
        )
        return doc_id

    return _create


@pytest.fixture
def auth_headers():
    def _headers(user) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user['id'])}"}

    return _headers


@pytest.fixture
async def admin_user(create_role, create_user):
    await create_role("admin")
    return await create_user(email="admin@test.com", role="admin")


@pytest.fixture
async def viewer_user(create_role, create_user):
    matrix, _ = PermissionMatrix(MODULES).apply_preset("viewer")
    await create_role("Viewer", permissions=[p.model_dump() for p in matrix.serialize()])
    return await create_user(email="viewer@test.com", role="Viewer")


# ---------------------------------------------------------------------------
# PostgreSQL (SqlDocumentStore tests only)
# ---------------------------------------------------------------------------


def _test_db_url() -> str:
    user = os.getenv("POSTGRES_USER", "shelter")
    password = os.getenv("POSTGRES_PASSWORD", "shelter")
    host = os.getenv("POSTGRES_HOST", "localhost")
    port = os.getenv("POSTGRES_PORT", "5432")
    db = os.getenv("TEST_POSTGRES_DB", "shelter_test")
    return f"postgresql+asyncpg://{user}:{password}@{host}:{port}/{db}"


@pytest.fixture(scope="session")
def test_engine():
    """Create a test database engine and all tables. Drops tables at teardown.

    Sync fixture with NullPool so the engine is not bound to any event loop.
    """
    from sqlalchemy.ext.asyncio import create_async_engine
    from sqlalchemy.pool import NullPool

    from shelter_admin.models import Base

    engine = create_async_engine(_test_db_url(), echo=False, poolclass=NullPool)

    async def _setup():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)

    async def _teardown():
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()

    try:
        asyncio.run(_setup())
    except Exception as exc:
        asyncio.run(engine.dispose())
        pytest.skip(f"Test database not available ({exc})")

    yield engine

    asyncio.run(_teardown())


@pytest.fixture
async def db(test_engine):
    """Session whose tables are emptied after each test."""
    from sqlalchemy.ext.asyncio import AsyncSession

    from shelter_admin.models import Base

    session = AsyncSession(bind=test_engine, expire_on_commit=False)
    yield session
    await session.close()
    async with test_engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())


@pytest.fixture
def sql_store(db):
    from shelter_admin.services.document_store import SqlDocumentStore

    return SqlDocumentStore(db)
