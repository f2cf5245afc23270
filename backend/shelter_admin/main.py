from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from shelter_admin.api.errors import register_exception_handlers
from shelter_admin.api.v1.router import api_router
from shelter_admin.config import APP_VERSION, _DEFAULT_SECRET_KEYS, settings
from shelter_admin.core.logging_config import configure_logging
from shelter_admin.core.metrics import app_info
from shelter_admin.core.rate_limit import limiter
from shelter_admin.database import async_session, engine
from shelter_admin.middleware.prometheus import PrometheusMiddleware
from shelter_admin.models import Base

configure_logging(settings.ENVIRONMENT, settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


def _run_alembic_stamp(alembic_cfg, revision):
    from alembic import command
    command.stamp(alembic_cfg, revision)


def _run_alembic_upgrade(alembic_cfg, revision):
    from alembic import command
    command.upgrade(alembic_cfg, revision)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.SECRET_KEY in _DEFAULT_SECRET_KEYS:
        if settings.ENVIRONMENT != "development":
            raise RuntimeError(
                "SECRET_KEY must be set to a strong random value in production. "
                'Generate one with: python -c "import secrets; print(secrets.token_urlsafe(64))"'
            )
        logger.warning("Using default SECRET_KEY, acceptable for development only.")

    from alembic.config import Config
    from sqlalchemy import inspect as sa_inspect

    alembic_cfg = Config("alembic.ini")

    if settings.RESET_DB:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
            await conn.run_sync(Base.metadata.create_all)
        await asyncio.to_thread(_run_alembic_stamp, alembic_cfg, "head")
    else:
        async with engine.connect() as conn:
            has_alembic = await conn.run_sync(
                lambda sync_conn: sa_inspect(sync_conn).has_table("alembic_version")
            )
        if not has_alembic:
            # Fresh DB: create tables from models, then stamp
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            await asyncio.to_thread(_run_alembic_stamp, alembic_cfg, "head")
        else:
            try:
                await asyncio.to_thread(_run_alembic_upgrade, alembic_cfg, "head")
            except Exception:
                logger.exception("Alembic migration failed")
                raise

    if settings.SEED_DEFAULT_ROLES:
        from shelter_admin.services.document_store import SqlDocumentStore
        from shelter_admin.services.role_service import RoleService

        async with async_session() as db:
            created = await RoleService(SqlDocumentStore(db)).initialize_default_roles()
            if created:
                logger.info("Seeded default roles: %s", ", ".join(created))

    app_info.info({"version": APP_VERSION, "environment": settings.ENVIRONMENT})

    yield

    await engine.dispose()


app = FastAPI(
    title=settings.PROJECT_NAME,
    lifespan=lifespan,
    docs_url="/api/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url=None,
    openapi_url="/api/openapi.json" if settings.ENVIRONMENT == "development" else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
register_exception_handlers(app)

app.add_middleware(PrometheusMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

app.include_router(api_router, prefix=settings.API_V1_PREFIX)


@app.get("/api/health")
async def health():
    return {"status": "ok", "version": APP_VERSION}


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
