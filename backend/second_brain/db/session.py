"""
Engine and session lifecycle.

One AsyncEngine per process owns the connection pool. Each HTTP request
(and each Celery run) opens its own AsyncSession from AsyncSessionLocal.

    startup   → init_db()          verify connectivity, create tables in dev
    request   → get_session()      one session, rolled back on error
    shutdown  → close_db()         dispose the pool
"""

from collections.abc import AsyncGenerator
from typing import Any, Optional

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import AsyncAdaptedQueuePool, NullPool

from second_brain.core.config import settings
from second_brain.core.logging import get_logger

logger = get_logger(__name__)


def engine_options() -> dict[str, Any]:
    """
    Keyword arguments for create_async_engine, by environment.

    development / production: a real pool (DB_POOL_SIZE + DB_MAX_OVERFLOW,
    DB_POOL_TIMEOUT seconds to wait for a connection).
    testing / staging: NullPool, one connection per checkout.

    On PostgreSQL every statement is bounded by DB_COMMAND_TIMEOUT.
    """
    options: dict[str, Any] = {"echo": settings.DB_ECHO, "pool_pre_ping": True}

    if settings.uses_postgres:
        options["connect_args"] = {
            "command_timeout": settings.DB_COMMAND_TIMEOUT,
            "server_settings": {"application_name": settings.APP_NAME},
        }

    pooled = settings.is_development or settings.is_production
    if pooled:
        options.update(
            poolclass=AsyncAdaptedQueuePool,
            pool_size=settings.DB_POOL_SIZE,
            max_overflow=settings.DB_MAX_OVERFLOW,
            pool_timeout=settings.DB_POOL_TIMEOUT,
            pool_recycle=7200 if settings.is_production else 3600,
        )
    else:
        options["poolclass"] = NullPool

    return options


def build_engine(url: Optional[str] = None) -> AsyncEngine:
    """Create the async engine; the URL must name an async driver (asyncpg, aiosqlite)."""
    options = engine_options()
    built = create_async_engine(url or settings.DATABASE_URL, **options)
    logger.info(
        "database_engine_created",
        dialect=built.dialect.name,
        environment=settings.APP_ENV,
        pool_size=options.get("pool_size", "NullPool"),
    )
    return built


engine: AsyncEngine = build_engine()

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    autoflush=False,
    # Objects returned by the repository are serialized after commit
    expire_on_commit=False,
)


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield one session; roll back if the caller raises."""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception as e:
            logger.error("database_session_error", error=str(e), error_type=type(e).__name__)
            await session.rollback()
            raise


async def init_db() -> None:
    """
    Verify the database is reachable.

    In development the tables are created from the models; everywhere else
    the schema comes from Alembic migrations.
    """
    logger.info("initializing_database")
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))

            if settings.is_development:
                from second_brain.db.base import Base
                import second_brain.models  # noqa: F401  registers the tables

                await conn.run_sync(Base.metadata.create_all)
                logger.info("database_tables_created")
    except SQLAlchemyError as e:
        logger.error("database_initialization_failed", error=str(e), error_type=type(e).__name__)
        raise

    logger.info("database_connection_successful")


async def close_db() -> None:
    logger.info("closing_database_connections")
    await engine.dispose()


async def check_db_health() -> bool:
    """True if a trivial query succeeds."""
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        logger.error("database_health_check_failed", error=str(e), error_type=type(e).__name__)
        return False
    return True
