"""
DevDoc Backend — Database Session Management
==============================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Concurrency model:
    One session (one transaction) per request. There is no cross-request
    locking; two writers to the same project simply race and the later
    commit wins.
"""

from typing import Any, AsyncGenerator, Dict

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.config import settings


def engine_options(database_url: str) -> Dict[str, Any]:
    """
    Build create_async_engine() keyword arguments for a URL.

    SQLite drivers reject the queue pool sizing arguments, so they are only
    passed to server databases.
    """
    options: Dict[str, Any] = {"echo": settings.log_level == "DEBUG"}
    if database_url.startswith("sqlite"):
        return options
    options.update(
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,
    )
    return options


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on ON DELETE CASCADE support for SQLite connections."""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):  # noqa: ARG001
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# ── Engine Configuration ──────────────────────────────────────────────────
engine = create_async_engine(settings.database_url, **engine_options(settings.database_url))
if settings.database_url.startswith("sqlite"):
    enable_sqlite_foreign_keys(engine)

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit, which the
# services rely on when serializing the persisted project
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    All models inherit from this class so Alembic and the test fixtures
    see a single shared metadata object.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler (the handler performs queries)
        3. On success: commits the transaction
        4. On error: rolls back the transaction
        5. Always: closes the session (returns connection to pool)

    Raises:
        Any database exceptions are propagated to the global error handler,
        which returns appropriate HTTP status codes.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def create_tables() -> None:
    """
    Create all tables directly from model metadata.

    Used for SQLite development databases; PostgreSQL deployments run
    `alembic upgrade head` instead.
    """
    import app.models.user  # noqa: F401
    import app.models.project  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """
    What:  Gracefully closes all connections in the pool.
    When:  Called during application shutdown (lifespan handler).
    """
    await engine.dispose()
