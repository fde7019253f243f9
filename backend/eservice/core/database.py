from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker, AsyncEngine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool
from typing import Any, AsyncGenerator, Dict, Optional

from eservice.core.config import settings

Base = declarative_base()

# Created on first use so importing models never opens a connection
_engine: Optional[AsyncEngine] = None
_session_factory: Optional[async_sessionmaker[AsyncSession]] = None

ASYNC_DRIVERS = {
    "postgresql://": "postgresql+asyncpg://",
    "postgres://": "postgresql+asyncpg://",
    "sqlite:///": "sqlite+aiosqlite:///",
}


def get_database_url() -> str:
    """DATABASE_URL with the async driver filled in"""
    db_url = settings.DATABASE_URL
    for prefix, async_prefix in ASYNC_DRIVERS.items():
        if db_url.startswith(prefix):
            return async_prefix + db_url[len(prefix):]
    return db_url


def _engine_options(db_url: str) -> Dict[str, Any]:
    """
    SQLite and development run without a pool; production uses
    SQLAlchemy's default queue pool sized from DB_POOL_*.
    """
    if db_url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}, "poolclass": NullPool}
    if settings.is_dev_mode():
        return {"poolclass": NullPool}
    return {
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
        "pool_timeout": settings.DB_POOL_TIMEOUT,
        "pool_recycle": settings.DB_POOL_RECYCLE,
        "pool_pre_ping": True,
    }


def _sqlite_foreign_keys(dbapi_connection, connection_record):
    # ON DELETE CASCADE / SET NULL are ignored by SQLite unless enabled per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine() -> AsyncEngine:
    global _engine
    if _engine is None:
        db_url = get_database_url()
        _engine = create_async_engine(db_url, echo=settings.DB_ECHO, **_engine_options(db_url))
        if db_url.startswith("sqlite"):
            event.listen(_engine.sync_engine, "connect", _sqlite_foreign_keys)
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _session_factory
    if _session_factory is None:
        _session_factory = async_sessionmaker(
            get_engine(),
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False
        )
    return _session_factory


def AsyncSessionLocal() -> AsyncSession:
    """Session for code running outside a request, like seeding"""
    return get_session_factory()()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session.

    Committed after the endpoint returns; endpoints flush as they go, so
    an open transaction counts as pending work too.
    """
    async with get_session_factory()() as session:
        try:
            yield session
            if session.new or session.dirty or session.deleted or session.in_transaction():
                await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db():
    """Create every table registered on Base"""
    import eservice.models  # noqa: F401

    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db():
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None
