"""
Database Session Management

Async SQLAlchemy engine and sessions. Request handlers share one session
per request; the audit store opens its own sessions from the same maker.
"""

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool, StaticPool

from jobportal.api.config import Settings, settings


logger = logging.getLogger(__name__)

# Module-level engine (created lazily)
_engine: Optional[AsyncEngine] = None
_async_session_maker: Optional[async_sessionmaker] = None


def create_engine_for(app_settings: Settings) -> AsyncEngine:
    """
    Build an async engine for the configured database.

    SQLite gets a single shared connection; everything else
    opens a connection per session.
    """
    url = make_url(app_settings.DATABASE_URL)
    logger.info("Creating engine for %s://%s/%s", url.drivername, url.host or "", url.database or "")

    if url.get_backend_name() == "sqlite":
        return create_async_engine(
            url,
            echo=app_settings.DATABASE_ECHO,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        url,
        echo=app_settings.DATABASE_ECHO,
        poolclass=NullPool,
    )


def configure_db(app_settings: Settings) -> async_sessionmaker:
    """
    Bind the module engine and session maker to the given settings.

    Called by the app factory so every session, including the audit
    store's, uses the database the app was created with.
    """
    global _engine, _async_session_maker

    _engine = create_engine_for(app_settings)
    _async_session_maker = _make_session_maker(_engine)
    return _async_session_maker


def _make_session_maker(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Get or create the database engine."""
    global _engine

    if _engine is None:
        _engine = create_engine_for(settings)

    return _engine


def get_session_maker() -> async_sessionmaker:
    """Get or create the session maker."""
    global _async_session_maker

    if _async_session_maker is None:
        _async_session_maker = _make_session_maker(get_engine())

    return _async_session_maker


async def init_db(app_settings: Optional[Settings] = None) -> None:
    """Verify the database is reachable; create tables in DEBUG mode."""
    from jobportal.api.db.models import Base

    app_settings = app_settings or settings
    async with get_engine().begin() as conn:
        if app_settings.DEBUG:
            logger.info("Creating tables (DEBUG mode)")
            await conn.run_sync(Base.metadata.create_all)

    logger.info("Database ready")


async def close_db() -> None:
    """Dispose the engine and forget the session maker."""
    global _engine, _async_session_maker

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _async_session_maker = None
        logger.info("Database connection closed")


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session. Commits on success, rolls back on error.

    Usage in FastAPI:
        @router.get("/items")
        async def get_items(db: AsyncSession = Depends(get_db)):
            ...
    """
    async with get_session_maker()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
