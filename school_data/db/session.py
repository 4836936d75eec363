from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .base import Base
from .config import get_settings

logger = logging.getLogger(__name__)

_ENGINE: AsyncEngine | None = None
_SESSION_MAKER: async_sessionmaker[AsyncSession] | None = None


def _build_session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # Queries autoflush so reads inside a unit of work see its staged writes;
    # loaded objects stay usable after commit.
    return async_sessionmaker(bind=engine, expire_on_commit=False)


def _ensure_engine_initialized() -> None:
    """
    Lazily initialize the AsyncEngine and session maker.
    """
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is None:
        settings = get_settings()
        _ENGINE = create_async_engine(
            settings.async_database_url,
            echo=settings.SQL_ECHO,
            pool_pre_ping=True,
        )
    if _SESSION_MAKER is None:
        _SESSION_MAKER = _build_session_maker(_ENGINE)


# PUBLIC_INTERFACE
def configure_engine(url: Optional[str] = None, *, echo: bool = False) -> AsyncEngine:
    """
    Replace the global engine, e.g. to point the application at a test database.

    Parameters:
      url: async SQLAlchemy URL; defaults to the configured async_database_url
      echo: echo SQL statements
    Returns:
      The new AsyncEngine. The previous engine is not disposed; call
      dispose_engine() first if it was in use.
    """
    global _ENGINE, _SESSION_MAKER
    _ENGINE = create_async_engine(url or get_settings().async_database_url, echo=echo)
    _SESSION_MAKER = _build_session_maker(_ENGINE)
    return _ENGINE


# PUBLIC_INTERFACE
def get_engine() -> AsyncEngine:
    """Return the global AsyncEngine instance."""
    _ensure_engine_initialized()
    assert _ENGINE is not None
    return _ENGINE


# PUBLIC_INTERFACE
def get_session_maker() -> async_sessionmaker[AsyncSession]:
    """Return the global session factory."""
    _ensure_engine_initialized()
    assert _SESSION_MAKER is not None
    return _SESSION_MAKER


# PUBLIC_INTERFACE
async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Yield an AsyncSession suitable for FastAPI dependency injection.

    One session is produced per logical operation (request). The session is
    closed when the consumer is done; closing releases any transaction that
    was left open.
    """
    async with get_session_maker()() as session:
        yield session


# PUBLIC_INTERFACE
async def create_all() -> None:
    """Create all tables registered on Base.metadata (local runs and tests)."""
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database schema ensured on %s", engine.url.render_as_string(hide_password=True))


# PUBLIC_INTERFACE
async def dispose_engine() -> None:
    """Dispose the global engine and forget the session factory."""
    global _ENGINE, _SESSION_MAKER
    if _ENGINE is not None:
        await _ENGINE.dispose()
    _ENGINE = None
    _SESSION_MAKER = None
