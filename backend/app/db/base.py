"""Shared SQLAlchemy base, process-wide engine lifecycle and write helpers.

One engine (and its connection pool) per process: ``init_db`` runs once from
the application lifespan, every request borrows sessions from the same
factory, and ``close_db`` disposes the pool at shutdown. Rows keyed by a
unique external id are created with ``add_or_reread``.
"""

from sqlalchemy import Select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from app.core.config import get_settings


class Base(DeclarativeBase):
    pass


_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


async def init_db(url: str | None = None) -> None:
    """Initialize the async database engine and session factory.

    Creates all tables defined via Base.metadata. Calling it again while an
    engine is live is a no-op.
    """
    global _engine, _session_factory

    if _engine is not None:
        return

    settings = get_settings()
    db_url = url or settings.database_url

    _engine = create_async_engine(db_url, echo=settings.debug, pool_pre_ping=True)
    _session_factory = async_sessionmaker(
        _engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    # Import all models so metadata is populated before create_all
    import app.db.models  # noqa: F401

    async with _engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of the engine and release all connections."""
    global _engine, _session_factory

    if _engine is not None:
        await _engine.dispose()
        _engine = None
        _session_factory = None


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Return the configured session factory.

    Raises RuntimeError if init_db() has not been called.
    """
    if _session_factory is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _session_factory


async def add_or_reread(session: AsyncSession, instance, reread: Select):
    """Insert ``instance``; if a unique constraint rejects it, return the existing row.

    The losing session is rolled back before ``reread`` runs, so it sees the
    row committed by the concurrent winner. Returns ``(row, created)``.
    """
    session.add(instance)
    try:
        await session.commit()
    except IntegrityError:
        await session.rollback()
        result = await session.execute(reread)
        return result.scalar_one(), False

    await session.refresh(instance)
    return instance, True
