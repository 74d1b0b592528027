"""Shared test fixtures for all test groups."""

import os
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.db.base import Base
from app.integrations.clerk import ClerkClient, ClerkUserRecord
from app.integrations.stripe_billing import StripeBillingClient


def sqlite_url(directory) -> str:
    return f"sqlite+aiosqlite:///{os.path.join(str(directory), 'extension_test.db')}"


@pytest.fixture
async def engine(tmp_path) -> AsyncEngine:
    """File-backed SQLite engine with all tables created, dropped afterwards."""
    engine = create_async_engine(os.getenv("TEST_DATABASE_URL", sqlite_url(tmp_path)), echo=False)

    # Import all models so metadata is populated
    import app.db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(session_factory) -> AsyncSession:
    async with session_factory() as session:
        yield session


@pytest.fixture
def clerk_user() -> ClerkUserRecord:
    """Clerk user without Stripe ids in private metadata."""
    return ClerkUserRecord(
        id="u1",
        full_name="Ada Lovelace",
        email_addresses=["ada@example.com", "ada@work.example.com"],
        image_url="https://img.clerk.com/ada.png",
        private_metadata={},
    )


@pytest.fixture
def clerk_mock(clerk_user) -> AsyncMock:
    """ClerkClient double whose get_user returns ``clerk_user``."""
    mock = AsyncMock(spec=ClerkClient)
    mock.get_user.return_value = clerk_user
    return mock


@pytest.fixture
def billing_mock() -> AsyncMock:
    """StripeBillingClient double; tests configure return values per case."""
    return AsyncMock(spec=StripeBillingClient)
