"""API-specific test fixtures."""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.testclient import TestClient


@pytest.fixture
def api_client(tmp_path, clerk_mock, billing_mock):
    """FastAPI test client on a throwaway SQLite database.

    Initializes the global database via init_db inside the TestClient's own
    event loop so route handlers can use get_session_factory(). Clerk and
    Stripe are replaced by the ``clerk_mock`` / ``billing_mock`` doubles.
    Server exceptions are rendered, not re-raised, so 500 bodies can be asserted.
    """
    from app.api.routes import api_router
    from app.core.config import get_settings
    from app.db import close_db, init_db
    from app.integrations.clerk import get_clerk_client
    from app.integrations.stripe_billing import get_billing_client
    from app.main import register_exception_handlers
    from app.middleware.correlation import setup_correlation_middleware

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'api_test.db'}"

    @asynccontextmanager
    async def test_lifespan(app: FastAPI):
        """Test lifespan - initialize DB in TestClient's event loop."""
        import app.db.base as db_mod

        db_mod._engine = None
        db_mod._session_factory = None
        await init_db(db_url)
        yield
        await close_db()

    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Extension Profile API - Test Client",
        version="0.1.0",
        lifespan=test_lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_correlation_middleware(app)
    register_exception_handlers(app)
    app.include_router(api_router, prefix="/api")

    app.dependency_overrides[get_clerk_client] = lambda: clerk_mock
    app.dependency_overrides[get_billing_client] = lambda: billing_mock

    with TestClient(app, raise_server_exceptions=False) as client:
        yield client
