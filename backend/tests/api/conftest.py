"""API test infrastructure — async httpx client over the seeded SQLite database."""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from app.models.database import get_db


# ---------------------------------------------------------------------------
# FastAPI app with overridden dependencies
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(session_factory):
    from app.core.rate_limit import email_limiter, report_limiter
    from app.main import create_app
    from app.services.report_service import get_reading_cache

    application = create_app()

    async def _override_get_db():
        async with session_factory() as session:
            yield session

    application.dependency_overrides[get_db] = _override_get_db

    # Process-wide state must not leak between tests
    report_limiter.reset()
    email_limiter.reset()
    get_reading_cache().clear()

    yield application

    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
