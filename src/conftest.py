import contextlib

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from src.guests.rate_limit import WindowRateLimiter, get_rate_limiter
from src.main import app
from src.models import BaseModel

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture(scope="function")
async def test_db():
    """Create a test database session on a fresh in-memory database."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(BaseModel.metadata.create_all)

    test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)
    async with test_session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest.fixture(scope="function")
def client_factory():
    """Build a test client with the given dependency overrides.

    Each client gets a fresh rate limiter unless the overrides provide one.
    """

    @contextlib.asynccontextmanager
    async def factory(overrides: dict | None = None):
        rate_limiter = WindowRateLimiter()
        app.dependency_overrides[get_rate_limiter] = lambda: rate_limiter
        app.dependency_overrides.update(overrides or {})

        transport = ASGITransport(app=app)
        try:
            async with AsyncClient(transport=transport, base_url="http://test") as ac:
                yield ac
        finally:
            app.dependency_overrides.clear()

    return factory


@pytest.fixture(scope="function")
async def client(client_factory):
    async with client_factory() as ac:
        yield ac
