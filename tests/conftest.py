"""
Pytest configuration and fixtures for testing
"""
import pytest
import httpx
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from config.settings import settings
from database import Base, get_db, enable_sqlite_foreign_keys

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


@pytest.fixture(autouse=True)
def jwt_secret(monkeypatch):
    """Every test runs with a known signing secret."""
    monkeypatch.setattr(settings, "jwt_secret", TEST_JWT_SECRET)
    return TEST_JWT_SECRET


@pytest.fixture
async def session_factory(tmp_path):
    """
    Fixture that provides an isolated SQLite database file for each test.

    This fixture:
    - Creates all tables before the test runs
    - Yields a session factory bound to that database
    - Drops all tables and disposes the engine after the test completes
    """
    test_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        future=True,
    )
    enable_sqlite_foreign_keys(test_engine)

    async with test_engine.begin() as conn:
        # Import models to ensure they're registered with Base
        import database_models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

    factory = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    yield factory

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
async def test_db(session_factory):
    """A single AsyncSession for repository-level tests."""
    async with session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@pytest.fixture
async def client(session_factory):
    """
    Async HTTP client with get_db overridden to use the test database.
    Uses httpx.AsyncClient over ASGITransport; the client keeps cookies
    between requests like a browser would.
    """
    from main import app

    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db

    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as async_client:
        yield async_client

    app.dependency_overrides.clear()


@pytest.fixture
async def make_client(session_factory, client):
    """
    Build extra clients (separate cookie jars) sharing the same app and
    database, for tests that need two users at once.
    """
    from main import app

    transport = httpx.ASGITransport(app=app)
    opened = []

    async def _make():
        c = httpx.AsyncClient(transport=transport, base_url="http://test")
        opened.append(c)
        return c

    yield _make

    for c in opened:
        await c.aclose()


async def register_user(async_client, email="user@example.com", password="password123", name=None):
    payload = {"email": email, "password": password}
    if name is not None:
        payload["name"] = name
    response = await async_client.post("/api/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()
