import socket
from collections.abc import AsyncGenerator, Iterator
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from linklogin.core.config import settings
from linklogin.models.base import Base
from linklogin.services.session_gateway import (
    InMemorySessionGateway,
    get_session_gateway,
    reset_session_gateway,
)
from linklogin.services.token_store import (
    InMemoryTokenStore,
    get_token_store,
    reset_token_store,
)

# Use separate test database
_DB_BASE_URL, _DB_NAME = settings.database_url.rsplit("/", 1)
TEST_DATABASE_URL = f"{_DB_BASE_URL}/{_DB_NAME}_test"

TEST_TOKEN_TTL = timedelta(minutes=10)
TEST_SESSION_LIFETIME = timedelta(hours=24)


def _is_postgres_available() -> bool:
    """Check if PostgreSQL is accepting connections.

    Returns:
        True if PostgreSQL is reachable on port 5432, False otherwise.
    """
    try:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.settimeout(1)
        result = sock.connect_ex(("127.0.0.1", 5432))
        sock.close()
        return result == 0
    except OSError:
        return False


# Check once at module load time
_POSTGRES_AVAILABLE = _is_postgres_available()


def skip_if_no_postgres() -> None:
    """Skip test if PostgreSQL is not available.

    Called by fixtures that require database connection.
    """
    if not _POSTGRES_AVAILABLE:
        pytest.skip(
            "PostgreSQL not available on port 5432. "
            "Start database with: docker compose up -d"
        )


@pytest.fixture(autouse=True)
def _reset_singletons() -> Iterator[None]:
    """Every test starts with fresh store and gateway singletons."""
    reset_token_store()
    reset_session_gateway()
    yield
    reset_token_store()
    reset_session_gateway()


@pytest_asyncio.fixture(scope="function")
async def db_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create test database engine.

    Skips test if PostgreSQL is not available (e.g., Docker not running).
    """
    skip_if_no_postgres()

    engine = create_async_engine(TEST_DATABASE_URL, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test database."""
    return async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture(scope="function")
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def token_store() -> InMemoryTokenStore:
    """Fresh in-memory token store."""
    return InMemoryTokenStore(TEST_TOKEN_TTL)


@pytest.fixture
def session_gateway() -> InMemorySessionGateway:
    """Fresh in-memory session gateway."""
    return InMemorySessionGateway(TEST_SESSION_LIFETIME)


@pytest.fixture
def app(
    token_store: InMemoryTokenStore,
    session_gateway: InMemorySessionGateway,
) -> Iterator[FastAPI]:
    """Application wired to the in-memory store and gateway.

    ASGITransport does not run the lifespan, so no bot or sweeper starts.
    """
    from linklogin.main import create_app

    application = create_app()
    application.dependency_overrides[get_token_store] = lambda: token_store
    application.dependency_overrides[get_session_gateway] = lambda: session_gateway
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for page tests.

    Unhandled exceptions are turned into the 500 page instead of being
    re-raised into the test.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
