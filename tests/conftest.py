"""Shared test fixtures: in-memory SQLite DB, async session, test client,
remote clients wired to the reference backend."""

import asyncio

import pytest
import pytest_asyncio
import httpx
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from onboard.dependencies import USER_ID_HEADER, get_db
from onboard.main import app
from onboard.models import cache as cache_models, remote as remote_models  # noqa: F401
from onboard.models.base import Base
from onboard.services.answer_store import AnswerStore
from onboard.services.cache import InMemoryKeyValueCache
from onboard.services.progress_store import ProgressStore
from onboard.services.remote_client import RemoteOnboardingClient
from onboard.services.sync_coordinator import SyncCoordinator

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
TEST_USER = "user-1"

test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
test_session_factory = async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


class FlakyTransport(httpx.AsyncBaseTransport):
    """Delegates to the ASGI app unless switched offline."""

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self.inner = inner
        self.online = True
        self.requests: list[httpx.Request] = []

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if not self.online:
            raise httpx.ConnectError("network unreachable", request=request)
        return await self.inner.handle_async_request(request)


@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after."""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """Yield a test DB session."""
    async with test_session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(db_session: AsyncSession) -> AsyncClient:
    """Yield an httpx AsyncClient wired to the test DB."""

    # One shared session; requests from background sync tasks take turns.
    lock = asyncio.Lock()

    async def _override_get_db():
        async with lock:
            yield db_session

    app.dependency_overrides[get_db] = _override_get_db
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def user_headers() -> dict[str, str]:
    return {USER_ID_HEADER: TEST_USER}


@pytest_asyncio.fixture
async def transport(client: AsyncClient) -> FlakyTransport:
    """Transport to the reference backend that tests can take offline."""
    return FlakyTransport(ASGITransport(app=app))


@pytest_asyncio.fixture
async def remote(transport: FlakyTransport) -> RemoteOnboardingClient:
    http = AsyncClient(
        transport=transport,
        base_url="http://test/api",
        headers={USER_ID_HEADER: TEST_USER},
    )
    remote_client = RemoteOnboardingClient(http)
    yield remote_client
    await remote_client.aclose()


@pytest.fixture
def cache() -> InMemoryKeyValueCache:
    return InMemoryKeyValueCache()


@pytest.fixture
def progress_store(cache: InMemoryKeyValueCache) -> ProgressStore:
    return ProgressStore(cache)


@pytest.fixture
def answer_store(cache: InMemoryKeyValueCache) -> AnswerStore:
    return AnswerStore(cache)


@pytest_asyncio.fixture
async def coordinator(
    progress_store: ProgressStore,
    answer_store: AnswerStore,
    remote: RemoteOnboardingClient,
    cache: InMemoryKeyValueCache,
) -> SyncCoordinator:
    coord = SyncCoordinator(progress_store, answer_store, remote, cache, timeout=5.0)
    yield coord
    await coord.wait_idle()
