"""Shared test fixtures — async SQLite in-memory DB, fake Upmind API, test client."""

import os
from collections.abc import AsyncGenerator, Callable

from cryptography.fernet import Fernet

os.environ.setdefault("ENCRYPTION_KEY", Fernet.generate_key().decode())
os.environ.setdefault("JWT_SECRET_KEY", "test-jwt-secret")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")

import httpx  # noqa: E402
import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

# Import all models so metadata is populated
import hostwp.models  # noqa: E402, F401
from hostwp.core.database import get_session  # noqa: E402
from hostwp.core.security import create_jwt, hash_password  # noqa: E402
from hostwp.main import app  # noqa: E402
from hostwp.models.admin_user import AdminUser  # noqa: E402
from hostwp.models.api_config import ApiConfigCreate  # noqa: E402
from hostwp.services.config_events import ConfigEventBus  # noqa: E402
from hostwp.services.config_store import ApiConfigStore  # noqa: E402
from hostwp.services.plan_sync import PlanSyncService  # noqa: E402
from hostwp.services.upmind_client import ActiveConnection, ConnectionSettings  # noqa: E402
from hostwp.services.upmind_service import UpmindService  # noqa: E402

UPMIND_URL = "https://api.upmind.test"

Responder = httpx.Response | Exception | Callable[[httpx.Request], httpx.Response]


class FakeUpmind:
    """Scriptable stand-in for the Upmind API, served through httpx.MockTransport.

    ``add(method, path, *responses)`` queues responses for a route; the last
    one repeats once the queue is drained. Unknown routes answer 404.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Responder]] = {}
        self.requests: list[httpx.Request] = []
        self.transport = httpx.MockTransport(self._handle)

    def add(self, method: str, path: str, *responses: Responder) -> None:
        self.routes[(method.upper(), path)] = list(responses)

    def calls(self, method: str, path: str) -> int:
        return sum(1 for r in self.requests if r.method == method.upper() and r.url.path == path)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "Not found"})
        item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        return item


async def _no_sleep(_delay: float) -> None:
    return None


@pytest.fixture
def profile() -> dict:
    """Valid profile fields pointing at the fake API."""
    return {
        "label": "Production",
        "base_url": UPMIND_URL,
        "token": "tok_live_abcd1234",
        "brand_id": "brand-1",
    }


@pytest.fixture
def conn_settings(profile) -> ConnectionSettings:
    return ConnectionSettings(base_url=profile["base_url"], token=profile["token"], brand_id=profile["brand_id"])


# ── Database ─────────────────────────────────────────────────

@pytest.fixture
async def engine():
    eng = create_async_engine("sqlite+aiosqlite://", echo=False)
    async with eng.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def test_session_factory(engine):
    """Session factory bound to the test SQLite engine."""
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(test_session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with test_session_factory() as sess:
        yield sess
        await sess.rollback()


# ── Upmind collaborators ─────────────────────────────────────

@pytest.fixture
def upmind() -> FakeUpmind:
    return FakeUpmind()


@pytest.fixture
def connection(upmind: FakeUpmind) -> ActiveConnection:
    return ActiveConnection(transport=upmind.transport, base_delay=0.0, sleep=_no_sleep)


@pytest.fixture
def events() -> ConfigEventBus:
    return ConfigEventBus()


@pytest.fixture
def store(session, connection, events) -> ApiConfigStore:
    return ApiConfigStore(session, connection, events)


@pytest.fixture
def service(connection) -> UpmindService:
    return UpmindService(connection)


@pytest.fixture
def plan_sync(session, service) -> PlanSyncService:
    return PlanSyncService(session, service)


@pytest.fixture
async def configured(store, profile) -> ApiConfigStore:
    """A store holding one active profile pointed at the fake API."""
    await store.add(ApiConfigCreate(**profile))
    return store


# ── HTTP client ──────────────────────────────────────────────

@pytest.fixture
async def client(session, connection, events, upmind) -> AsyncGenerator[AsyncClient, None]:
    """HTTPX async test client with DB session override and fake Upmind wiring."""

    async def _override_session():
        yield session

    app.dependency_overrides[get_session] = _override_session
    app.state.connection = connection
    app.state.config_events = events
    app.state.upmind_transport = upmind.transport

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def admin(session) -> AdminUser:
    user = AdminUser(email="admin@hostwp.dev", password_hash=hash_password("s3cret-pass"))
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


@pytest.fixture
def headers(admin: AdminUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_jwt(str(admin.id))}"}
