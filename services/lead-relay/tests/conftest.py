"""
Async test fixtures: SQLite database, stubbed Kommo/Notion/Meta over httpx.MockTransport
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("ADMIN_API_SECRET", "test-admin-secret")
os.environ.setdefault("LOG_JSON", "false")

import json
from typing import Any, Dict, List

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

import app.models  # noqa: F401  registers every table on Base.metadata
from app.core.database import Base, get_db
from app.models.config_entry import ConfigEntry
from app.services.kommo_client import KommoLeadSink
from app.services.sinks import BestEffortDispatcher
from app.services.token_manager import TokenManager
from app.services.token_store import REFRESH_TOKEN_KEY, TokenStore

KOMMO_BASE_URL = "https://relay-test.kommo.com"
ADMIN_HEADERS = {"Authorization": "Bearer test-admin-secret"}


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemote:
    """Records outbound calls and answers like Kommo, Notion and Meta would"""

    def __init__(self):
        self.token_requests: List[Dict[str, Any]] = []
        self.lead_requests: List[Dict[str, Any]] = []
        self.sink_requests: List[httpx.Request] = []
        self.token_status = 200
        self.token_expires_in = 86400
        self.lead_status = 200
        self.lead_body: Any = [{"id": 4242, "contact_id": 777, "company_id": None, "request_id": ["0"], "merged": False}]
        self.sink_status = 200

    def handler(self, request: httpx.Request) -> httpx.Response:
        if request.url.path == "/oauth2/access_token":
            self.token_requests.append(json.loads(request.content))
            if self.token_status != 200:
                return httpx.Response(self.token_status, json={"title": "Unauthorized", "hint": "Token has been revoked"})
            n = len(self.token_requests)
            return httpx.Response(200, json={
                "token_type": "Bearer",
                "expires_in": self.token_expires_in,
                "access_token": f"access-{n}",
                "refresh_token": f"refresh-{n}",
            })
        if request.url.path == "/api/v4/leads/complex":
            self.lead_requests.append({
                "authorization": request.headers.get("Authorization"),
                "json": json.loads(request.content),
            })
            return httpx.Response(self.lead_status, json=self.lead_body)
        self.sink_requests.append(request)
        return httpx.Response(self.sink_status, json={"ok": self.sink_status < 400})


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'relay.db'}", poolclass=NullPool)
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def remote():
    return FakeRemote()


@pytest_asyncio.fixture
async def http_client(remote):
    async with httpx.AsyncClient(transport=httpx.MockTransport(remote.handler)) as client:
        yield client


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def token_store(session_factory):
    return TokenStore(session_factory)


@pytest.fixture
def token_manager(token_store, http_client, clock):
    return TokenManager(
        store=token_store,
        http_client=http_client,
        base_url=KOMMO_BASE_URL,
        client_id="client-id",
        client_secret="client-secret",
        safety_margin=3600,
        clock=clock,
    )


@pytest.fixture
def lead_sink(token_manager, http_client):
    return KommoLeadSink(token_manager, http_client, KOMMO_BASE_URL)


@pytest.fixture
def dispatcher():
    return BestEffortDispatcher()


@pytest_asyncio.fixture
async def seeded_token(db: AsyncSession):
    db.add(ConfigEntry(key=REFRESH_TOKEN_KEY, value="refresh-0"))
    await db.commit()
    return "refresh-0"


@pytest_asyncio.fixture
async def client(session_factory, token_manager, lead_sink, dispatcher):
    """HTTPX async test client against the relay app"""
    from app.api.deps import get_dispatcher, get_lead_sink, get_token_manager
    from app.main import app

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_manager] = lambda: token_manager
    app.dependency_overrides[get_lead_sink] = lambda: lead_sink
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c

    await dispatcher.drain()
    app.dependency_overrides.clear()
