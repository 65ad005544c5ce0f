import hashlib

import pytest
from fakeredis import FakeAsyncRedis
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from kts.core.config import Settings
from kts.core.security import create_access_token
from kts.db.session import init_models
from kts.db.store import RecordStore
from kts.services.addressing import AddressDeriver
from kts.workers.celery_app import write_ledger_event

OWNER = bytes([0x11]) * 32
OTHER = bytes([0x22]) * 32


def fingerprint(label: str) -> bytes:
    return hashlib.sha256(label.encode()).digest()


class LateStore(RecordStore):
    """A creator whose pre-insert read happened before a rival committed."""

    async def exists(self, model, address) -> bool:
        return False


@pytest.fixture(scope="session")
def settings() -> Settings:
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        redis_url="redis://localhost:6379/0",
        program_domain="kts-test",
        jwt_secret_key="test-secret",
        jwt_algorithm="HS256",
        jwt_issuer="https://issuer.test",
        jwt_audience="kts-api",
        jwt_clock_skew_seconds=30,
    )


@pytest.fixture()
def deriver(settings) -> AddressDeriver:
    return AddressDeriver(settings.program_domain.encode())


@pytest.fixture()
async def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'kts.db'}")
    await init_models(engine)
    try:
        yield async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    finally:
        await engine.dispose()


@pytest.fixture()
async def store(session_factory):
    async with session_factory() as session:
        yield RecordStore(session)


@pytest.fixture()
async def redis():
    client = FakeAsyncRedis(decode_responses=True)
    try:
        yield client
    finally:
        await client.flushall()
        await client.aclose()


@pytest.fixture()
def events():
    return []


@pytest.fixture()
async def client(settings, session_factory, redis, events):
    from kts.core.deps import get_db_session, get_event_sink, get_redis, get_settings_dep
    from kts.main import app

    async def _settings():
        return settings

    async def _session():
        async with session_factory() as session:
            yield session

    async def _redis():
        yield redis

    async def _sink(event):
        await write_ledger_event(session_factory, redis, settings.events_channel, event)
        events.append(event)

    async def _event_sink():
        return _sink

    app.dependency_overrides = {
        get_settings_dep: _settings,
        get_db_session: _session,
        get_redis: _redis,
        get_event_sink: _event_sink,
    }
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as http:
            yield http
    finally:
        app.dependency_overrides = {}


@pytest.fixture()
def auth_headers(settings):
    def _headers(identity: bytes = OWNER) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(identity.hex(), settings)}"}

    return _headers
