from collections.abc import AsyncGenerator
from redis import asyncio as aioredis
from redis.asyncio import ConnectionPool, Redis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from kts.core.config import get_settings, Settings
from kts.db.session import get_sessionmaker
from kts.db.store import RecordStore
from kts.services.addressing import AddressDeriver
from kts.services.events import EventSink, enqueue_ledger_event

_redis_pool: ConnectionPool | None = None


async def get_settings_dep() -> Settings:
    return get_settings()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    async with get_sessionmaker()() as session:
        yield session


async def get_record_store(session: AsyncSession = Depends(get_db_session)) -> RecordStore:
    return RecordStore(session)


async def get_deriver(settings: Settings = Depends(get_settings_dep)) -> AddressDeriver:
    return AddressDeriver(settings.program_domain.encode())


async def get_event_sink() -> EventSink:
    return enqueue_ledger_event


def _ensure_redis_pool(url: str) -> ConnectionPool:
    global _redis_pool
    settings = get_settings()
    if not url.startswith("rediss://") and settings.environment != "development":
        raise RuntimeError("Redis URL must use TLS (rediss://) outside development")
    if _redis_pool is None:
        _redis_pool = ConnectionPool.from_url(
            url,
            max_connections=64,
            decode_responses=True,
            socket_timeout=1.0,
            socket_connect_timeout=1.0,
            health_check_interval=30,
        )
    return _redis_pool


async def get_redis(settings: Settings = Depends(get_settings_dep)):
    pool = _ensure_redis_pool(settings.redis_url)
    client: Redis = aioredis.Redis(connection_pool=pool)
    try:
        yield client
    finally:
        # the pool outlives the request
        await client.aclose()
