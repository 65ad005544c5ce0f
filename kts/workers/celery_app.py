import asyncio
import json
import logging
from typing import Any

from celery import Celery
from redis import asyncio as aioredis
from sqlalchemy import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from kts.core.config import get_settings
from kts.models.event import LedgerEvent

logger = logging.getLogger(__name__)

settings = get_settings()
celery = Celery(
    "kts",
    broker=settings.redis_url,
    backend=settings.redis_url,
)

celery.conf.update(task_serializer="json", accept_content=["json"], result_serializer="json")


async def write_ledger_event(
    session_factory: async_sessionmaker[AsyncSession],
    redis,
    channel: str,
    event: dict[str, Any],
) -> int:
    """Persist one committed registry operation and fan it out to subscribers."""
    async with session_factory() as session:
        result = await session.execute(
            insert(LedgerEvent).values(
                kind=event["kind"],
                address=event["address"],
                device_hash=event["device_hash"],
                owner=event["owner"],
                detail=event.get("detail", {}),
            )
        )
        event_id = result.inserted_primary_key[0]
        await session.commit()

    await redis.publish(channel, json.dumps({"id": event_id, **event}))
    logger.debug("ledger event %s (%s) recorded", event_id, event["kind"])
    return event_id


@celery.task(name="record_ledger_event")
def record_ledger_event(event: dict[str, Any]):
    async def _run():
        # Each task runs on a fresh event loop; pooled connections cannot be shared across loops.
        engine = create_async_engine(settings.database_url)
        redis = aioredis.from_url(settings.redis_url, decode_responses=True)
        try:
            await write_ledger_event(
                async_sessionmaker(engine, expire_on_commit=False), redis, settings.events_channel, event
            )
        finally:
            await redis.aclose()
            await engine.dispose()

    asyncio.run(_run())
