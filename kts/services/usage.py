import logging
from typing import Sequence

from sqlalchemy import select

from kts.core.constants import MAX_PROCESS_NAME_LENGTH, PROCESS_ARRAY_SIZE
from kts.core.errors import (
    AddressOccupied,
    DailyUsageAlreadyUploaded,
    DeviceNotRegistered,
    InvalidDeviceOwner,
    InvalidProcessNameLength,
    InvalidTopProcessesArraySize,
    UsageRecordNotFound,
)
from kts.db.store import RecordStore
from kts.models.device import DeviceRecord
from kts.models.usage import DailyUsageRecord
from kts.services.addressing import AddressDeriver
from kts.services.codec import pack_top_processes, to_f32

logger = logging.getLogger(__name__)

MAX_LIST_LIMIT = 366


def validate_top_processes(top_processes: Sequence[str]) -> None:
    if len(top_processes) != PROCESS_ARRAY_SIZE:
        raise InvalidTopProcessesArraySize()
    for name in top_processes:
        if len(name.encode("utf-8")) > MAX_PROCESS_NAME_LENGTH:
            raise InvalidProcessNameLength()


async def upload_daily_usage(
    store: RecordStore,
    deriver: AddressDeriver,
    caller: bytes,
    device_fingerprint: bytes,
    timestamp: int,
    avg_cpu_usage: float,
    avg_memory_usage: float,
    top_processes: Sequence[str],
    data_fingerprint: bytes,
    now: int,
) -> DailyUsageRecord:
    """
    Record the single usage snapshot for (device, timestamp).

    Every check runs before the insert, so a rejected upload leaves no trace.
    ``timestamp`` is the caller's day marker and is not compared to ``now``;
    the percentages are stored as f32 without range checks.
    """
    device_address = deriver.device_address(device_fingerprint).hex()
    device = await store.get(DeviceRecord, device_address)
    if device is None:
        raise DeviceNotRegistered()
    if device.device_hash != device_fingerprint.hex():
        raise InvalidDeviceOwner()
    if device.owner != caller.hex():
        raise InvalidDeviceOwner()
    validate_top_processes(top_processes)

    address = deriver.usage_address(device_fingerprint, timestamp).hex()
    record = DailyUsageRecord(
        address=address,
        device=device_address,
        timestamp=timestamp,
        avg_cpu_usage=to_f32(avg_cpu_usage),
        avg_memory_usage=to_f32(avg_memory_usage),
        top_processes=pack_top_processes(top_processes),
        data_hash=data_fingerprint.hex(),
        created_at=now,
    )
    try:
        await store.create(record)
    except AddressOccupied as exc:
        raise DailyUsageAlreadyUploaded() from exc
    await store.commit()
    logger.info(
        "usage for device %s day %s stored at %s",
        device_address,
        timestamp,
        address,
        extra={"operation": "upload_daily_usage", "address": address, "owner": device.owner},
    )
    return record


async def get_usage(
    store: RecordStore, deriver: AddressDeriver, device_fingerprint: bytes, timestamp: int
) -> DailyUsageRecord:
    record = await store.get(DailyUsageRecord, deriver.usage_address(device_fingerprint, timestamp).hex())
    if record is None:
        raise UsageRecordNotFound()
    return record


async def list_usage(
    store: RecordStore, deriver: AddressDeriver, device_fingerprint: bytes, limit: int = 30
) -> list[DailyUsageRecord]:
    device_address = deriver.device_address(device_fingerprint).hex()
    if await store.get(DeviceRecord, device_address) is None:
        raise DeviceNotRegistered()
    stmt = (
        select(DailyUsageRecord)
        .where(DailyUsageRecord.device == device_address)
        .order_by(DailyUsageRecord.timestamp.asc())
        .limit(min(limit, MAX_LIST_LIMIT))
    )
    result = await store.session.execute(stmt)
    return list(result.scalars().all())
