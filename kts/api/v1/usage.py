import base64
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Path, Query, status

from kts.core.auth import enforce_write_rate_limit, get_caller_identity
from kts.core.clock import host_clock_now
from kts.core.constants import I64_MAX, I64_MIN
from kts.core.deps import get_deriver, get_event_sink, get_record_store
from kts.db.store import RecordStore
from kts.schemas.common import AccountOut, HEX32_PATTERN
from kts.schemas.usage import DailyUsageIn, DailyUsageOut
from kts.services import registry, usage
from kts.services.addressing import AddressDeriver
from kts.services.codec import encode_usage
from kts.services.events import EventSink, usage_event

router = APIRouter()

FingerprintPath = Annotated[str, Path(pattern=HEX32_PATTERN)]
TimestampPath = Annotated[int, Path(ge=I64_MIN, le=I64_MAX)]


@router.post("", response_model=DailyUsageOut, status_code=status.HTTP_201_CREATED)
async def upload_daily_usage(
    payload: DailyUsageIn,
    background_tasks: BackgroundTasks,
    caller: bytes = Depends(enforce_write_rate_limit),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
    sink: EventSink = Depends(get_event_sink),
):
    fingerprint = bytes.fromhex(payload.device_fingerprint)
    record = await usage.upload_daily_usage(
        store,
        deriver,
        caller,
        fingerprint,
        payload.timestamp,
        payload.avg_cpu_usage,
        payload.avg_memory_usage,
        payload.top_processes,
        bytes.fromhex(payload.data_fingerprint),
        now=host_clock_now(),
    )
    device = await registry.get_device(store, deriver, fingerprint)
    background_tasks.add_task(sink, usage_event(record, device))
    return DailyUsageOut.from_record(record)


@router.get("/{fingerprint}", response_model=list[DailyUsageOut])
async def list_usage(
    fingerprint: FingerprintPath,
    limit: int = Query(default=30, ge=1, le=usage.MAX_LIST_LIMIT),
    _caller: bytes = Depends(get_caller_identity),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
):
    records = await usage.list_usage(store, deriver, bytes.fromhex(fingerprint), limit=limit)
    return [DailyUsageOut.from_record(r) for r in records]


@router.get("/{fingerprint}/{timestamp}", response_model=DailyUsageOut)
async def get_usage(
    fingerprint: FingerprintPath,
    timestamp: TimestampPath,
    _caller: bytes = Depends(get_caller_identity),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
):
    record = await usage.get_usage(store, deriver, bytes.fromhex(fingerprint), timestamp)
    return DailyUsageOut.from_record(record)


@router.get("/{fingerprint}/{timestamp}/account", response_model=AccountOut)
async def get_usage_account(
    fingerprint: FingerprintPath,
    timestamp: TimestampPath,
    _caller: bytes = Depends(get_caller_identity),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
):
    record = await usage.get_usage(store, deriver, bytes.fromhex(fingerprint), timestamp)
    data = encode_usage(record)
    return AccountOut(address=record.address, size=len(data), data=base64.b64encode(data).decode())
