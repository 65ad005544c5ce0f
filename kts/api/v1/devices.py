import base64
from typing import Annotated

from fastapi import APIRouter, BackgroundTasks, Depends, Path, status

from kts.core.auth import enforce_write_rate_limit, get_caller_identity
from kts.core.clock import host_clock_now
from kts.core.deps import get_deriver, get_event_sink, get_record_store
from kts.db.store import RecordStore
from kts.schemas.common import AccountOut, HEX32_PATTERN
from kts.schemas.device import DeviceOut, RegisterDeviceIn
from kts.services import registry
from kts.services.addressing import AddressDeriver
from kts.services.codec import encode_device
from kts.services.events import CERTIFICATE_ISSUED, DEVICE_REGISTERED, EventSink, device_event

router = APIRouter()

FingerprintPath = Annotated[str, Path(pattern=HEX32_PATTERN, description="Device fingerprint, 64 hex chars")]


@router.post("", response_model=DeviceOut, status_code=status.HTTP_201_CREATED)
async def register_device(
    payload: RegisterDeviceIn,
    background_tasks: BackgroundTasks,
    caller: bytes = Depends(enforce_write_rate_limit),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
    sink: EventSink = Depends(get_event_sink),
):
    record = await registry.register_device(
        store,
        deriver,
        caller,
        bytes.fromhex(payload.device_fingerprint),
        payload.device_name,
        now=host_clock_now(),
    )
    background_tasks.add_task(sink, device_event(DEVICE_REGISTERED, record, device_name=payload.device_name))
    return DeviceOut.from_record(record)


@router.get("/{fingerprint}", response_model=DeviceOut)
async def get_device(
    fingerprint: FingerprintPath,
    _caller: bytes = Depends(get_caller_identity),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
):
    record = await registry.get_device(store, deriver, bytes.fromhex(fingerprint))
    return DeviceOut.from_record(record)


@router.get("/{fingerprint}/account", response_model=AccountOut)
async def get_device_account(
    fingerprint: FingerprintPath,
    _caller: bytes = Depends(get_caller_identity),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
):
    record = await registry.get_device(store, deriver, bytes.fromhex(fingerprint))
    data = encode_device(record)
    return AccountOut(address=record.address, size=len(data), data=base64.b64encode(data).decode())


@router.post("/{fingerprint}/certificate", response_model=DeviceOut)
async def mark_certificate_issued(
    background_tasks: BackgroundTasks,
    fingerprint: FingerprintPath,
    caller: bytes = Depends(enforce_write_rate_limit),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
    sink: EventSink = Depends(get_event_sink),
):
    device_address = deriver.device_address(bytes.fromhex(fingerprint))
    record = await registry.mark_certificate_issued(store, caller, device_address)
    background_tasks.add_task(sink, device_event(CERTIFICATE_ISSUED, record))
    return DeviceOut.from_record(record)
