from fastapi import APIRouter, Depends, Query
from sqlalchemy import select

from kts.core.auth import get_caller_identity
from kts.core.deps import get_deriver, get_record_store
from kts.core.errors import InvalidDeviceOwner
from kts.db.store import RecordStore
from kts.models.event import LedgerEvent
from kts.schemas.common import HEX32_PATTERN
from kts.schemas.event import LedgerEventOut
from kts.services import registry
from kts.services.addressing import AddressDeriver

router = APIRouter()


@router.get("/events", response_model=list[LedgerEventOut])
async def list_events(
    device_fingerprint: str = Query(..., pattern=HEX32_PATTERN),
    caller: bytes = Depends(get_caller_identity),
    store: RecordStore = Depends(get_record_store),
    deriver: AddressDeriver = Depends(get_deriver),
):
    device = await registry.get_device(store, deriver, bytes.fromhex(device_fingerprint))
    if device.owner != caller.hex():
        raise InvalidDeviceOwner()
    stmt = (
        select(LedgerEvent)
        .where(LedgerEvent.device_hash == device.device_hash)
        .order_by(LedgerEvent.created_at.desc(), LedgerEvent.id.desc())
        .limit(200)
    )
    result = await store.session.execute(stmt)
    return result.scalars().all()
