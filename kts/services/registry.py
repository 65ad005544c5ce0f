import logging

from kts.core.constants import MAX_DEVICE_NAME_LENGTH
from kts.core.errors import (
    AddressOccupied,
    CertificateAlreadyIssued,
    DeviceAlreadyRegistered,
    DeviceNotRegistered,
    InvalidDeviceNameLength,
    InvalidDeviceOwner,
)
from kts.db.store import RecordStore
from kts.models.device import DeviceRecord
from kts.services.addressing import AddressDeriver

logger = logging.getLogger(__name__)


async def register_device(
    store: RecordStore,
    deriver: AddressDeriver,
    caller: bytes,
    device_fingerprint: bytes,
    device_name: str,
    now: int,
) -> DeviceRecord:
    """
    Create the DeviceRecord for ``device_fingerprint`` owned by ``caller``.

    The fingerprint is taken as supplied; nothing binds it to ``device_name``,
    which is only length-checked. A fingerprint can be registered once, ever.
    """
    if len(device_name.encode("utf-8")) > MAX_DEVICE_NAME_LENGTH:
        raise InvalidDeviceNameLength()

    address = deriver.device_address(device_fingerprint).hex()
    record = DeviceRecord(
        address=address,
        owner=caller.hex(),
        device_hash=device_fingerprint.hex(),
        registered_at=now,
        certificate_issued=False,
    )
    try:
        await store.create(record)
    except AddressOccupied as exc:
        raise DeviceAlreadyRegistered() from exc
    await store.commit()
    logger.info(
        "device %s registered as %r by %s",
        address,
        device_name,
        record.owner,
        extra={"operation": "register_device", "address": address, "owner": record.owner},
    )
    return record


async def get_device(store: RecordStore, deriver: AddressDeriver, device_fingerprint: bytes) -> DeviceRecord:
    record = await store.get(DeviceRecord, deriver.device_address(device_fingerprint).hex())
    if record is None:
        raise DeviceNotRegistered()
    return record


async def mark_certificate_issued(store: RecordStore, caller: bytes, device_address: bytes) -> DeviceRecord:
    """One-shot false -> true transition of ``certificate_issued``; repeats are rejected, not ignored."""
    address = device_address.hex()
    owner = caller.hex()
    changed = await store.mutate(
        DeviceRecord,
        address,
        guards=[DeviceRecord.owner == owner, DeviceRecord.certificate_issued.is_(False)],
        values={"certificate_issued": True},
    )
    if not changed:
        await store.rollback()
        current = await store.get(DeviceRecord, address, fresh=True)
        if current is None:
            raise DeviceNotRegistered()
        if current.owner != owner:
            raise InvalidDeviceOwner()
        raise CertificateAlreadyIssued()

    await store.commit()
    record = await store.get(DeviceRecord, address, fresh=True)
    logger.info(
        "certificate marked for device %s by owner %s",
        record.device_hash,
        owner,
        extra={"operation": "mark_certificate_issued", "address": address, "owner": owner},
    )
    return record
