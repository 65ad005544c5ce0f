from pydantic import BaseModel

from kts.models.device import DeviceRecord
from kts.schemas.common import Hex32, Utf8Str


class RegisterDeviceIn(BaseModel):
    device_fingerprint: Hex32
    # Length is checked by the registry so the rejection carries its error code.
    device_name: Utf8Str


class DeviceOut(BaseModel):
    address: str
    owner: str
    device_hash: str
    registered_at: int
    certificate_issued: bool

    @classmethod
    def from_record(cls, record: DeviceRecord) -> "DeviceOut":
        return cls(
            address=record.address,
            owner=record.owner,
            device_hash=record.device_hash,
            registered_at=record.registered_at,
            certificate_issued=record.certificate_issued,
        )
