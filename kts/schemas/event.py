import datetime as dt

from pydantic import BaseModel, ConfigDict


class LedgerEventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    kind: str
    address: str
    device_hash: str
    owner: str
    detail: dict
    created_at: dt.datetime
