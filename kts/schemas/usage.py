import math

from pydantic import BaseModel, Field, field_serializer, field_validator

from kts.core.constants import I64_MAX, I64_MIN
from kts.models.usage import DailyUsageRecord
from kts.schemas.common import Hex32, Utf8Str
from kts.services.codec import unpack_top_processes


class DailyUsageIn(BaseModel):
    device_fingerprint: Hex32
    timestamp: int = Field(..., ge=I64_MIN, le=I64_MAX)
    # Percentages are not range checked; magnitudes beyond f32 are stored as +-inf.
    avg_cpu_usage: float
    avg_memory_usage: float
    # Arity and per-name length are registry checks with their own error codes.
    top_processes: list[Utf8Str]
    data_fingerprint: Hex32

    @field_validator("avg_cpu_usage", "avg_memory_usage")
    @classmethod
    def _not_nan(cls, value: float) -> float:
        if math.isnan(value):
            raise ValueError("value must be a number")
        return value


class DailyUsageOut(BaseModel):
    address: str
    device: str
    timestamp: int
    avg_cpu_usage: float
    avg_memory_usage: float
    top_processes: list[str]
    data_hash: str
    created_at: int

    @field_serializer("avg_cpu_usage", "avg_memory_usage", when_used="json")
    def _json_float(self, value: float) -> float | str:
        if math.isinf(value):
            return "Infinity" if value > 0 else "-Infinity"
        return value

    @classmethod
    def from_record(cls, record: DailyUsageRecord) -> "DailyUsageOut":
        return cls(
            address=record.address,
            device=record.device,
            timestamp=record.timestamp,
            avg_cpu_usage=record.avg_cpu_usage,
            avg_memory_usage=record.avg_memory_usage,
            top_processes=unpack_top_processes(record.top_processes),
            data_hash=record.data_hash,
            created_at=record.created_at,
        )
