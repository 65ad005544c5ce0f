"""
Fixed-size binary layout of registry records.

Little-endian, no padding, 8-byte type tag first:

    DeviceAccount      tag owner[32] device_hash[32] registered_at:i64 certificate_issued:u8   (81 bytes)
    DailyUsageAccount  tag device[32] timestamp:i64 cpu:f32 mem:f32 processes[5][32]
                       data_hash[32] created_at:i64                                            (256 bytes)
"""

import math
import struct
from typing import Sequence

from kts.core.constants import (
    DAILY_USAGE_ACCOUNT_SIZE,
    DAILY_USAGE_ACCOUNT_TAG,
    DEVICE_ACCOUNT_SIZE,
    DEVICE_ACCOUNT_TAG,
    MAX_PROCESS_NAME_LENGTH,
    PROCESS_ARRAY_SIZE,
    PROCESS_BLOCK_SIZE,
)
from kts.core.errors import InvalidRecordLayout
from kts.models.device import DeviceRecord
from kts.models.usage import DailyUsageRecord

DEVICE_STRUCT = struct.Struct("<8s32s32sq?")
DAILY_USAGE_STRUCT = struct.Struct(f"<8s32sqff{PROCESS_BLOCK_SIZE}s32sq")

assert DEVICE_STRUCT.size == DEVICE_ACCOUNT_SIZE
assert DAILY_USAGE_STRUCT.size == DAILY_USAGE_ACCOUNT_SIZE

_F32 = struct.Struct("<f")


def to_f32(value: float) -> float:
    """Round a Python float to the nearest f32; magnitudes beyond the f32 range become +-inf."""
    try:
        return _F32.unpack(_F32.pack(value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _fixed(value: bytes, size: int, field: str) -> bytes:
    if len(value) != size:
        raise InvalidRecordLayout(f"{field} must be {size} bytes, got {len(value)}")
    return value


def pack_top_processes(names: Sequence[str]) -> bytes:
    """Left-align each name in a 32-byte zero-filled slot, in input order."""
    if len(names) != PROCESS_ARRAY_SIZE:
        raise InvalidRecordLayout(f"Expected {PROCESS_ARRAY_SIZE} process names, got {len(names)}")
    block = bytearray(PROCESS_BLOCK_SIZE)
    for i, name in enumerate(names):
        raw = name.encode("utf-8")
        if len(raw) > MAX_PROCESS_NAME_LENGTH:
            raise InvalidRecordLayout(f"Process name {i} is {len(raw)} bytes")
        start = i * MAX_PROCESS_NAME_LENGTH
        block[start : start + len(raw)] = raw
    return bytes(block)


def unpack_top_processes(block: bytes) -> list[str]:
    _fixed(block, PROCESS_BLOCK_SIZE, "top_processes")
    names = []
    for i in range(PROCESS_ARRAY_SIZE):
        slot = block[i * MAX_PROCESS_NAME_LENGTH : (i + 1) * MAX_PROCESS_NAME_LENGTH]
        names.append(slot.rstrip(b"\x00").decode("utf-8"))
    return names


def encode_device(record: DeviceRecord) -> bytes:
    return DEVICE_STRUCT.pack(
        DEVICE_ACCOUNT_TAG,
        _fixed(bytes.fromhex(record.owner), 32, "owner"),
        _fixed(bytes.fromhex(record.device_hash), 32, "device_hash"),
        record.registered_at,
        bool(record.certificate_issued),
    )


def decode_device(data: bytes) -> DeviceRecord:
    """Rebuild a detached DeviceRecord; the address is not part of the layout."""
    _fixed(data, DEVICE_ACCOUNT_SIZE, "DeviceAccount")
    tag, owner, device_hash, registered_at, issued = DEVICE_STRUCT.unpack(data)
    if tag != DEVICE_ACCOUNT_TAG:
        raise InvalidRecordLayout("Not a DeviceAccount")
    return DeviceRecord(
        owner=owner.hex(),
        device_hash=device_hash.hex(),
        registered_at=registered_at,
        certificate_issued=issued,
    )


def encode_usage(record: DailyUsageRecord) -> bytes:
    return DAILY_USAGE_STRUCT.pack(
        DAILY_USAGE_ACCOUNT_TAG,
        _fixed(bytes.fromhex(record.device), 32, "device"),
        record.timestamp,
        record.avg_cpu_usage,
        record.avg_memory_usage,
        _fixed(record.top_processes, PROCESS_BLOCK_SIZE, "top_processes"),
        _fixed(bytes.fromhex(record.data_hash), 32, "data_hash"),
        record.created_at,
    )


def decode_usage(data: bytes) -> DailyUsageRecord:
    _fixed(data, DAILY_USAGE_ACCOUNT_SIZE, "DailyUsageAccount")
    tag, device, timestamp, cpu, mem, processes, data_hash, created_at = DAILY_USAGE_STRUCT.unpack(data)
    if tag != DAILY_USAGE_ACCOUNT_TAG:
        raise InvalidRecordLayout("Not a DailyUsageAccount")
    return DailyUsageRecord(
        device=device.hex(),
        timestamp=timestamp,
        avg_cpu_usage=cpu,
        avg_memory_usage=mem,
        top_processes=processes,
        data_hash=data_hash.hex(),
        created_at=created_at,
    )
