from typing import Any, Callable

from kts.models.device import DeviceRecord
from kts.models.usage import DailyUsageRecord
from kts.workers.celery_app import record_ledger_event

DEVICE_REGISTERED = "device_registered"
USAGE_UPLOADED = "usage_uploaded"
CERTIFICATE_ISSUED = "certificate_issued"

EventSink = Callable[[dict[str, Any]], Any]


def device_event(kind: str, record: DeviceRecord, **detail: Any) -> dict[str, Any]:
    return {
        "kind": kind,
        "address": record.address,
        "device_hash": record.device_hash,
        "owner": record.owner,
        "detail": {"registered_at": record.registered_at, "certificate_issued": record.certificate_issued, **detail},
    }


def usage_event(record: DailyUsageRecord, device: DeviceRecord) -> dict[str, Any]:
    return {
        "kind": USAGE_UPLOADED,
        "address": record.address,
        "device_hash": device.device_hash,
        "owner": device.owner,
        "detail": {"timestamp": record.timestamp, "data_hash": record.data_hash, "created_at": record.created_at},
    }


def enqueue_ledger_event(event: dict[str, Any]) -> None:
    record_ledger_event.delay(event)
