"""Logging setup for the API process and the Celery worker."""

import datetime as dt
import json
import logging

from kts.core.config import Settings

_EXTRA_FIELDS = ("operation", "address", "owner", "error_code")


class JSONFormatter(logging.Formatter):
    """Single-line JSON records; registry context travels in ``extra``."""

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            "timestamp": dt.datetime.now(dt.timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in _EXTRA_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_obj[field] = value
        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_obj, default=str)


def configure_logging(settings: Settings) -> None:
    handler = logging.StreamHandler()
    if settings.log_json:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root = logging.getLogger("kts")
    root.handlers = [handler]
    root.setLevel(settings.log_level.upper())
    root.propagate = False
