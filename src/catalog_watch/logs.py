"""
JSON-lines logging for monitoring runs.

Every record is one JSON object on stdout, so cron mail or CI logs can be
grepped by run_id / step.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

EXTRA_FIELDS = ("run_id", "step", "snapshot_id", "error_code")


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for field in EXTRA_FIELDS:
            if hasattr(record, field):
                payload[field] = getattr(record, field)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


class _Adapter(logging.LoggerAdapter):
    # merge per-call extra with the defaults instead of replacing it
    def process(self, msg, kwargs):
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup(level=None, **defaults):
    """
    Install the JSON handler on the root logger and return an adapter that
    stamps `defaults` (e.g. run_id=...) on every record.
    """
    level = (level or os.environ.get("LOG_LEVEL") or "INFO").upper()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    return _Adapter(logging.getLogger("catalog_watch"), defaults)
