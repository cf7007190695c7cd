"""
JSON logging for the reporting service.

One JSON object per line on stdout. Loggers are split into channels
(http, db, reports, export) and every entry carries the id of the
request being served.
"""

import logging
import json
import os
import uuid
from datetime import datetime, timezone
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CHANNELS = ["http", "db", "reports", "export"]


def _channel_of(record: logging.LogRecord) -> str:
    channel = getattr(record, "channel", None)
    if channel:
        return channel
    return record.name.rsplit(".", 1)[-1] if "." in record.name else "app"


class StructuredJsonFormatter(logging.Formatter):
    """Renders timestamp, level, message, channel, context and extra."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "message": record.getMessage(),
            "channel": _channel_of(record),
            "context": {"request_id": request_id_var.get(""), **(getattr(record, "context", None) or {})},
            "extra": getattr(record, "extra_data", None) or {},
        }
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging():
    level = getattr(logging, LOG_LEVEL, logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredJsonFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]

    for channel in CHANNELS:
        get_logger(channel).setLevel(level)
    return root_logger


def get_logger(channel: str) -> logging.Logger:
    return logging.getLogger("quiz_admin.{}".format(channel))


def log_with_context(logger: logging.Logger, level: str, message: str,
                     context: dict = None, extra_data: dict = None, exc_info=None):
    """Log ``message`` with business ids in ``context`` and metrics in ``extra_data``."""
    logger.log(
        getattr(logging, level.upper(), logging.INFO),
        message,
        exc_info=exc_info,
        extra={
            "context": context or {},
            "extra_data": extra_data or {},
            "channel": logger.name.rsplit(".", 1)[-1],
        },
    )


def generate_request_id() -> str:
    return str(uuid.uuid4())
