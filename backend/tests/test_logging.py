import json
import logging

from quiz_admin.database import _engine_options
from quiz_admin.logging_config import StructuredJsonFormatter, get_logger, request_id_var


def _record(logger_name, **extra):
    record = logging.LogRecord(logger_name, logging.WARNING, __file__, 1, "hello %s", ("world",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_entry_carries_channel_context_and_request_id():
    token = request_id_var.set("req-1")
    try:
        line = StructuredJsonFormatter().format(_record(
            get_logger("export").name,
            context={"session_id": "s-1"},
            extra_data={"rows": 3},
        ))
    finally:
        request_id_var.reset(token)

    entry = json.loads(line)
    assert entry["message"] == "hello world"
    assert entry["level"] == "WARNING"
    assert entry["channel"] == "export"
    assert entry["context"] == {"request_id": "req-1", "session_id": "s-1"}
    assert entry["extra"] == {"rows": 3}
    assert entry["timestamp"].endswith("Z")


def test_loggers_outside_the_package_use_app_channel():
    entry = json.loads(StructuredJsonFormatter().format(_record("root")))
    assert entry["channel"] == "app"
    assert entry["extra"] == {}


def test_engine_options_per_backend():
    assert _engine_options("sqlite:///./x.db")["connect_args"] == {"check_same_thread": False}
    assert _engine_options("postgresql://u@h/db")["pool_pre_ping"] is True
    assert _engine_options("mysql://u@h/db") == {"echo": False}
