"""Unit tests for log formatting."""

import json
import logging

from lessonforge.logging_config import JsonFormatter, RequestIdFilter, request_id_var


def _record(**extra) -> logging.LogRecord:
    fields = {"name": "lessonforge.test", "levelname": "INFO", "msg": "Saved %s", "args": ("plan",)}
    fields.update(extra)
    return logging.makeLogRecord(fields)


def test_json_line_carries_request_id_and_extra_fields():
    record = _record(lesson_plan_id="abc")
    token = request_id_var.set("req-1")
    try:
        assert RequestIdFilter().filter(record) is True
    finally:
        request_id_var.reset(token)

    line = json.loads(JsonFormatter().format(record))
    assert line["message"] == "Saved plan"
    assert line["request_id"] == "req-1"
    assert line["lesson_plan_id"] == "abc"
    assert "args" not in line


def test_record_outside_request_gets_placeholder():
    record = _record()
    RequestIdFilter().filter(record)
    assert record.request_id == "-"
