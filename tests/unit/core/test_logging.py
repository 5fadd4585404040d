"""
Tests for structured logging
"""
import json
import logging
import sys

import pytest

from core.logging import CustomJsonFormatter, LoggerAdapter, get_logger

pytestmark = pytest.mark.unit


def _record(msg="Exported audit", level=logging.INFO, **extra):
    record = logging.LogRecord("d10_analytics.warehouse", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestCustomJsonFormatter:
    def test_emits_json_with_app_fields(self):
        formatter = CustomJsonFormatter("%(timestamp)s %(level)s %(name)s %(message)s")

        payload = json.loads(formatter.format(_record(audit_id="a-1")))

        assert payload["message"] == "Exported audit"
        assert payload["app"] == "SiteAudit"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "d10_analytics.warehouse"
        assert payload["audit_id"] == "a-1"
        assert payload["timestamp"]

    def test_exception_is_included(self):
        formatter = CustomJsonFormatter("%(message)s")
        try:
            raise ValueError("bad row")
        except ValueError:
            record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, None)
            record.exc_info = sys.exc_info()

        payload = json.loads(formatter.format(record))

        assert "ValueError: bad row" in payload["exception"]


class TestLoggerAdapter:
    def test_context_is_merged_into_extra(self):
        logger = get_logger("d10_analytics.warehouse", domain="d10")

        msg, kwargs = logger.process("hello", {"extra": {"audit_id": "a-1"}})

        assert msg == "hello"
        assert kwargs["extra"] == {"audit_id": "a-1", "domain": "d10"}

    def test_with_context_keeps_parent_untouched(self):
        logger = get_logger("d3_assessment", domain="d3")

        child = logger.with_context(page="home")

        assert isinstance(child, LoggerAdapter)
        assert child.extra == {"domain": "d3", "page": "home"}
        assert logger.extra == {"domain": "d3"}
