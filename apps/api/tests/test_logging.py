"""
Logging configuration tests.
"""
import json
import logging
import sys
from unittest.mock import patch

import pytest

from core.logging import HANDLER_NAME, JSONFormatter, TextFormatter, log_fields, setup_logging


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg="Check-in scored", exc_info=None, **extra):
    record = logging.LogRecord(
        name="services.checkin_scoring",
        level=logging.INFO,
        pathname=__file__,
        lineno=42,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def _own_handlers(root):
    return [h for h in root.handlers if h.get_name() == HANDLER_NAME]


class TestJSONFormatter:

    def test_core_fields(self):
        payload = json.loads(JSONFormatter().format(_record()))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "services.checkin_scoring"
        assert payload["message"] == "Check-in scored"
        assert payload["line"] == 42
        assert "timestamp" in payload
        assert "environment" in payload

    def test_structured_fields_merged(self):
        record = _record(**log_fields(client_id="client-1", score=71, band="orange"))

        payload = json.loads(JSONFormatter().format(record))

        assert payload["client_id"] == "client-1"
        assert payload["score"] == 71
        assert payload["band"] == "orange"

    def test_exception_included(self):
        try:
            raise ValueError("bad thresholds")
        except ValueError:
            record = _record(exc_info=sys.exc_info())

        payload = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad thresholds" in payload["exception"]


class TestTextFormatter:

    def test_appends_structured_fields(self):
        line = TextFormatter().format(_record(**log_fields(client_id="client-1", write="skipped")))

        assert "Check-in scored" in line
        assert line.endswith("| client_id=client-1 write=skipped")

    def test_plain_message_without_fields(self):
        assert "|" not in TextFormatter().format(_record())


class TestSetupLogging:

    def test_json_format(self):
        root = setup_logging(level="debug", log_format="json")

        assert root.level == logging.DEBUG
        assert len(_own_handlers(root)) == 1
        assert isinstance(_own_handlers(root)[0].formatter, JSONFormatter)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_text_format_in_development(self):
        with patch("core.logging.settings") as mock_settings:
            mock_settings.LOG_LEVEL = "INFO"
            mock_settings.LOG_FORMAT = "text"
            mock_settings.ENVIRONMENT = "development"
            root = setup_logging()

        assert root.level == logging.INFO
        assert isinstance(_own_handlers(root)[0].formatter, TextFormatter)

    def test_production_forces_json(self):
        with patch("core.logging.settings") as mock_settings:
            mock_settings.LOG_LEVEL = "INFO"
            mock_settings.LOG_FORMAT = "text"
            mock_settings.ENVIRONMENT = "production"
            root = setup_logging()

        assert isinstance(_own_handlers(root)[0].formatter, JSONFormatter)

    def test_rerun_replaces_only_own_handler(self):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)

        setup_logging(log_format="text")
        setup_logging(log_format="json")

        assert foreign in root.handlers
        assert len(_own_handlers(root)) == 1

    def test_configured_on_import(self):
        import core.logging  # noqa: F401

        assert _own_handlers(logging.getLogger())
