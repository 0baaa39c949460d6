"""Tests for logging configuration."""

import json
import logging

from goplanit.core.logging import JsonFormatter, configure_logging


class TestJsonFormatter:
    def test_formats_record_as_json(self):
        record = logging.LogRecord(
            "goplanit.test", logging.INFO, __file__, 1, "hello %s", ("world",), None
        )
        record.preference_id = "abc"

        payload = json.loads(JsonFormatter().format(record))

        assert payload["level"] == "INFO"
        assert payload["logger"] == "goplanit.test"
        assert payload["message"] == "hello world"
        assert payload["preference_id"] == "abc"
        assert "timestamp" in payload


class TestConfigureLogging:
    def test_installs_single_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging(level="debug", log_format="text")
            configure_logging(level="warning", log_format="json")

            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert root.level == logging.WARNING
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
