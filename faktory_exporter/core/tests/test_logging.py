"""Tests for the contextual logger and formatters."""

import json
import logging

import pytest

from faktory_exporter.core.config import LogFormat
from faktory_exporter.core.logging import (
    LOGGER_NAME,
    ContextualLogger,
    JsonFormatter,
    LogfmtFormatter,
    configure_logging,
)


def _record(msg: str = "Scrape failed", **extra) -> logging.LogRecord:
    record = logging.LogRecord(LOGGER_NAME, logging.WARNING, __file__, 1, msg, None, None)
    record.__dict__.update(extra)
    return record


class TestContextualLogger:
    def test_with_context_merges(self, caplog):
        log = ContextualLogger(logging.getLogger(LOGGER_NAME)).with_context(component="collector")

        with caplog.at_level(logging.INFO, logger=LOGGER_NAME):
            log.info("hello", extra={"field": "faktory.queues"})

        record = caplog.records[-1]
        assert record.component == "collector"
        assert record.field == "faktory.queues"

    def test_with_context_does_not_mutate_parent(self):
        parent = ContextualLogger(logging.getLogger(LOGGER_NAME), {"a": 1})
        child = parent.with_context(b=2)

        assert parent.extra == {"a": 1}
        assert child.extra == {"a": 1, "b": 2}


class TestFormatters:
    def test_logfmt(self):
        line = LogfmtFormatter().format(_record(field="faktory.total_queues"))

        assert "level=warning" in line
        assert f"logger={LOGGER_NAME}" in line
        assert 'msg="Scrape failed"' in line
        assert "field=faktory.total_queues" in line

    def test_logfmt_quotes_empty_values(self):
        assert 'field=""' in LogfmtFormatter().format(_record(field=""))

    def test_json(self):
        payload = json.loads(JsonFormatter().format(_record(field="server.connections")))

        assert payload["level"] == "warning"
        assert payload["msg"] == "Scrape failed"
        assert payload["field"] == "server.connections"
        assert "ts" in payload


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore(self):
        root = logging.getLogger(LOGGER_NAME)
        handlers, level = list(root.handlers), root.level
        yield
        root.handlers = handlers
        root.setLevel(level)

    @pytest.mark.parametrize(
        "fmt, formatter", [(LogFormat.LOGFMT, LogfmtFormatter), ("json", JsonFormatter)]
    )
    def test_installs_single_handler(self, fmt, formatter):
        configure_logging("debug", fmt)
        configure_logging("debug", fmt)

        root = logging.getLogger(LOGGER_NAME)
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, formatter)
        assert root.level == logging.DEBUG
