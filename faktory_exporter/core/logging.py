"""Logging for the exporter.

Exposes a module-level ``logger`` (a ``ContextualLogger``) and
``configure_logging()`` which installs a single stream handler with either a
logfmt-style or a JSON formatter.

Usage:
    from faktory_exporter.core.logging import logger

    log = logger.with_context(component="collector")
    log.warning("Scrape failed", extra={"field": "faktory.total_queues"})
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, MutableMapping

from faktory_exporter.core.config.enums import LogFormat

LOGGER_NAME = "faktory_exporter"

# Attributes every LogRecord carries; anything else was passed as context.
_RESERVED_ATTRS = frozenset(
    logging.LogRecord("", logging.INFO, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime"}


class ContextualLogger(logging.LoggerAdapter):
    """Logger adapter that attaches key/value context to every record."""

    def __init__(self, logger: logging.Logger, context: dict[str, Any] | None = None) -> None:
        super().__init__(logger, dict(context or {}))

    def with_context(self, **context: Any) -> "ContextualLogger":
        """Return a child logger with ``context`` merged over the current one."""
        return ContextualLogger(self.logger, {**self.extra, **context})

    def process(self, msg: Any, kwargs: MutableMapping[str, Any]) -> tuple[Any, MutableMapping[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def _context_of(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RESERVED_ATTRS}


def _timestamp(record: logging.LogRecord) -> str:
    return datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds")


class LogfmtFormatter(logging.Formatter):
    """Render records as ``ts=… level=… logger=… msg="…" key=value``."""

    def format(self, record: logging.LogRecord) -> str:
        pairs = [
            ("ts", _timestamp(record)),
            ("level", record.levelname.lower()),
            ("logger", record.name),
            ("msg", record.getMessage()),
        ]
        pairs.extend(_context_of(record).items())
        if record.exc_info:
            pairs.append(("exc", self.formatException(record.exc_info)))
        return " ".join(f"{key}={_logfmt_value(value)}" for key, value in pairs)


def _logfmt_value(value: Any) -> str:
    text = str(value)
    if text == "" or any(c in text for c in ' ="\n'):
        return json.dumps(text)
    return text


class JsonFormatter(logging.Formatter):
    """Render records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": _timestamp(record),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": record.getMessage(),
        }
        payload.update(_context_of(record))
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO", fmt: LogFormat | str = LogFormat.LOGFMT) -> None:
    """Install a single stderr handler on the exporter's logger tree."""
    fmt = LogFormat(fmt)
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JsonFormatter() if fmt == LogFormat.JSON else LogfmtFormatter())

    root = logging.getLogger(LOGGER_NAME)
    for existing in list(root.handlers):
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level.upper())

    # aiohttp logs through its own loggers; keep their records in the same format.
    aiohttp_logger = logging.getLogger("aiohttp")
    for existing in list(aiohttp_logger.handlers):
        aiohttp_logger.removeHandler(existing)
    aiohttp_logger.addHandler(handler)
    aiohttp_logger.setLevel(logging.WARNING)


logger = ContextualLogger(logging.getLogger(LOGGER_NAME))
