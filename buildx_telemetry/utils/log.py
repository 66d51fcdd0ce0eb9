# buildx_telemetry/utils/log.py
"""
Structured logging on top of the stdlib logging module.

The parser and the trace exporter only need leveled emission with
key/value fields, so they take anything shaped like StructuredLogger.
StdlibLogger is the real backend, NullLogger is the default.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Dict, Optional, Protocol

from buildx_telemetry.core.errors import ConfigError


LOG_FORMATS = ("text", "json")

LOG_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


class StructuredLogger(Protocol):
    def debug(self, msg: str, **fields: Any) -> None: ...
    def info(self, msg: str, **fields: Any) -> None: ...
    def warning(self, msg: str, **fields: Any) -> None: ...
    def error(self, msg: str, **fields: Any) -> None: ...
    def bind(self, **fields: Any) -> "StructuredLogger": ...


class NullLogger:
    """Discards everything."""

    def debug(self, msg: str, **fields: Any) -> None:
        pass

    def info(self, msg: str, **fields: Any) -> None:
        pass

    def warning(self, msg: str, **fields: Any) -> None:
        pass

    def error(self, msg: str, **fields: Any) -> None:
        pass

    def bind(self, **fields: Any) -> "NullLogger":
        return self


def _render_fields(fields: Dict[str, Any]) -> str:
    return " ".join(f"{k}={v}" for k, v in fields.items())


class StdlibLogger:
    """
    Adapter from StructuredLogger to a logging.Logger.

    Fields are appended to the message as key=value pairs and also passed
    as record.fields, which JsonFormatter emits as separate keys.
    """

    def __init__(self, logger: Optional[logging.Logger] = None, fields: Optional[Dict[str, Any]] = None):
        self._logger = logger or logging.getLogger("buildx_telemetry")
        self._fields = dict(fields or {})

    def _log(self, level: int, msg: str, fields: Dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged = {**self._fields, **fields}
        text = f"{msg} {_render_fields(merged)}" if merged else msg
        self._logger.log(level, text, extra={"fields": merged, "event": msg})

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)

    def error(self, msg: str, **fields: Any) -> None:
        self._log(logging.ERROR, msg, fields)

    def bind(self, **fields: Any) -> "StdlibLogger":
        return StdlibLogger(self._logger, {**self._fields, **fields})


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "msg": getattr(record, "event", record.getMessage()),
        }
        fields = getattr(record, "fields", None)
        if isinstance(fields, dict):
            for k, v in fields.items():
                payload.setdefault(k, v)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def parse_level(level: str) -> int:
    try:
        return LOG_LEVELS[level.strip().lower()]
    except (KeyError, AttributeError):
        raise ConfigError(
            message=f"invalid log level: {level!r}",
            details={"allowed": sorted(LOG_LEVELS)},
        )


def configure_logging(level: str = "info", fmt: str = "text", stream=None) -> StdlibLogger:
    """
    Configure the package logger and return a StructuredLogger bound to it.

    Only the "buildx_telemetry" logger is touched; the root logger is left alone.
    """
    if fmt not in LOG_FORMATS:
        raise ConfigError(
            message=f"invalid log format: {fmt!r}",
            details={"allowed": list(LOG_FORMATS)},
        )

    logger = logging.getLogger("buildx_telemetry")
    logger.setLevel(parse_level(level))
    logger.propagate = False

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)

    return StdlibLogger(logger)
