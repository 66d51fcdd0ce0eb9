# tests/conftest.py
from typing import Any, Dict, List, Tuple

import pytest


class RecordingLogger:
    """StructuredLogger test double that keeps every record."""

    def __init__(self, records=None, fields=None):
        self.records: List[Tuple[str, str, Dict[str, Any]]] = [] if records is None else records
        self._fields = dict(fields or {})

    def _log(self, level, msg, fields):
        self.records.append((level, msg, {**self._fields, **fields}))

    def debug(self, msg, **fields):
        self._log("debug", msg, fields)

    def info(self, msg, **fields):
        self._log("info", msg, fields)

    def warning(self, msg, **fields):
        self._log("warning", msg, fields)

    def error(self, msg, **fields):
        self._log("error", msg, fields)

    def bind(self, **fields):
        return RecordingLogger(self.records, {**self._fields, **fields})

    def messages(self, level=None):
        return [m for lvl, m, _ in self.records if level is None or lvl == level]

    def find(self, msg):
        return [f for _, m, f in self.records if m == msg]


@pytest.fixture
def recording_logger():
    return RecordingLogger()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove environment variables the config loader reads."""
    for name in (
        "OTEL_EXPORTER_OTLP_ENDPOINT",
        "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT",
        "OTEL_EXPORTER_OTLP_INSECURE",
        "OTEL_EXPORTER_OTLP_HEADERS",
        "OTEL_SERVICE_NAME",
        "BUILDX_TELEMETRY_VERSION",
        "TRACEPARENT",
        "TRACESTATE",
    ):
        monkeypatch.delenv(name, raising=False)
