# buildx_telemetry/core/errors/__init__.py
"""
Error types surfaced by buildx-telemetry.

Malformed log lines are never errors; only IO, exporter lifecycle and
configuration problems reach the caller.

No side effects on import.
"""

from . import codes
from .exceptions import (
    BuildxTelemetryError,
    LogReadError,
    ExporterInitError,
    ExporterShutdownError,
    ConfigError,
)

__all__ = [
    "codes",
    "BuildxTelemetryError",
    "LogReadError",
    "ExporterInitError",
    "ExporterShutdownError",
    "ConfigError",
]
