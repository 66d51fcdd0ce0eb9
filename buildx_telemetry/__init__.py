# buildx_telemetry/__init__.py
"""
buildx-telemetry - turn a finished docker buildx build log into an OpenTelemetry trace

    >>> from buildx_telemetry import BuildxLogParser, BuildTraceExporter, load_config
    >>> with open("build.log", "rb") as f:
    ...     steps = BuildxLogParser(f).parse()
    >>> with BuildTraceExporter(load_config()) as exporter:
    ...     print(exporter.export(steps))
"""

__version__ = "0.1.0"

from buildx_telemetry.config import TelemetryConfig, load_config
from buildx_telemetry.core.buildx import BuildxLogParser, DedupePolicy, parse_build_log
from buildx_telemetry.core.step import BuildStep
from buildx_telemetry.core.trace import BuildTraceExporter, context_from_traceparent

__all__ = [
    "__version__",
    "TelemetryConfig",
    "load_config",
    "BuildxLogParser",
    "DedupePolicy",
    "parse_build_log",
    "BuildStep",
    "BuildTraceExporter",
    "context_from_traceparent",
]
