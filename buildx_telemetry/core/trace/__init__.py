# buildx_telemetry/core/trace/__init__.py
"""
Build step -> OpenTelemetry trace mapping.
"""

from .context import context_from_traceparent, parent_span_context, format_trace_id, format_span_id
from .exporter import (
    BuildTraceExporter,
    INSTRUMENTATION_NAME,
    ATTR_VERSION,
    ATTR_STEP_COUNT,
    ATTR_CACHED,
    ATTR_DIGEST,
)

__all__ = [
    "context_from_traceparent",
    "parent_span_context",
    "format_trace_id",
    "format_span_id",
    "BuildTraceExporter",
    "INSTRUMENTATION_NAME",
    "ATTR_VERSION",
    "ATTR_STEP_COUNT",
    "ATTR_CACHED",
    "ATTR_DIGEST",
]
