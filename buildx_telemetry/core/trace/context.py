# buildx_telemetry/core/trace/context.py
"""
W3C traceparent handling for grafting the build trace onto a parent trace.
"""

from __future__ import annotations

from typing import Optional

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.trace import SpanContext
from opentelemetry.trace.propagation.tracecontext import TraceContextTextMapPropagator

from buildx_telemetry.utils.log import NullLogger, StructuredLogger


_propagator = TraceContextTextMapPropagator()


def context_from_traceparent(
    traceparent: Optional[str],
    tracestate: Optional[str] = None,
    logger: Optional[StructuredLogger] = None,
) -> Context:
    """
    Turn a traceparent header value into an OTel Context.

    Missing or malformed values give an empty Context (new root trace);
    a malformed value is logged as a warning, never raised.
    """
    logger = logger or NullLogger()
    if not traceparent or not traceparent.strip():
        return Context()

    carrier = {"traceparent": traceparent.strip()}
    if tracestate:
        carrier["tracestate"] = tracestate.strip()

    ctx = _propagator.extract(carrier, context=Context())
    if parent_span_context(ctx) is None:
        logger.warning("Ignoring malformed traceparent", traceparent=traceparent)
        return Context()
    return ctx


def parent_span_context(ctx: Optional[Context]) -> Optional[SpanContext]:
    """The valid parent SpanContext carried by ctx, or None."""
    if ctx is None:
        return None
    span_context = trace.get_current_span(ctx).get_span_context()
    if not span_context.is_valid:
        return None
    return span_context


def format_trace_id(trace_id: int) -> str:
    return trace.format_trace_id(trace_id)


def format_span_id(span_id: int) -> str:
    return trace.format_span_id(span_id)
