# buildx_telemetry/infra/observability/otel/configure.py
"""
OpenTelemetry exporter and provider construction.

The provider built here is owned by the caller and is never installed
with trace.set_tracer_provider().
"""

from __future__ import annotations

import sys
from typing import Optional
from urllib.parse import urlsplit

from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
    SpanExporter,
)

from buildx_telemetry.config import TelemetryConfig
from buildx_telemetry.core.errors import ExporterInitError


OTLP_HTTP_TRACES_PATH = "/v1/traces"


def _http_endpoint(endpoint: str, insecure: bool) -> str:
    if "://" not in endpoint:
        endpoint = f"{'http' if insecure else 'https'}://{endpoint}"
    parts = urlsplit(endpoint)
    if parts.path in ("", "/"):
        endpoint = endpoint.rstrip("/") + OTLP_HTTP_TRACES_PATH
    return endpoint


def create_span_exporter(config: TelemetryConfig) -> SpanExporter:
    """
    Build the span exporter selected by config.exporter.

    Raises:
        ExporterInitError: unknown exporter kind or the exporter could not be built
    """
    headers = dict(config.headers) or None
    try:
        if config.exporter == "otlp":
            from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

            return OTLPSpanExporter(
                endpoint=config.otlp_endpoint,
                insecure=config.insecure,
                headers=headers,
            )

        if config.exporter == "otlp-http":
            from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

            return OTLPSpanExporter(
                endpoint=_http_endpoint(config.otlp_endpoint, config.insecure),
                headers=headers,
            )

        if config.exporter == "console":
            return ConsoleSpanExporter(out=sys.stderr)

    except Exception as e:
        raise ExporterInitError(
            message="creating span exporter",
            details={"exporter": config.exporter, "endpoint": config.otlp_endpoint},
            cause=e,
        ) from e

    raise ExporterInitError(
        message="unknown exporter",
        details={"exporter": config.exporter},
    )


def create_resource(config: TelemetryConfig) -> Resource:
    attributes = {"service.name": config.service_name}
    if config.version:
        attributes["service.version"] = config.version
    return Resource.create(attributes)


def create_tracer_provider(
    config: TelemetryConfig,
    span_exporter: Optional[SpanExporter] = None,
) -> TracerProvider:
    """
    Build a private TracerProvider wired to span_exporter (or one built from config).

    Raises:
        ExporterInitError: exporter or resource setup failed
    """
    exporter = span_exporter if span_exporter is not None else create_span_exporter(config)

    try:
        provider = TracerProvider(resource=create_resource(config), shutdown_on_exit=False)
        if config.batch:
            provider.add_span_processor(BatchSpanProcessor(exporter))
        else:
            provider.add_span_processor(SimpleSpanProcessor(exporter))
    except Exception as e:
        raise ExporterInitError(message="creating tracer provider", cause=e) from e

    return provider
