# buildx_telemetry/infra/observability/otel/__init__.py
from .configure import create_span_exporter, create_resource, create_tracer_provider

__all__ = ["create_span_exporter", "create_resource", "create_tracer_provider"]
