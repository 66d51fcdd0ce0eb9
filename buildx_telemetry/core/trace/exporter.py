# buildx_telemetry/core/trace/exporter.py
"""
BuildTraceExporter - re-expresses completed build steps as a trace

One root span for the build, one child span per BuildStep. Child spans
carry the step's own start/completion timestamps, so the exported trace
reflects when the build ran, not when the export ran.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Sequence

from opentelemetry import trace
from opentelemetry.context import Context
from opentelemetry.sdk.trace.export import SpanExporter

from buildx_telemetry.config import TelemetryConfig
from buildx_telemetry.core.errors import BuildxTelemetryError, ExporterShutdownError
from buildx_telemetry.core.step import BuildStep
from buildx_telemetry.infra.observability.otel import create_tracer_provider
from buildx_telemetry.utils.log import NullLogger, StructuredLogger

from .context import context_from_traceparent, format_span_id, format_trace_id, parent_span_context


INSTRUMENTATION_NAME = "buildx"

ATTR_VERSION = "version"
ATTR_STEP_COUNT = "buildx.steps"
ATTR_CACHED = "buildx.step.cached"
ATTR_DIGEST = "buildx.vertex.digest"


class BuildTraceExporter:
    """
    Owns a private TracerProvider for the lifetime of one export.

    Construction builds the exporter and is the only step that can fail
    with ExporterInitError. Use as a context manager so the provider is
    always shut down:

        >>> with BuildTraceExporter(config, logger=log) as exporter:
        ...     trace_id = exporter.export(steps)
    """

    def __init__(
        self,
        config: Optional[TelemetryConfig] = None,
        logger: Optional[StructuredLogger] = None,
        span_exporter: Optional[SpanExporter] = None,
    ):
        self.config = config or TelemetryConfig.default()
        self.logger = logger or NullLogger()

        self.logger.info(
            "Initializing OpenTelemetry tracer",
            endpoint=self.config.otlp_endpoint,
            exporter=self.config.exporter,
            service=self.config.service_name,
            version=self.config.version or "",
        )
        self._provider = create_tracer_provider(self.config, span_exporter)
        self._tracer = self._provider.get_tracer(INSTRUMENTATION_NAME, self.config.version)
        self._closed = False
        self.logger.info("OpenTelemetry tracer initialized")

    def __enter__(self) -> "BuildTraceExporter":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.shutdown()
            return False
        # keep the original error; a shutdown failure is only logged
        try:
            self.shutdown()
        except ExporterShutdownError as e:
            self.logger.error("Error shutting down tracer", error=str(e))
        return False

    def _base_attributes(self) -> Dict[str, Any]:
        if self.config.version:
            return {ATTR_VERSION: self.config.version}
        return {}

    def export(self, steps: Sequence[BuildStep], context: Optional[Context] = None) -> str:
        """
        Emit the build trace and return its trace id as 32 lowercase hex chars.

        Args:
            steps: BuildSteps in log order; child spans are created in this order
            context: parent Context; when None, config.traceparent is used
        """
        if self._closed:
            raise BuildxTelemetryError(message="exporter already shut down", phase="export")

        if context is None:
            context = context_from_traceparent(
                self.config.traceparent, self.config.tracestate, logger=self.logger
            )

        self.logger.info("Starting to export build traces", steps=len(steps))

        parent = parent_span_context(context)
        if parent is not None:
            self.logger.info(
                "Creating build span as child of parent span",
                parent_trace_id=format_trace_id(parent.trace_id),
                parent_span_id=format_span_id(parent.span_id),
            )
        else:
            self.logger.info("Creating new root build span")
            context = Context()

        root_start = min((s.started for s in steps), default=None)
        root_attributes = self._base_attributes()
        root_attributes[ATTR_STEP_COUNT] = len(steps)

        root = self._tracer.start_span(
            self.config.root_span_name,
            context=context,
            start_time=root_start,
            attributes=root_attributes,
        )
        trace_id = format_trace_id(root.get_span_context().trace_id)

        try:
            step_context = trace.set_span_in_context(root, context)
            for i, step in enumerate(steps):
                attributes = self._base_attributes()
                attributes[ATTR_CACHED] = step.cached
                if step.digest:
                    attributes[ATTR_DIGEST] = step.digest

                span = self._tracer.start_span(
                    step.span_name,
                    context=step_context,
                    start_time=step.started,
                    attributes=attributes,
                )
                span.end(end_time=step.completed)

                if i > 0 and i % self.config.progress_every == 0:
                    self.logger.debug("Exported step traces", count=i)
        finally:
            # not backdated: the root closes when processing finishes
            root.end()

        self.logger.info("Completed exporting build traces", trace_id=trace_id, steps=len(steps))
        return trace_id

    def shutdown(self, timeout_seconds: Optional[float] = None) -> None:
        """
        Flush pending spans within the deadline, then release the provider.

        Idempotent. Raises ExporterShutdownError if flushing or shutdown fails;
        spans already ended are not affected.
        """
        if self._closed:
            return
        self._closed = True

        timeout = self.config.shutdown_timeout if timeout_seconds is None else timeout_seconds
        self.logger.info("Shutting down OpenTelemetry tracer", timeout_seconds=timeout)

        error: Optional[ExporterShutdownError] = None
        try:
            if not self._provider.force_flush(int(timeout * 1000)):
                error = ExporterShutdownError(
                    message="timed out flushing spans",
                    details={"timeout_seconds": timeout},
                )
        except Exception as e:
            error = ExporterShutdownError(message="flushing spans", cause=e)

        try:
            self._provider.shutdown()
        except Exception as e:
            if error is None:
                error = ExporterShutdownError(message="shutting down tracer provider", cause=e)

        if error is not None:
            self.logger.error("Tracer shutdown failed", error=str(error))
            raise error
