# buildx_telemetry/cli/main.py
"""
buildx-telemetry command line entry point

    docker buildx build --progress=rawjson . 2> build.log
    buildx-telemetry --input build.log --otlp-endpoint collector:4317
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from buildx_telemetry import __version__
from buildx_telemetry.cli.show import show_steps
from buildx_telemetry.config import DEDUPE_POLICIES, EXPORTERS, load_config
from buildx_telemetry.core.buildx import BuildxLogParser
from buildx_telemetry.core.errors import (
    BuildxTelemetryError,
    ConfigError,
    ExporterShutdownError,
    LogReadError,
)
from buildx_telemetry.core.trace import BuildTraceExporter
from buildx_telemetry.utils.log import configure_logging


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_SHUTDOWN_FAILED = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="buildx-telemetry",
        description="Export a docker buildx rawjson build log as an OpenTelemetry trace",
    )
    parser.add_argument("--input", "-i", help="Input file (defaults to stdin)")
    parser.add_argument("--config", type=Path, help="YAML config file")
    parser.add_argument("--otlp-endpoint", help="OpenTelemetry endpoint (default: localhost:4317)")
    parser.add_argument("--service-name", help="Service name for telemetry")
    parser.add_argument("--version-tag", dest="version", help="Version attribute for the build spans")
    parser.add_argument("--exporter", choices=EXPORTERS, help="Span exporter (default: otlp)")
    parser.add_argument("--traceparent", help="W3C traceparent of the parent span (default: $TRACEPARENT)")
    parser.add_argument("--insecure", dest="insecure", action="store_true", default=None,
                        help="Plaintext connection to the collector")
    parser.add_argument("--secure", dest="insecure", action="store_false",
                        help="TLS connection to the collector")
    parser.add_argument("--dedupe", choices=DEDUPE_POLICIES,
                        help="Drop repeated completions of the same vertex (default: none)")
    parser.add_argument("--shutdown-timeout", type=float, help="Seconds to wait for span flush")
    parser.add_argument("--log-level", choices=["debug", "info", "warn", "error"], help="Log level")
    parser.add_argument("--log-format", choices=["text", "json"], help="Log output format")
    parser.add_argument("--debug", action="store_true", default=None, help="Print parsed steps")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _overrides(args: argparse.Namespace) -> dict:
    keys = (
        "otlp_endpoint", "service_name", "version", "exporter", "traceparent",
        "insecure", "dedupe", "shutdown_timeout", "log_level", "log_format", "debug",
    )
    return {k: getattr(args, k) for k in keys}


def _open_input(path: Optional[str]):
    if path and path != "-":
        return open(path, "rb")
    return sys.stdin.buffer


def run(args: argparse.Namespace) -> int:
    log = configure_logging(args.log_level or "info", args.log_format or "text")

    try:
        config = load_config(args.config, overrides=_overrides(args))
    except ConfigError as e:
        log.error("Error loading configuration", **e.to_dict())
        return EXIT_FAILURE
    log = configure_logging(config.log_level, config.log_format)

    try:
        reader = _open_input(args.input)
    except OSError as e:
        log.error("Error opening file", path=args.input, error=str(e))
        return EXIT_FAILURE

    try:
        steps = BuildxLogParser(reader, logger=log, dedupe=config.dedupe).parse()
    except LogReadError as e:
        log.error("Error parsing log", **e.to_dict())
        return EXIT_FAILURE
    finally:
        if reader is not sys.stdin.buffer:
            reader.close()

    try:
        exporter = BuildTraceExporter(config, logger=log)
    except BuildxTelemetryError as e:
        log.error("Error initializing tracer", **e.to_dict())
        return EXIT_FAILURE

    try:
        trace_id = exporter.export(steps)
    except BuildxTelemetryError as e:
        log.error("Error exporting traces", **e.to_dict())
        try:
            exporter.shutdown()
        except ExporterShutdownError:
            pass  # already logged by the exporter
        return EXIT_FAILURE

    print(f"TraceID: {trace_id}", flush=True)

    if config.debug:
        show_steps(steps)

    try:
        exporter.shutdown()
    except ExporterShutdownError as e:
        log.error("Error shutting down tracer", **e.to_dict())
        return EXIT_SHUTDOWN_FAILED

    return EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return run(args)


if __name__ == "__main__":
    sys.exit(main())
