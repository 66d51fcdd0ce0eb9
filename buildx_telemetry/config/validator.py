# buildx_telemetry/config/validator.py
"""
Configuration validation.

Structured output for CLI/logging.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List

from buildx_telemetry.utils.log import LOG_FORMATS, LOG_LEVELS

if TYPE_CHECKING:
    from .loader import TelemetryConfig


EXPORTERS = ("otlp", "otlp-http", "console")
DEDUPE_POLICIES = ("none", "digest")


@dataclass(frozen=True)
class ConfigIssue:
    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


def validate_config(config: "TelemetryConfig") -> List[ConfigIssue]:
    """Return every problem found; an empty list means the config is usable."""
    issues: List[ConfigIssue] = []

    if config.exporter not in EXPORTERS:
        issues.append(ConfigIssue("exporter", f"must be one of {', '.join(EXPORTERS)}"))

    if config.exporter != "console" and not config.otlp_endpoint:
        issues.append(ConfigIssue("otlp_endpoint", "required for OTLP exporters"))

    if not config.service_name:
        issues.append(ConfigIssue("service_name", "must not be empty"))

    if not config.root_span_name:
        issues.append(ConfigIssue("root_span_name", "must not be empty"))

    if config.progress_every < 1:
        issues.append(ConfigIssue("progress_every", "must be >= 1"))

    if config.shutdown_timeout <= 0:
        issues.append(ConfigIssue("shutdown_timeout", "must be > 0"))

    if config.dedupe not in DEDUPE_POLICIES:
        issues.append(ConfigIssue("dedupe", f"must be one of {', '.join(DEDUPE_POLICIES)}"))

    if config.log_level.lower() not in LOG_LEVELS:
        issues.append(ConfigIssue("log_level", f"must be one of {', '.join(sorted(LOG_LEVELS))}"))

    if config.log_format not in LOG_FORMATS:
        issues.append(ConfigIssue("log_format", f"must be one of {', '.join(LOG_FORMATS)}"))

    return issues
