# buildx_telemetry/config/__init__.py
"""
buildx-telemetry configuration

Code has the defaults; YAML, environment and CLI flags only override them.
"""

from .loader import TelemetryConfig, load_config
from .validator import validate_config, ConfigIssue, EXPORTERS, DEDUPE_POLICIES

__all__ = [
    "TelemetryConfig",
    "load_config",
    "validate_config",
    "ConfigIssue",
    "EXPORTERS",
    "DEDUPE_POLICIES",
]
