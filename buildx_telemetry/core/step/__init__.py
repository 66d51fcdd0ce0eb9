# buildx_telemetry/core/step/__init__.py
"""
Core step types for buildx-telemetry.

No side effects on import.
"""

from .step import (
    BuildStep,
    CACHED_SUFFIX,
    parse_rfc3339_nano,
    format_rfc3339_nano,
)

__all__ = [
    "BuildStep",
    "CACHED_SUFFIX",
    "parse_rfc3339_nano",
    "format_rfc3339_nano",
]
