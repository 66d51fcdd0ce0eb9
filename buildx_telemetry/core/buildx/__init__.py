# buildx_telemetry/core/buildx/__init__.py
"""
Buildx rawjson log parsing.
"""

from .models import LogEntry, Vertex, VertexStatus
from .parser import (
    BuildxLogParser,
    DedupePolicy,
    ParseStats,
    parse_build_log,
)

__all__ = [
    "LogEntry",
    "Vertex",
    "VertexStatus",
    "BuildxLogParser",
    "DedupePolicy",
    "ParseStats",
    "parse_build_log",
]
