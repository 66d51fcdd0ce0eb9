# buildx_telemetry/core/errors/exceptions.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from . import codes


def _safe_str(x: Any) -> str:
    try:
        return str(x)
    except Exception:
        return "<unstringifiable>"


@dataclass
class BuildxTelemetryError(Exception):
    """
    Base exception for every error the core surfaces to its caller.

    The core never exits the process; the CLI maps these to exit codes.
    """
    message: str
    error_code: str = codes.UNKNOWN
    phase: str = "unknown"  # parse / init / export / shutdown / config
    details: Dict[str, Any] = field(default_factory=dict)
    cause: Optional[BaseException] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)
        if self.error_code not in codes.ALL_CODES:
            self.details.setdefault("upstream_error_code", self.error_code)
            self.error_code = codes.UNKNOWN

    def __str__(self) -> str:
        if self.cause is not None:
            return f"[{self.error_code}] {self.message}: {_safe_str(self.cause)}"
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "error_code": self.error_code,
            "message": self.message,
            "phase": self.phase,
            "details": self.details,
        }
        if self.cause is not None:
            data["cause"] = _safe_str(self.cause)
        return data


@dataclass
class LogReadError(BuildxTelemetryError):
    """Reading the input stream failed at the OS level."""
    error_code: str = codes.LOG_READ_FAILED
    phase: str = "parse"
    partial_steps: List[Any] = field(default_factory=list)


@dataclass
class ExporterInitError(BuildxTelemetryError):
    error_code: str = codes.EXPORTER_INIT_FAILED
    phase: str = "init"


@dataclass
class ExporterShutdownError(BuildxTelemetryError):
    """Flush/close of the span exporter failed. Spans already ended are not unwound."""
    error_code: str = codes.EXPORTER_SHUTDOWN_FAILED
    phase: str = "shutdown"


@dataclass
class ConfigError(BuildxTelemetryError):
    error_code: str = codes.INVALID_CONFIG
    phase: str = "config"
