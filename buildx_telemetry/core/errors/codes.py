# buildx_telemetry/core/errors/codes.py
from __future__ import annotations

from typing import Final


# ---- canonical error codes (stable public contract) ----
UNKNOWN: Final[str] = "UNKNOWN"
INVALID_CONFIG: Final[str] = "INVALID_CONFIG"

# input
LOG_READ_FAILED: Final[str] = "LOG_READ_FAILED"

# exporter lifecycle
EXPORTER_INIT_FAILED: Final[str] = "EXPORTER_INIT_FAILED"
EXPORTER_SHUTDOWN_FAILED: Final[str] = "EXPORTER_SHUTDOWN_FAILED"


# ---- semantic groups ----

ALL_CODES: Final[set[str]] = {
    UNKNOWN,
    INVALID_CONFIG,
    LOG_READ_FAILED,
    EXPORTER_INIT_FAILED,
    EXPORTER_SHUTDOWN_FAILED,
}
