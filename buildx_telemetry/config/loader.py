# buildx_telemetry/config/loader.py
"""
Configuration Loader

Layering, lowest to highest precedence:
1. code defaults (TelemetryConfig field defaults)
2. YAML file (optional)
3. environment variables (OTel standard names where they exist)
4. explicit overrides (CLI flags)
"""

from __future__ import annotations

import dataclasses
import os
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

import yaml

from buildx_telemetry.core.errors import ConfigError
from .validator import validate_config


@dataclass(frozen=True)
class TelemetryConfig:
    """
    Settings for parsing a build log and exporting it as a trace.

    All fields have code defaults - YAML is optional.
    """

    otlp_endpoint: str = "localhost:4317"
    service_name: str = "docker-build-telemetry"
    version: Optional[str] = None
    insecure: bool = True
    exporter: str = "otlp"  # otlp (gRPC) / otlp-http / console
    headers: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    batch: bool = True

    root_span_name: str = "docker-build"
    progress_every: int = 10
    shutdown_timeout: float = 30.0
    dedupe: str = "none"

    traceparent: Optional[str] = None
    tracestate: Optional[str] = None

    log_level: str = "info"
    log_format: str = "text"
    debug: bool = False

    @classmethod
    def default(cls) -> "TelemetryConfig":
        return cls()

    def replace(self, **changes: Any) -> "TelemetryConfig":
        if "headers" in changes:
            changes["headers"] = MappingProxyType(dict(changes["headers"] or {}))
        return dataclasses.replace(self, **changes)


_FIELD_NAMES = frozenset(f.name for f in dataclasses.fields(TelemetryConfig))


def _getenv(env: Mapping[str, str], name: str) -> Optional[str]:
    v = env.get(name)
    if v is None:
        return None
    v = v.strip()
    return v or None


def _truthy(v: Optional[str]) -> bool:
    if v is None:
        return False
    return v.lower() in {"1", "true", "yes", "y", "on"}


def _parse_headers(raw: str) -> Dict[str, str]:
    """OTEL_EXPORTER_OTLP_HEADERS format: key1=value1,key2=value2"""
    headers: Dict[str, str] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ConfigError(
                message="invalid OTEL_EXPORTER_OTLP_HEADERS entry",
                details={"entry": item},
            )
        headers[key.strip()] = value.strip()
    return headers


def _load_yaml(config_path: Path) -> Dict[str, Any]:
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            message="cannot read config file",
            details={"path": str(config_path)},
            cause=e,
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            message="config file is not valid YAML",
            details={"path": str(config_path)},
            cause=e,
        ) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            message="config file must contain a mapping",
            details={"path": str(config_path)},
        )

    unknown = sorted(set(data) - _FIELD_NAMES)
    if unknown:
        raise ConfigError(
            message="unknown config keys",
            details={"path": str(config_path), "keys": unknown},
        )
    return data


def _env_values(env: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}

    endpoint = _getenv(env, "OTEL_EXPORTER_OTLP_TRACES_ENDPOINT") or _getenv(env, "OTEL_EXPORTER_OTLP_ENDPOINT")
    if endpoint:
        values["otlp_endpoint"] = endpoint

    insecure = _getenv(env, "OTEL_EXPORTER_OTLP_INSECURE")
    if insecure is not None:
        values["insecure"] = _truthy(insecure)

    headers = _getenv(env, "OTEL_EXPORTER_OTLP_HEADERS")
    if headers:
        values["headers"] = _parse_headers(headers)

    service_name = _getenv(env, "OTEL_SERVICE_NAME")
    if service_name:
        values["service_name"] = service_name

    version = _getenv(env, "BUILDX_TELEMETRY_VERSION")
    if version:
        values["version"] = version

    traceparent = _getenv(env, "TRACEPARENT")
    if traceparent:
        values["traceparent"] = traceparent

    tracestate = _getenv(env, "TRACESTATE")
    if tracestate:
        values["tracestate"] = tracestate

    return values


_BOOL_FIELDS = frozenset({"insecure", "batch", "debug"})
_OPTIONAL_STR_FIELDS = frozenset({"version", "traceparent", "tracestate"})


def _check_type(name: str, value: Any) -> Optional[str]:
    if name in _BOOL_FIELDS:
        return None if isinstance(value, bool) else "expected a boolean"
    if name == "progress_every":
        ok = isinstance(value, int) and not isinstance(value, bool)
        return None if ok else "expected an integer"
    if name == "shutdown_timeout":
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
        return None if ok else "expected a number"
    if name == "headers":
        return None if isinstance(value, Mapping) else "expected a mapping"
    if name in _OPTIONAL_STR_FIELDS and value is None:
        return None
    return None if isinstance(value, str) else "expected a string"


def _coerce(config: TelemetryConfig, values: Dict[str, Any], source: str) -> TelemetryConfig:
    problems = {}
    for name, value in values.items():
        problem = _check_type(name, value)
        if problem:
            problems[name] = problem
    if problems:
        raise ConfigError(
            message=f"invalid config values from {source}",
            details={"fields": problems},
        )
    if "shutdown_timeout" in values:
        values = {**values, "shutdown_timeout": float(values["shutdown_timeout"])}
    if "headers" in values:
        values = {**values, "headers": {str(k): str(v) for k, v in values["headers"].items()}}
    return config.replace(**values)


def load_config(
    config_path: Optional[Path] = None,
    env: Optional[Mapping[str, str]] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> TelemetryConfig:
    """
    Build the effective configuration.

    Args:
        config_path: YAML file, optional
        env: environment mapping, defaults to os.environ
        overrides: values that win over everything else; None values are ignored

    Raises:
        ConfigError: unreadable file, unknown keys, or values failing validation
    """
    config = TelemetryConfig.default()

    if config_path is not None:
        config = _coerce(config, _load_yaml(Path(config_path)), str(config_path))

    config = _coerce(config, _env_values(os.environ if env is None else env), "environment")

    if overrides:
        explicit = {k: v for k, v in overrides.items() if v is not None}
        unknown = sorted(set(explicit) - _FIELD_NAMES)
        if unknown:
            raise ConfigError(message="unknown config overrides", details={"keys": unknown})
        config = _coerce(config, explicit, "overrides")

    issues = validate_config(config)
    if issues:
        raise ConfigError(
            message="invalid configuration",
            details={"issues": [str(i) for i in issues]},
        )
    return config
