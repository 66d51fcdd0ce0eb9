# buildx_telemetry/core/step/step.py
"""
BuildStep - one completed build vertex, with nanosecond timestamps
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional


CACHED_SUFFIX = " (cached)"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_NS_PER_SECOND = 1_000_000_000

_RFC3339_RE = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})"
    r"(?:\.(\d+))?"
    r"(?:([Zz])|([+-])(\d{2}):(\d{2}))",
    re.ASCII,
)


def parse_rfc3339_nano(text: str) -> int:
    """
    Parse an RFC3339 timestamp into nanoseconds since the Unix epoch.

    Accepts any number of fractional digits, truncated to nanoseconds,
    and either 'Z' or a +hh:mm offset.
    Raises ValueError for anything else.
    """
    m = _RFC3339_RE.fullmatch(text)
    if not m:
        raise ValueError(f"invalid RFC3339 timestamp: {text!r}")

    year, month, day, hour, minute, second = (int(g) for g in m.group(1, 2, 3, 4, 5, 6))
    fraction, zulu, sign, off_h, off_m = m.group(7, 8, 9, 10, 11)

    if zulu:
        tz = timezone.utc
    else:
        if int(off_h) > 23 or int(off_m) > 59:
            raise ValueError(f"invalid UTC offset in timestamp: {text!r}")
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)

    # datetime() validates field ranges
    dt = datetime(year, month, day, hour, minute, second, tzinfo=tz)
    seconds = (dt - _EPOCH) // timedelta(seconds=1)
    # digits past nanoseconds are truncated
    nanos = int(fraction[:9].ljust(9, "0")) if fraction else 0
    return seconds * _NS_PER_SECOND + nanos


def format_rfc3339_nano(ns: int) -> str:
    """Render epoch nanoseconds as UTC RFC3339, trimming trailing fractional zeros."""
    seconds, nanos = divmod(ns, _NS_PER_SECOND)
    dt = _EPOCH + timedelta(seconds=seconds)
    text = dt.strftime("%Y-%m-%dT%H:%M:%S")
    if nanos:
        text += "." + f"{nanos:09d}".rstrip("0")
    return text + "Z"


@dataclass(frozen=True)
class BuildStep:
    """
    A build step that has both a start and a completion time.

    started/completed are epoch nanoseconds. completed >= started is
    the build tool's contract and is not checked here.
    """
    name: str
    started: int
    completed: int
    cached: bool = False
    digest: Optional[str] = None

    @property
    def duration_ns(self) -> int:
        return self.completed - self.started

    @property
    def duration_seconds(self) -> float:
        return self.duration_ns / _NS_PER_SECOND

    @property
    def span_name(self) -> str:
        if self.cached:
            return self.name + CACHED_SUFFIX
        return self.name
