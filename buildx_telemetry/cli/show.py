# buildx_telemetry/cli/show.py
import sys
from typing import IO, Optional, Sequence

from buildx_telemetry.core.step import BuildStep, format_rfc3339_nano


def show_steps(steps: Sequence[BuildStep], out: Optional[IO[str]] = None) -> None:
    """Plain listing of each step: name, start, completion, cache flag."""
    out = out or sys.stdout

    for step in steps:
        out.write(f"{step.name}\n")
        out.write(f"Started: {format_rfc3339_nano(step.started)}\n")
        out.write(f"Completed: {format_rfc3339_nano(step.completed)}\n")
        out.write(f"Cached: {'true' if step.cached else 'false'}\n")
        out.write("\n")
