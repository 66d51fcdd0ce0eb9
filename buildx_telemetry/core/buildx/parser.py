# buildx_telemetry/core/buildx/parser.py
"""
Streaming parser: buildx rawjson progress log -> BuildStep list

Lines are decoded one at a time. A line that cannot be decoded, or a
vertex whose timestamps cannot be parsed, is skipped with a debug note.
Only an IO failure on the stream itself is raised.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from enum import Enum
from typing import IO, Any, Dict, Iterator, List, Optional, Set, Union

from pydantic import ValidationError

from buildx_telemetry.core.errors import LogReadError
from buildx_telemetry.core.step import BuildStep, parse_rfc3339_nano
from buildx_telemetry.utils.log import NullLogger, StructuredLogger

from .models import LogEntry, Vertex


class DedupePolicy(str, Enum):
    """How repeated completed vertices are handled."""
    NONE = "none"      # every completed vertex line yields a step
    DIGEST = "digest"  # first completion per vertex digest (name if no digest); unkeyed vertices are kept


@dataclass
class ParseStats:
    lines: int = 0
    vertexes: int = 0
    steps: int = 0
    skipped_lines: int = 0
    skipped_vertexes: int = 0
    duplicates: int = 0

    def to_dict(self) -> Dict[str, int]:
        return asdict(self)


class BuildxLogParser:
    """
    Parse a buildx rawjson log into completed BuildSteps, in log order.

    Example:
        >>> with open("build.log", "rb") as f:
        ...     steps = BuildxLogParser(f).parse()
    """

    def __init__(
        self,
        stream: IO[Any],
        logger: Optional[StructuredLogger] = None,
        dedupe: Union[DedupePolicy, str] = DedupePolicy.NONE,
        max_line_bytes: Optional[int] = None,
    ):
        self.stream = stream
        self.logger = logger or NullLogger()
        self.dedupe = DedupePolicy(dedupe)
        self.max_line_bytes = max_line_bytes
        self.stats = ParseStats()
        self._seen: Set[str] = set()

    def parse(self) -> List[BuildStep]:
        """
        Read the whole stream and return the completed steps.

        Raises:
            LogReadError: reading the stream failed. partial_steps holds
                what was parsed before the failure.
        """
        steps: List[BuildStep] = []
        try:
            for step in self.iter_steps():
                steps.append(step)
        except LogReadError as e:
            e.partial_steps = steps
            raise
        return steps

    def iter_steps(self) -> Iterator[BuildStep]:
        """Yield steps as their lines are read. Single pass, nothing buffered."""
        self.logger.debug("Starting to parse buildx log")

        # decode per line so one bad line cannot poison a text decoder
        source = getattr(self.stream, "buffer", None) or self.stream
        lines = iter(source)
        while True:
            try:
                raw = next(lines)
            except StopIteration:
                break
            except UnicodeDecodeError as e:
                self.stats.lines += 1
                self.stats.skipped_lines += 1
                self.logger.debug("Failed to parse log line", line=self.stats.lines, error=str(e))
                continue
            except OSError as e:
                self.logger.error("Failed to read build log", line=self.stats.lines + 1, error=str(e))
                raise LogReadError(
                    message="failed to read build log",
                    details={"line": self.stats.lines + 1},
                    cause=e,
                ) from e

            self.stats.lines += 1
            entry = self._decode_line(raw)
            if entry is None:
                continue

            for vertex in entry.vertexes:
                self.stats.vertexes += 1
                step = self._to_step(vertex)
                if step is None:
                    continue
                if self._is_duplicate(step):
                    continue

                self.stats.steps += 1
                self.logger.debug(
                    "Parsed build step",
                    step=step.name,
                    duration=f"{step.duration_seconds:.3f}s",
                    cached=step.cached,
                )
                yield step

        self.logger.info(
            "Completed parsing build log",
            lines=self.stats.lines,
            vertexes=self.stats.vertexes,
            steps=self.stats.steps,
        )

    def _decode_line(self, raw: Union[bytes, str]) -> Optional[LogEntry]:
        line_no = self.stats.lines

        if self.max_line_bytes is not None:
            size = len(raw) if isinstance(raw, bytes) else len(raw.encode("utf-8", "surrogatepass"))
            if size > self.max_line_bytes:
                self.stats.skipped_lines += 1
                self.logger.debug("Log line too long", line=line_no, size=size, limit=self.max_line_bytes)
                return None

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                self.stats.skipped_lines += 1
                self.logger.debug("Failed to parse log line", line=line_no, error=str(e))
                return None

        text = raw.strip()
        if not text:
            return None

        try:
            return LogEntry.model_validate_json(text)
        except ValidationError as e:
            self.stats.skipped_lines += 1
            self.logger.debug(
                "Failed to parse log line",
                line=line_no,
                error=e.errors(include_url=False)[0]["msg"],
            )
            return None

    def _to_step(self, vertex: Vertex) -> Optional[BuildStep]:
        # still running: not reportable yet
        if not vertex.is_complete:
            return None

        try:
            started = parse_rfc3339_nano(vertex.started)
        except ValueError as e:
            self.stats.skipped_vertexes += 1
            self.logger.debug("Failed to parse start time", vertex=vertex.name, error=str(e))
            return None
        try:
            completed = parse_rfc3339_nano(vertex.completed)
        except ValueError as e:
            self.stats.skipped_vertexes += 1
            self.logger.debug("Failed to parse completion time", vertex=vertex.name, error=str(e))
            return None

        return BuildStep(
            name=vertex.name,
            started=started,
            completed=completed,
            cached=vertex.cached,
            digest=vertex.digest or None,
        )

    def _is_duplicate(self, step: BuildStep) -> bool:
        if self.dedupe is DedupePolicy.NONE:
            return False
        key = step.digest or step.name
        if not key:
            return False
        if key in self._seen:
            self.stats.duplicates += 1
            self.logger.debug("Dropped duplicate build step", step=step.name, digest=step.digest)
            return True
        self._seen.add(key)
        return False


def parse_build_log(
    stream: IO[Any],
    logger: Optional[StructuredLogger] = None,
    dedupe: Union[DedupePolicy, str] = DedupePolicy.NONE,
) -> List[BuildStep]:
    """Shortcut for BuildxLogParser(stream, ...).parse()."""
    return BuildxLogParser(stream, logger=logger, dedupe=dedupe).parse()

