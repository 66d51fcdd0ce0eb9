# tests/parser/test_buildx_parser.py
"""
Buildx log parser tests

Covers the tolerance policy: malformed lines and bad timestamps are
skipped, incomplete vertices are not reported, only stream IO errors raise.
"""

import io
import json
from datetime import datetime, timezone
from pathlib import Path

import pytest

from buildx_telemetry.core.buildx import BuildxLogParser, DedupePolicy, parse_build_log
from buildx_telemetry.core.errors import LogReadError, codes
from buildx_telemetry.core.step import BuildStep


GOLDEN_LOG = Path(__file__).parent / "golden_build.log"


def ns(*args, nanos=0):
    return int(datetime(*args, tzinfo=timezone.utc).timestamp()) * 1_000_000_000 + nanos


def stream_of(*lines):
    return io.BytesIO("\n".join(lines).encode("utf-8"))


def vertex_line(**vertex):
    return json.dumps({"vertexes": [vertex]})


class TestEmptyInput:

    @pytest.mark.parametrize("data", [
        b"",
        b"\n\n\n",
        b"garbage\n{not json\n",
        b'{"vertexes":[{"name":"a","started":"2023-01-01T00:00:00Z"}]}\n',
        b'{"statuses":[{"id":"x","vertex":"v","name":"n","current":1,"timestamp":"2023-01-01T00:00:00Z"}]}\n',
    ])
    def test_no_steps_and_no_error(self, data):
        assert BuildxLogParser(io.BytesIO(data)).parse() == []

    def test_vertices_without_completed_produce_nothing(self):
        data = stream_of(
            vertex_line(name="a", started="2023-01-01T00:00:00Z"),
            vertex_line(name="b", started="2023-01-01T00:00:01Z", completed=""),
        )
        parser = BuildxLogParser(data)
        assert parser.parse() == []
        assert parser.stats.vertexes == 2
        assert parser.stats.skipped_vertexes == 0


class TestValidInput:

    def test_two_step_example(self):
        data = stream_of(
            '{"vertexes":[{"name":"step1","started":"2023-01-01T00:00:00Z","completed":"2023-01-01T00:00:10Z","cached":false}]}',
            '{"vertexes":[{"name":"step2","started":"2023-01-01T00:00:10Z","completed":"2023-01-01T00:00:20Z","cached":true}]}',
        )
        steps = BuildxLogParser(data).parse()

        assert steps == [
            BuildStep(name="step1", started=ns(2023, 1, 1, 0, 0, 0), completed=ns(2023, 1, 1, 0, 0, 10), cached=False),
            BuildStep(name="step2", started=ns(2023, 1, 1, 0, 0, 10), completed=ns(2023, 1, 1, 0, 0, 20), cached=True),
        ]

    def test_single_vertex_maps_fields(self):
        data = stream_of(vertex_line(
            digest="sha256:abc", name="V",
            started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01.5Z",
        ))
        (step,) = BuildxLogParser(data).parse()

        assert step.name == "V"
        assert step.started == ns(2023, 1, 1, 0, 0, 0)
        assert step.completed == ns(2023, 1, 1, 0, 0, 1, nanos=500_000_000)
        assert step.cached is False
        assert step.digest == "sha256:abc"

    def test_multiple_vertices_on_one_line_keep_order(self):
        line = json.dumps({"vertexes": [
            {"name": "b", "started": "2023-01-01T00:00:05Z", "completed": "2023-01-01T00:00:06Z"},
            {"name": "a", "started": "2023-01-01T00:00:00Z", "completed": "2023-01-01T00:00:01Z"},
        ]})
        steps = BuildxLogParser(stream_of(line)).parse()
        assert [s.name for s in steps] == ["b", "a"]

    def test_unknown_fields_and_nulls_are_accepted(self):
        line = json.dumps({
            "vertexes": [{
                "digest": None, "name": "x", "inputs": None, "cached": None,
                "started": "2023-01-01T00:00:00Z", "completed": "2023-01-01T00:00:01Z",
                "progressGroup": {"id": "1"},
            }],
            "statuses": None,
            "logs": [{"vertex": "x", "data": "aGk="}],
        })
        (step,) = BuildxLogParser(stream_of(line)).parse()
        assert step.name == "x"
        assert step.cached is False
        assert step.digest is None

    def test_inverted_timestamps_are_not_rejected(self):
        data = stream_of(vertex_line(name="odd", started="2023-01-01T00:00:10Z", completed="2023-01-01T00:00:00Z"))
        (step,) = BuildxLogParser(data).parse()
        assert step.duration_ns < 0

    def test_accepts_text_streams(self):
        data = io.StringIO(vertex_line(name="t", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"))
        assert [s.name for s in BuildxLogParser(data).parse()] == ["t"]

    def test_iter_steps_is_lazy(self):
        class CountingStream:
            def __init__(self, lines):
                self.lines = lines
                self.read = 0

            def __iter__(self):
                for line in self.lines:
                    self.read += 1
                    yield line

        lines = [
            (vertex_line(name=f"s{i}", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z") + "\n").encode()
            for i in range(5)
        ]
        source = CountingStream(lines)
        it = BuildxLogParser(source).iter_steps()

        assert next(it).name == "s0"
        assert source.read == 1


class TestMalformedInput:

    def test_truncated_line_does_not_stop_parsing(self, recording_logger):
        data = stream_of(
            '{"vertexes":[{"name":"step1","started":"2023-01-01T00:00:00Z"',
            vertex_line(name="step2", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
        )
        parser = BuildxLogParser(data, logger=recording_logger)
        steps = parser.parse()

        assert [s.name for s in steps] == ["step2"]
        assert parser.stats.skipped_lines == 1
        failures = recording_logger.find("Failed to parse log line")
        assert len(failures) == 1
        assert failures[0]["line"] == 1

    def test_non_object_json_is_skipped(self):
        data = stream_of(
            "[1, 2, 3]",
            '"just a string"',
            '{"vertexes": "nope"}',
            vertex_line(name="ok", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
        )
        parser = BuildxLogParser(data)
        assert [s.name for s in parser.parse()] == ["ok"]
        assert parser.stats.skipped_lines == 3

    def test_invalid_utf8_line_is_skipped(self):
        good = vertex_line(name="ok", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z").encode()
        data = io.BytesIO(b'{"vertexes":[{"name":"\xff\xfe"}]}\n' + good + b"\n")
        parser = BuildxLogParser(data)
        assert [s.name for s in parser.parse()] == ["ok"]
        assert parser.stats.skipped_lines == 1

    def test_invalid_utf8_in_text_stream_is_skipped(self, recording_logger):
        good = vertex_line(name="ok", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z").encode()
        data = io.TextIOWrapper(io.BytesIO(b"\xff\xfe garbage\n" + good + b"\n"), encoding="utf-8")
        parser = BuildxLogParser(data, logger=recording_logger)

        assert [s.name for s in parser.parse()] == ["ok"]
        assert parser.stats.lines == 2
        assert parser.stats.skipped_lines == 1
        assert recording_logger.find("Failed to parse log line")[0]["line"] == 1

    def test_decode_error_from_text_iterator_is_skipped(self):
        good = vertex_line(name="ok", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z")

        class TextLines:
            def __init__(self):
                self.items = [UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte"), good]

            def __iter__(self):
                return self

            def __next__(self):
                if not self.items:
                    raise StopIteration
                item = self.items.pop(0)
                if isinstance(item, Exception):
                    raise item
                return item

        parser = BuildxLogParser(TextLines())
        assert [s.name for s in parser.parse()] == ["ok"]
        assert parser.stats.skipped_lines == 1

    def test_long_fraction_timestamps_are_kept(self):
        data = stream_of(vertex_line(
            name="precise", started="2023-01-01T00:00:00.1234567891Z", completed="2023-01-01T00:00:01Z",
        ))
        (step,) = BuildxLogParser(data).parse()
        assert step.started == ns(2023, 1, 1, 0, 0, 0, nanos=123456789)

    def test_bad_timestamp_skips_only_that_vertex(self, recording_logger):
        line = json.dumps({"vertexes": [
            {"name": "bad-start", "started": "yesterday", "completed": "2023-01-01T00:00:01Z"},
            {"name": "bad-end", "started": "2023-01-01T00:00:00Z", "completed": "2023-01-01 00:00:01"},
            {"name": "good", "started": "2023-01-01T00:00:00Z", "completed": "2023-01-01T00:00:01Z"},
        ]})
        parser = BuildxLogParser(stream_of(line), logger=recording_logger)

        assert [s.name for s in parser.parse()] == ["good"]
        assert parser.stats.skipped_vertexes == 2
        assert recording_logger.find("Failed to parse start time")[0]["vertex"] == "bad-start"
        assert recording_logger.find("Failed to parse completion time")[0]["vertex"] == "bad-end"

    def test_overlong_line_is_skipped_when_capped(self):
        long_name = "x" * 200
        data = stream_of(
            vertex_line(name=long_name, started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
            vertex_line(name="short", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
        )
        parser = BuildxLogParser(data, max_line_bytes=150)
        assert [s.name for s in parser.parse()] == ["short"]
        assert parser.stats.skipped_lines == 1


class TestReadFailure:

    class FailingStream:
        def __init__(self, good_lines):
            self.good_lines = good_lines

        def __iter__(self):
            yield from self.good_lines
            raise OSError(5, "Input/output error")

    def test_io_error_is_raised_with_partial_steps(self):
        good = (vertex_line(name="before", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z") + "\n").encode()
        parser = BuildxLogParser(self.FailingStream([good]))

        with pytest.raises(LogReadError) as exc_info:
            parser.parse()

        err = exc_info.value
        assert err.error_code == codes.LOG_READ_FAILED
        assert err.phase == "parse"
        assert isinstance(err.cause, OSError)
        assert [s.name for s in err.partial_steps] == ["before"]
        assert err.details["line"] == 2


class TestDeduplication:

    LINES = (
        vertex_line(digest="sha256:a", name="step", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
        vertex_line(digest="sha256:a", name="step", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
        vertex_line(digest="sha256:b", name="step", started="2023-01-01T00:00:02Z", completed="2023-01-01T00:00:03Z"),
    )

    def test_default_keeps_duplicates(self):
        parser = BuildxLogParser(stream_of(*self.LINES))
        assert len(parser.parse()) == 3
        assert parser.stats.duplicates == 0

    def test_digest_policy_keeps_first_completion(self):
        parser = BuildxLogParser(stream_of(*self.LINES), dedupe=DedupePolicy.DIGEST)
        steps = parser.parse()

        assert [s.digest for s in steps] == ["sha256:a", "sha256:b"]
        assert parser.stats.duplicates == 1

    def test_digest_policy_falls_back_to_name(self):
        lines = (
            vertex_line(name="same", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
            vertex_line(name="same", started="2023-01-01T00:00:05Z", completed="2023-01-01T00:00:06Z"),
        )
        steps = parse_build_log(stream_of(*lines), dedupe="digest")
        assert len(steps) == 1
        assert steps[0].started == ns(2023, 1, 1, 0, 0, 0)

    def test_digest_policy_keeps_unkeyed_vertices(self):
        lines = (
            vertex_line(name="", started="2023-01-01T00:00:00Z", completed="2023-01-01T00:00:01Z"),
            vertex_line(name="", started="2023-01-01T00:00:02Z", completed="2023-01-01T00:00:03Z"),
            vertex_line(digest="", name="", started="2023-01-01T00:00:04Z", completed="2023-01-01T00:00:05Z"),
        )
        parser = BuildxLogParser(stream_of(*lines), dedupe=DedupePolicy.DIGEST)

        assert len(parser.parse()) == 3
        assert parser.stats.duplicates == 0

    def test_unknown_policy_is_rejected(self):
        with pytest.raises(ValueError):
            BuildxLogParser(io.BytesIO(b""), dedupe="sometimes")


class TestGoldenLog:

    def test_golden_build_log(self, recording_logger):
        with open(GOLDEN_LOG, "rb") as f:
            parser = BuildxLogParser(f, logger=recording_logger)
            steps = parser.parse()

        assert [s.digest for s in steps] == ["sha256:aaa", "sha256:bbb", "sha256:ccc", "sha256:eee"]
        assert steps[0].completed == ns(2024, 3, 1, 10, 0, 0, nanos=350123456)
        assert steps[1].cached is True
        assert steps[1].duration_ns == 0
        assert steps[2].duration_ns == 30_500_000_000
        assert steps[3].started == ns(2024, 3, 1, 10, 0, 32)
        assert steps[3].duration_ns == 1_250_000_000

        assert parser.stats.to_dict() == {
            "lines": 10,
            "vertexes": 6,
            "steps": 4,
            "skipped_lines": 2,
            "skipped_vertexes": 1,
            "duplicates": 0,
        }

        (summary,) = recording_logger.find("Completed parsing build log")
        assert summary == {"lines": 10, "vertexes": 6, "steps": 4}
        assert len(recording_logger.find("Parsed build step")) == 4


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
