from __future__ import annotations

import io
import time

import pytest

from yomikata.analyzer.demux import (
    STDERR,
    STDOUT,
    ChunkReader,
    LogLine,
    demux,
    iter_frames,
    iter_lines,
)
from yomikata.analyzer.errors import AnalyzerTimeoutError, ProtocolError


def test_demux_concatenates_stdout_and_stderr_in_arrival_order(docker_frame) -> None:
    stream = io.BytesIO(
        docker_frame("  ; warning\n", stream=STDERR)
        + docker_frame('[["nihongo"')
        + docker_frame(']]\n')
    )

    assert demux(stream) == b'; warning\n[["nihongo"]]'


def test_demux_skips_zero_length_frames(docker_frame) -> None:
    stream = io.BytesIO(docker_frame(b"") + docker_frame("ok") + docker_frame(b"", stream=STDERR))

    assert list(iter_frames(stream)) == [(STDOUT, b"ok")]


def test_demux_of_empty_stream_is_empty() -> None:
    assert demux(io.BytesIO(b"")) == b""


def test_truncated_header_is_a_protocol_error(docker_frame) -> None:
    stream = io.BytesIO(docker_frame("ok") + b"\x01\x00\x00")

    with pytest.raises(ProtocolError) as exc_info:
        demux(stream)

    assert exc_info.value.stage == "demux"
    assert "header" in str(exc_info.value)


def test_truncated_payload_is_a_protocol_error(docker_frame) -> None:
    frame = docker_frame("complete payload")

    with pytest.raises(ProtocolError):
        demux(io.BytesIO(frame[:-3]))

    with pytest.raises(ProtocolError):
        demux(io.BytesIO(frame[:8]))


def test_chunk_reader_reassembles_frames_split_across_chunks(docker_frame) -> None:
    raw = docker_frame("日本語") + docker_frame("。", stream=STDERR)
    chunks = [raw[index : index + 3] for index in range(0, len(raw), 3)]

    assert list(iter_frames(ChunkReader(chunks))) == [
        (STDOUT, "日本語".encode("utf-8")),
        (STDERR, "。".encode("utf-8")),
    ]


def test_chunk_reader_enforces_deadline(docker_frame) -> None:
    reader = ChunkReader([docker_frame("late")], deadline=time.monotonic() - 1)

    with pytest.raises(AnalyzerTimeoutError) as exc_info:
        demux(reader)

    assert exc_info.value.stage == "demux"
    assert isinstance(exc_info.value, TimeoutError)


def test_iter_lines_reassembles_lines_per_stream() -> None:
    frames = [
        (STDOUT, b"Starting ichi"),
        (STDERR, b"warn: slow\n"),
        (STDOUT, b"ran\r\nAll set, awaiting"),
        (STDOUT, b" commands\ntrailing"),
    ]

    assert list(iter_lines(frames)) == [
        LogLine(STDERR, "warn: slow"),
        LogLine(STDOUT, "Starting ichiran"),
        LogLine(STDOUT, "All set, awaiting commands"),
        LogLine(STDOUT, "trailing"),
    ]
