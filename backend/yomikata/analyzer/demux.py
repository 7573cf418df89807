from __future__ import annotations

from dataclasses import dataclass
import struct
import time
from typing import Iterable, Iterator, Protocol

from yomikata.analyzer.errors import AnalyzerTimeoutError, ProtocolError

STDIN = 0
STDOUT = 1
STDERR = 2
HEADER_SIZE = 8

_HEADER = struct.Struct(">BxxxI")


class Reader(Protocol):
    def read(self, size: int) -> bytes:
        ...


class ChunkReader:
    """File-like `read(n)` over an iterator of byte chunks, such as a streamed HTTP body.

    When `deadline` (a `time.monotonic()` value) is set, every read checks it
    and raises `AnalyzerTimeoutError` once it has passed.
    """

    def __init__(self, chunks: Iterable[bytes], deadline: float | None = None):
        self._chunks = iter(chunks)
        self._buffer = bytearray()
        self._deadline = deadline
        self._exhausted = False

    def _check_deadline(self) -> None:
        if self._deadline is not None and time.monotonic() > self._deadline:
            raise AnalyzerTimeoutError("deadline exceeded while reading command output", stage="demux")

    def read(self, size: int) -> bytes:
        self._check_deadline()
        while len(self._buffer) < size and not self._exhausted:
            try:
                chunk = next(self._chunks)
            except StopIteration:
                self._exhausted = True
                break
            self._buffer.extend(chunk)
            self._check_deadline()

        data = bytes(self._buffer[:size])
        del self._buffer[:size]
        return data


def _read_exact(reader: Reader, size: int, *, what: str) -> bytes | None:
    """Read exactly `size` bytes; None on clean EOF before the first byte."""
    collected = bytearray()
    while len(collected) < size:
        chunk = reader.read(size - len(collected))
        if not chunk:
            break
        collected.extend(chunk)

    if not collected:
        return None
    if len(collected) < size:
        raise ProtocolError(
            f"truncated frame {what}: expected {size} bytes, got {len(collected)}",
            stage="demux",
        )
    return bytes(collected)


def iter_frames(reader: Reader) -> Iterator[tuple[int, bytes]]:
    """Yield `(stream, payload)` for every non-empty frame of a multiplexed stream."""
    while True:
        header = _read_exact(reader, HEADER_SIZE, what="header")
        if header is None:
            return
        stream, length = _HEADER.unpack(header)
        if length == 0:
            continue

        payload = _read_exact(reader, length, what="payload")
        if payload is None:
            raise ProtocolError(
                f"stream ended after a header announcing {length} bytes",
                stage="demux",
            )
        yield stream, payload


def demux(reader: Reader) -> bytes:
    """Concatenate every frame payload in arrival order, stdout and stderr alike."""
    output = bytearray()
    for _stream, payload in iter_frames(reader):
        output.extend(payload)
    return bytes(output).strip()


@dataclass(frozen=True)
class LogLine:
    stream: int
    text: str


def iter_lines(frames: Iterable[tuple[int, bytes]]) -> Iterator[LogLine]:
    """Reassemble text lines per stream; frames may split or join lines arbitrarily."""
    pending: dict[int, bytearray] = {}
    for stream, payload in frames:
        buffer = pending.setdefault(stream, bytearray())
        buffer.extend(payload)
        while True:
            newline = buffer.find(b"\n")
            if newline < 0:
                break
            line = bytes(buffer[:newline])
            del buffer[: newline + 1]
            yield LogLine(stream, line.decode("utf-8", errors="replace").rstrip("\r"))

    for stream, buffer in pending.items():
        if buffer:
            yield LogLine(stream, bytes(buffer).decode("utf-8", errors="replace").rstrip("\r"))
