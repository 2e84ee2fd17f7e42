from __future__ import annotations

import io

from subexec.streams import CHUNK_SIZE, Discard, DrainThread, copy_and_capture, drain


class _RecordingSink:
    def __init__(self) -> None:
        self.chunks: list[bytes] = []
        self.flushes = 0

    def write(self, data: bytes) -> int:
        self.chunks.append(data)
        return len(data)

    def flush(self) -> None:
        self.flushes += 1


class _BrokenSink:
    def write(self, data: bytes) -> int:
        raise BrokenPipeError("gone")


def test_copy_and_capture_reads_in_bounded_chunks() -> None:
    payload = b"x" * (CHUNK_SIZE * 2 + 452)
    sink = _RecordingSink()

    captured, error = copy_and_capture(sink, io.BytesIO(payload))

    assert error is None
    assert captured == payload
    assert [len(chunk) for chunk in sink.chunks] == [CHUNK_SIZE, CHUNK_SIZE, 452]
    assert sink.flushes == 3


def test_copy_and_capture_empty_stream_is_not_an_error() -> None:
    captured, error = copy_and_capture(_RecordingSink(), io.BytesIO(b""))

    assert captured == b""
    assert error is None


def test_copy_and_capture_stops_on_sink_error() -> None:
    payload = b"y" * (CHUNK_SIZE * 3)

    captured, error = copy_and_capture(_BrokenSink(), io.BytesIO(payload))

    assert isinstance(error, BrokenPipeError)
    assert captured == payload[:CHUNK_SIZE]


def test_drain_closes_source() -> None:
    source = io.BytesIO(b"data")

    captured, sink_error, read_error = drain(io.BytesIO(), source)

    assert captured == b"data"
    assert sink_error is None
    assert read_error is None
    assert source.closed


def test_drain_thread_keeps_result_for_joiner() -> None:
    sink = io.BytesIO()
    thread = DrainThread(sink, io.BytesIO(b"background"))

    thread.start()
    thread.join()

    assert thread.captured == b"background"
    assert thread.sink_error is None
    assert sink.getvalue() == b"background"


class _FlakySource(io.RawIOBase):
    def __init__(self, first: bytes) -> None:
        self._first = first
        self._reads = 0

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        self._reads += 1
        if self._reads == 1:
            return self._first
        raise OSError("pipe went away")


def test_drain_keeps_partial_output_on_read_error() -> None:
    sink = io.BytesIO()
    source = _FlakySource(b"partial")

    captured, sink_error, read_error = drain(sink, source)

    assert captured == b"partial"
    assert sink.getvalue() == b"partial"
    assert sink_error is None
    assert isinstance(read_error, OSError)
    assert source.closed


def test_discard_accepts_everything() -> None:
    assert Discard().write(b"abc") == 3
