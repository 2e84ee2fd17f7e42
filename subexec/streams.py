from __future__ import annotations

import threading
from typing import IO, Protocol

CHUNK_SIZE = 1024


class Sink(Protocol):
    def write(self, data: bytes, /) -> object: ...


class Discard:
    """Sink that drops everything written to it."""

    def write(self, data: bytes) -> int:
        return len(data)


def _write_chunk(sink: Sink, chunk: bytes) -> None:
    sink.write(chunk)
    flush = getattr(sink, "flush", None)
    if callable(flush):
        flush()


def copy_and_capture(
    sink: Sink, source: IO[bytes], captured: bytearray | None = None
) -> tuple[bytes, Exception | None]:
    """Copy *source* into *sink* chunk by chunk while keeping a copy.

    Chunks are appended to *captured* as they arrive, so a caller that passes
    its own buffer still holds the partial output if reading raises.
    Returns the captured bytes and the sink error that stopped the copy, if
    any. Reaching end of stream is the normal way out.
    """
    if captured is None:
        captured = bytearray()
    while True:
        chunk = source.read(CHUNK_SIZE)
        if not chunk:
            return bytes(captured), None
        captured.extend(chunk)
        try:
            _write_chunk(sink, chunk)
        except Exception as exc:  # noqa: BLE001
            return bytes(captured), exc


class DrainThread(threading.Thread):
    """Drains one pipe into a sink on a background thread.

    The pipe is closed once draining stops, so a child still writing to it
    gets EPIPE instead of blocking when the sink has failed.
    """

    def __init__(self, sink: Sink, source: IO[bytes], *, name: str = "subexec-drain") -> None:
        super().__init__(name=name, daemon=True)
        self._sink = sink
        self._source = source
        self.captured = b""
        self.sink_error: Exception | None = None
        self.read_error: Exception | None = None

    def run(self) -> None:
        self.captured, self.sink_error, self.read_error = drain(self._sink, self._source)


def drain(sink: Sink, source: IO[bytes]) -> tuple[bytes, Exception | None, Exception | None]:
    """Run :func:`copy_and_capture` to completion and close *source*.

    Returns ``(captured, sink_error, read_error)``; on a read error the bytes
    read before it are still returned.
    """
    captured = bytearray()
    try:
        _, sink_error = copy_and_capture(sink, source, captured)
    except OSError as exc:
        return bytes(captured), None, exc
    finally:
        source.close()
    return bytes(captured), sink_error, None
