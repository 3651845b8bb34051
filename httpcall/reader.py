"""
Response body reading with an optional byte cap.

The same copy loop serves buffered reads and streaming into a caller's sink;
only the destination differs.
"""
from dataclasses import dataclass
from typing import AsyncIterator, BinaryIO, Optional, Protocol


class Sink(Protocol):
    def write(self, data: bytes) -> Optional[int]:
        ...


class BufferSink:
    """In-memory destination for buffered reads."""

    def __init__(self):
        self._buf = bytearray()

    def write(self, data: bytes) -> int:
        self._buf.extend(data)
        return len(data)

    def getvalue(self) -> bytes:
        return bytes(self._buf)


def _write(sink: Sink, data: bytes) -> None:
    try:
        n = sink.write(data)
    except OSError:
        raise
    except Exception as e:
        raise OSError(f"write body: {e}") from e
    if n is not None and n < len(data):
        raise OSError(f"short write: {n} of {len(data)} bytes")


@dataclass
class ReadResult:
    body: bytes
    body_bytes: int
    truncated: bool


async def copy_limited(chunks: AsyncIterator[bytes], sink: Sink, max_bytes: int = 0):
    """Copy chunks into ``sink``, stopping at ``max_bytes`` when it is positive.

    Returns ``(written, truncated)``. Once the cap is reached the source is
    checked for one more non-empty chunk, which is never written; finding one
    marks the body as truncated. Read errors propagate unchanged; sink failures
    and short writes surface as OSError.
    """
    written = 0
    truncated = False
    limited = max_bytes > 0

    async for chunk in chunks:
        if not chunk:
            continue
        if limited:
            room = max_bytes - written
            if room <= 0:
                truncated = True
                break
            if len(chunk) > room:
                _write(sink, chunk[:room])
                written += room
                truncated = True
                break
        _write(sink, chunk)
        written += len(chunk)

    return written, truncated


async def read_body(
    chunks: AsyncIterator[bytes],
    max_bytes: int = 0,
    stream: Optional[BinaryIO] = None,
) -> ReadResult:
    """Read a response body into memory or into ``stream``.

    With a stream the returned body is empty and ``body_bytes`` counts what was
    written to the stream, not the size of the source.
    """
    sink = stream if stream is not None else BufferSink()
    written, truncated = await copy_limited(chunks, sink, max_bytes or 0)
    body = sink.getvalue() if isinstance(sink, BufferSink) else b""
    return ReadResult(body=body, body_bytes=written, truncated=truncated)
