"""Log stream framing.

Docker serves container logs either as plain newline-delimited text (TTY
containers, or streams already demultiplexed by docker-py) or multiplexed
into frames: an 8-byte header (stream type, three padding bytes, 4-byte
big-endian payload length) followed by the payload.
"""

import struct
from collections.abc import Iterable, Iterator
from enum import Enum

HEADER = struct.Struct(">BxxxL")

STREAM_STDIN = 0
STREAM_STDOUT = 1
STREAM_STDERR = 2


class Framing(Enum):
    """How a log stream is framed on the wire."""

    LINES = "lines"
    MULTIPLEXED = "multiplexed"


class FramingError(ValueError):
    """Raised for a frame header that cannot be a Docker log frame."""


def iter_lines(chunks: Iterable[bytes]) -> Iterator[str]:
    """Split a newline-delimited byte stream into decoded lines.

    Chunk boundaries may fall anywhere. A trailing partial line at the end
    of the stream is dropped.
    """
    buffer = b""
    for chunk in chunks:
        buffer += chunk
        while b"\n" in buffer:
            line, buffer = buffer.split(b"\n", 1)
            yield line.decode("utf-8", errors="replace")


def iter_frames(chunks: Iterable[bytes]) -> Iterator[tuple[int, bytes]]:
    """Parse a multiplexed byte stream into (stream_type, payload) frames.

    A truncated frame at the end of the stream is dropped.

    Raises:
        FramingError: if a header carries an unknown stream type
    """
    buffer = b""
    for chunk in chunks:
        buffer += chunk
        while len(buffer) >= HEADER.size:
            stream_type, length = HEADER.unpack_from(buffer)
            if stream_type not in (STREAM_STDIN, STREAM_STDOUT, STREAM_STDERR):
                raise FramingError(f"unknown stream type {stream_type}")
            end = HEADER.size + length
            if len(buffer) < end:
                break
            yield stream_type, buffer[HEADER.size : end]
            buffer = buffer[end:]


def iter_messages(chunks: Iterable[bytes], framing: Framing) -> Iterator[str]:
    """Yield trimmed, non-empty log messages from a raw stream."""
    if framing is Framing.MULTIPLEXED:
        for _, payload in iter_frames(chunks):
            for line in payload.decode("utf-8", errors="replace").splitlines():
                message = line.strip()
                if message:
                    yield message
    else:
        for line in iter_lines(chunks):
            message = line.strip()
            if message:
                yield message
