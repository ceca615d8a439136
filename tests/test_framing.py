"""Tests for log stream framing."""

import struct

import pytest

from healthcheck_watcher.watcher import Framing, FramingError, iter_frames, iter_lines, iter_messages


def frame(payload: bytes, stream_type: int = 2) -> bytes:
    return struct.pack(">BxxxL", stream_type, len(payload)) + payload


class TestLines:
    """Tests for newline-delimited streams."""

    def test_lines_across_chunks(self):
        chunks = [b"first li", b"ne\nsecond", b" line\nthird"]
        assert list(iter_lines(chunks)) == ["first line", "second line"]

    def test_multiple_lines_in_chunk(self):
        assert list(iter_lines([b"a\nb\nc\n"])) == ["a", "b", "c"]

    def test_invalid_utf8_replaced(self):
        assert list(iter_lines([b"bad \xff byte\n"])) == ["bad \ufffd byte"]

    def test_messages_trimmed_and_blank_skipped(self):
        chunks = [b"  padded  \r\n", b"\n", b"   \n", b"ok\n"]
        assert list(iter_messages(chunks, Framing.LINES)) == ["padded", "ok"]


class TestFrames:
    """Tests for multiplexed streams."""

    def test_single_frame(self):
        assert list(iter_frames([frame(b"hello\n")])) == [(2, b"hello\n")]

    def test_header_split_across_chunks(self):
        data = frame(b"one\n") + frame(b"two\n", stream_type=1)
        chunks = [data[:3], data[3:10], data[10:]]
        assert list(iter_frames(chunks)) == [(2, b"one\n"), (1, b"two\n")]

    def test_truncated_frame_dropped(self):
        data = frame(b"complete\n") + frame(b"partial payload")[:12]
        assert list(iter_frames([data])) == [(2, b"complete\n")]

    def test_empty_payload(self):
        assert list(iter_frames([frame(b"")])) == [(2, b"")]

    def test_unknown_stream_type(self):
        with pytest.raises(FramingError):
            list(iter_frames([b"plain text, not a frame\n"]))

    def test_messages_strip_header(self):
        chunks = [frame(b"  error: disk full\n"), frame(b"\n"), frame(b"a\nb\n")]
        assert list(iter_messages(chunks, Framing.MULTIPLEXED)) == ["error: disk full", "a", "b"]
