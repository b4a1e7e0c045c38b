"""
Unit Tests - Frame Decoding

Tests for the event-stream frame decoder.
"""

import pytest

from tests.fixtures import aiter_bytes, chat_chunk, sse
from thinkrelay.core.exceptions import UpstreamParseError
from thinkrelay.reasoning.llm.capabilities import parse_chat_chunk
from thinkrelay.reasoning.llm.frames import (
    Frame,
    FrameDecoder,
    decode_chunks,
    decode_frames,
    parse_frame,
)


async def collect(aiter):
    return [item async for item in aiter]


class TestParseFrame:
    """Tests for single-frame parsing."""

    def test_data_and_event(self):
        frame = parse_frame('event: message_start\ndata: {"a": 1}')
        assert frame == Frame(data='{"a": 1}', event="message_start")

    def test_comments_ignored(self):
        assert parse_frame(": keep-alive") is None

    def test_multiple_data_lines_joined(self):
        frame = parse_frame("data: one\ndata: two")
        assert frame.data == "one\ntwo"

    def test_done_sentinel(self):
        assert parse_frame("data: [DONE]").is_done


class TestFrameDecoder:
    """Tests for incremental splitting."""

    def test_carry_over_between_chunks(self):
        decoder = FrameDecoder()

        assert decoder.feed(b"data: hel") == []
        assert decoder.pending == "data: hel"

        frames = decoder.feed(b"lo\n\ndata: wor")
        assert [f.data for f in frames] == ["hello"]
        assert decoder.pending == "data: wor"

    def test_multibyte_character_split(self):
        decoder = FrameDecoder()
        encoded = "data: 思考\n\n".encode()

        frames = decoder.feed(encoded[:8]) + decoder.feed(encoded[8:])

        assert [f.data for f in frames] == ["思考"]

    def test_crlf_normalized(self):
        decoder = FrameDecoder()
        frames = decoder.feed(b"data: a\r\n\r\ndata: b\r\n\r\n")
        assert [f.data for f in frames] == ["a", "b"]

    def test_flush_decodes_trailing_frame(self):
        decoder = FrameDecoder()
        decoder.feed(b"data: tail")
        assert [f.data for f in decoder.flush()] == ["tail"]

    def test_split_points_do_not_change_frames(self):
        """Any split of the byte stream yields the same frames."""
        payload = sse(chat_chunk("Hello"), chat_chunk(" wörld"), done=False)

        whole = FrameDecoder().feed(payload)

        for cut in range(1, len(payload)):
            decoder = FrameDecoder()
            frames = decoder.feed(payload[:cut]) + decoder.feed(payload[cut:])
            assert frames == whole


class TestDecodeFrames:
    """Tests for the async frame sequence."""

    @pytest.mark.asyncio
    async def test_stops_at_done(self):
        stream = aiter_bytes(b"data: 1\n\ndata: [DONE]\n\ndata: 2\n\n")
        frames = await collect(decode_frames(stream))
        assert [f.data for f in frames] == ["1"]

    @pytest.mark.asyncio
    async def test_unterminated_final_frame(self):
        stream = aiter_bytes(b"data: 1\n\n", b"data: 2")
        frames = await collect(decode_frames(stream))
        assert [f.data for f in frames] == ["1", "2"]


class TestDecodeChunks:
    """Tests for frame → chunk decoding."""

    @pytest.mark.asyncio
    async def test_malformed_frame_skipped(self, log_buffer):
        stream = aiter_bytes(sse(chat_chunk("a"), "not json", chat_chunk("b")))

        chunks = await collect(decode_chunks(stream, parse_chat_chunk, provider="test"))

        assert [c.text_delta for c in chunks] == ["a", "b"]
        assert "Dropped unparseable stream frame" in log_buffer.messages()

    @pytest.mark.asyncio
    async def test_bad_frame_budget(self):
        stream = aiter_bytes(sse("x", "y", "z", chat_chunk("never")))

        with pytest.raises(UpstreamParseError):
            await collect(
                decode_chunks(
                    stream,
                    parse_chat_chunk,
                    provider="test",
                    max_consecutive_bad_frames=2,
                )
            )

    @pytest.mark.asyncio
    async def test_empty_choices_skipped(self):
        usage_only = {"id": "c", "choices": [], "usage": {"total_tokens": 3}}
        stream = aiter_bytes(sse(usage_only, chat_chunk("a")))

        chunks = await collect(decode_chunks(stream, parse_chat_chunk, provider="test"))

        assert [c.text_delta for c in chunks] == ["a"]
