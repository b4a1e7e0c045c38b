"""
Unit Tests - Streaming

Tests for the event channel, SSE encoders and the response relay.
"""

import asyncio
import json

import httpx
import pytest

from tests.fixtures import DEEPSEEK_URL, OPENAI_URL, chat_chunk, openai_route, sse, streaming
from thinkrelay.api.streaming import (
    ChunkEncoder,
    EnvelopeEncoder,
    EventChannel,
    format_sse,
    relay,
    spawn_pipeline,
)
from thinkrelay.core.types import ChatRequest, ContentBlock, PipelineEvent, PipelineState
from thinkrelay.pipeline.orchestrator import ReasoningPipeline
from thinkrelay.reasoning.llm.factory import AdapterFactory


def data_of(frame: str):
    lines = [line[len("data: ") :] for line in frame.splitlines() if line.startswith("data: ")]
    payload = "\n".join(lines)
    return payload if payload == "[DONE]" else json.loads(payload)


class TestEventChannel:
    """Tests for EventChannel."""

    @pytest.mark.asyncio
    async def test_delivers_in_order(self):
        channel = EventChannel(capacity=10)
        events = [PipelineEvent.start(), PipelineEvent.of_blocks(ContentBlock.of_delta("x")), PipelineEvent.done()]

        for event in events:
            assert await channel.send(event)
        await channel.close()

        received = [event async for event in channel]
        assert received == events

    @pytest.mark.asyncio
    async def test_send_after_detach_returns_false(self):
        channel = EventChannel(capacity=1)
        channel.detach()

        assert await channel.send(PipelineEvent.start()) is False

    @pytest.mark.asyncio
    async def test_detach_unblocks_full_channel(self):
        channel = EventChannel(capacity=1)
        await channel.send(PipelineEvent.start())

        blocked = asyncio.create_task(channel.send(PipelineEvent.done()))
        await asyncio.sleep(0)
        assert not blocked.done()

        channel.detach()
        assert await asyncio.wait_for(blocked, timeout=1) is False

    @pytest.mark.asyncio
    async def test_close_after_detach_does_not_block(self):
        channel = EventChannel(capacity=1)
        await channel.send(PipelineEvent.start())
        channel.detach()

        await asyncio.wait_for(channel.close(), timeout=1)
        assert channel.closed


class TestEncoders:
    """Tests for the SSE encodings."""

    def test_format_sse(self):
        assert format_sse({"a": 1}, event="x") == 'event: x\ndata: {"a": 1}\n\n'

    def test_envelope_content(self):
        event = PipelineEvent.of_blocks(ContentBlock.of_delta("hi"))

        (frame,) = EnvelopeEncoder().encode(event)

        assert frame.startswith("event: content\n")
        assert data_of(frame) == {"type": "content", "content": [{"type": "text_delta", "text": "hi"}]}

    def test_envelope_error_and_done(self):
        encoder = EnvelopeEncoder()

        (error,) = encoder.encode(PipelineEvent.failure("bad", 401))
        (done,) = encoder.encode(PipelineEvent.done())

        assert data_of(error) == {"type": "error", "message": "bad", "code": 401}
        assert data_of(done) == {"type": "done"}

    def test_chunk_encoding(self):
        encoder = ChunkEncoder("my-model", id="chatcmpl-1")

        (start,) = encoder.encode(PipelineEvent.start())
        (content,) = encoder.encode(PipelineEvent.of_blocks(ContentBlock.of_delta("x")))
        final, done = encoder.encode(PipelineEvent.done())

        assert data_of(start)["choices"][0]["delta"] == {"role": "assistant", "content": ""}
        chunk = data_of(content)
        assert chunk["object"] == "chat.completion.chunk"
        assert chunk["model"] == "my-model"
        assert chunk["id"] == "chatcmpl-1"
        assert chunk["choices"][0]["delta"] == {"content": "x"}
        assert data_of(final)["choices"][0]["finish_reason"] == "stop"
        assert done == "data: [DONE]\n\n"

    def test_chunk_error_has_no_done(self):
        frames = ChunkEncoder("m").encode(PipelineEvent.failure("boom", 502))

        assert len(frames) == 1
        assert data_of(frames[0])["error"]["code"] == 502


class TestRelay:
    """Tests for the response body relay."""

    @pytest.fixture
    def factory(self, settings, upstream):
        upstream.on(DEEPSEEK_URL, streaming(sse(chat_chunk(reasoning="r"))))
        upstream.on(OPENAI_URL, streaming(sse(chat_chunk("a"), chat_chunk("b"))))
        return AdapterFactory(settings, transport=upstream.transport)

    @pytest.mark.asyncio
    async def test_full_relay(self, factory):
        request = ChatRequest(stream=True, messages=[{"role": "user", "content": "q"}])
        pipeline = ReasoningPipeline(request, openai_route(), factory)
        channel = EventChannel(capacity=2)
        task = spawn_pipeline(pipeline, channel)

        frames = [frame async for frame in relay(channel, EnvelopeEncoder(), task)]
        await task

        types = [data_of(f)["type"] for f in frames]
        assert types[0] == "start"
        assert types[-1] == "done"

    @pytest.mark.asyncio
    async def test_disconnect_leaves_pipeline_running(self, factory, upstream):
        request = ChatRequest(stream=True, messages=[{"role": "user", "content": "q"}])
        pipeline = ReasoningPipeline(request, openai_route(), factory)
        channel = EventChannel(capacity=1)
        task = spawn_pipeline(pipeline, channel)

        body = relay(channel, EnvelopeEncoder(), task)
        async for frame in body:
            if data_of(frame).get("content") == [{"type": "text", "text": "\n</thinking>"}]:
                break
        await body.aclose()

        await asyncio.wait_for(task, timeout=5)
        assert channel.detached
        assert pipeline.state == PipelineState.DONE
        assert len(upstream.calls_to(OPENAI_URL)) == 1

    @pytest.mark.asyncio
    async def test_disconnect_can_cancel(self, settings):
        gate = asyncio.Event()

        async def slow_reasoning():
            yield sse(chat_chunk(reasoning="r"), done=False)
            await gate.wait()
            yield sse(done=True)

        def handler(request):
            return httpx.Response(200, content=slow_reasoning())

        factory = AdapterFactory(settings, transport=httpx.MockTransport(handler))
        request = ChatRequest(stream=True, messages=[{"role": "user", "content": "q"}])
        pipeline = ReasoningPipeline(request, openai_route(), factory)
        channel = EventChannel()
        task = spawn_pipeline(pipeline, channel)

        body = relay(channel, EnvelopeEncoder(), task, cancel_on_disconnect=True)
        await body.__anext__()
        await body.aclose()

        with pytest.raises(asyncio.CancelledError):
            await asyncio.wait_for(task, timeout=5)
