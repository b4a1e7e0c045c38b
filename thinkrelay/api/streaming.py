"""
Streaming Response Utilities

The event channel between a background pipeline and the response
body, plus the two Server-Sent Events encodings.

Design decisions:
- Bounded queue: a slow client applies backpressure to the pipeline
- Detaching never blocks: once the reader is gone every send returns
  False immediately
- The background task is held in a module-level set until it finishes
"""

import asyncio
import json
import time
from collections.abc import AsyncIterator, Iterable
from typing import Any

from starlette.responses import StreamingResponse as StarletteStreamingResponse

from thinkrelay.core.types import EventKind, PipelineEvent
from thinkrelay.observability.logging import get_logger
from thinkrelay.pipeline.compat import build_chunk, completion_id
from thinkrelay.pipeline.orchestrator import ReasoningPipeline

logger = get_logger("thinkrelay.streaming")

# Strong references to running pipelines
_background_tasks: set[asyncio.Task] = set()


class EventChannel:
    """
    Single-producer, single-consumer channel of pipeline events.

    The producer calls send() and finally close(); the consumer iterates
    and calls detach() when it stops listening.
    """

    def __init__(self, capacity: int = 100):
        self._queue: asyncio.Queue[PipelineEvent | None] = asyncio.Queue(maxsize=capacity)
        self._closed = False
        self._detached = False

    @property
    def detached(self) -> bool:
        return self._detached

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, event: PipelineEvent) -> bool:
        """Queue an event, waiting while the channel is full."""
        if self._closed or self._detached:
            return False
        await self._queue.put(event)
        return not self._detached

    async def close(self) -> None:
        """Mark the end of the stream."""
        if self._closed:
            return
        self._closed = True
        if not self._detached:
            await self._queue.put(None)

    def detach(self) -> None:
        """Stop listening; wakes a producer blocked on a full queue."""
        self._detached = True
        while not self._queue.empty():
            self._queue.get_nowait()

    async def __aiter__(self) -> AsyncIterator[PipelineEvent]:
        while not self._detached:
            event = await self._queue.get()
            if event is None:
                break
            yield event


def spawn_pipeline(pipeline: ReasoningPipeline, channel: EventChannel) -> asyncio.Task:
    """Run a streaming pipeline as a detached task feeding `channel`."""

    async def drive() -> None:
        try:
            await pipeline.run_stream(channel)
        finally:
            await channel.close()

    task = asyncio.create_task(drive(), name="reasoning-pipeline")
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task


# ============================================================
# Encoders
# ============================================================


def format_sse(data: Any, event: str | None = None) -> str:
    """Format one SSE frame."""
    lines = []

    if event:
        lines.append(f"event: {event}")

    if isinstance(data, (dict, list)):
        data = json.dumps(data)

    for line in str(data).split("\n"):
        lines.append(f"data: {line}")

    lines.append("")
    return "\n".join(lines) + "\n"


class EnvelopeEncoder:
    """Typed envelope: `event: <kind>` with a JSON payload carrying `type`."""

    def encode(self, event: PipelineEvent) -> list[str]:
        return [format_sse(event.to_payload(), event=event.kind.value)]


class ChunkEncoder:
    """OpenAI `chat.completion.chunk` encoding."""

    def __init__(self, model: str, id: str | None = None):
        self.model = model
        self.id = id or completion_id()
        self.created = int(time.time())

    def _chunk(self, delta: dict[str, Any], finish_reason: str | None = None) -> str:
        chunk = build_chunk(
            self.id,
            self.model,
            delta,
            finish_reason=finish_reason,
            created=self.created,
        )
        return format_sse(chunk)

    def encode(self, event: PipelineEvent) -> list[str]:
        if event.kind == EventKind.START:
            return [self._chunk({"role": "assistant", "content": ""})]

        if event.kind == EventKind.CONTENT:
            return [self._chunk({"content": block.text}) for block in event.content]

        if event.kind == EventKind.ERROR:
            error = {
                "message": event.message or "",
                "type": "upstream_error",
                "code": event.code or 500,
            }
            return [format_sse({"error": error})]

        return [self._chunk({}, finish_reason="stop"), format_sse("[DONE]")]


async def relay(
    channel: EventChannel,
    encoder: EnvelopeEncoder | ChunkEncoder,
    task: asyncio.Task | None = None,
    *,
    cancel_on_disconnect: bool = False,
) -> AsyncIterator[str]:
    """
    Response body: encoded events in channel order.

    Leaving early (client gone) detaches the channel; the pipeline task
    is cancelled only when `cancel_on_disconnect` is set.
    """
    completed = False
    try:
        async for event in channel:
            for frame in encoder.encode(event):
                yield frame
        completed = True
    finally:
        if not completed:
            channel.detach()
            if task is not None and not task.done():
                if cancel_on_disconnect:
                    logger.info("Client disconnected, cancelling pipeline")
                    task.cancel()
                else:
                    logger.info("Client disconnected, pipeline left running")


def StreamingResponse(
    content: AsyncIterator[str] | Iterable[str],
    media_type: str = "text/event-stream",
    **kwargs: Any,
) -> StarletteStreamingResponse:
    """
    Create a streaming response for SSE.
    """
    return StarletteStreamingResponse(
        content,
        media_type=media_type,
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",  # Disable nginx buffering
        },
        **kwargs,
    )
