"""
Test Fixtures

Scripted upstream providers and payload builders. Every upstream call
in the test suite goes through httpx.MockTransport; nothing touches the
network.
"""

import json
from collections.abc import AsyncIterator, Callable, Iterable
from typing import Any

import httpx

from thinkrelay.core.types import TargetProvider
from thinkrelay.pipeline.orchestrator import PipelineRoute

DEEPSEEK_URL = "https://deepseek.test/v1/chat/completions"
OPENAI_URL = "https://openai.test/v1/chat/completions"
ANTHROPIC_URL = "https://anthropic.test/v1/messages"

Handler = Callable[[httpx.Request], httpx.Response]


class ScriptedUpstream:
    """
    Fake provider fleet keyed by URL.

    Records every request so tests can assert on call counts and
    request bodies.
    """

    def __init__(self):
        self._routes: dict[str, Handler] = {}
        self.requests: list[httpx.Request] = []

    def on(self, url: str, response: httpx.Response | Handler) -> None:
        if isinstance(response, httpx.Response):
            self._routes[url] = lambda request: response
        else:
            self._routes[url] = response

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self._routes.get(str(request.url))
        if handler is None:
            return httpx.Response(404, text=f"no route for {request.url}")
        return handler(request)

    def calls_to(self, url: str) -> list[httpx.Request]:
        return [r for r in self.requests if str(r.url) == url]

    def bodies_to(self, url: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.calls_to(url)]

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)


# ============================================================
# Payload builders
# ============================================================


def sse(*payloads: Any, done: bool = True) -> bytes:
    """Encode payloads as `data:` frames, optionally ending with [DONE]."""
    frames = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        frames.append(f"data: {data}\n\n")
    if done:
        frames.append("data: [DONE]\n\n")
    return "".join(frames).encode()


def anthropic_sse(*events: dict[str, Any]) -> bytes:
    """Encode Anthropic events, each with its `event:` line."""
    return "".join(
        f"event: {event['type']}\ndata: {json.dumps(event)}\n\n" for event in events
    ).encode()


def chat_chunk(
    content: str | None = None,
    reasoning: str | None = None,
    finish_reason: str | None = None,
) -> dict[str, Any]:
    delta: dict[str, Any] = {}
    if content is not None:
        delta["content"] = content
    if reasoning is not None:
        delta["reasoning_content"] = reasoning
    return {
        "id": "chunk",
        "object": "chat.completion.chunk",
        "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}],
    }


def chat_completion(content: str, reasoning: str | None = None) -> dict[str, Any]:
    message: dict[str, Any] = {"role": "assistant", "content": content}
    if reasoning is not None:
        message["reasoning_content"] = reasoning
    return {
        "id": "cmpl",
        "object": "chat.completion",
        "model": "test-model",
        "choices": [{"index": 0, "message": message, "finish_reason": "stop"}],
    }


def anthropic_message(*texts: str) -> dict[str, Any]:
    return {
        "id": "msg",
        "type": "message",
        "role": "assistant",
        "model": "claude-test",
        "content": [{"type": "text", "text": text} for text in texts],
        "stop_reason": "end_turn",
    }


def anthropic_text_events(*texts: str) -> list[dict[str, Any]]:
    """A minimal Anthropic stream delivering `texts` as deltas."""
    events: list[dict[str, Any]] = [
        {"type": "message_start", "message": {"id": "msg", "role": "assistant", "content": []}},
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
    ]
    for text in texts:
        events.append(
            {
                "type": "content_block_delta",
                "index": 0,
                "delta": {"type": "text_delta", "text": text},
            }
        )
    events.append({"type": "content_block_stop", "index": 0})
    events.append({"type": "message_delta", "delta": {"stop_reason": "end_turn"}})
    events.append({"type": "message_stop"})
    return events


def streaming(body: bytes | Iterable[bytes], status_code: int = 200) -> httpx.Response:
    """An event-stream response; an iterable body is delivered piece by piece."""
    if isinstance(body, bytes):
        return httpx.Response(
            status_code,
            content=body,
            headers={"Content-Type": "text/event-stream"},
        )

    pieces = list(body)

    async def chunks() -> AsyncIterator[bytes]:
        for piece in pieces:
            yield piece

    return httpx.Response(
        status_code,
        content=chunks(),
        headers={"Content-Type": "text/event-stream"},
    )


async def aiter_bytes(*pieces: bytes) -> AsyncIterator[bytes]:
    for piece in pieces:
        yield piece


# ============================================================
# Routes
# ============================================================


def openai_route(**overrides: Any) -> PipelineRoute:
    values: dict[str, Any] = {
        "target": TargetProvider.OPENAI,
        "reasoning_token": "ds-key",
        "target_token": "oa-key",
        "target_credential": "X-OpenAI-API-Token",
    }
    values.update(overrides)
    return PipelineRoute(**values)


def anthropic_route(**overrides: Any) -> PipelineRoute:
    values: dict[str, Any] = {
        "target": TargetProvider.ANTHROPIC,
        "reasoning_token": "ds-key",
        "target_token": "an-key",
    }
    values.update(overrides)
    return PipelineRoute(**values)
