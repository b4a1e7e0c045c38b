"""
Response Normalization

Maps provider output onto ContentBlock and assembles the blocking
response. Provider-native shapes are parsed by the capability table;
this module decides how the two legs are put together.
"""

from thinkrelay.core.types import (
    ChatResponse,
    ContentBlock,
    Message,
    MessageRole,
    NormalizedChunk,
    ProviderResponse,
)
from thinkrelay.reasoning.extractor import THINK_END, THINK_START

# Framing emitted around streamed reasoning, once each
THINKING_OPEN = "<thinking>\n"
THINKING_CLOSE = "\n</thinking>"


def wrap_reasoning(reasoning: str) -> str:
    """Wrap reasoning in delimiter tags unless it already is."""
    text = reasoning.strip()
    if text.startswith(THINK_START) and text.endswith(THINK_END):
        return text
    return f"{THINK_START}\n{text}\n{THINK_END}"


def build_target_messages(messages: list[Message], thinking: str) -> list[Message]:
    """Caller messages without any system message, plus the reasoning."""
    target = [m for m in messages if m.role != MessageRole.SYSTEM]
    target.append(Message(role=MessageRole.ASSISTANT, content=thinking))
    return target


def blocks_from_chunk(chunk: NormalizedChunk) -> list[ContentBlock]:
    """One text_delta block per non-empty delta, reasoning first."""
    if not chunk.has_content:
        return []
    blocks = []
    if chunk.reasoning_delta:
        blocks.append(ContentBlock.of_delta(chunk.reasoning_delta))
    if chunk.text_delta:
        blocks.append(ContentBlock.of_delta(chunk.text_delta))
    return blocks


def assemble_response(thinking: str, target: ProviderResponse) -> ChatResponse:
    """Blocking result: the reasoning block, then the target blocks."""
    return ChatResponse(content=[ContentBlock.of_text(thinking), *target.content])
