"""
LLM Module

The generic provider adapter, provider capability table and the
event-stream frame decoder.
"""

from thinkrelay.reasoning.llm.base import ProviderAdapter, RequestBody
from thinkrelay.reasoning.llm.capabilities import (
    ANTHROPIC,
    DEEPSEEK,
    OPENAI,
    ProviderCapability,
)
from thinkrelay.reasoning.llm.factory import AdapterFactory
from thinkrelay.reasoning.llm.frames import Frame, FrameDecoder, decode_chunks, decode_frames

__all__ = [
    "ANTHROPIC",
    "AdapterFactory",
    "DEEPSEEK",
    "Frame",
    "FrameDecoder",
    "OPENAI",
    "ProviderAdapter",
    "ProviderCapability",
    "RequestBody",
    "decode_chunks",
    "decode_frames",
]
