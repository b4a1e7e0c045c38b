"""
Core Module

Contains fundamental types and exceptions used across all other
modules of the gateway.
"""

from thinkrelay.core.exceptions import (
    BadRequestError,
    GatewayError,
    InternalError,
    MissingCredentialError,
    MissingReasoningContentError,
    UpstreamError,
    UpstreamParseError,
    UpstreamProtocolError,
    UpstreamTransportError,
    ValidationFailedError,
)
from thinkrelay.core.types import (
    ChatRequest,
    ChatResponse,
    ContentBlock,
    EventKind,
    Message,
    MessageRole,
    NormalizedChunk,
    PipelineEvent,
    PipelineState,
    ProviderConfig,
    ProviderResponse,
    TargetProvider,
)

__all__ = [
    # Types
    "ChatRequest",
    "ChatResponse",
    "ContentBlock",
    "EventKind",
    "Message",
    "MessageRole",
    "NormalizedChunk",
    "PipelineEvent",
    "PipelineState",
    "ProviderConfig",
    "ProviderResponse",
    "TargetProvider",
    # Exceptions
    "BadRequestError",
    "GatewayError",
    "InternalError",
    "MissingCredentialError",
    "MissingReasoningContentError",
    "UpstreamError",
    "UpstreamParseError",
    "UpstreamProtocolError",
    "UpstreamTransportError",
    "ValidationFailedError",
]
