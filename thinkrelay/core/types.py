"""
Core Types and Data Structures

Defines the fundamental types shared by the adapters, the pipeline and
the API layer. All of them live for one request only.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageRole(str, Enum):
    """Role of a message in a conversation."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


class Message(BaseModel):
    """
    A single message in a conversation.

    Immutable by design. Create new messages rather than modifying.
    """

    model_config = ConfigDict(frozen=True)

    role: MessageRole
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role.value, "content": self.content}


class ProviderConfig(BaseModel):
    """Caller-supplied overrides for one provider leg."""

    headers: dict[str, str] = Field(default_factory=dict)
    body: dict[str, Any] = Field(default_factory=dict)


class TargetProvider(str, Enum):
    """Which provider shape answers the target leg."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"

    @classmethod
    def from_header(cls, value: str | None) -> "TargetProvider":
        # Anything that is not explicitly "openai" routes to the Anthropic shape
        if value == cls.OPENAI.value:
            return cls.OPENAI
        return cls.ANTHROPIC


class ContentBlock(BaseModel):
    """
    The canonical unit of output content.

    `type` is "text" for whole blocks (reasoning, answers, framing) and
    "text_delta" for streaming increments.
    """

    type: str
    text: str

    @classmethod
    def of_text(cls, text: str) -> "ContentBlock":
        return cls(type="text", text=text)

    @classmethod
    def of_delta(cls, text: str) -> "ContentBlock":
        return cls(type="text_delta", text=text)


@dataclass(frozen=True)
class NormalizedChunk:
    """The common shape every provider's streaming frame is reduced to."""

    role: str | None = None
    text_delta: str | None = None
    reasoning_delta: str | None = None
    finished: bool = False
    finish_reason: str | None = None

    @property
    def has_content(self) -> bool:
        return bool(self.text_delta) or bool(self.reasoning_delta)


class ProviderResponse(BaseModel):
    """
    A blocking provider response, normalized across shapes.

    `raw` keeps the upstream JSON document for diagnostics.
    """

    content: list[ContentBlock] = Field(default_factory=list)
    reasoning: str | None = None
    model: str | None = None
    finish_reason: str | None = None
    raw: dict[str, Any] = Field(default_factory=dict)

    @property
    def text(self) -> str:
        return "".join(block.text for block in self.content)


class PipelineState(str, Enum):
    """Lifecycle state of one pipeline run."""

    VALIDATING = "validating"
    REASONING_CALL = "reasoning_call"
    REASONING_DRAIN = "reasoning_drain"
    TARGET_BUILD = "target_build"
    TARGET_CALL = "target_call"
    TARGET_DRAIN = "target_drain"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in {PipelineState.DONE, PipelineState.FAILED}


class EventKind(str, Enum):
    """Envelope type of a streamed pipeline event."""

    START = "start"
    CONTENT = "content"
    ERROR = "error"
    DONE = "done"


class PipelineEvent(BaseModel):
    """
    One element of a pipeline result.

    Once an ERROR event is produced no further events follow.
    """

    kind: EventKind
    created: datetime = Field(default_factory=utcnow)
    content: list[ContentBlock] = Field(default_factory=list)
    message: str | None = None
    code: int | None = None

    @classmethod
    def start(cls) -> "PipelineEvent":
        return cls(kind=EventKind.START)

    @classmethod
    def of_blocks(cls, *blocks: ContentBlock) -> "PipelineEvent":
        return cls(kind=EventKind.CONTENT, content=list(blocks))

    @classmethod
    def failure(cls, message: str, code: int) -> "PipelineEvent":
        return cls(kind=EventKind.ERROR, message=message, code=code)

    @classmethod
    def done(cls) -> "PipelineEvent":
        return cls(kind=EventKind.DONE)

    @property
    def is_terminal(self) -> bool:
        return self.kind in {EventKind.ERROR, EventKind.DONE}

    def to_payload(self) -> dict[str, Any]:
        """Serialize as the typed envelope payload."""
        if self.kind == EventKind.START:
            return {"type": "start", "created": self.created.isoformat()}
        if self.kind == EventKind.CONTENT:
            return {"type": "content", "content": [b.model_dump() for b in self.content]}
        if self.kind == EventKind.ERROR:
            return {"type": "error", "message": self.message or "", "code": self.code or 500}
        return {"type": "done"}


class ChatRequest(BaseModel):
    """Request body for the native gateway endpoint."""

    stream: bool = False
    system: str | None = None
    messages: list[Message]
    deepseek_config: ProviderConfig = Field(default_factory=ProviderConfig)
    openai_config: ProviderConfig = Field(default_factory=ProviderConfig)
    anthropic_config: ProviderConfig = Field(default_factory=ProviderConfig)

    def validate_system_prompt(self) -> bool:
        """
        Check that at most one system directive is supplied.

        A top-level `system` conflicts with any system-role message, and
        more than one system-role message is ambiguous.
        """
        system_messages = [m for m in self.messages if m.role == MessageRole.SYSTEM]
        if self.system is not None and system_messages:
            return False
        return len(system_messages) <= 1

    def system_prompt(self) -> str | None:
        if self.system is not None:
            return self.system
        for msg in self.messages:
            if msg.role == MessageRole.SYSTEM:
                return msg.content
        return None

    def messages_with_system(self) -> list[Message]:
        """Conversation with the top-level system prompt applied as a message."""
        if self.system is None:
            return list(self.messages)
        return [Message(role=MessageRole.SYSTEM, content=self.system), *self.messages]

    def config_for(self, target: TargetProvider) -> ProviderConfig:
        if target == TargetProvider.OPENAI:
            return self.openai_config
        return self.anthropic_config


class ChatResponse(BaseModel):
    """Response body for a blocking gateway call."""

    created: datetime = Field(default_factory=utcnow)
    content: list[ContentBlock]
