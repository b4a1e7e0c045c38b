"""
OpenAI-Compatible Entry Point

Turns an OpenAI-style chat completion request into a gateway request
using the configured token and model mappings, and shapes gateway
output back into OpenAI completion documents.
"""

import time
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict

from thinkrelay.config.settings import ModelMapping, Settings
from thinkrelay.core.exceptions import MissingCredentialError
from thinkrelay.core.types import (
    ChatRequest,
    ChatResponse,
    Message,
    ProviderConfig,
    TargetProvider,
)
from thinkrelay.pipeline.orchestrator import PipelineRoute


class CompletionRequest(BaseModel):
    """
    OpenAI-style request body.

    Unknown fields are kept and overlaid on the target leg's body.
    """

    model_config = ConfigDict(extra="allow", protected_namespaces=())

    model: str
    messages: list[Message]
    stream: bool = False

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})


def parse_bearer(authorization: str | None) -> str:
    """Caller token from an `Authorization: Bearer <token>` header."""
    if not authorization:
        raise MissingCredentialError("Authorization")

    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise MissingCredentialError("Authorization")
    return token.strip()


def resolve_mapping(model: str, settings: Settings, target: TargetProvider) -> ModelMapping:
    """Model mapping for `model`, or the configured defaults."""
    models = settings.models
    mapping = models.model_mappings.get(model)
    if mapping is not None:
        return mapping

    target_model = (
        models.default_openai if target == TargetProvider.OPENAI else models.default_anthropic
    )
    return ModelMapping(deepseek_model=models.default_deepseek, target_model=target_model)


def _secret(value) -> str | None:
    return value.get_secret_value() if value is not None else None


def resolve_compat_request(
    request: CompletionRequest,
    caller_token: str,
    settings: Settings,
) -> tuple[ChatRequest, PipelineRoute]:
    """
    Build the gateway request and route for one compat call.

    Mapping parameters apply to both legs; request extras override them
    on the target leg only.
    """
    target = TargetProvider(settings.gateway.compat_target)
    tokens = settings.auth.tokens_for(caller_token)
    mapping = resolve_mapping(request.model, settings, target)

    reasoning_body = {**mapping.parameters, "model": mapping.deepseek_model}
    target_body = {**mapping.parameters, **request.extras, "model": mapping.target_model}
    target_config = ProviderConfig(body=target_body)

    chat_request = ChatRequest(
        stream=request.stream,
        messages=request.messages,
        deepseek_config=ProviderConfig(body=reasoning_body),
        openai_config=target_config if target == TargetProvider.OPENAI else ProviderConfig(),
        anthropic_config=target_config if target == TargetProvider.ANTHROPIC else ProviderConfig(),
    )

    if target == TargetProvider.OPENAI:
        target_token = _secret(tokens.openai_token)
        target_credential = "openai_token"
    else:
        target_token = _secret(tokens.anthropic_token)
        target_credential = "anthropic_token"

    route = PipelineRoute(
        target=target,
        reasoning_token=_secret(tokens.deepseek_token),
        target_token=target_token,
        reasoning_credential="deepseek_token",
        target_credential=target_credential,
    )
    return chat_request, route


# ============================================================
# Response shaping
# ============================================================


def completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4().hex}"


def build_completion(
    response: ChatResponse,
    model: str,
    *,
    id: str | None = None,
) -> dict[str, Any]:
    """A `chat.completion` document; content blocks are joined by a blank line."""
    content = "\n\n".join(block.text for block in response.content if block.text)
    return {
        "id": id or completion_id(),
        "object": "chat.completion",
        "created": int(response.created.timestamp()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
    }


def build_chunk(
    id: str,
    model: str,
    delta: dict[str, Any],
    *,
    finish_reason: str | None = None,
    created: int | None = None,
) -> dict[str, Any]:
    """One `chat.completion.chunk` document."""
    return {
        "id": id,
        "object": "chat.completion.chunk",
        "created": created if created is not None else int(time.time()),
        "model": model,
        "choices": [
            {
                "index": 0,
                "delta": delta,
                "finish_reason": finish_reason,
            }
        ],
    }
