"""
FastAPI Dependencies

Dependency injection for API routes: application components and the
per-request routing read from gateway headers.
"""

from typing import Any

from fastapi import Depends, Header, HTTPException, Request

from thinkrelay.config.settings import Settings
from thinkrelay.core.exceptions import BadRequestError
from thinkrelay.core.types import TargetProvider
from thinkrelay.pipeline.orchestrator import PipelineRoute
from thinkrelay.reasoning.llm.capabilities import (
    ANTHROPIC_ENDPOINT_URL_HEADER,
    DEEPSEEK_ENDPOINT_URL_HEADER,
    OPENAI_ENDPOINT_URL_HEADER,
)
from thinkrelay.reasoning.llm.factory import AdapterFactory

DEEPSEEK_TOKEN_HEADER = "X-DeepSeek-API-Token"
OPENAI_TOKEN_HEADER = "X-OpenAI-API-Token"
ANTHROPIC_TOKEN_HEADER = "X-Anthropic-API-Token"
TARGET_MODEL_HEADER = "X-Target-Model"


async def get_components(request: Request) -> dict[str, Any]:
    """Get application components from state."""
    return getattr(request.app.state, "components", {})


async def get_app_settings(
    components: dict[str, Any] = Depends(get_components),
) -> Settings:
    """Get the settings the app was created with."""
    if "settings" not in components:
        raise HTTPException(status_code=503, detail="Settings not available")
    value = components["settings"]
    assert isinstance(value, Settings)
    return value


async def get_adapter_factory(
    components: dict[str, Any] = Depends(get_components),
) -> AdapterFactory:
    """Get the provider adapter factory."""
    if "adapter_factory" not in components:
        raise HTTPException(status_code=503, detail="Adapter factory not available")
    value = components["adapter_factory"]
    assert isinstance(value, AdapterFactory)
    return value


def _header(request: Request, name: str) -> str | None:
    value = request.headers.get(name)
    if value is None:
        return None
    if not value.isascii():
        raise BadRequestError(f"Invalid {name} header", context={"header": name})
    return value or None


async def get_route(request: Request) -> PipelineRoute:
    """
    Routing for the native endpoint.

    X-Target-Model picks the target shape ("openai", anything else
    means "anthropic"); tokens and endpoint overrides come from the
    matching provider headers. Missing tokens are reported by the
    pipeline before any provider is contacted.
    """
    target = TargetProvider.from_header(_header(request, TARGET_MODEL_HEADER))

    if target == TargetProvider.OPENAI:
        token_header = OPENAI_TOKEN_HEADER
        url_header = OPENAI_ENDPOINT_URL_HEADER
    else:
        token_header = ANTHROPIC_TOKEN_HEADER
        url_header = ANTHROPIC_ENDPOINT_URL_HEADER

    return PipelineRoute(
        target=target,
        reasoning_token=_header(request, DEEPSEEK_TOKEN_HEADER),
        target_token=_header(request, token_header),
        reasoning_url=_header(request, DEEPSEEK_ENDPOINT_URL_HEADER),
        target_url=_header(request, url_header),
        reasoning_credential=DEEPSEEK_TOKEN_HEADER,
        target_credential=token_header,
    )


async def get_caller_token(authorization: str | None = Header(None)) -> str | None:
    """Raw Authorization header for the compat endpoint."""
    return authorization
