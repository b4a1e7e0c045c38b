"""
OpenAI-Compatible Route

`POST /v1/chat/completions` for clients that speak the OpenAI chat API.
Provider tokens and models come from configuration, keyed by the
caller's bearer token and the requested model.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from starlette.responses import StreamingResponse as StarletteStreamingResponse

from thinkrelay.api.dependencies import get_adapter_factory, get_app_settings, get_caller_token
from thinkrelay.api.streaming import (
    ChunkEncoder,
    EventChannel,
    StreamingResponse,
    relay,
    spawn_pipeline,
)
from thinkrelay.config.settings import Settings
from thinkrelay.observability.logging import get_logger
from thinkrelay.pipeline.compat import (
    CompletionRequest,
    build_completion,
    parse_bearer,
    resolve_compat_request,
)
from thinkrelay.pipeline.orchestrator import ReasoningPipeline
from thinkrelay.reasoning.llm.factory import AdapterFactory

router = APIRouter()
logger = get_logger("thinkrelay.api.compat")


@router.post("/chat/completions", response_model=None)
async def chat_completions(
    request: CompletionRequest,
    authorization: str | None = Depends(get_caller_token),
    factory: AdapterFactory = Depends(get_adapter_factory),
    settings: Settings = Depends(get_app_settings),
) -> JSONResponse | StarletteStreamingResponse:
    """OpenAI-shaped chat completion backed by both legs."""
    caller_token = parse_bearer(authorization)
    chat_request, route = resolve_compat_request(request, caller_token, settings)

    logger.info(
        "Compat request",
        model=request.model,
        stream=request.stream,
        target=route.target.value,
    )

    pipeline = ReasoningPipeline(chat_request, route, factory)

    if not request.stream:
        response = await pipeline.run()
        return JSONResponse(build_completion(response, request.model))

    pipeline.validate()

    channel = EventChannel(settings.gateway.channel_capacity)
    task = spawn_pipeline(pipeline, channel)

    return StreamingResponse(
        relay(
            channel,
            ChunkEncoder(request.model),
            task,
            cancel_on_disconnect=settings.gateway.cancel_on_disconnect,
        )
    )
