"""
Gateway Route

The native entry point: reasoning leg, then target leg, returned as one
JSON document or streamed as typed envelope events.
"""

from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse as StarletteStreamingResponse

from thinkrelay.api.dependencies import get_adapter_factory, get_app_settings, get_route
from thinkrelay.api.streaming import (
    EnvelopeEncoder,
    EventChannel,
    StreamingResponse,
    relay,
    spawn_pipeline,
)
from thinkrelay.config.settings import Settings
from thinkrelay.core.types import ChatRequest, ChatResponse
from thinkrelay.observability.logging import get_logger
from thinkrelay.pipeline.orchestrator import PipelineRoute, ReasoningPipeline
from thinkrelay.reasoning.llm.factory import AdapterFactory

router = APIRouter()
logger = get_logger("thinkrelay.api.gateway")


@router.post("/", response_model=None)
async def handle_chat(
    request: ChatRequest,
    route: PipelineRoute = Depends(get_route),
    factory: AdapterFactory = Depends(get_adapter_factory),
    settings: Settings = Depends(get_app_settings),
) -> ChatResponse | StarletteStreamingResponse:
    """
    Run a request through both legs.

    Validation and credential errors are returned before any stream
    opens; once streaming, failures arrive as an error event.
    """
    logger.info(
        "Gateway request",
        stream=request.stream,
        target=route.target.value,
        messages=len(request.messages),
    )

    pipeline = ReasoningPipeline(request, route, factory)

    if not request.stream:
        return await pipeline.run()

    pipeline.validate()

    channel = EventChannel(settings.gateway.channel_capacity)
    task = spawn_pipeline(pipeline, channel)

    return StreamingResponse(
        relay(
            channel,
            EnvelopeEncoder(),
            task,
            cancel_on_disconnect=settings.gateway.cancel_on_disconnect,
        )
    )
