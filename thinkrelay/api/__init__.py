"""
Interface & Serving Layer

FastAPI app factory, gateway routes, middleware and SSE streaming.
"""

from thinkrelay.api.app import create_app, main
from thinkrelay.api.middleware import ErrorHandlingMiddleware, TracingMiddleware
from thinkrelay.api.streaming import (
    ChunkEncoder,
    EnvelopeEncoder,
    EventChannel,
    StreamingResponse,
    spawn_pipeline,
)

__all__ = [
    "ChunkEncoder",
    "EnvelopeEncoder",
    "ErrorHandlingMiddleware",
    "EventChannel",
    "StreamingResponse",
    "TracingMiddleware",
    "create_app",
    "main",
    "spawn_pipeline",
]
