"""
FastAPI Application Factory

Creates and configures the gateway application.

Design decisions:
- Factory pattern for testability: settings and the upstream transport
  can be injected
- Middleware composition
- GatewayError is mapped to its JSON body and HTTP status in one place
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from thinkrelay import __version__
from thinkrelay.config import Settings, get_settings
from thinkrelay.core.exceptions import GatewayError
from thinkrelay.observability.logging import configure_logging, get_logger
from thinkrelay.reasoning.llm.factory import AdapterFactory

logger = get_logger("thinkrelay.api")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Log the effective upstream configuration on startup."""
    settings: Settings = app.state.components["settings"]
    logger.info(
        "Gateway starting",
        deepseek=settings.endpoints.deepseek,
        openai=settings.endpoints.openai,
        anthropic=settings.endpoints.anthropic,
        model_mappings=sorted(settings.models.model_mappings),
    )
    yield
    logger.info("Gateway stopped")


async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Serialize a GatewayError with the status its kind maps to."""
    logger.error(
        "Request failed",
        error=exc,
        path=request.url.path,
        status=exc.status_code,
    )
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


def create_app(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    **kwargs: Any,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Settings to use instead of the process-wide ones
        transport: httpx transport for every upstream call (tests)
        **kwargs: Additional FastAPI arguments
    """
    settings = settings or get_settings()

    configure_logging(
        settings.observability.log_level,
        json_output=settings.observability.log_format == "json",
    )

    app = FastAPI(
        title=settings.app_name,
        version=__version__,
        description="Two-leg reasoning gateway",
        debug=settings.debug,
        lifespan=lifespan,
        **kwargs,
    )

    app.state.components = {
        "settings": settings,
        "adapter_factory": AdapterFactory(settings, transport=transport),
    }

    app.add_exception_handler(GatewayError, gateway_error_handler)

    from thinkrelay.api.middleware import ErrorHandlingMiddleware, TracingMiddleware

    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(TracingMiddleware)

    from thinkrelay.api.routes import compat, gateway, health

    app.include_router(health.router, tags=["health"])
    app.include_router(gateway.router, tags=["gateway"])
    app.include_router(compat.router, prefix="/v1", tags=["compat"])

    return app


def main() -> None:
    """Console entry point: serve the gateway with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        create_app(settings),
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.observability.log_level.lower(),
    )
