"""
API Middleware

Custom middleware for cross-cutting concerns.
"""

import time
from collections.abc import Callable
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from thinkrelay.core.exceptions import GatewayError, InternalError
from thinkrelay.observability.logging import get_logger

logger = get_logger("thinkrelay.api")


class TracingMiddleware(BaseHTTPMiddleware):
    """
    Adds tracing headers and log context to requests.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        trace_id = request.headers.get("X-Trace-Id", str(uuid4()))
        request_id = request.headers.get("X-Request-Id", str(uuid4()))

        request.state.trace_id = trace_id
        request.state.request_id = request_id

        start_time = time.perf_counter()

        with logger.context(trace_id=trace_id, request_id=request_id):
            logger.info("Request received", method=request.method, path=request.url.path)
            response = await call_next(request)

            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.info(
                "Response started",
                status=response.status_code,
                duration_ms=round(duration_ms, 2),
            )

        response.headers["X-Trace-Id"] = trace_id
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        return response


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    GatewayErrors are normally turned into responses by the exception
    handler; anything else reaching this point becomes a 500.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable,
    ) -> Response:
        try:
            return await call_next(request)
        except GatewayError as e:
            logger.error("Request failed", error=e, path=request.url.path)
            return JSONResponse(e.to_dict(), status_code=e.status_code)
        except Exception as e:
            logger.exception("Unhandled error", path=request.url.path)
            error = InternalError("Internal server error", cause=e)
            return JSONResponse(error.to_dict(), status_code=error.status_code)
