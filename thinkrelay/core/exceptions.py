"""
Exception Hierarchy

Defines all exceptions raised by the gateway.

Design decisions:
- All exceptions inherit from GatewayError for easy catching
- Exceptions carry structured context, not just messages
- Error codes enable programmatic handling
- Each kind knows the HTTP status it maps to
"""

from typing import Any


class GatewayError(Exception):
    """
    Base exception for all gateway errors.

    Provides structured error information including:
    - Human-readable message
    - Machine-readable error code
    - Additional context for debugging
    """

    error_code: str = "GATEWAY_ERROR"
    status_code: int = 500

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        context: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.error_code
        self.context = context or {}
        self.__cause__ = cause

    @property
    def numeric_code(self) -> int:
        """Numeric code carried by stream error events."""
        return self.status_code

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "context": self.context,
        }


# ============================================================
# Caller Errors
# ============================================================


class BadRequestError(GatewayError):
    """Malformed caller input (e.g. an invalid header)."""

    error_code = "BAD_REQUEST"
    status_code = 400


class MissingCredentialError(GatewayError):
    """A required per-provider token is absent."""

    error_code = "MISSING_CREDENTIAL"
    status_code = 401

    def __init__(self, credential: str, **kwargs: Any):
        kwargs.setdefault("context", {"credential": credential})
        super().__init__(f"Missing required credential: {credential}", **kwargs)
        self.credential = credential


class ValidationFailedError(GatewayError):
    """System prompt invariant violated."""

    error_code = "INVALID_SYSTEM_PROMPT"
    status_code = 400


# ============================================================
# Upstream Errors
# ============================================================


class UpstreamError(GatewayError):
    """Base error for provider-side failures."""

    error_code = "UPSTREAM_ERROR"
    status_code = 502

    def __init__(self, message: str, *, provider: str | None = None, **kwargs: Any):
        super().__init__(message, **kwargs)
        self.provider = provider
        if provider:
            self.context.setdefault("provider", provider)


class UpstreamTransportError(UpstreamError):
    """Connection or send failure towards a provider."""

    error_code = "UPSTREAM_TRANSPORT_FAILURE"


class UpstreamProtocolError(UpstreamError):
    """Provider answered with a non-success status."""

    error_code = "UPSTREAM_PROTOCOL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        upstream_status: int,
        **kwargs: Any,
    ):
        super().__init__(message, **kwargs)
        self.upstream_status = upstream_status
        self.context.setdefault("upstream_status", upstream_status)

    @property
    def numeric_code(self) -> int:
        return self.upstream_status


class UpstreamParseError(UpstreamError):
    """Provider response did not match the expected shape."""

    error_code = "UPSTREAM_PARSE_FAILURE"


class MissingReasoningContentError(UpstreamError):
    """The reasoning leg produced no reasoning text."""

    error_code = "MISSING_REASONING_CONTENT"


# ============================================================
# Internal Errors
# ============================================================


class InternalError(GatewayError):
    """Serialization or header-construction failure on our side."""

    error_code = "INTERNAL_ERROR"
    status_code = 500
