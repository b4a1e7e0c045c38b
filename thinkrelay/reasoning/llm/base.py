"""
Provider Adapter

One generic adapter for every upstream provider, parameterized by a
ProviderCapability. Handles request building, header construction,
base-URL resolution, blocking calls and streaming calls.

Design decisions:
- Async-first: all I/O goes through an httpx.AsyncClient
- Streaming as first-class: an async generator of NormalizedChunk
- No retries: every failure surfaces to the caller unchanged
- Explicit merge precedence: caller overrides win over defaults,
  except for the adapter-owned `stream` and `messages` keys
"""

import re
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx

from thinkrelay.config.settings import GatewaySettings
from thinkrelay.core.exceptions import (
    BadRequestError,
    InternalError,
    UpstreamParseError,
    UpstreamProtocolError,
    UpstreamTransportError,
)
from thinkrelay.core.types import (
    Message,
    MessageRole,
    NormalizedChunk,
    ProviderConfig,
    ProviderResponse,
)
from thinkrelay.observability.logging import get_logger
from thinkrelay.reasoning.llm.capabilities import ProviderCapability
from thinkrelay.reasoning.llm.frames import decode_chunks

logger = get_logger("thinkrelay.adapter")

# Keys the adapter always owns; caller overrides for them are discarded
RESERVED_BODY_KEYS = frozenset({"stream", "messages"})

_HEADER_NAME = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")
_HEADER_VALUE = re.compile(r"[\t\x20-\x7e]*")

_MALFORMED = (ValueError, KeyError, TypeError, IndexError)


@dataclass
class RequestBody:
    """
    Typed core of a provider request plus a free-form extension map.

    to_json() lays the core down first, then the extensions (which win),
    then the reserved keys (which always win).
    """

    model: str
    max_tokens: int
    temperature: float
    stream: bool
    shaped_messages: dict[str, Any]
    extensions: dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        for key, value in self.extensions.items():
            if key not in RESERVED_BODY_KEYS:
                body[key] = value
        body.update(self.shaped_messages)
        body["stream"] = self.stream
        return body


def validate_header(name: str, value: str) -> None:
    """Reject header names/values that cannot go on the wire."""
    if not _HEADER_NAME.fullmatch(name):
        raise BadRequestError(f"Invalid header name: {name!r}", context={"header": name})
    if not _HEADER_VALUE.fullmatch(value):
        raise BadRequestError(f"Invalid header value for {name}", context={"header": name})


class ProviderAdapter:
    """
    Adapter for one provider leg of one request.

    Owns its own HTTP client; close it (or use `async with`) when the
    leg is finished.
    """

    def __init__(
        self,
        capability: ProviderCapability,
        token: str,
        *,
        base_url: str,
        settings: GatewaySettings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.capability = capability
        self._token = token
        self._base_url = base_url
        self._settings = settings or GatewaySettings()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                self._settings.request_timeout,
                connect=self._settings.connect_timeout,
            ),
            transport=transport,
        )

    @property
    def provider_name(self) -> str:
        return self.capability.name

    @property
    def base_url(self) -> str:
        return self._base_url

    # ------------------------------------------------------------
    # Request construction
    # ------------------------------------------------------------

    def resolve_url(self, custom_headers: dict[str, str] | None = None) -> str:
        """A per-request endpoint header overrides the configured URL."""
        override_name = self.capability.endpoint_header.lower()
        for name, value in (custom_headers or {}).items():
            if name.lower() == override_name and value:
                return value
        return self._base_url

    def build_headers(self, custom_headers: dict[str, str] | None = None) -> httpx.Headers:
        if not self._token or not _HEADER_VALUE.fullmatch(self._token):
            raise InternalError("Invalid API token", context={"provider": self.provider_name})

        headers = httpx.Headers(
            {
                "Content-Type": "application/json",
                "Accept": "application/json",
                **self.capability.extra_headers,
            }
        )
        headers["Authorization"] = f"Bearer {self._token}"
        if self.capability.api_key_header:
            headers[self.capability.api_key_header] = self._token

        override_name = self.capability.endpoint_header.lower()
        for name, value in (custom_headers or {}).items():
            validate_header(name, value)
            if name.lower() == override_name:
                continue
            headers[name] = value

        return headers

    def prepare_messages(self, messages: list[Message]) -> list[Message]:
        instruction = self.capability.system_instruction
        if instruction is None:
            return list(messages)
        return [Message(role=MessageRole.SYSTEM, content=instruction), *messages]

    def build_request(
        self,
        messages: list[Message],
        config: ProviderConfig,
        *,
        stream: bool,
    ) -> RequestBody:
        cap = self.capability
        overrides = config.body

        return RequestBody(
            model=overrides.get("model", cap.default_model),
            max_tokens=overrides.get("max_tokens", cap.default_max_tokens),
            temperature=overrides.get("temperature", cap.default_temperature),
            stream=stream,
            shaped_messages=cap.shape_request(self.prepare_messages(messages)),
            extensions={**cap.default_extras, **overrides},
        )

    # ------------------------------------------------------------
    # Calls
    # ------------------------------------------------------------

    async def complete(self, messages: list[Message], config: ProviderConfig) -> ProviderResponse:
        """
        Send one blocking request.

        Raises:
            BadRequestError: a custom header or the URL is invalid
            UpstreamTransportError: the provider could not be reached
            UpstreamProtocolError: non-2xx status (body forwarded verbatim)
            UpstreamParseError: body does not match the expected shape
        """
        url = self.resolve_url(config.headers)
        headers = self.build_headers(config.headers)
        body = self.build_request(messages, config, stream=False).to_json()

        logger.info(
            "Sending provider request",
            provider=self.provider_name,
            url=url,
            model=body.get("model"),
            stream=False,
        )

        try:
            response = await self._client.post(url, headers=headers, json=body)
        except httpx.InvalidURL as e:
            raise BadRequestError(f"Invalid endpoint URL: {url}", cause=e)
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                f"Request failed: {e}", provider=self.provider_name, cause=e
            )

        logger.info(
            "Provider responded",
            provider=self.provider_name,
            status=response.status_code,
        )

        if not response.is_success:
            raise UpstreamProtocolError(
                response.text or "Unknown error",
                upstream_status=response.status_code,
                provider=self.provider_name,
            )

        try:
            return self.capability.parse_response(response.json())
        except _MALFORMED as e:
            raise UpstreamParseError(
                f"Failed to parse response: {e}. Response body: {response.text}",
                provider=self.provider_name,
                cause=e,
            )

    async def stream(
        self,
        messages: list[Message],
        config: ProviderConfig,
    ) -> AsyncIterator[NormalizedChunk]:
        """
        Send a streaming request and yield normalized chunks.

        Request-construction and connection failures are raised on the
        first iteration, before any chunk is produced.
        """
        url = self.resolve_url(config.headers)
        headers = self.build_headers(config.headers)
        body = self.build_request(messages, config, stream=True).to_json()

        logger.info(
            "Starting provider stream",
            provider=self.provider_name,
            url=url,
            model=body.get("model"),
            stream=True,
        )

        try:
            async with self._client.stream("POST", url, headers=headers, json=body) as response:
                if not response.is_success:
                    await response.aread()
                    raise UpstreamProtocolError(
                        response.text or "Unknown error",
                        upstream_status=response.status_code,
                        provider=self.provider_name,
                    )

                async for chunk in decode_chunks(
                    response.aiter_bytes(),
                    self.capability.parse_frame,
                    provider=self.provider_name,
                    max_consecutive_bad_frames=self._settings.max_consecutive_bad_frames,
                ):
                    yield chunk
        except httpx.InvalidURL as e:
            raise BadRequestError(f"Invalid endpoint URL: {url}", cause=e)
        except httpx.HTTPError as e:
            raise UpstreamTransportError(
                f"Stream error: {e}", provider=self.provider_name, cause=e
            )

        logger.info("Provider stream completed", provider=self.provider_name)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "ProviderAdapter":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
