"""
Adapter Factory

Builds per-request ProviderAdapter instances from the process-wide
settings. The transport hook lets tests script upstream providers.
"""

import httpx

from thinkrelay.config.settings import Settings
from thinkrelay.core.types import TargetProvider
from thinkrelay.reasoning.llm.base import ProviderAdapter
from thinkrelay.reasoning.llm.capabilities import (
    ANTHROPIC,
    DEEPSEEK,
    OPENAI,
    ProviderCapability,
)


class AdapterFactory:
    """Creates the adapters one pipeline run needs."""

    def __init__(
        self,
        settings: Settings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._settings = settings
        self._transport = transport

    def _create(
        self,
        capability: ProviderCapability,
        token: str,
        base_url: str | None,
        default_url: str,
    ) -> ProviderAdapter:
        return ProviderAdapter(
            capability,
            token,
            base_url=base_url or default_url,
            settings=self._settings.gateway,
            transport=self._transport,
        )

    def reasoning(self, token: str, base_url: str | None = None) -> ProviderAdapter:
        capability = DEEPSEEK.with_model(self._settings.models.default_deepseek)
        return self._create(capability, token, base_url, self._settings.endpoints.deepseek)

    def target(
        self,
        provider: TargetProvider,
        token: str,
        base_url: str | None = None,
    ) -> ProviderAdapter:
        models = self._settings.models
        endpoints = self._settings.endpoints

        if provider == TargetProvider.OPENAI:
            capability = OPENAI.with_model(models.default_openai)
            return self._create(capability, token, base_url, endpoints.openai)

        capability = ANTHROPIC.with_model(models.default_anthropic)
        return self._create(capability, token, base_url, endpoints.anthropic)
