"""
Settings Management

Provides centralized, type-safe configuration using Pydantic.
Supports environment variables, .env files and a TOML config file.

Design decisions:
- Using pydantic-settings for validation and type coercion
- Immutable settings after initialization (frozen model)
- Separate concerns: server vs. endpoints vs. models vs. credentials
- TOML file location can be redirected with THINKRELAY_CONFIG
"""

import os
from functools import lru_cache
from typing import Any, Literal

from pydantic import BaseModel, Field, SecretStr
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    TomlConfigSettingsSource,
)

CONFIG_PATH_ENV = "THINKRELAY_CONFIG"
DEFAULT_CONFIG_PATH = "config.toml"


class ServerSettings(BaseSettings):
    """HTTP server binding."""

    model_config = SettingsConfigDict(env_prefix="SERVER_")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=3000, ge=1, le=65535)


class EndpointSettings(BaseSettings):
    """Default upstream URLs, used when no override header is sent."""

    model_config = SettingsConfigDict(env_prefix="ENDPOINT_")

    deepseek: str = Field(default="https://api.deepseek.com/v1/chat/completions")
    openai: str = Field(default="https://api.openai.com/v1/chat/completions")
    anthropic: str = Field(default="https://api.anthropic.com/v1/messages")


class ModelMapping(BaseModel):
    """Requested model name → (reasoning model, target model, overlay)."""

    deepseek_model: str
    target_model: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ModelSettings(BaseSettings):
    """Default model names and compat-endpoint model mappings."""

    model_config = SettingsConfigDict(env_prefix="MODELS_", protected_namespaces=())

    default_deepseek: str = Field(default="deepseek-reasoner")
    default_openai: str = Field(default="gpt-3.5-turbo")
    default_anthropic: str = Field(default="claude-3-5-sonnet-20241022")
    model_mappings: dict[str, ModelMapping] = Field(default_factory=dict)


class ProviderTokens(BaseModel):
    """One set of upstream credentials."""

    deepseek_token: SecretStr | None = None
    openai_token: SecretStr | None = None
    anthropic_token: SecretStr | None = None


class AuthSettings(BaseSettings):
    """Caller token → provider token mappings for the compat endpoint."""

    model_config = SettingsConfigDict(env_prefix="AUTH_")

    default_tokens: ProviderTokens = Field(default_factory=ProviderTokens)
    token_mappings: dict[str, ProviderTokens] = Field(default_factory=dict)

    def tokens_for(self, caller_token: str) -> ProviderTokens:
        return self.token_mappings.get(caller_token, self.default_tokens)


class GatewaySettings(BaseSettings):
    """Pipeline and transport behaviour."""

    model_config = SettingsConfigDict(env_prefix="GATEWAY_")

    # Transport timeouts (no application-level timeout is layered on top)
    request_timeout: float = Field(default=300.0, gt=0)
    connect_timeout: float = Field(default=30.0, gt=0)

    # Streaming relay
    channel_capacity: int = Field(default=100, ge=1)
    cancel_on_disconnect: bool = Field(
        default=False,
        description="Cancel the background pipeline when the client goes away",
    )
    max_consecutive_bad_frames: int | None = Field(
        default=None,
        ge=1,
        description="Abort a stream after this many unparseable frames in a row",
    )

    # Target used by the OpenAI-compatible endpoint
    compat_target: Literal["openai", "anthropic"] = "openai"


class ObservabilitySettings(BaseSettings):
    """Observability configuration."""

    model_config = SettingsConfigDict(env_prefix="OBS_")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"


class Settings(BaseSettings):
    """
    Master settings aggregator.

    This is the single source of truth for all configuration.
    Sub-settings are composed here to maintain clear boundaries.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,  # Immutable after creation
    )

    # Application metadata
    app_name: str = Field(default="thinkrelay")
    debug: bool = Field(default=False)

    # Component settings (composed)
    server: ServerSettings = Field(default_factory=ServerSettings)
    endpoints: EndpointSettings = Field(default_factory=EndpointSettings)
    models: ModelSettings = Field(default_factory=ModelSettings)
    auth: AuthSettings = Field(default_factory=AuthSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        toml_path = os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            TomlConfigSettingsSource(settings_cls, toml_file=toml_path),
            file_secret_settings,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure only one settings instance exists.
    This is safe because settings are frozen/immutable.
    """
    return Settings()
