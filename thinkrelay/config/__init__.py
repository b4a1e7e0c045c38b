"""
Configuration Module

Centralized configuration management for the gateway.
"""

from thinkrelay.config.settings import (
    AuthSettings,
    EndpointSettings,
    GatewaySettings,
    ModelMapping,
    ModelSettings,
    ProviderTokens,
    Settings,
    get_settings,
)

__all__ = [
    "AuthSettings",
    "EndpointSettings",
    "GatewaySettings",
    "ModelMapping",
    "ModelSettings",
    "ProviderTokens",
    "Settings",
    "get_settings",
]
