"""LLM provider configuration and chat model construction."""

from .config import (
    ProviderType,
    ProviderConfig,
    AnthropicProviderConfig,
    GrokProviderConfig,
    OpenAIProviderConfig,
    GoogleProviderConfig,
    create_provider_config,
)
from .registry import registry, ProviderRegistry
from .factory import ProviderFactory, create_provider

__all__ = [
    "ProviderType",
    "ProviderConfig",
    "AnthropicProviderConfig",
    "GrokProviderConfig",
    "OpenAIProviderConfig",
    "GoogleProviderConfig",
    "create_provider_config",
    "registry",
    "ProviderRegistry",
    "ProviderFactory",
    "create_provider",
]
