"""Provider registry for Duologue.

This module maintains a registry of supported LLM providers, the models
known to work as brainstorm participants, and how each provider delivers
responses (incremental streaming or a single completed text).
"""

from typing import Dict, Optional
from dataclasses import dataclass, field

from duologue.providers.config import ProviderType


@dataclass
class ModelInfo:
    """Information about a specific model."""

    name: str
    display_name: str
    context_window: int
    output_tokens: int
    notes: Optional[str] = None


@dataclass
class ProviderInfo:
    """Information about an LLM provider."""

    provider_type: ProviderType
    display_name: str
    models: Dict[str, ModelInfo] = field(default_factory=dict)
    api_key_env_var: Optional[str] = None
    # Delivery mode the engine uses for this provider by default
    default_kind: str = "single_shot"
    default_timeout: int = 60
    base_url: Optional[str] = None

    def add_model(self, model: ModelInfo) -> None:
        """Add a model to the provider."""
        self.models[model.name] = model

    def is_model_supported(self, model_name: str) -> bool:
        """Check if a model is known."""
        return model_name in self.models


class ProviderRegistry:
    """Registry of LLM providers and their models."""

    def __init__(self):
        """Initialize the registry with known providers."""
        self._providers: Dict[ProviderType, ProviderInfo] = {}
        self._initialize_providers()

    def _initialize_providers(self) -> None:
        """Initialize the registry with known providers and models."""

        # Anthropic Claude
        anthropic = ProviderInfo(
            provider_type=ProviderType.ANTHROPIC,
            display_name="Anthropic Claude",
            api_key_env_var="ANTHROPIC_API_KEY",
            default_kind="streaming",
            default_timeout=120,
        )
        anthropic.add_model(
            ModelInfo(
                name="claude-sonnet-4-20250514",
                display_name="Claude Sonnet 4",
                context_window=200000,
                output_tokens=64000,
            )
        )
        anthropic.add_model(
            ModelInfo(
                name="claude-opus-4-20250514",
                display_name="Claude Opus 4",
                context_window=200000,
                output_tokens=32000,
            )
        )
        anthropic.add_model(
            ModelInfo(
                name="claude-3-5-sonnet-20241022",
                display_name="Claude 3.5 Sonnet",
                context_window=200000,
                output_tokens=8192,
            )
        )
        anthropic.add_model(
            ModelInfo(
                name="claude-3-5-haiku-20241022",
                display_name="Claude 3.5 Haiku",
                context_window=200000,
                output_tokens=8192,
                notes="Fast and inexpensive, a good summarizer",
            )
        )
        self._providers[ProviderType.ANTHROPIC] = anthropic

        # Grok (xAI)
        grok = ProviderInfo(
            provider_type=ProviderType.GROK,
            display_name="Grok",
            api_key_env_var="GROK_API_KEY",
            default_kind="single_shot",
            base_url="https://api.x.ai/v1",  # OpenAI-compatible endpoint
            default_timeout=60,
        )
        grok.add_model(
            ModelInfo(
                name="grok-3",
                display_name="Grok 3",
                context_window=131072,
                output_tokens=8192,
            )
        )
        grok.add_model(
            ModelInfo(
                name="grok-2-1212",
                display_name="Grok 2 (Dec 2024)",
                context_window=131072,
                output_tokens=4096,
            )
        )
        self._providers[ProviderType.GROK] = grok

        # OpenAI
        openai = ProviderInfo(
            provider_type=ProviderType.OPENAI,
            display_name="OpenAI",
            api_key_env_var="OPENAI_API_KEY",
            default_kind="streaming",
        )
        openai.add_model(
            ModelInfo(
                name="gpt-4o",
                display_name="GPT-4o",
                context_window=128000,
                output_tokens=16384,
            )
        )
        openai.add_model(
            ModelInfo(
                name="gpt-4o-mini",
                display_name="GPT-4o mini",
                context_window=128000,
                output_tokens=16384,
            )
        )
        self._providers[ProviderType.OPENAI] = openai

        # Google Gemini
        google = ProviderInfo(
            provider_type=ProviderType.GOOGLE,
            display_name="Google Gemini",
            api_key_env_var="GOOGLE_API_KEY",
            default_kind="streaming",
            default_timeout=120,
        )
        google.add_model(
            ModelInfo(
                name="gemini-2.0-flash",
                display_name="Gemini 2.0 Flash",
                context_window=1048576,
                output_tokens=8192,
            )
        )
        self._providers[ProviderType.GOOGLE] = google

    def get_provider(self, provider_type: ProviderType) -> Optional[ProviderInfo]:
        """Get provider information."""
        return self._providers.get(provider_type)

    def is_provider_supported(self, provider_type: ProviderType) -> bool:
        """Check if a provider is supported."""
        return provider_type in self._providers

    def is_model_supported(self, provider_type: ProviderType, model_name: str) -> bool:
        """Check if a model is known for a provider."""
        provider = self.get_provider(provider_type)
        if provider:
            return provider.is_model_supported(model_name)
        return False

    def get_api_key_env_var(self, provider_type: ProviderType) -> Optional[str]:
        """Get the environment variable name for a provider's API key."""
        provider = self.get_provider(provider_type)
        if provider:
            return provider.api_key_env_var
        return None

    def get_default_kind(self, provider_type: ProviderType) -> str:
        """Get the delivery mode used for a provider when none is configured."""
        provider = self.get_provider(provider_type)
        if provider:
            return provider.default_kind
        return "single_shot"

    def validate_model_config(
        self, provider_type: ProviderType, model_name: str
    ) -> tuple[bool, Optional[str]]:
        """Validate a provider and model combination.

        Unknown models are accepted; providers release new ones faster
        than this table is updated. Only the provider must be known.

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not self.is_provider_supported(provider_type):
            return False, f"Provider '{provider_type}' is not supported"

        return True, None


# Global registry instance
registry = ProviderRegistry()
