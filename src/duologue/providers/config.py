"""Provider configuration models for Duologue.

This module defines configuration models for LLM providers using Pydantic
for validation. These configurations are used to initialize LangChain
chat models with consistent settings.
"""

from typing import Optional, Dict, Any, Literal
from pydantic import BaseModel, Field, field_validator, ConfigDict
from enum import Enum


class ProviderType(str, Enum):
    """Supported LLM provider types."""

    ANTHROPIC = "anthropic"
    GROK = "grok"
    OPENAI = "openai"
    GOOGLE = "google"

    @classmethod
    def _missing_(cls, value: object) -> Optional["ProviderType"]:
        """Handle case-insensitive provider names."""
        if isinstance(value, str):
            value_lower = value.lower()
            for member in cls:
                if member.value == value_lower:
                    return member
        return None


class ProviderConfig(BaseModel):
    """Base configuration for all LLM providers.

    This class defines common settings that apply to all providers.
    Provider-specific configurations can extend this class.
    """

    provider: ProviderType = Field(description="The LLM provider to use")

    model: str = Field(description="The model name/ID to use")

    temperature: float = Field(
        default=0.8,
        ge=0.0,
        le=2.0,
        description="Temperature for text generation (0.0-2.0)",
    )

    max_tokens: Optional[int] = Field(
        default=None, gt=0, description="Maximum tokens to generate"
    )

    timeout: int = Field(default=120, gt=0, description="Request timeout in seconds")

    streaming: bool = Field(default=False, description="Enable streaming responses")

    api_key: Optional[str] = Field(
        default=None, description="API key (loaded from environment if not provided)"
    )

    # Provider-specific additional kwargs
    extra_kwargs: Dict[str, Any] = Field(
        default_factory=dict, description="Additional provider-specific parameters"
    )

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Validate model name is not empty."""
        if not v or not v.strip():
            raise ValueError("Model name cannot be empty")
        return v.strip()

    model_config = ConfigDict(use_enum_values=False, validate_assignment=True)


class AnthropicProviderConfig(ProviderConfig):
    """Configuration specific to Anthropic Claude models."""

    provider: Literal[ProviderType.ANTHROPIC] = Field(default=ProviderType.ANTHROPIC)

    top_p: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Top-p sampling parameter"
    )

    top_k: Optional[int] = Field(
        default=None, gt=0, description="Top-k sampling parameter"
    )


class GrokProviderConfig(ProviderConfig):
    """Configuration specific to Grok models.

    Grok is served through an OpenAI-compatible endpoint.
    """

    provider: Literal[ProviderType.GROK] = Field(default=ProviderType.GROK)

    base_url: str = Field(
        default="https://api.x.ai/v1", description="OpenAI-compatible endpoint"
    )


class OpenAIProviderConfig(ProviderConfig):
    """Configuration specific to OpenAI models."""

    provider: Literal[ProviderType.OPENAI] = Field(default=ProviderType.OPENAI)

    presence_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)

    frequency_penalty: float = Field(default=0.0, ge=-2.0, le=2.0)

    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class GoogleProviderConfig(ProviderConfig):
    """Configuration specific to Google Gemini models."""

    provider: Literal[ProviderType.GOOGLE] = Field(default=ProviderType.GOOGLE)

    top_p: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    top_k: Optional[int] = Field(default=None, gt=0)


def create_provider_config(provider: str, model: str, **kwargs) -> ProviderConfig:
    """Factory function to create appropriate provider configuration.

    Args:
        provider: Provider type (anthropic, grok, openai, google)
        model: Model name
        **kwargs: Additional configuration parameters

    Returns:
        Provider-specific configuration instance

    Raises:
        ValueError: If provider is not supported
    """
    config_map = {
        ProviderType.ANTHROPIC: AnthropicProviderConfig,
        ProviderType.GROK: GrokProviderConfig,
        ProviderType.OPENAI: OpenAIProviderConfig,
        ProviderType.GOOGLE: GoogleProviderConfig,
    }

    provider_value = provider.value if isinstance(provider, ProviderType) else provider
    provider_lower = str(provider_value).lower()
    if provider_lower not in [p.value for p in ProviderType]:
        raise ValueError(
            f"Unsupported provider: {provider}. "
            f"Supported providers: {[p.value for p in ProviderType]}"
        )

    config_class = config_map[ProviderType(provider_lower)]
    return config_class(model=model, **kwargs)
