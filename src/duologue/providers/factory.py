"""Provider factory for Duologue.

This module provides a factory for creating LangChain chat model instances
based on provider configuration. It handles the mapping between Duologue's
provider types and LangChain's provider identifiers.
"""

import os
from typing import Dict, Any, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain.chat_models import init_chat_model

from duologue.providers.config import (
    ProviderConfig,
    ProviderType,
    create_provider_config,
)
from duologue.providers.registry import registry
from duologue.utils.logging import get_logger
from duologue.utils.exceptions import ConfigurationError


logger = get_logger(__name__)


class ProviderFactory:
    """Factory for creating LangChain chat model instances."""

    # Cache for provider instances
    _instance_cache: Dict[str, BaseChatModel] = {}

    # Map Duologue provider types to LangChain provider strings
    _provider_mapping = {
        ProviderType.ANTHROPIC: "anthropic",
        ProviderType.GROK: "openai",  # Grok uses OpenAI-compatible API
        ProviderType.OPENAI: "openai",
        ProviderType.GOOGLE: "google_genai",
    }

    @classmethod
    def create_provider(
        cls, config: Union[ProviderConfig, Dict[str, Any]], use_cache: bool = True
    ) -> BaseChatModel:
        """Create a LangChain chat model instance using init_chat_model.

        Args:
            config: Provider configuration (ProviderConfig or dict)
            use_cache: Whether to use cached instances

        Returns:
            LangChain chat model instance

        Raises:
            ConfigurationError: If provider is not supported or configuration is invalid
        """
        if isinstance(config, dict):
            config = create_provider_config(**config)

        is_valid, error_msg = registry.validate_model_config(
            config.provider, config.model
        )
        if not is_valid:
            raise ConfigurationError(error_msg)

        if not registry.is_model_supported(config.provider, config.model):
            logger.warning(
                f"Model '{config.model}' is not in the registry for "
                f"{config.provider.value}; passing it through unchanged"
            )

        cache_key = cls._generate_cache_key(config)

        if use_cache and cache_key in cls._instance_cache:
            logger.debug(f"Using cached provider instance for {cache_key}")
            return cls._instance_cache[cache_key]

        try:
            provider_instance = cls._create_provider_with_init_chat_model(config)
        except ConfigurationError:
            raise
        except (ImportError, ValueError) as e:
            raise ConfigurationError(
                f"Could not create chat model {config.provider.value}:{config.model}: {e}",
                details={"provider": config.provider.value, "model": config.model},
            ) from e

        if use_cache:
            cls._instance_cache[cache_key] = provider_instance
            logger.debug(f"Cached provider instance for {cache_key}")

        return provider_instance

    @classmethod
    def _create_provider_with_init_chat_model(
        cls, config: ProviderConfig
    ) -> BaseChatModel:
        """Create a provider instance using LangChain's init_chat_model pattern.

        Args:
            config: Provider configuration

        Returns:
            LangChain chat model instance
        """
        provider_str = cls._provider_mapping.get(config.provider)
        if not provider_str:
            raise ConfigurationError(f"Unsupported provider: {config.provider}")

        model_identifier = f"{provider_str}:{config.model}"

        api_key = cls._resolve_api_key(config)

        init_kwargs: Dict[str, Any] = {
            "temperature": config.temperature,
            "timeout": float(config.timeout),
        }

        # Google Gemini uses 'disable_streaming' instead of 'streaming'
        if config.provider == ProviderType.GOOGLE:
            if not config.streaming:
                init_kwargs["disable_streaming"] = True
        else:
            init_kwargs["streaming"] = config.streaming

        if config.max_tokens:
            init_kwargs["max_tokens"] = config.max_tokens

        if config.provider == ProviderType.GROK:
            # OpenAI client would otherwise read OPENAI_API_KEY
            init_kwargs["api_key"] = api_key

        cls._add_provider_specific_params(config, init_kwargs)

        init_kwargs.update(config.extra_kwargs)

        logger.info(f"Creating provider with init_chat_model: {model_identifier}")

        return init_chat_model(model_identifier, **init_kwargs)

    @classmethod
    def _add_provider_specific_params(
        cls, config: ProviderConfig, init_kwargs: Dict[str, Any]
    ) -> None:
        """Add provider-specific parameters to init_kwargs.

        Args:
            config: Provider configuration
            init_kwargs: Dictionary to add parameters to
        """
        if config.provider in (ProviderType.ANTHROPIC, ProviderType.GOOGLE):
            if getattr(config, "top_p", None) is not None:
                init_kwargs["top_p"] = config.top_p
            if getattr(config, "top_k", None) is not None:
                init_kwargs["top_k"] = config.top_k

        elif config.provider == ProviderType.OPENAI:
            init_kwargs["presence_penalty"] = config.presence_penalty
            init_kwargs["frequency_penalty"] = config.frequency_penalty
            if config.top_p is not None:
                init_kwargs["top_p"] = config.top_p

        elif config.provider == ProviderType.GROK:
            init_kwargs["base_url"] = config.base_url

        logger.debug(
            f"Added provider-specific parameters for {config.provider.value}: "
            f"{sorted(k for k in init_kwargs if k != 'api_key')}"
        )

    @classmethod
    def _resolve_api_key(cls, config: ProviderConfig) -> str:
        """Find the API key for a provider, exporting it for the client library.

        Args:
            config: Provider configuration

        Returns:
            The API key

        Raises:
            ConfigurationError: If no key is configured or present in the environment
        """
        env_var = registry.get_api_key_env_var(config.provider)
        if config.api_key:
            if env_var and config.provider != ProviderType.GROK:
                os.environ[env_var] = config.api_key
            return config.api_key

        api_key = os.getenv(env_var) if env_var else None
        if not api_key:
            raise ConfigurationError(
                f"API key not found. Please set {env_var} environment variable.",
                details={"provider": config.provider.value},
            )
        return api_key

    @classmethod
    def _generate_cache_key(cls, config: ProviderConfig) -> str:
        """Generate a cache key for a provider configuration.

        Args:
            config: Provider configuration

        Returns:
            Cache key string
        """
        key_parts = [
            config.provider.value,
            config.model,
            str(config.temperature),
            str(config.streaming),
        ]

        if config.max_tokens:
            key_parts.append(str(config.max_tokens))

        return "|".join(key_parts)

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the provider instance cache."""
        cls._instance_cache.clear()
        logger.info("Cleared provider instance cache")

    @classmethod
    def get_cache_size(cls) -> int:
        """Get the number of cached provider instances."""
        return len(cls._instance_cache)


def create_provider(
    provider: Union[str, ProviderType], model: str, **kwargs
) -> BaseChatModel:
    """Convenience function to create a provider instance.

    Args:
        provider: Provider type (string or enum)
        model: Model name
        **kwargs: Additional configuration parameters

    Returns:
        LangChain chat model instance
    """
    config = create_provider_config(provider=provider, model=model, **kwargs)
    return ProviderFactory.create_provider(config)
