"""Tests for provider factory and registry."""

from unittest.mock import Mock, patch

import pytest

from duologue.providers.config import (
    AnthropicProviderConfig,
    GoogleProviderConfig,
    GrokProviderConfig,
    ProviderType,
    create_provider_config,
)
from duologue.providers.factory import ProviderFactory, create_provider
from duologue.providers.registry import registry
from duologue.utils.exceptions import ConfigurationError


class TestProviderFactory:
    """Test ProviderFactory class."""

    def setup_method(self):
        """Set up test method."""
        ProviderFactory.clear_cache()

    @patch("duologue.providers.factory.init_chat_model")
    def test_create_anthropic_provider(self, mock_init_chat_model, mock_env_vars):
        """Test creating an Anthropic streaming provider."""
        mock_instance = Mock()
        mock_init_chat_model.return_value = mock_instance

        config = AnthropicProviderConfig(
            model="claude-3-5-sonnet-20241022",
            temperature=0.8,
            max_tokens=2048,
            streaming=True,
        )
        provider = ProviderFactory.create_provider(config, use_cache=False)

        call_args, call_kwargs = mock_init_chat_model.call_args
        assert call_args[0] == "anthropic:claude-3-5-sonnet-20241022"
        assert call_kwargs["temperature"] == 0.8
        assert call_kwargs["max_tokens"] == 2048
        assert call_kwargs["streaming"] is True
        assert "api_key" not in call_kwargs
        assert provider == mock_instance

    @patch("duologue.providers.factory.init_chat_model")
    def test_grok_uses_openai_compatible_endpoint(self, mock_init_chat_model, mock_env_vars):
        """Grok gets its own key and base URL instead of OpenAI's."""
        ProviderFactory.create_provider(GrokProviderConfig(model="grok-3"), use_cache=False)

        call_args, call_kwargs = mock_init_chat_model.call_args
        assert call_args[0] == "openai:grok-3"
        assert call_kwargs["api_key"] == "test_grok_key"
        assert call_kwargs["base_url"] == "https://api.x.ai/v1"

    @patch("duologue.providers.factory.init_chat_model")
    def test_google_disables_streaming(self, mock_init_chat_model, mock_env_vars):
        ProviderFactory.create_provider(
            GoogleProviderConfig(model="gemini-1.5-pro", top_k=20), use_cache=False
        )

        call_args, call_kwargs = mock_init_chat_model.call_args
        assert call_args[0] == "google_genai:gemini-1.5-pro"
        assert call_kwargs["disable_streaming"] is True
        assert "streaming" not in call_kwargs
        assert call_kwargs["top_k"] == 20

    @patch("duologue.providers.factory.init_chat_model")
    def test_missing_api_key(self, mock_init_chat_model, monkeypatch):
        monkeypatch.delenv("GROK_API_KEY", raising=False)

        with pytest.raises(ConfigurationError, match="GROK_API_KEY"):
            ProviderFactory.create_provider({"provider": "grok", "model": "grok-3"})
        mock_init_chat_model.assert_not_called()

    @patch("duologue.providers.factory.init_chat_model")
    def test_client_errors_become_configuration_errors(
        self, mock_init_chat_model, mock_env_vars
    ):
        mock_init_chat_model.side_effect = ImportError("langchain_anthropic missing")

        with pytest.raises(ConfigurationError) as exc_info:
            ProviderFactory.create_provider(
                {"provider": "anthropic", "model": "claude-3-5-sonnet-20241022"}
            )
        assert exc_info.value.details["provider"] == "anthropic"

    @patch("duologue.providers.factory.init_chat_model")
    def test_cache(self, mock_init_chat_model, mock_env_vars):
        mock_init_chat_model.side_effect = lambda *args, **kwargs: Mock()
        config = {"provider": "openai", "model": "gpt-4o", "temperature": 0.5}

        first = ProviderFactory.create_provider(config)
        second = ProviderFactory.create_provider(config)
        assert first is second
        assert ProviderFactory.get_cache_size() == 1

        third = ProviderFactory.create_provider(config, use_cache=False)
        assert third is not first

        ProviderFactory.clear_cache()
        assert ProviderFactory.get_cache_size() == 0

    @patch("duologue.providers.factory.init_chat_model")
    def test_create_provider_helper(self, mock_init_chat_model, mock_env_vars):
        create_provider("OpenAI", "gpt-4o-mini", temperature=0.2)
        call_args, call_kwargs = mock_init_chat_model.call_args
        assert call_args[0] == "openai:gpt-4o-mini"
        assert call_kwargs["temperature"] == 0.2


class TestProviderConfig:
    def test_unsupported_provider(self):
        with pytest.raises(ValueError, match="Unsupported provider"):
            create_provider_config(provider="mistral", model="large")

    def test_blank_model_rejected(self):
        with pytest.raises(ValueError):
            create_provider_config(provider="grok", model="   ")


class TestProviderRegistry:
    def test_default_kinds(self):
        assert registry.get_default_kind(ProviderType.ANTHROPIC) == "streaming"
        assert registry.get_default_kind(ProviderType.OPENAI) == "streaming"
        assert registry.get_default_kind(ProviderType.GOOGLE) == "streaming"
        assert registry.get_default_kind(ProviderType.GROK) == "single_shot"

    def test_api_key_env_vars(self):
        assert registry.get_api_key_env_var(ProviderType.GROK) == "GROK_API_KEY"
        assert registry.get_api_key_env_var(ProviderType.ANTHROPIC) == "ANTHROPIC_API_KEY"

    def test_unknown_models_are_accepted(self):
        assert registry.validate_model_config(ProviderType.GROK, "grok-99") == (True, None)
        assert not registry.is_model_supported(ProviderType.GROK, "grok-99")
        assert registry.is_model_supported(ProviderType.GROK, "grok-3")
