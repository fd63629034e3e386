"""Tests for configuration loading and validation."""

import os
from pathlib import Path

import pytest

from duologue.config.env_schema import EngineSettings, load_settings
from duologue.config.loader import ConfigLoader
from duologue.config.models import AppConfig, StorageBackend
from duologue.providers.config import ProviderType
from duologue.state.schema import ParticipantKind, SessionFormat
from duologue.utils.exceptions import ConfigurationError


class TestAppConfig:
    """Test configuration schema defaults."""

    def test_defaults(self):
        config = AppConfig()
        assert config.participants.a.provider is ProviderType.ANTHROPIC
        assert config.participants.a.kind is ParticipantKind.STREAMING
        assert config.participants.b.provider is ProviderType.GROK
        assert config.participants.b.kind is ParticipantKind.SINGLE_SHOT
        assert config.engine.turn_delay_seconds == 1.0
        assert config.engine.chunk_word_count == 5
        assert config.engine.chunk_delay_seconds == 0.05
        assert config.engine.broadcast_timeout_seconds == 5.0
        assert config.engine.temperature == 0.8
        assert config.engine.max_tokens == 2048
        assert config.storage.backend is StorageBackend.MEMORY

    def test_same_display_name_rejected(self):
        with pytest.raises(ValueError):
            AppConfig.model_validate(
                {
                    "participants": {
                        "A": {"provider": "openai", "model": "gpt-4o", "displayName": "Bot"},
                        "B": {"provider": "grok", "model": "grok-3", "displayName": "Bot"},
                    }
                }
            )


class TestConfigLoader:
    """Test loading YAML configuration files."""

    def test_missing_file_uses_defaults(self, tmp_path: Path):
        config = ConfigLoader(tmp_path / "absent.yml").load()
        assert config == AppConfig()

    def test_missing_required_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigLoader(tmp_path / "absent.yml", required=True).load()

    def test_load_camel_case_file(self, tmp_path: Path):
        config_file = tmp_path / "config.yml"
        config_file.write_text(
            """
participants:
  A:
    provider: OpenAI
    model: gpt-4o
  B:
    provider: grok
    model: grok-3
    kind: single_shot
session:
  maxTurns: 6
  format: debate
engine:
  turnDelaySeconds: 0.5
  chunkWordCount: 3
storage:
  backend: file
  path: data/sessions
"""
        )
        config = ConfigLoader(config_file).load()
        assert config.participants.a.provider is ProviderType.OPENAI
        assert config.participants.a.kind is None
        assert config.session.max_turns == 6
        assert config.session.format is SessionFormat.DEBATE
        assert config.engine.turn_delay_seconds == 0.5
        assert config.engine.chunk_word_count == 3
        assert config.storage.backend is StorageBackend.FILE
        assert config.storage.path == "data/sessions"

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("")
        assert ConfigLoader(config_file).load() == AppConfig()

    def test_invalid_yaml(self, tmp_path: Path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("engine: [unclosed")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            ConfigLoader(config_file).load()

    def test_invalid_values(self, tmp_path: Path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("session:\n  maxTurns: 99\n")
        with pytest.raises(ConfigurationError) as exc_info:
            ConfigLoader(config_file).load()
        assert "session -> maxTurns" in exc_info.value.message

    def test_unknown_keys_rejected(self, tmp_path: Path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("engine:\n  turboMode: true\n")
        with pytest.raises(ConfigurationError):
            ConfigLoader(config_file).load()

    def test_example_file_matches_defaults(self):
        example = Path(__file__).resolve().parents[2] / "config" / "config.example.yml"
        assert ConfigLoader(example, required=True).load() == AppConfig()

    def test_reload(self, tmp_path: Path):
        config_file = tmp_path / "config.yml"
        config_file.write_text("session:\n  maxTurns: 2\n")
        loader = ConfigLoader(config_file)
        assert loader.config.session.max_turns == 2
        config_file.write_text("session:\n  maxTurns: 3\n")
        assert loader.load().session.max_turns == 2
        assert loader.reload().session.max_turns == 3


class TestEngineSettings:
    """Test environment settings."""

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("GROK_API_KEY", "xai-test")
        monkeypatch.setenv("DUOLOGUE_PORT", "9001")
        monkeypatch.setenv("DUOLOGUE_LOG_LEVEL", "DEBUG")
        settings = EngineSettings()
        assert settings.get_api_key_for_provider(ProviderType.GROK) == "xai-test"
        assert settings.port == 9001
        assert settings.log_level == "DEBUG"

    def test_missing_providers(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setenv("GROK_API_KEY", "xai-test")
        settings = EngineSettings()
        missing = settings.missing_providers({ProviderType.ANTHROPIC, ProviderType.GROK})
        assert missing == [ProviderType.ANTHROPIC]

    def test_load_settings_exports_env_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        env_file = tmp_path / ".env"
        env_file.write_text("OPENAI_API_KEY=sk-from-file\n")
        try:
            settings = load_settings(str(env_file))
            assert settings.openai_api_key == "sk-from-file"
            assert os.environ["OPENAI_API_KEY"] == "sk-from-file"
        finally:
            os.environ.pop("OPENAI_API_KEY", None)
