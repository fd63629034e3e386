"""Environment variable schema for Duologue.

This module defines the Pydantic settings model that validates
environment variables (and an optional ``.env`` file).
"""

from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from duologue.providers.config import ProviderType


class EngineSettings(BaseSettings):
    """Process environment of a Duologue deployment.

    API keys are read here so they can be validated up front; the
    provider factory still picks them up from the environment.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
    )

    # API Keys
    anthropic_api_key: Optional[str] = Field(
        None, alias="ANTHROPIC_API_KEY", description="Anthropic API key"
    )
    grok_api_key: Optional[str] = Field(
        None, alias="GROK_API_KEY", description="xAI Grok API key"
    )
    openai_api_key: Optional[str] = Field(
        None, alias="OPENAI_API_KEY", description="OpenAI API key"
    )
    google_api_key: Optional[str] = Field(
        None, alias="GOOGLE_API_KEY", description="Google Gemini API key"
    )

    # Application settings
    config_path: str = Field(
        "config.yml", alias="DUOLOGUE_CONFIG", description="Path to the YAML config"
    )
    log_level: str = Field(
        "INFO",
        alias="DUOLOGUE_LOG_LEVEL",
        description="Logging level",
        pattern="^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$",
    )
    log_dir: str = Field(
        "logs", alias="DUOLOGUE_LOG_DIR", description="Directory for log files"
    )
    host: str = Field("127.0.0.1", alias="DUOLOGUE_HOST")
    port: int = Field(8000, alias="DUOLOGUE_PORT", gt=0, le=65535)

    def get_api_key_for_provider(self, provider: ProviderType) -> Optional[str]:
        return self.api_keys().get(provider)

    def api_keys(self) -> Dict[ProviderType, Optional[str]]:
        return {
            ProviderType.ANTHROPIC: self.anthropic_api_key,
            ProviderType.GROK: self.grok_api_key,
            ProviderType.OPENAI: self.openai_api_key,
            ProviderType.GOOGLE: self.google_api_key,
        }

    def missing_providers(self, required: set[ProviderType]) -> list[ProviderType]:
        """Providers from ``required`` that have no API key configured."""
        return sorted(
            (p for p in required if not self.get_api_key_for_provider(p)),
            key=lambda p: p.value,
        )


def load_settings(env_file: Optional[str] = ".env") -> EngineSettings:
    """Load ``.env`` into the process environment and read the settings.

    Exporting the file matters because the LangChain clients read their
    keys from ``os.environ`` directly.
    """
    if env_file:
        load_dotenv(env_file, override=False)
    return EngineSettings()
