"""Configuration loader for Duologue.

This module handles loading and parsing YAML configuration files
with proper error handling and validation.
"""

from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import ValidationError

from duologue.config.models import AppConfig
from duologue.utils.exceptions import ConfigurationError
from duologue.utils.logging import get_logger


logger = get_logger(__name__)


class ConfigLoader:
    """Loads and validates configuration from YAML files."""

    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        required: bool = False,
    ):
        """Initialize the configuration loader.

        Args:
            config_path: Path to the configuration file.
                        Defaults to 'config.yml' in current directory.
            required: Fail when the file is missing instead of falling
                      back to built-in defaults.
        """
        if config_path is None:
            config_path = Path("config.yml")

        self.config_path = Path(config_path)
        self.required = required
        self._config: Optional[AppConfig] = None

    def load(self) -> AppConfig:
        """Load and validate the configuration file.

        Returns:
            Validated configuration object.

        Raises:
            ConfigurationError: If the configuration is invalid or cannot be loaded.
        """
        if self._config is not None:
            return self._config

        if not self.config_path.exists():
            if self.required:
                raise ConfigurationError(
                    f"Configuration file not found: {self.config_path}",
                    details={"path": str(self.config_path.absolute())},
                )
            logger.info(
                f"No configuration file at {self.config_path}, using built-in defaults"
            )
            self._config = AppConfig()
            return self._config

        try:
            logger.info(f"Loading configuration from: {self.config_path}")
            with open(self.config_path, "r", encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML syntax in configuration file: {e}",
                details={
                    "path": str(self.config_path),
                    "error": str(e),
                },
            ) from e
        except OSError as e:
            raise ConfigurationError(
                f"Failed to read configuration file: {e}",
                details={"path": str(self.config_path)},
            ) from e

        if raw_config is None:
            raw_config = {}
        if not isinstance(raw_config, dict):
            raise ConfigurationError(
                "Configuration file must contain a mapping",
                details={"path": str(self.config_path)},
            )

        try:
            self._config = AppConfig.model_validate(raw_config)
        except ValidationError as e:
            error_messages = []
            for error in e.errors():
                loc = " -> ".join(str(x) for x in error["loc"])
                error_messages.append(f"{loc}: {error['msg']}")

            raise ConfigurationError(
                "Configuration validation failed:\n" + "\n".join(error_messages),
                details={
                    "path": str(self.config_path),
                    "errors": error_messages,
                },
            ) from e

        participants = self._config.participants
        logger.info(
            f"Configuration loaded successfully: "
            f"A={participants.a.provider.value}:{participants.a.model}, "
            f"B={participants.b.provider.value}:{participants.b.model}, "
            f"storage={self._config.storage.backend.value}"
        )
        return self._config

    def reload(self) -> AppConfig:
        """Reload the configuration file.

        Returns:
            Validated configuration object.
        """
        self._config = None
        return self.load()

    @property
    def config(self) -> AppConfig:
        """Get the loaded configuration, loading it if necessary."""
        if self._config is None:
            self.load()
        return self._config
