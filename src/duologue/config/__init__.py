"""Configuration management for Duologue.

This module handles loading, parsing, and validating configuration
from YAML files and environment variables.
"""

from .env_schema import EngineSettings, load_settings
from .loader import ConfigLoader
from .models import (
    AppConfig,
    EngineConfig,
    ParticipantDefaults,
    SessionDefaults,
    StorageBackend,
    StorageConfig,
    SummarizerConfig,
)

__all__ = [
    "AppConfig",
    "ConfigLoader",
    "EngineConfig",
    "EngineSettings",
    "ParticipantDefaults",
    "SessionDefaults",
    "StorageBackend",
    "StorageConfig",
    "SummarizerConfig",
    "load_settings",
]
