"""Configuration schema definitions for Duologue.

This module defines Pydantic models for validating and parsing
the YAML configuration file. Keys may be written in camelCase
(``turnDelaySeconds``) or snake_case (``turn_delay_seconds``).
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from duologue.providers.config import ProviderType
from duologue.state.schema import (
    ModerationLevel,
    Participant,
    ParticipantKind,
    SessionFormat,
    SessionSettings,
)


class ConfigModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="forbid",
    )


class ParticipantDefaults(ConfigModel):
    """Default backend for one participant slot.

    Used for every session whose start request does not name its own
    participant.
    """

    provider: ProviderType = Field(..., description="LLM provider for the slot")
    model: str = Field(
        ..., min_length=1, description="Model name/ID (e.g., claude-3-5-sonnet-20241022)"
    )
    kind: Optional[ParticipantKind] = Field(
        default=None,
        description="Delivery mode; defaults to the provider's native mode",
    )
    display_name: str = ""
    system_prompt: str = ""

    def to_participant(self, kind: ParticipantKind) -> Participant:
        return Participant(
            provider=self.provider,
            model_id=self.model,
            system_prompt=self.system_prompt,
            kind=self.kind or kind,
            display_name=self.display_name,
        )


class SummarizerConfig(ConfigModel):
    """Configuration for the session summarizer."""

    provider: ProviderType = ProviderType.ANTHROPIC
    model: str = Field(default="claude-3-5-haiku-20241022", min_length=1)
    temperature: float = Field(
        default=0.3,  # Lower temperature for consistent summaries
        ge=0.0,
        le=1.0,
    )
    max_tokens: int = Field(default=1024, gt=0)


class SessionDefaults(ConfigModel):
    """Settings applied when a start request omits them."""

    max_turns: int = Field(default=20, ge=1, le=50)
    turn_duration: int = Field(default=60, ge=30, le=120)
    moderation_level: ModerationLevel = ModerationLevel.MEDIUM
    format: SessionFormat = SessionFormat.BRAINSTORM

    def to_settings(self) -> SessionSettings:
        return SessionSettings(
            max_turns=self.max_turns,
            turn_duration=self.turn_duration,
            moderation_level=self.moderation_level,
            format=self.format,
        )


class EngineConfig(ConfigModel):
    """Pacing and generation settings of the turn scheduler."""

    turn_delay_seconds: float = Field(
        default=1.0, ge=0.0, description="Pause between consecutive AI turns"
    )
    chunk_word_count: int = Field(
        default=5, ge=1, description="Words per synthetic chunk for single-shot backends"
    )
    chunk_delay_seconds: float = Field(
        default=0.05, ge=0.0, description="Delay between synthetic chunks"
    )
    broadcast_timeout_seconds: float = Field(
        default=5.0, gt=0.0, description="Per-subscriber delivery timeout"
    )
    temperature: float = Field(default=0.8, ge=0.0, le=2.0)
    max_tokens: int = Field(default=2048, gt=0)


class StorageBackend(str, Enum):
    MEMORY = "memory"
    FILE = "file"


class StorageConfig(ConfigModel):
    backend: StorageBackend = StorageBackend.MEMORY
    path: str = Field(default="sessions", min_length=1)


class ParticipantsDefaults(ConfigModel):
    a: ParticipantDefaults = Field(
        default_factory=lambda: ParticipantDefaults(
            provider=ProviderType.ANTHROPIC,
            model="claude-3-5-sonnet-20241022",
            kind=ParticipantKind.STREAMING,
            display_name="Claude",
        ),
        alias="A",
    )
    b: ParticipantDefaults = Field(
        default_factory=lambda: ParticipantDefaults(
            provider=ProviderType.GROK,
            model="grok-3",
            kind=ParticipantKind.SINGLE_SHOT,
            display_name="Grok",
        ),
        alias="B",
    )


class AppConfig(ConfigModel):
    """Root configuration model.

    Every section has built-in defaults, so an empty file (or none at
    all) yields a working configuration.
    """

    participants: ParticipantsDefaults = Field(default_factory=ParticipantsDefaults)
    summarizer: SummarizerConfig = Field(default_factory=SummarizerConfig)
    session: SessionDefaults = Field(default_factory=SessionDefaults)
    engine: EngineConfig = Field(default_factory=EngineConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)

    @field_validator("participants")
    @classmethod
    def validate_distinct_slots(cls, v: ParticipantsDefaults) -> ParticipantsDefaults:
        """Both slots may use the same provider, but not the same display name."""
        if v.a.display_name and v.a.display_name == v.b.display_name:
            raise ValueError(
                f"Participants A and B share the display name '{v.a.display_name}'"
            )
        return v
