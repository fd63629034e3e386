"""Pytest configuration and shared fixtures for Duologue tests.

This module provides common test fixtures and configuration
that can be used across all test modules.
"""

from pathlib import Path
from typing import Any, Dict, List

import pytest
from _pytest.config import Config

from duologue.config.models import EngineConfig
from duologue.realtime.broadcaster import LiveChannelBroadcaster
from duologue.state.schema import (
    BrainstormSession,
    Participant,
    ParticipantKind,
    Participants,
    SessionSettings,
)
from duologue.state.store import InMemorySessionStore


class EventRecorder:
    """Live-channel subscriber that keeps every payload it receives."""

    def __init__(self):
        self.events: List[Dict[str, Any]] = []

    async def __call__(self, payload: Dict[str, Any]) -> None:
        self.events.append(payload)

    def of_type(self, event: str) -> List[Dict[str, Any]]:
        return [e for e in self.events if e["event"] == event]

    def names(self) -> List[str]:
        return [e["event"] for e in self.events]


@pytest.fixture(autouse=True)
def isolate_tests(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Isolate tests by changing to a temporary directory."""
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def mock_env_vars(monkeypatch: pytest.MonkeyPatch) -> None:
    """Mock environment variables for testing."""
    monkeypatch.setenv("ANTHROPIC_API_KEY", "test_anthropic_key")
    monkeypatch.setenv("GROK_API_KEY", "test_grok_key")
    monkeypatch.setenv("OPENAI_API_KEY", "test_openai_key")
    monkeypatch.setenv("GOOGLE_API_KEY", "test_google_key")


@pytest.fixture
def engine_config() -> EngineConfig:
    """Engine settings without pacing delays."""
    return EngineConfig(turn_delay_seconds=0, chunk_delay_seconds=0)


@pytest.fixture
def store() -> InMemorySessionStore:
    return InMemorySessionStore()


@pytest.fixture
def broadcaster() -> LiveChannelBroadcaster:
    return LiveChannelBroadcaster(send_timeout=1.0)


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def participants() -> Participants:
    return Participants(
        A=Participant(
            provider="anthropic",
            model_id="claude-3-5-sonnet-20241022",
            kind=ParticipantKind.STREAMING,
            display_name="Claude",
        ),
        B=Participant(
            provider="grok",
            model_id="grok-3",
            kind=ParticipantKind.SINGLE_SHOT,
            display_name="Grok",
        ),
    )


@pytest.fixture
def make_session(participants: Participants):
    """Factory for sessions in a chosen state."""

    def _make(**overrides: Any) -> BrainstormSession:
        fields: Dict[str, Any] = {
            "user_id": "user-1",
            "topic": "Remote work",
            "description": "Pros and cons",
            "participants": participants,
            "settings": SessionSettings(max_turns=4),
        }
        fields.update(overrides)
        return BrainstormSession(**fields)

    return _make


def pytest_configure(config: Config) -> None:
    """Configure pytest with custom markers."""
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")
