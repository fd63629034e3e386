"""Session document schema and persistence."""

from .schema import (
    Attachment,
    BrainstormSession,
    Message,
    ModerationLevel,
    Participant,
    ParticipantKind,
    Participants,
    SessionFormat,
    SessionSettings,
    SessionStatus,
    Speaker,
)
from .store import InMemorySessionStore, JsonFileSessionStore, SessionStore

__all__ = [
    "Attachment",
    "BrainstormSession",
    "Message",
    "ModerationLevel",
    "Participant",
    "ParticipantKind",
    "Participants",
    "SessionFormat",
    "SessionSettings",
    "SessionStatus",
    "Speaker",
    "InMemorySessionStore",
    "JsonFileSessionStore",
    "SessionStore",
]
