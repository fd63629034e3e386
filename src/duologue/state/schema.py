"""Session document schema for Duologue.

This module defines the brainstorm session aggregate and its parts as
Pydantic models. The session document is the only durable state of the
engine: it holds the append-only transcript, the turn counters and the
status that governs whether the conversation may continue.

Documents serialize with camelCase keys (``chatId``, ``currentTurn``...)
while Python code uses snake_case attributes.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from duologue.providers.config import ProviderType
from duologue.utils.exceptions import (
    InvalidStateTransition,
    SessionAlreadyCompletedError,
    SessionNotActiveError,
    SessionNotPausedError,
)


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_id() -> str:
    """Generate an identifier for sessions, messages and turns."""
    return uuid.uuid4().hex


class SessionStatus(str, Enum):
    """Lifecycle status of a session."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (SessionStatus.COMPLETED, SessionStatus.ERROR)


class Speaker(str, Enum):
    """Author of a transcript message."""

    USER = "user"
    A = "A"
    B = "B"

    @property
    def is_ai(self) -> bool:
        return self is not Speaker.USER

    def opponent(self) -> "Speaker":
        """The other AI participant."""
        if self is Speaker.A:
            return Speaker.B
        if self is Speaker.B:
            return Speaker.A
        raise ValueError("The user has no opponent")


class ParticipantKind(str, Enum):
    """How a participant's backend delivers its responses."""

    STREAMING = "streaming"
    SINGLE_SHOT = "single_shot"


class SessionFormat(str, Enum):
    """Conversation format, which shapes the participants' prompts."""

    BRAINSTORM = "brainstorm"
    DEBATE = "debate"
    ANALYSIS = "analysis"
    CREATIVE = "creative"


class ModerationLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class DocumentModel(BaseModel):
    """Base for all models stored in the session document."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class Attachment(DocumentModel):
    """Reference to a file attached to a user message.

    File storage is external; only the reference is kept in the transcript.
    """

    name: str = Field(..., min_length=1)
    mime_type: Optional[str] = None
    url: Optional[str] = None
    size: Optional[int] = Field(default=None, ge=0)


class Message(DocumentModel):
    """One entry of the append-only transcript."""

    id: str = Field(default_factory=new_id)
    speaker: Speaker
    content: str = ""
    attachments: List[Attachment] = Field(default_factory=list)
    token_count: int = Field(default=0, ge=0)
    timestamp: datetime = Field(default_factory=utcnow)


class Participant(DocumentModel):
    """One of the two AI seats of a session."""

    provider: ProviderType
    model_id: str = Field(..., min_length=1)
    system_prompt: str = ""
    kind: ParticipantKind = ParticipantKind.SINGLE_SHOT
    display_name: str = ""


class Participants(DocumentModel):
    """Exactly two named participant slots."""

    a: Participant = Field(..., alias="A")
    b: Participant = Field(..., alias="B")

    def for_speaker(self, speaker: Speaker) -> Participant:
        if speaker is Speaker.A:
            return self.a
        if speaker is Speaker.B:
            return self.b
        raise ValueError("The user is not a participant slot")


class SessionSettings(DocumentModel):
    """Settings fixed at session creation."""

    max_turns: int = Field(default=20, ge=1, le=50)
    turn_duration: int = Field(
        default=60, ge=30, le=120, description="Advisory seconds per turn"
    )
    moderation_level: ModerationLevel = ModerationLevel.MEDIUM
    format: SessionFormat = SessionFormat.BRAINSTORM


class BrainstormSession(DocumentModel):
    """Root aggregate of a two-participant conversation."""

    id: str = Field(default_factory=new_id)
    chat_id: str = Field(default_factory=new_id)
    user_id: str
    topic: str = Field(..., min_length=1)
    description: str = ""
    participants: Participants
    messages: List[Message] = Field(default_factory=list)
    status: SessionStatus = SessionStatus.ACTIVE
    settings: SessionSettings = Field(default_factory=SessionSettings)
    current_turn: int = Field(default=0, ge=0)
    total_tokens: int = Field(default=0, ge=0)
    summary: Optional[str] = None
    insights: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    duration: Optional[int] = None
    error: Optional[str] = None

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def turns_remaining(self) -> int:
        return max(0, self.settings.max_turns - self.current_turn)

    def last_ai_speaker(self) -> Optional[Speaker]:
        for message in reversed(self.messages):
            if message.speaker.is_ai:
                return message.speaker
        return None

    def next_speaker(self) -> Speaker:
        """Opposite of the last AI speaker; A opens the conversation."""
        last = self.last_ai_speaker()
        return last.opponent() if last else Speaker.A

    def count_by_speaker(self) -> Dict[str, int]:
        counts = {speaker.value: 0 for speaker in Speaker}
        for message in self.messages:
            counts[message.speaker.value] += 1
        return counts

    def stats(self) -> Dict[str, Any]:
        counts = self.count_by_speaker()
        return {
            "duration": self.duration,
            "totalMessages": len(self.messages),
            "totalTokens": self.total_tokens,
            "currentTurn": self.current_turn,
            "maxTurns": self.settings.max_turns,
            "userMessages": counts[Speaker.USER.value],
            "aMessages": counts[Speaker.A.value],
            "bMessages": counts[Speaker.B.value],
        }

    def to_document(self) -> Dict[str, Any]:
        """JSON-compatible document with camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    # ------------------------------------------------------------------
    # Transcript
    # ------------------------------------------------------------------

    def add_user_message(
        self, content: str, attachments: Optional[List[Attachment]] = None
    ) -> Message:
        """Append a user message; user turns do not count toward max_turns."""
        if self.status is not SessionStatus.ACTIVE:
            raise SessionNotActiveError(
                "Brainstorm session is not active",
                session_id=self.id,
                current_status=self.status.value,
                action="message",
            )
        message = Message(
            speaker=Speaker.USER,
            content=content,
            attachments=list(attachments or []),
        )
        self.messages.append(message)
        return message

    def add_ai_message(
        self,
        speaker: Speaker,
        content: str,
        token_count: int = 0,
        message_id: Optional[str] = None,
    ) -> Message:
        """Append an AI turn, advance the turn counter and complete at the limit."""
        if not speaker.is_ai:
            raise ValueError("AI turns must be authored by A or B")
        if self.is_terminal:
            raise InvalidStateTransition(
                "Cannot append a turn to a finished session",
                session_id=self.id,
                current_status=self.status.value,
                action="append_turn",
            )
        if self.current_turn >= self.settings.max_turns:
            raise InvalidStateTransition(
                "Turn limit reached",
                session_id=self.id,
                current_status=self.status.value,
                action="append_turn",
            )
        if self.last_ai_speaker() is speaker:
            raise InvalidStateTransition(
                f"Participant {speaker.value} cannot take two turns in a row",
                session_id=self.id,
                current_status=self.status.value,
                action="append_turn",
            )

        message = Message(speaker=speaker, content=content, token_count=token_count)
        if message_id:
            message.id = message_id
        self.messages.append(message)
        self.current_turn += 1
        self.total_tokens += token_count

        if self.current_turn >= self.settings.max_turns:
            self.complete()
        return message

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def pause(self) -> None:
        if self.status is not SessionStatus.ACTIVE:
            raise SessionNotActiveError(
                "Session is not active",
                session_id=self.id,
                current_status=self.status.value,
                action="pause",
            )
        self.status = SessionStatus.PAUSED

    def resume(self) -> None:
        if self.status is not SessionStatus.PAUSED:
            raise SessionNotPausedError(
                "Session is not paused",
                session_id=self.id,
                current_status=self.status.value,
                action="resume",
            )
        self.status = SessionStatus.ACTIVE

    def stop(self) -> None:
        if self.is_terminal:
            raise SessionAlreadyCompletedError(
                "Session is already completed",
                session_id=self.id,
                current_status=self.status.value,
                action="stop",
            )
        self.complete()

    def complete(self) -> None:
        if self.is_terminal:
            return
        self.status = SessionStatus.COMPLETED
        self.completed_at = utcnow()
        self.duration = int((self.completed_at - self.created_at).total_seconds())

    def fail(self, reason: str) -> None:
        if self.is_terminal:
            return
        self.status = SessionStatus.ERROR
        self.error = reason
        self.completed_at = utcnow()
        self.duration = int((self.completed_at - self.created_at).total_seconds())
