"""Live-channel events for Duologue.

Every event carries an ``event`` discriminator and the ``sessionId``
of the session it belongs to. Payloads serialize with camelCase keys.
"""

from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from duologue.state.schema import Message, SessionStatus, Speaker


class LiveEvent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    event: str
    session_id: str

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class StreamStart(LiveEvent):
    event: Literal["streamStart"] = "streamStart"
    speaker: Speaker
    turn_id: str


class StreamChunk(LiveEvent):
    event: Literal["streamChunk"] = "streamChunk"
    speaker: Speaker
    turn_id: str
    text: str


class StreamComplete(LiveEvent):
    event: Literal["streamComplete"] = "streamComplete"
    speaker: Speaker
    turn_id: str
    message: Message


class StreamError(LiveEvent):
    event: Literal["streamError"] = "streamError"
    error: str
    speaker: Optional[Speaker] = None
    turn_id: Optional[str] = None


class StatusChanged(LiveEvent):
    event: Literal["statusChanged"] = "statusChanged"
    status: SessionStatus
    error: Optional[str] = None


StreamEvent = Union[StreamStart, StreamChunk, StreamComplete, StreamError, StatusChanged]
