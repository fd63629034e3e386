"""Participant backends, prompts and the session summarizer."""

from .backends import (
    FullTextTurn,
    GenerationOptions,
    SingleShotChatBackend,
    StreamedTurn,
    StreamingChatBackend,
    TurnBackend,
    TurnResult,
    build_chat_messages,
    create_backend,
)
from .prompts import build_system_prompt
from .summarizer import SessionSummarizer, SessionSummary

__all__ = [
    "FullTextTurn",
    "GenerationOptions",
    "SingleShotChatBackend",
    "StreamedTurn",
    "StreamingChatBackend",
    "TurnBackend",
    "TurnResult",
    "build_chat_messages",
    "create_backend",
    "build_system_prompt",
    "SessionSummarizer",
    "SessionSummary",
]
