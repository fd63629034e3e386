"""Utility functions and helpers for Duologue.

This module contains shared utilities including logging setup
and custom exceptions.
"""

from .logging import setup_logging, get_logger
from .exceptions import (
    DuologueError,
    ConfigurationError,
    ProviderError,
    ValidationError,
    EmptyMessageError,
    SessionNotFoundError,
    InvalidStateTransition,
    SessionNotActiveError,
    SessionNotPausedError,
    SessionAlreadyCompletedError,
    SessionNotCompletedError,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "DuologueError",
    "ConfigurationError",
    "ProviderError",
    "ValidationError",
    "EmptyMessageError",
    "SessionNotFoundError",
    "InvalidStateTransition",
    "SessionNotActiveError",
    "SessionNotPausedError",
    "SessionAlreadyCompletedError",
    "SessionNotCompletedError",
]
