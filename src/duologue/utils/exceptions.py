"""Custom exceptions for Duologue.

This module defines application-specific exceptions. Every exception
carries a stable error code and the HTTP status the API reports it with,
so command handlers can surface them to callers unchanged.
"""

from typing import Optional, Any


class DuologueError(Exception):
    """Base exception for all Duologue errors.

    All custom exceptions in the application should inherit from this class
    to allow for easy catching of application-specific errors.
    """

    code: str = "INTERNAL_ERROR"
    http_status: int = 500

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        """Initialize the exception.

        Args:
            message: Error message.
            details: Optional dictionary with additional error details.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(DuologueError):
    """Raised when there's an error in configuration.

    This includes missing configuration files, invalid YAML syntax,
    missing required fields, or invalid field values.
    """

    code = "CONFIGURATION_ERROR"
    http_status = 500


class ProviderError(DuologueError):
    """Raised when an AI backend fails to produce a turn.

    This includes API errors, authentication failures, rate limiting,
    timeouts and empty responses.
    """

    code = "PROVIDER_ERROR"
    http_status = 502

    def __init__(
        self,
        message: str,
        provider: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize provider error.

        Args:
            message: Error message.
            provider: Name of the provider that caused the error.
            details: Additional error details.
        """
        super().__init__(message, details)
        self.provider = provider


class ValidationError(DuologueError):
    """Raised when command input fails validation."""

    code = "VALIDATION_ERROR"
    http_status = 400

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        """Initialize validation error.

        Args:
            message: Error message.
            field: Field that failed validation.
            value: Value that failed validation.
            details: Additional error details.
        """
        super().__init__(message, details)
        self.field = field
        self.value = value


class EmptyMessageError(ValidationError):
    """Raised when a user message has neither content nor attachments."""

    code = "EMPTY_MESSAGE"


class SessionNotFoundError(DuologueError):
    """Raised when a session id does not resolve to a stored session."""

    code = "SESSION_NOT_FOUND"
    http_status = 404

    def __init__(self, session_id: str):
        super().__init__(
            f"Brainstorm session not found: {session_id}",
            details={"session_id": session_id},
        )
        self.session_id = session_id


class InvalidStateTransition(DuologueError):
    """Raised when a command conflicts with the session's current status.

    Subclasses name the specific conflict; the session is left untouched.
    """

    code = "INVALID_STATE_TRANSITION"
    http_status = 409

    def __init__(
        self,
        message: str,
        session_id: Optional[str] = None,
        current_status: Optional[str] = None,
        action: Optional[str] = None,
    ):
        """Initialize the state conflict.

        Args:
            message: Error message.
            session_id: Session the command targeted.
            current_status: Status the session was in.
            action: Command that was rejected.
        """
        details = {}
        if session_id is not None:
            details["session_id"] = session_id
        if current_status is not None:
            details["status"] = current_status
        if action is not None:
            details["action"] = action
        super().__init__(message, details)
        self.session_id = session_id
        self.current_status = current_status
        self.action = action


class SessionNotActiveError(InvalidStateTransition):
    """Raised when a command requires an active session."""

    code = "SESSION_NOT_ACTIVE"


class SessionNotPausedError(InvalidStateTransition):
    """Raised when resuming a session that is not paused."""

    code = "SESSION_NOT_PAUSED"


class SessionAlreadyCompletedError(InvalidStateTransition):
    """Raised when stopping a session that already reached a terminal state."""

    code = "SESSION_ALREADY_COMPLETED"


class SessionNotCompletedError(InvalidStateTransition):
    """Raised when reading derived data of a session that is still running."""

    code = "SESSION_NOT_COMPLETED"
