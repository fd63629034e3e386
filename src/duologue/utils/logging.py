"""Logging configuration and utilities for Duologue.

This module provides centralized logging setup and helper functions
for consistent logging across the engine, the API and the CLI.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler


# Global logger cache
_loggers: dict[str, logging.Logger] = {}


def setup_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    run_id: Optional[str] = None,
    log_to_file: bool = True,
) -> Optional[Path]:
    """Set up logging configuration for the application.

    Args:
        level: Console logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_dir: Directory for log files. Defaults to 'logs'.
        run_id: Identifier used in the log file name. Defaults to a timestamp.
        log_to_file: Also write a detailed DEBUG log file.

    Returns:
        Path to the log file, or None when file logging is disabled.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Remove existing handlers
    root_logger.handlers.clear()

    console_handler = RichHandler(
        rich_tracebacks=True,
        show_time=True,
        show_path=False,
    )
    console_handler.setLevel(log_level)
    console_handler.setFormatter(logging.Formatter("%(message)s"))
    root_logger.addHandler(console_handler)

    log_file = None
    if log_to_file:
        if log_dir is None:
            log_dir = Path("logs")
        log_dir.mkdir(parents=True, exist_ok=True)

        if run_id is None:
            run_id = datetime.now().strftime("%Y-%m-%d_%H%M%S")

        log_file = log_dir / f"duologue_{run_id}.log"
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - [%(filename)s:%(lineno)d] - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    # Third-party clients are chatty at DEBUG
    for noisy in ("httpx", "httpcore", "anthropic", "openai"):
        logging.getLogger(noisy).setLevel(max(log_level, logging.WARNING))

    logger = get_logger(__name__)
    logger.debug(f"Logging initialized - console level: {level}")
    if log_file:
        logger.debug(f"Log file: {log_file.absolute()}")

    return log_file


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger with the specified name.

    Args:
        name: Logger name (typically __name__ of the module).

    Returns:
        Configured logger instance.
    """
    if name not in _loggers:
        _loggers[name] = logging.getLogger(name)
    return _loggers[name]


def log_session_transition(
    session_id: str, from_status: str, to_status: str, details: str = ""
) -> None:
    """Log a session status transition.

    Args:
        session_id: Session that changed status
        from_status: Status transitioning from
        to_status: Status transitioning to
        details: Optional additional details
    """
    logger = get_logger("duologue.sessions")
    if details:
        logger.info(
            f"Session {session_id}: {from_status} -> {to_status} ({details})"
        )
    else:
        logger.info(f"Session {session_id}: {from_status} -> {to_status}")
