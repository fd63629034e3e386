"""Duologue - Two AI participants, one conversation.

An engine that runs turn-based brainstorm sessions between two AI
backends, streams every turn live to subscribers and keeps the
transcript, with pause/resume/stop controls and session summaries.
"""

__version__ = "0.1.0"
__author__ = "Duologue Team"

# Package metadata
__all__ = [
    "__version__",
    "__author__",
]
