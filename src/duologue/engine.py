"""Application wiring for Duologue.

Builds a ready-to-use :class:`TurnScheduler` from an :class:`AppConfig`:
the session store, the live channel and the summarizer model.
"""

from pathlib import Path
from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel

from duologue.agents.summarizer import SessionSummarizer
from duologue.config.models import AppConfig, StorageBackend
from duologue.execution.turn_scheduler import BackendResolver, TurnScheduler
from duologue.providers.factory import ProviderFactory
from duologue.realtime.broadcaster import LiveChannelBroadcaster
from duologue.state.store import InMemorySessionStore, JsonFileSessionStore, SessionStore
from duologue.utils.exceptions import ConfigurationError
from duologue.utils.logging import get_logger

logger = get_logger(__name__)


def create_store(config: AppConfig) -> SessionStore:
    if config.storage.backend is StorageBackend.FILE:
        logger.info(f"Storing sessions as JSON files in {Path(config.storage.path).absolute()}")
        return JsonFileSessionStore(config.storage.path)
    return InMemorySessionStore()


def create_summarizer_llm(config: AppConfig) -> Optional[BaseChatModel]:
    """Chat model for summaries, or None to use the heuristic summary."""
    summarizer = config.summarizer
    try:
        return ProviderFactory.create_provider(
            {
                "provider": summarizer.provider,
                "model": summarizer.model,
                "temperature": summarizer.temperature,
                "max_tokens": summarizer.max_tokens,
            }
        )
    except ConfigurationError as e:
        logger.warning(f"Summarizer model unavailable, summaries will be heuristic: {e}")
        return None


def build_scheduler(
    config: AppConfig,
    store: Optional[SessionStore] = None,
    broadcaster: Optional[LiveChannelBroadcaster] = None,
    backend_resolver: Optional[BackendResolver] = None,
    summarizer: Optional[SessionSummarizer] = None,
) -> TurnScheduler:
    """Assemble a scheduler; any part can be supplied to override the default."""
    broadcaster = broadcaster or LiveChannelBroadcaster(
        send_timeout=config.engine.broadcast_timeout_seconds
    )
    return TurnScheduler(
        store=store or create_store(config),
        engine=config.engine,
        broadcaster=broadcaster,
        backend_resolver=backend_resolver,
        summarizer=summarizer or SessionSummarizer(create_summarizer_llm(config)),
        participant_defaults=config.participants,
        session_defaults=config.session,
    )
