"""Turn scheduler for Duologue.

The scheduler owns the session state machine and the continuation
chain that drives the two participants::

    active <-> paused
    active/paused -> completed (stop or turn limit)
    active -> error (backend failure)

Commands validate and mutate the stored session, then return at once.
Generating turns happens in one background worker per session. A
trigger that arrives while the worker runs is folded into it, so a
session never has two turns in flight. Each turn holds the session's
turn lock from generation until its message is persisted; ``stop``
takes the same lock and therefore lands after an in-flight turn.
"""

import asyncio
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_snake

from duologue.agents.backends import GenerationOptions, TurnBackend, create_backend
from duologue.agents.prompts import build_system_prompt
from duologue.agents.summarizer import SessionSummarizer
from duologue.config.models import EngineConfig, ParticipantsDefaults, SessionDefaults
from duologue.execution.stream_normalizer import StreamNormalizer
from duologue.providers.config import ProviderType
from duologue.providers.factory import ProviderFactory
from duologue.providers.registry import registry
from duologue.realtime.broadcaster import LiveChannelBroadcaster
from duologue.realtime.events import LiveEvent, StatusChanged, StreamError
from duologue.reporting.exporter import ExportResult, SessionExporter
from duologue.state.schema import (
    Attachment,
    BrainstormSession,
    Message,
    ParticipantKind,
    Participants,
    SessionSettings,
    SessionStatus,
    Speaker,
    new_id,
)
from duologue.state.store import SessionStore
from duologue.utils.exceptions import (
    ConfigurationError,
    EmptyMessageError,
    InvalidStateTransition,
    ProviderError,
    SessionNotCompletedError,
    SessionNotFoundError,
    ValidationError,
)
from duologue.utils.logging import get_logger, log_session_transition

logger = get_logger(__name__)

BackendResolver = Callable[[BrainstormSession, Speaker], TurnBackend]


class ProviderBackendResolver:
    """Builds the backend of a participant from its provider settings."""

    def __init__(self, engine: EngineConfig):
        self.engine = engine

    def __call__(self, session: BrainstormSession, speaker: Speaker) -> TurnBackend:
        participant = session.participants.for_speaker(speaker)
        llm = ProviderFactory.create_provider(
            {
                "provider": participant.provider,
                "model": participant.model_id,
                "temperature": self.engine.temperature,
                "max_tokens": self.engine.max_tokens,
                "streaming": participant.kind is ParticipantKind.STREAMING,
            }
        )
        return create_backend(
            llm,
            participant.kind,
            name=f"{participant.provider.value}:{participant.model_id}",
        )


def _pydantic_to_validation_error(
    e: PydanticValidationError, field: str
) -> ValidationError:
    errors = [
        f"{' -> '.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
    ]
    return ValidationError(
        f"Invalid {field}: " + "; ".join(errors),
        field=field,
        details={"errors": errors},
    )


def _snake_keys(document: Mapping[str, Any]) -> Dict[str, Any]:
    """Accept camelCase request keys alongside snake_case ones."""
    return {to_snake(key): value for key, value in document.items()}


class TurnScheduler:
    """Orchestrates brainstorm sessions between two AI participants."""

    def __init__(
        self,
        store: SessionStore,
        engine: Optional[EngineConfig] = None,
        broadcaster: Optional[LiveChannelBroadcaster] = None,
        backend_resolver: Optional[BackendResolver] = None,
        summarizer: Optional[SessionSummarizer] = None,
        exporter: Optional[SessionExporter] = None,
        participant_defaults: Optional[ParticipantsDefaults] = None,
        session_defaults: Optional[SessionDefaults] = None,
    ):
        """Initialize the scheduler.

        Args:
            store: Where session documents live.
            engine: Pacing and generation settings.
            broadcaster: Live channel for session events.
            backend_resolver: Maps a session slot to its backend. Defaults
                to building LangChain models from the participant settings.
            summarizer: Produces summaries when a session ends.
            exporter: Renders session exports.
            participant_defaults: Participants used when a start request
                names none.
            session_defaults: Settings used when a start request omits them.
        """
        self.store = store
        self.engine = engine or EngineConfig()
        self.broadcaster = broadcaster or LiveChannelBroadcaster(
            send_timeout=self.engine.broadcast_timeout_seconds
        )
        self.backend_resolver = backend_resolver or ProviderBackendResolver(self.engine)
        self.summarizer = summarizer or SessionSummarizer()
        self.exporter = exporter or SessionExporter()
        self.participant_defaults = participant_defaults or ParticipantsDefaults()
        self.session_defaults = session_defaults or SessionDefaults()

        self.normalizer = StreamNormalizer(
            publish=self._publish,
            chunk_word_count=self.engine.chunk_word_count,
            chunk_delay_seconds=self.engine.chunk_delay_seconds,
        )

        self._chains: Dict[str, asyncio.Task] = {}
        self._pending: Dict[str, bool] = {}
        self._turn_locks: Dict[str, asyncio.Lock] = {}

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    async def start(
        self,
        user_id: str,
        topic: str,
        description: str = "",
        participants: Optional[Mapping[str, Mapping[str, Any]]] = None,
        settings: Optional[Union[SessionSettings, Mapping[str, Any]]] = None,
        chat_id: Optional[str] = None,
    ) -> BrainstormSession:
        """Create a session and kick off its first turn.

        Returns:
            The new session, already active, holding the opening user
            message. Turns are generated in the background.

        Raises:
            ValidationError: If the topic is blank or participants or
                settings are invalid.
        """
        topic = (topic or "").strip()
        if not topic:
            raise ValidationError("Topic is required", field="topic", value=topic)
        description = (description or "").strip()

        session = BrainstormSession(
            user_id=user_id,
            topic=topic,
            description=description,
            participants=self._build_participants(participants),
            settings=self._build_settings(settings),
            **({"chat_id": chat_id} if chat_id else {}),
        )
        session.add_user_message(f"Topic: {topic}\nDescription: {description}")
        session = await self.store.create(session)

        logger.info(
            f"Started session {session.id} on '{topic}' "
            f"(max {session.settings.max_turns} turns, "
            f"A={session.participants.a.provider.value}:{session.participants.a.model_id}, "
            f"B={session.participants.b.provider.value}:{session.participants.b.model_id})"
        )
        log_session_transition(session.id, "new", session.status.value)

        self._trigger(session.id)
        return session

    async def submit_user_message(
        self,
        session_id: str,
        content: Optional[str] = None,
        attachments: Optional[List[Union[Attachment, Mapping[str, Any]]]] = None,
        user_id: Optional[str] = None,
    ) -> Tuple[Message, BrainstormSession]:
        """Append a user message to an active session.

        Commands that take ``user_id`` treat a session owned by someone
        else as missing. Without one, any session is reachable.

        Raises:
            EmptyMessageError: If there is neither content nor attachments.
            SessionNotActiveError: If the session is not active.
        """
        content = (content or "").strip()
        try:
            attachment_models = [
                a if isinstance(a, Attachment) else Attachment.model_validate(a)
                for a in attachments or []
            ]
        except PydanticValidationError as e:
            raise _pydantic_to_validation_error(e, "attachments") from e

        if not content and not attachment_models:
            raise EmptyMessageError(
                "Message content or attachments are required", field="content"
            )

        session, message = await self.store.update(
            session_id,
            self._owned(user_id, lambda s: s.add_user_message(content, attachment_models)),
        )
        logger.info(
            f"User message {message.id} added to session {session_id} "
            f"({len(content)} chars, {len(attachment_models)} attachments)"
        )
        self._trigger(session_id)
        return message, session

    async def pause(
        self, session_id: str, user_id: Optional[str] = None
    ) -> BrainstormSession:
        """Stop scheduling new turns. An in-flight turn still completes."""
        session, _ = await self.store.update(
            session_id, self._owned(user_id, lambda s: s.pause())
        )
        log_session_transition(session_id, SessionStatus.ACTIVE.value, session.status.value)
        await self._publish_status(session)
        return session

    async def resume(
        self, session_id: str, user_id: Optional[str] = None
    ) -> BrainstormSession:
        session, _ = await self.store.update(
            session_id, self._owned(user_id, lambda s: s.resume())
        )
        log_session_transition(session_id, SessionStatus.PAUSED.value, session.status.value)
        await self._publish_status(session)
        self._trigger(session_id)
        return session

    async def stop(
        self, session_id: str, user_id: Optional[str] = None
    ) -> BrainstormSession:
        """Complete a session and summarize it.

        Waits for an in-flight turn to be persisted first.

        Raises:
            SessionAlreadyCompletedError: If the session already ended.
        """
        await self.get(session_id, user_id)

        def apply(s: BrainstormSession) -> SessionStatus:
            previous = s.status
            s.stop()
            return previous

        try:
            async with self._turn_lock(session_id):
                session, previous = await self.store.update(
                    session_id, self._owned(user_id, apply)
                )
        finally:
            # Any chain still running drops the lock itself when it ends
            if session_id not in self._chains:
                self._turn_locks.pop(session_id, None)

        log_session_transition(session_id, previous.value, session.status.value, "stopped")
        await self._publish_status(session)
        return await self._summarize(session)

    async def get(
        self, session_id: str, user_id: Optional[str] = None
    ) -> BrainstormSession:
        session = await self.store.get(session_id)
        if user_id is not None and session.user_id != user_id:
            raise SessionNotFoundError(session_id)
        return session

    async def list_sessions(
        self, user_id: Optional[str] = None
    ) -> List[BrainstormSession]:
        """Sessions of a user (all sessions without one), newest first."""
        return await self.store.list_sessions(user_id)

    async def delete(self, session_id: str, user_id: Optional[str] = None) -> None:
        """Remove a session in any state; an in-flight turn is discarded."""
        await self.get(session_id, user_id)
        await self.store.delete(session_id)
        self._pending.pop(session_id, None)
        if session_id not in self._chains:
            self._turn_locks.pop(session_id, None)
        logger.info(f"Deleted session {session_id}")

    async def summary(
        self, session_id: str, user_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Summary, insights and statistics of a finished session.

        The summary is derived and stored on first read when missing.

        Raises:
            SessionNotCompletedError: If the session is still running.
        """
        session = await self.get(session_id, user_id)
        if not session.is_terminal:
            raise SessionNotCompletedError(
                "Session is not completed yet",
                session_id=session_id,
                current_status=session.status.value,
                action="summary",
            )
        if not session.summary:
            session = await self._summarize(session)
        return {
            "summary": session.summary,
            "insights": list(session.insights),
            "stats": session.stats(),
        }

    async def export(
        self, session_id: str, format: str = "json", user_id: Optional[str] = None
    ) -> ExportResult:
        session = await self.get(session_id, user_id)
        return self.exporter.export(session, format)

    async def wait_idle(self, session_id: str) -> None:
        """Wait until the session has no continuation work left."""
        while True:
            task = self._chains.get(session_id)
            if task is None:
                return
            await asyncio.shield(task)

    async def shutdown(self) -> None:
        """Cancel all continuation chains."""
        tasks = list(self._chains.values())
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info(f"Turn scheduler shut down ({len(tasks)} chains cancelled)")

    def is_running(self, session_id: str) -> bool:
        return session_id in self._chains

    def turn_lock_count(self) -> int:
        """Number of sessions with a turn lock entry."""
        return len(self._turn_locks)

    # ------------------------------------------------------------------
    # Continuation chain
    # ------------------------------------------------------------------

    def _trigger(self, session_id: str) -> None:
        self._pending[session_id] = True
        if session_id in self._chains:
            return
        self._chains[session_id] = asyncio.create_task(
            self._run_chain(session_id), name=f"duologue-chain-{session_id}"
        )

    async def _run_chain(self, session_id: str) -> None:
        try:
            while True:
                self._pending[session_id] = False
                try:
                    proceed = await self._continue(session_id)
                except Exception as e:
                    logger.exception(f"Continuation of session {session_id} crashed")
                    await self._fail(session_id, f"Internal error: {e}")
                    proceed = False

                if not proceed and not self._pending.get(session_id):
                    break
                if proceed and self.engine.turn_delay_seconds:
                    await asyncio.sleep(self.engine.turn_delay_seconds)
        finally:
            self._chains.pop(session_id, None)
            self._pending.pop(session_id, None)
            await self._release_turn_lock(session_id)

    async def _release_turn_lock(self, session_id: str) -> None:
        """Forget the turn lock of a session that can never run again."""
        if session_id in self._chains:
            return
        try:
            session = await self.store.get(session_id)
        except SessionNotFoundError:
            session = None
        if session is None or session.is_terminal:
            self._turn_locks.pop(session_id, None)

    async def _continue(self, session_id: str) -> bool:
        """Generate the next turn if the session allows one.

        Returns:
            Whether the chain should keep going.
        """
        async with self._turn_lock(session_id):
            try:
                session = await self.store.get(session_id)
            except SessionNotFoundError:
                logger.debug(f"Session {session_id} is gone, ending its chain")
                return False

            if session.status is not SessionStatus.ACTIVE:
                return False

            if session.turns_remaining == 0:
                session, _ = await self.store.update(session_id, lambda s: s.complete())
                log_session_transition(
                    session_id, SessionStatus.ACTIVE.value, session.status.value,
                    "turn limit reached",
                )
                await self._publish_status(session)
                return False

            speaker = session.next_speaker()
            turn_id = new_id()

            try:
                backend = self.backend_resolver(session, speaker)
            except (ConfigurationError, ProviderError) as e:
                await self._publish(
                    session_id,
                    StreamError(
                        session_id=session_id,
                        speaker=speaker,
                        turn_id=turn_id,
                        error=e.message,
                    ),
                )
                await self._fail(session_id, e.message)
                return False

            options = GenerationOptions(
                speaker=speaker,
                system_prompt=build_system_prompt(session, speaker),
                temperature=self.engine.temperature,
                max_tokens=self.engine.max_tokens,
            )
            logger.debug(
                f"Session {session_id} turn {session.current_turn + 1}/"
                f"{session.settings.max_turns}: {speaker.value} via {backend.name}"
            )

            persisted: Dict[str, BrainstormSession] = {}

            async def commit(content: str, token_count: int) -> Optional[Message]:
                try:
                    updated, message = await self.store.update(
                        session_id,
                        lambda s: s.add_ai_message(
                            speaker, content, token_count, message_id=turn_id
                        ),
                    )
                except SessionNotFoundError:
                    logger.info(
                        f"Session {session_id} was deleted during turn {turn_id}"
                    )
                    return None
                except InvalidStateTransition as e:
                    logger.warning(f"Discarding turn {turn_id}: {e}")
                    return None
                persisted["session"] = updated
                return message

            try:
                await self.normalizer.run_turn(
                    session_id, turn_id, backend, session.messages, options, commit
                )
            except ProviderError as e:
                await self._fail(session_id, e.message)
                return False

            updated = persisted.get("session")
            if updated is None:
                return False

            logger.info(
                f"Session {session_id}: {speaker.value} turn persisted "
                f"({updated.current_turn}/{updated.settings.max_turns})"
            )
            if updated.status is SessionStatus.COMPLETED:
                log_session_transition(
                    session_id, SessionStatus.ACTIVE.value, updated.status.value,
                    "turn limit reached",
                )
                await self._publish_status(updated)
                return False

            return updated.status is SessionStatus.ACTIVE and updated.turns_remaining > 0

    async def _fail(self, session_id: str, reason: str) -> None:
        try:
            previous = await self.store.get(session_id)
            session, _ = await self.store.update(session_id, lambda s: s.fail(reason))
        except SessionNotFoundError:
            return
        if previous.is_terminal:
            return
        logger.error(f"Session {session_id} failed: {reason}")
        log_session_transition(
            session_id, previous.status.value, session.status.value, reason
        )
        await self._publish_status(session)

    async def _summarize(self, session: BrainstormSession) -> BrainstormSession:
        result = await self.summarizer.summarize(session)

        def apply(s: BrainstormSession) -> None:
            s.summary = result.summary
            s.insights = list(result.insights)

        try:
            session, _ = await self.store.update(session.id, apply)
        except SessionNotFoundError:
            logger.info(f"Session {session.id} was deleted before its summary was stored")
            session.summary = result.summary
            session.insights = list(result.insights)
        return session

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _turn_lock(self, session_id: str) -> asyncio.Lock:
        return self._turn_locks.setdefault(session_id, asyncio.Lock())

    @staticmethod
    def _owned(
        user_id: Optional[str], mutator: Callable[[BrainstormSession], Any]
    ) -> Callable[[BrainstormSession], Any]:
        """Wrap a mutator so it only applies to sessions of ``user_id``."""
        if user_id is None:
            return mutator

        def apply(session: BrainstormSession) -> Any:
            if session.user_id != user_id:
                raise SessionNotFoundError(session.id)
            return mutator(session)

        return apply

    async def _publish(self, session_id: str, event: LiveEvent) -> None:
        await self.broadcaster.publish(session_id, event)

    async def _publish_status(self, session: BrainstormSession) -> None:
        await self._publish(
            session.id,
            StatusChanged(
                session_id=session.id, status=session.status, error=session.error
            ),
        )

    def _build_participants(
        self, overrides: Optional[Mapping[str, Mapping[str, Any]]]
    ) -> Participants:
        overrides = overrides or {}
        unknown = set(overrides) - {"A", "B", "a", "b"}
        if unknown:
            raise ValidationError(
                f"Unknown participant slots: {', '.join(sorted(unknown))}",
                field="participantConfig",
            )

        slots = {}
        for speaker, defaults in (
            (Speaker.A, self.participant_defaults.a),
            (Speaker.B, self.participant_defaults.b),
        ):
            override = _snake_keys(
                overrides.get(speaker.value) or overrides.get(speaker.value.lower()) or {}
            )
            try:
                if "provider" in override and not (override.get("kind")):
                    override["kind"] = registry.get_default_kind(
                        ProviderType(override["provider"])
                    )
                base = defaults.to_participant(
                    ParticipantKind(registry.get_default_kind(defaults.provider))
                )
                document = base.model_dump()
                document.update(override)
                slots[speaker.value] = type(base).model_validate(document)
            except PydanticValidationError as e:
                raise _pydantic_to_validation_error(e, "participantConfig") from e
            except ValueError as e:
                raise ValidationError(
                    f"Invalid participant {speaker.value}: {e}",
                    field="participantConfig",
                ) from e

        return Participants(A=slots["A"], B=slots["B"])

    def _build_settings(
        self, settings: Optional[Union[SessionSettings, Mapping[str, Any]]]
    ) -> SessionSettings:
        if isinstance(settings, SessionSettings):
            return settings
        base = self.session_defaults.to_settings().model_dump()
        base.update(_snake_keys(settings or {}))
        try:
            return SessionSettings.model_validate(base)
        except PydanticValidationError as e:
            raise _pydantic_to_validation_error(e, "settings") from e
