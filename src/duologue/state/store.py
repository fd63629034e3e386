"""Session persistence for Duologue.

One document per session. Every mutation goes through
:meth:`SessionStore.update`, an atomic read-modify-write: the mutator
runs against the latest stored document while the session's lock is
held, and nothing is written if it raises. Callers therefore never lose
a concurrently appended message.
"""

import asyncio
import json
import os
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError as PydanticValidationError

from duologue.state.schema import BrainstormSession
from duologue.utils.exceptions import ConfigurationError, SessionNotFoundError
from duologue.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class SessionStore(ABC):
    """Durable record of brainstorm sessions keyed by session id."""

    def __init__(self) -> None:
        self._locks: Dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    @abstractmethod
    async def _load(self, session_id: str) -> BrainstormSession:
        """Load a private copy of a session or raise SessionNotFoundError."""

    @abstractmethod
    async def _save(self, session: BrainstormSession) -> None:
        """Write a session document."""

    @abstractmethod
    async def _remove(self, session_id: str) -> None:
        """Remove a session document or raise SessionNotFoundError."""

    @abstractmethod
    async def _load_all(self) -> List[BrainstormSession]:
        """Load every stored session."""

    async def create(self, session: BrainstormSession) -> BrainstormSession:
        async with self._locks[session.id]:
            await self._save(session)
        logger.debug(f"Stored new session {session.id}")
        return session.model_copy(deep=True)

    async def get(self, session_id: str) -> BrainstormSession:
        return await self._load(session_id)

    async def update(
        self, session_id: str, mutator: Callable[[BrainstormSession], T]
    ) -> Tuple[BrainstormSession, T]:
        """Apply ``mutator`` to the stored session as one atomic step.

        Returns:
            The updated session and whatever the mutator returned.
        """
        async with self._locks[session_id]:
            try:
                session = await self._load(session_id)
            except SessionNotFoundError:
                self._locks.pop(session_id, None)
                raise
            result = mutator(session)
            await self._save(session)
        return session.model_copy(deep=True), result

    async def delete(self, session_id: str) -> None:
        try:
            async with self._locks[session_id]:
                await self._remove(session_id)
        finally:
            self._locks.pop(session_id, None)
        logger.debug(f"Deleted session {session_id}")

    def lock_count(self) -> int:
        """Number of sessions currently holding a write lock entry."""
        return len(self._locks)

    async def list_sessions(
        self, user_id: Optional[str] = None
    ) -> List[BrainstormSession]:
        """Sessions (optionally of one user), newest first."""
        sessions = await self._load_all()
        if user_id is not None:
            sessions = [s for s in sessions if s.user_id == user_id]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)


class InMemorySessionStore(SessionStore):
    """Process-local store; documents are copied in and out."""

    def __init__(self) -> None:
        super().__init__()
        self._documents: Dict[str, BrainstormSession] = {}

    async def _load(self, session_id: str) -> BrainstormSession:
        try:
            return self._documents[session_id].model_copy(deep=True)
        except KeyError:
            raise SessionNotFoundError(session_id) from None

    async def _save(self, session: BrainstormSession) -> None:
        self._documents[session.id] = session.model_copy(deep=True)

    async def _remove(self, session_id: str) -> None:
        if self._documents.pop(session_id, None) is None:
            raise SessionNotFoundError(session_id)

    async def _load_all(self) -> List[BrainstormSession]:
        return [s.model_copy(deep=True) for s in self._documents.values()]


class JsonFileSessionStore(SessionStore):
    """One JSON document per session in a directory.

    Writes go to a temporary file that replaces the document in one
    rename, so a crash never leaves a half-written session behind.
    """

    def __init__(self, directory: Union[str, Path]) -> None:
        super().__init__()
        self.directory = Path(directory)
        self.directory.mkdir(parents=True, exist_ok=True)

    def _path(self, session_id: str) -> Path:
        if not session_id or "/" in session_id or "\\" in session_id or session_id.startswith("."):
            raise SessionNotFoundError(session_id)
        return self.directory / f"{session_id}.json"

    def _read(self, path: Path) -> BrainstormSession:
        with open(path, "r", encoding="utf-8") as f:
            document = json.load(f)
        return BrainstormSession.model_validate(document)

    def _write(self, session: BrainstormSession) -> None:
        path = self._path(session.id)
        tmp_path = path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(session.to_document(), f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    async def _load(self, session_id: str) -> BrainstormSession:
        path = self._path(session_id)
        try:
            return await asyncio.to_thread(self._read, path)
        except FileNotFoundError:
            raise SessionNotFoundError(session_id) from None
        except (json.JSONDecodeError, PydanticValidationError) as e:
            raise ConfigurationError(
                f"Corrupt session document: {path}",
                details={"session_id": session_id, "error": str(e)},
            ) from e

    async def _save(self, session: BrainstormSession) -> None:
        await asyncio.to_thread(self._write, session)

    async def _remove(self, session_id: str) -> None:
        path = self._path(session_id)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            raise SessionNotFoundError(session_id) from None

    async def _load_all(self) -> List[BrainstormSession]:
        sessions = []
        paths = await asyncio.to_thread(lambda: sorted(self.directory.glob("*.json")))
        for path in paths:
            try:
                sessions.append(await asyncio.to_thread(self._read, path))
            except FileNotFoundError:
                # Deleted between listing and reading
                continue
            except (json.JSONDecodeError, PydanticValidationError) as e:
                logger.warning(f"Skipping unreadable session document {path}: {e}")
        return sessions
