"""Stream normalization for Duologue.

Both backend shapes are replayed to live subscribers as the same
lifecycle: one ``streamStart``, any number of ``streamChunk`` events and
a closing ``streamComplete``, or ``streamError`` on failure. Native
deltas are forwarded as they arrive; a single-shot response is cut into
word groups and paced with a short delay so clients render both kinds
of participant the same way.

The chunk texts of a turn always concatenate to exactly the content
that is persisted.
"""

import asyncio
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional

from duologue.agents.backends import (
    FullTextTurn,
    GenerationOptions,
    StreamedTurn,
    TurnBackend,
)
from duologue.realtime.events import (
    LiveEvent,
    StreamChunk,
    StreamComplete,
    StreamError,
    StreamStart,
)
from duologue.state.schema import Message, Speaker
from duologue.utils.exceptions import ProviderError
from duologue.utils.logging import get_logger

logger = get_logger(__name__)

_WORD_RE = re.compile(r"\s*\S+")

Publisher = Callable[[str, LiveEvent], Awaitable[None]]
Committer = Callable[[str, int], Awaitable[Optional[Message]]]


def split_into_chunks(text: str, words_per_chunk: int = 5) -> List[str]:
    """Split text into groups of ``words_per_chunk`` words.

    Each word keeps the whitespace that precedes it and trailing
    whitespace rides on the last group, so ``"".join(chunks) == text``.
    """
    if words_per_chunk < 1:
        raise ValueError("words_per_chunk must be at least 1")

    words = _WORD_RE.findall(text)
    if not words:
        return [text] if text else []

    chunks = [
        "".join(words[i : i + words_per_chunk])
        for i in range(0, len(words), words_per_chunk)
    ]
    consumed = sum(len(w) for w in words)
    chunks[-1] += text[consumed:]
    return chunks


def estimate_tokens(text: str) -> int:
    """Rough token count for providers that report no usage."""
    return max(1, len(text) // 4)


@dataclass
class NormalizedTurn:
    """Outcome of one normalized turn."""

    turn_id: str
    speaker: Speaker
    content: str
    token_count: int
    message: Optional[Message] = None


class StreamNormalizer:
    """Drives one backend turn and publishes its live events."""

    def __init__(
        self,
        publish: Publisher,
        chunk_word_count: int = 5,
        chunk_delay_seconds: float = 0.05,
    ):
        self.publish = publish
        self.chunk_word_count = chunk_word_count
        self.chunk_delay_seconds = chunk_delay_seconds

    async def run_turn(
        self,
        session_id: str,
        turn_id: str,
        backend: TurnBackend,
        history: List[Message],
        options: GenerationOptions,
        commit: Committer,
    ) -> NormalizedTurn:
        """Generate, stream and commit one turn.

        ``commit`` persists the finished content and returns the stored
        message, or ``None`` when the turn had to be discarded; in that
        case no ``streamComplete`` is published.

        Raises:
            ProviderError: If the backend fails or returns nothing. A
                ``streamError`` has been published by then.
        """
        speaker = options.speaker
        await self.publish(
            session_id,
            StreamStart(session_id=session_id, speaker=speaker, turn_id=turn_id),
        )

        try:
            result = await backend.generate_turn(history, options)
            if isinstance(result, StreamedTurn):
                content = await self._forward_deltas(session_id, turn_id, speaker, result)
            elif isinstance(result, FullTextTurn):
                content = await self._replay_full_text(
                    session_id, turn_id, speaker, result
                )
            else:
                raise ProviderError(
                    f"Backend returned an unsupported result: {type(result).__name__}",
                    provider=backend.name,
                )
        except Exception as e:
            error = e if isinstance(e, ProviderError) else ProviderError(
                f"AI backend failed: {e}",
                provider=backend.name,
                details={"error_type": type(e).__name__},
            )
            await self.publish(
                session_id,
                StreamError(
                    session_id=session_id,
                    speaker=speaker,
                    turn_id=turn_id,
                    error=error.message,
                ),
            )
            if error is e:
                raise
            raise error from e

        token_count = result.token_count or estimate_tokens(content)
        turn = NormalizedTurn(
            turn_id=turn_id, speaker=speaker, content=content, token_count=token_count
        )

        turn.message = await commit(content, token_count)
        if turn.message is None:
            logger.info(f"Turn {turn_id} of session {session_id} was discarded")
            return turn

        await self.publish(
            session_id,
            StreamComplete(
                session_id=session_id,
                speaker=speaker,
                turn_id=turn_id,
                message=turn.message,
            ),
        )
        return turn

    async def _forward_deltas(
        self, session_id: str, turn_id: str, speaker: Speaker, turn: StreamedTurn
    ) -> str:
        parts: List[str] = []
        async for delta in turn:
            if not delta:
                continue
            parts.append(delta)
            logger.debug(f"Delta for turn {turn_id}: {len(delta)} chars")
            await self.publish(
                session_id,
                StreamChunk(
                    session_id=session_id, speaker=speaker, turn_id=turn_id, text=delta
                ),
            )

        content = "".join(parts)
        if not content.strip():
            raise ProviderError("AI backend returned an empty response")
        return content

    async def _replay_full_text(
        self, session_id: str, turn_id: str, speaker: Speaker, turn: FullTextTurn
    ) -> str:
        content = turn.text or ""
        if not content.strip():
            raise ProviderError("AI backend returned an empty response")

        chunks = split_into_chunks(content, self.chunk_word_count)
        for index, chunk in enumerate(chunks):
            if index and self.chunk_delay_seconds:
                await asyncio.sleep(self.chunk_delay_seconds)
            logger.debug(f"Chunk {index + 1}/{len(chunks)} for turn {turn_id}")
            await self.publish(
                session_id,
                StreamChunk(
                    session_id=session_id, speaker=speaker, turn_id=turn_id, text=chunk
                ),
            )
        return content
