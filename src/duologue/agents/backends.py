"""AI backend adapters for Duologue.

Each participant is driven through a :class:`TurnBackend`. A backend
turns the session transcript into a LangChain prompt and returns one of
two shapes:

* :class:`StreamedTurn` - an async iterator of text deltas, produced by
  ``astream`` on a model that streams natively.
* :class:`FullTextTurn` - the complete response text from one
  ``ainvoke`` call.

The scheduler never asks which provider is behind a backend; the stream
normalizer handles both shapes.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
)

from duologue.state.schema import Message, ParticipantKind, Speaker
from duologue.utils.exceptions import ProviderError
from duologue.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GenerationOptions:
    """Per-turn generation options."""

    speaker: Speaker
    system_prompt: str = ""
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None

    def llm_kwargs(self) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {}
        if self.temperature is not None:
            kwargs["temperature"] = self.temperature
        if self.max_tokens is not None:
            kwargs["max_tokens"] = self.max_tokens
        return kwargs


@dataclass
class FullTextTurn:
    """A complete response delivered in one piece."""

    text: str
    token_count: Optional[int] = None


class StreamedTurn:
    """A response delivered as incremental text deltas.

    ``token_count`` is only known once the iterator is exhausted, and
    stays ``None`` if the provider reported no usage.
    """

    def __init__(self, deltas: Callable[["StreamedTurn"], AsyncIterator[str]]):
        self._deltas = deltas
        self.token_count: Optional[int] = None

    def __aiter__(self) -> AsyncIterator[str]:
        return self._deltas(self).__aiter__()


TurnResult = Union[StreamedTurn, FullTextTurn]


def content_text(content: Any) -> str:
    """Flatten LangChain message content to plain text.

    Anthropic returns a list of content blocks rather than a string.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type", "text") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return str(content)


def usage_tokens(message: Optional[BaseMessage]) -> Optional[int]:
    """Output tokens reported by the provider, if any."""
    usage = getattr(message, "usage_metadata", None) if message else None
    if not usage:
        return None
    tokens = usage.get("output_tokens") or usage.get("total_tokens")
    return int(tokens) if tokens else None


def build_chat_messages(
    history: List[Message], speaker: Speaker, system_prompt: str = ""
) -> List[BaseMessage]:
    """Render the transcript from the point of view of ``speaker``.

    The speaker's own turns become assistant messages; every other entry
    becomes a human message tagged with its author so the model can tell
    the user and the other participant apart.
    """
    messages: List[BaseMessage] = []
    if system_prompt:
        messages.append(SystemMessage(content=system_prompt))

    for entry in history:
        if entry.speaker is speaker:
            messages.append(AIMessage(content=entry.content))
            continue

        text = f"[{entry.speaker.value.upper()}]: {entry.content}"
        if entry.attachments:
            names = ", ".join(a.name for a in entry.attachments)
            text += f"\n(Attached files: {names})"
        messages.append(HumanMessage(content=text))

    # Providers reject a prompt that ends on the assistant's own turn
    if not messages or isinstance(messages[-1], (AIMessage, SystemMessage)):
        messages.append(HumanMessage(content="Please continue the discussion."))
    return messages


class TurnBackend(ABC):
    """Capability interface for producing one participant turn."""

    kind: ParticipantKind

    def __init__(self, llm: BaseChatModel, name: str = ""):
        self.llm = llm
        self.name = name or getattr(llm, "model_name", None) or type(llm).__name__

    @abstractmethod
    async def generate_turn(
        self, history: List[Message], options: GenerationOptions
    ) -> TurnResult:
        """Start generating the next turn for ``options.speaker``.

        Raises:
            ProviderError: If the backend cannot produce a response.
        """

    def _bound_llm(self, options: GenerationOptions):
        kwargs = options.llm_kwargs()
        return self.llm.bind(**kwargs) if kwargs else self.llm

    def _provider_error(self, e: Exception, options: GenerationOptions) -> ProviderError:
        logger.error(
            f"Backend {self.name} failed for participant {options.speaker.value}: {e}",
            extra={"backend": self.name, "error_type": type(e).__name__},
        )
        return ProviderError(
            f"AI backend failed: {e}",
            provider=self.name,
            details={"error_type": type(e).__name__},
        )


class StreamingChatBackend(TurnBackend):
    """Backend whose model streams deltas via ``astream``."""

    kind = ParticipantKind.STREAMING

    async def generate_turn(
        self, history: List[Message], options: GenerationOptions
    ) -> StreamedTurn:
        messages = build_chat_messages(history, options.speaker, options.system_prompt)
        llm = self._bound_llm(options)

        async def deltas(turn: StreamedTurn) -> AsyncIterator[str]:
            aggregate = None
            try:
                async for chunk in llm.astream(messages):
                    aggregate = chunk if aggregate is None else aggregate + chunk
                    text = content_text(getattr(chunk, "content", chunk))
                    if text:
                        yield text
            except ProviderError:
                raise
            except Exception as e:
                raise self._provider_error(e, options) from e
            turn.token_count = usage_tokens(aggregate)

        logger.debug(
            f"Streaming turn for {options.speaker.value} from {self.name} "
            f"({len(messages)} prompt messages)"
        )
        return StreamedTurn(deltas)


class SingleShotChatBackend(TurnBackend):
    """Backend that returns the whole response from one ``ainvoke``."""

    kind = ParticipantKind.SINGLE_SHOT

    async def generate_turn(
        self, history: List[Message], options: GenerationOptions
    ) -> FullTextTurn:
        messages = build_chat_messages(history, options.speaker, options.system_prompt)
        logger.debug(
            f"Requesting full turn for {options.speaker.value} from {self.name} "
            f"({len(messages)} prompt messages)"
        )
        try:
            response = await self._bound_llm(options).ainvoke(messages)
        except Exception as e:
            raise self._provider_error(e, options) from e

        return FullTextTurn(
            text=content_text(getattr(response, "content", response)),
            token_count=usage_tokens(response),
        )


_BACKEND_CLASSES = {
    ParticipantKind.STREAMING: StreamingChatBackend,
    ParticipantKind.SINGLE_SHOT: SingleShotChatBackend,
}


def create_backend(
    llm: BaseChatModel, kind: ParticipantKind, name: str = ""
) -> TurnBackend:
    """Wrap a chat model in the adapter for its delivery mode."""
    return _BACKEND_CLASSES[ParticipantKind(kind)](llm, name=name)
