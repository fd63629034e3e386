"""Fake LLM implementations for testing.

This module provides deterministic chat models that behave like the
real provider integrations (streaming via ``astream``, single responses
via ``ainvoke``, usage metadata) without making external API calls.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, Iterator, List, Optional

from langchain_core.callbacks import (
    AsyncCallbackManagerForLLMRun,
    CallbackManagerForLLMRun,
)
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatGenerationChunk, ChatResult
from pydantic import Field, PrivateAttr

from duologue.agents.backends import TurnBackend, create_backend
from duologue.state.schema import BrainstormSession, Speaker


def fake_usage(text: str) -> Dict[str, int]:
    output_tokens = max(1, len(text.split()))
    return {
        "input_tokens": 10,
        "output_tokens": output_tokens,
        "total_tokens": 10 + output_tokens,
    }


class FakeLLMBase(BaseChatModel):
    """Base class for fake LLM implementations."""

    model_name: str = Field(default="fake-model")
    temperature: float = Field(default=0.0)
    report_usage: bool = Field(default=True)
    delta_size: int = Field(default=7, description="Characters per streamed delta")

    # Use private attributes for mutable state
    _call_count: int = PrivateAttr(default=0)
    _last_messages: List[BaseMessage] = PrivateAttr(default_factory=list)
    _last_kwargs: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def _llm_type(self) -> str:
        """Return identifier of llm type."""
        return "fake"

    @property
    def _identifying_params(self) -> Dict[str, Any]:
        return {"model_name": self.model_name, "temperature": self.temperature}

    def _record(self, messages: List[BaseMessage], kwargs: Dict[str, Any]) -> None:
        self._call_count += 1
        self._last_messages = list(messages)
        self._last_kwargs = dict(kwargs)

    def _get_response(self, messages: List[BaseMessage], **kwargs) -> str:
        """Override this method in subclasses to provide specific responses."""
        return "Default fake response"

    def _message(self, text: str) -> AIMessage:
        if self.report_usage:
            return AIMessage(content=text, usage_metadata=fake_usage(text))
        return AIMessage(content=text)

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        self._record(messages, kwargs)
        text = self._get_response(messages, **kwargs)
        return ChatResult(generations=[ChatGeneration(message=self._message(text))])

    def _deltas(self, text: str) -> List[str]:
        return [text[i : i + self.delta_size] for i in range(0, len(text), self.delta_size)]

    def _stream(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[CallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> Iterator[ChatGenerationChunk]:
        self._record(messages, kwargs)
        text = self._get_response(messages, **kwargs)
        for delta in self._deltas(text):
            yield ChatGenerationChunk(message=AIMessageChunk(content=delta))
        if self.report_usage:
            yield ChatGenerationChunk(
                message=AIMessageChunk(content="", usage_metadata=fake_usage(text))
            )

    async def _astream(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        self._record(messages, kwargs)
        text = self._get_response(messages, **kwargs)
        for delta in self._deltas(text):
            await asyncio.sleep(0)
            yield ChatGenerationChunk(message=AIMessageChunk(content=delta))
        if self.report_usage:
            yield ChatGenerationChunk(
                message=AIMessageChunk(content="", usage_metadata=fake_usage(text))
            )

    @property
    def call_count(self) -> int:
        return self._call_count

    @property
    def last_messages(self) -> List[BaseMessage]:
        return self._last_messages

    @property
    def last_kwargs(self) -> Dict[str, Any]:
        return self._last_kwargs


class ScriptedFakeLLM(FakeLLMBase):
    """Fake LLM that returns its scripted responses in order, cycling."""

    responses: List[str] = Field(default_factory=lambda: ["Scripted response."])

    def _get_response(self, messages: List[BaseMessage], **kwargs) -> str:
        return self.responses[(self._call_count - 1) % len(self.responses)]


class ErrorFakeLLM(FakeLLMBase):
    """Fake LLM whose provider call always fails.

    With ``fail_after_deltas`` the stream first yields that many deltas.
    """

    error_message: str = Field(default="Simulated API error")
    fail_after_deltas: int = Field(default=0)
    partial_text: str = Field(default="Partial answer that never finishes")

    def _get_response(self, messages: List[BaseMessage], **kwargs) -> str:
        raise RuntimeError(self.error_message)

    async def _astream(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        self._record(messages, kwargs)
        for delta in self._deltas(self.partial_text)[: self.fail_after_deltas]:
            yield ChatGenerationChunk(message=AIMessageChunk(content=delta))
        raise RuntimeError(self.error_message)


class GatedFakeLLM(ScriptedFakeLLM):
    """Scripted fake LLM that blocks each call until the test opens the gate.

    ``started`` is set as soon as a call is waiting at the gate.
    """

    _gate: asyncio.Event = PrivateAttr(default_factory=asyncio.Event)
    _started: asyncio.Event = PrivateAttr(default_factory=asyncio.Event)

    @property
    def gate(self) -> asyncio.Event:
        return self._gate

    @property
    def started(self) -> asyncio.Event:
        return self._started

    async def _agenerate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> ChatResult:
        self._started.set()
        await self._gate.wait()
        return self._generate(messages, stop=stop, **kwargs)

    async def _astream(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Optional[AsyncCallbackManagerForLLMRun] = None,
        **kwargs: Any,
    ) -> AsyncIterator[ChatGenerationChunk]:
        self._started.set()
        await self._gate.wait()
        async for chunk in super()._astream(messages, stop=stop, **kwargs):
            yield chunk


def make_resolver(llm_a: BaseChatModel, llm_b: BaseChatModel):
    """Backend resolver serving fixed fake models to the two slots.

    The adapter still follows each participant's ``kind``.
    """
    llms = {Speaker.A: llm_a, Speaker.B: llm_b}

    def resolve(session: BrainstormSession, speaker: Speaker) -> TurnBackend:
        participant = session.participants.for_speaker(speaker)
        return create_backend(llms[speaker], participant.kind, name=f"fake-{speaker.value}")

    return resolve
