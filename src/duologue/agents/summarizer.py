"""Session summarizer for Duologue.

This module produces the prose summary and key insights of a finished
brainstorm session. It asks a chat model once and parses the answer;
when the model is unavailable or its answer is unusable it falls back to
a local heuristic so that stopping a session never fails.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from duologue.agents.backends import content_text
from duologue.state.schema import BrainstormSession, Speaker
from duologue.utils.logging import get_logger

logger = get_logger(__name__)

MAX_INSIGHTS = 5
FALLBACK_INSIGHTS = 3

_INSIGHT_LINE = re.compile(r"^\s*(?:\d+[.)]|[-*•])\s*(.+?)\s*$")
_SUMMARY_HEADER = re.compile(r"^\s*\**\s*SUMMARY\s*:?\s*\**\s*:?\s*", re.IGNORECASE)
_INSIGHTS_HEADER = re.compile(r"^\s*\**\s*(?:KEY\s+)?INSIGHTS\s*:?\s*\**\s*:?\s*$", re.IGNORECASE | re.MULTILINE)
_SENTENCE_END = re.compile(r"(?<=[.!?])\s")


@dataclass
class SessionSummary:
    summary: str
    insights: List[str] = field(default_factory=list)
    fallback: bool = False


class SessionSummarizer:
    """Summarizes a completed session with an optional chat model."""

    SYSTEM_PROMPT = (
        "You summarize conversations between two AI participants and a human "
        "host. Be neutral and concise. Report the ideas, agreements, "
        "disagreements and conclusions of the discussion."
    )

    def __init__(self, llm: Optional[BaseChatModel] = None):
        self.llm = llm

    def build_prompt(self, session: BrainstormSession) -> str:
        transcript = "\n\n".join(
            f"{m.speaker.value.upper()}: {m.content}" for m in session.messages
        )
        return (
            f'Summarize this brainstorming session on the topic "{session.topic}":\n\n'
            f"{transcript}\n\n"
            "Answer in exactly this format:\n"
            "SUMMARY:\n<one or two paragraphs covering key points, agreements, "
            "disagreements and conclusions>\n\n"
            "INSIGHTS:\n1. <brief actionable insight>\n2. ...\n"
            "List 3 to 5 insights."
        )

    async def summarize(self, session: BrainstormSession) -> SessionSummary:
        """Summarize ``session``. Never raises for model failures."""
        if self.llm is None:
            logger.info(f"No summarizer model configured for session {session.id}")
            return self.heuristic_summary(session)

        try:
            response = await self.llm.ainvoke(
                [
                    SystemMessage(content=self.SYSTEM_PROMPT),
                    HumanMessage(content=self.build_prompt(session)),
                ]
            )
        except Exception as e:
            logger.warning(
                f"Summarizer model failed for session {session.id}, "
                f"using heuristic summary: {e}"
            )
            return self.heuristic_summary(session)

        summary, insights = self.parse_response(
            content_text(getattr(response, "content", response))
        )
        if not summary:
            logger.warning(
                f"Summarizer returned no usable summary for session {session.id}, "
                "using heuristic summary"
            )
            return self.heuristic_summary(session)

        if not insights:
            insights = self.heuristic_insights(session)
        logger.info(
            f"Summarized session {session.id} ({len(summary)} chars, "
            f"{len(insights)} insights)"
        )
        return SessionSummary(summary=summary, insights=insights)

    @staticmethod
    def parse_response(text: str) -> tuple[str, List[str]]:
        """Split a model answer into summary prose and insight lines.

        Without an INSIGHTS header the bulleted or numbered lines of the
        answer are taken as insights and the rest as the summary.
        """
        text = text.strip()
        if not text:
            return "", []

        header = _INSIGHTS_HEADER.search(text)
        if header:
            summary_part = text[: header.start()]
            insights_part = text[header.end():]
        else:
            summary_part, insights_part = text, text

        insights = []
        for line in insights_part.splitlines():
            match = _INSIGHT_LINE.match(line)
            if match and match.group(1):
                insights.append(match.group(1))
        insights = insights[:MAX_INSIGHTS]

        summary_lines = []
        for line in summary_part.splitlines():
            if not header and _INSIGHT_LINE.match(line):
                continue
            summary_lines.append(line)
        summary = _SUMMARY_HEADER.sub("", "\n".join(summary_lines).strip(), count=1)
        return summary.strip(), insights

    @staticmethod
    def heuristic_summary(session: BrainstormSession) -> SessionSummary:
        counts = session.count_by_speaker()
        summary = (
            f'Brainstorm session on "{session.topic}" completed with '
            f"{counts[Speaker.A.value]} A messages and "
            f"{counts[Speaker.B.value]} B messages "
            f"({session.total_tokens} tokens in total)."
        )
        return SessionSummary(
            summary=summary,
            insights=SessionSummarizer.heuristic_insights(session),
            fallback=True,
        )

    @staticmethod
    def heuristic_insights(session: BrainstormSession) -> List[str]:
        """First sentence of each of the last AI turns, oldest first."""
        insights: List[str] = []
        for message in reversed(session.messages):
            if not message.speaker.is_ai:
                continue
            text = message.content.strip()
            if not text:
                continue
            first = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
            insights.append(first)
            if len(insights) >= FALLBACK_INSIGHTS:
                break
        insights.reverse()
        return insights
