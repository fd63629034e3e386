"""Tests for the session summarizer."""

import pytest

from duologue.agents.summarizer import SessionSummarizer
from duologue.state.schema import SessionSettings, Speaker
from tests.helpers.fake_llm import ErrorFakeLLM, ScriptedFakeLLM


MODEL_ANSWER = """SUMMARY:
Both participants agreed that remote work rewards written communication,
while disagreeing on whether offices still matter.

INSIGHTS:
1. Document decisions in writing.
2. Budget for in-person offsites.
- Measure output, not hours.
"""


@pytest.fixture
def finished_session(make_session):
    session = make_session(settings=SessionSettings(max_turns=10))
    session.add_user_message("Topic: Remote work")
    session.add_ai_message(Speaker.A, "Writing scales. Meetings do not.", token_count=6)
    session.add_ai_message(Speaker.B, "Offices are dead! Long live the cafe.", token_count=8)
    session.add_ai_message(Speaker.A, "Trust is built in person. Sometimes.", token_count=6)
    session.add_ai_message(Speaker.B, "Then meet twice a year.", token_count=5)
    session.stop()
    return session


class TestParseResponse:
    def test_sections(self):
        summary, insights = SessionSummarizer.parse_response(MODEL_ANSWER)
        assert summary.startswith("Both participants agreed")
        assert "SUMMARY" not in summary
        assert insights == [
            "Document decisions in writing.",
            "Budget for in-person offsites.",
            "Measure output, not hours.",
        ]

    def test_without_headers(self):
        summary, insights = SessionSummarizer.parse_response(
            "A lively talk.\n- First point\n- Second point"
        )
        assert summary == "A lively talk."
        assert insights == ["First point", "Second point"]

    def test_insights_are_capped(self):
        answer = "SUMMARY: Short.\nINSIGHTS:\n" + "\n".join(f"{i}. idea {i}" for i in range(1, 9))
        _, insights = SessionSummarizer.parse_response(answer)
        assert len(insights) == 5

    def test_empty(self):
        assert SessionSummarizer.parse_response("   ") == ("", [])


class TestSessionSummarizer:
    """Test model-backed and fallback summaries."""

    @pytest.mark.asyncio
    async def test_model_summary(self, finished_session):
        llm = ScriptedFakeLLM(responses=[MODEL_ANSWER])
        result = await SessionSummarizer(llm).summarize(finished_session)

        assert not result.fallback
        assert result.summary.startswith("Both participants agreed")
        assert len(result.insights) == 3
        prompt = llm.last_messages[-1].content
        assert 'topic "Remote work"' in prompt
        assert "B: Then meet twice a year." in prompt

    @pytest.mark.asyncio
    async def test_model_failure_falls_back(self, finished_session):
        result = await SessionSummarizer(ErrorFakeLLM()).summarize(finished_session)

        assert result.fallback
        assert result.summary == (
            'Brainstorm session on "Remote work" completed with 2 A messages '
            "and 2 B messages (25 tokens in total)."
        )

    @pytest.mark.asyncio
    async def test_without_model(self, finished_session):
        result = await SessionSummarizer().summarize(finished_session)
        assert result.fallback
        assert result.insights == [
            "Offices are dead!",
            "Trust is built in person.",
            "Then meet twice a year.",
        ]

    @pytest.mark.asyncio
    async def test_answer_without_insights_gets_heuristic_insights(self, finished_session):
        llm = ScriptedFakeLLM(responses=["A calm exchange about remote work."])
        result = await SessionSummarizer(llm).summarize(finished_session)
        assert not result.fallback
        assert result.summary == "A calm exchange about remote work."
        assert len(result.insights) == 3

    def test_heuristic_on_empty_transcript(self, make_session):
        result = SessionSummarizer.heuristic_summary(make_session())
        assert "0 A messages and 0 B messages" in result.summary
        assert result.insights == []
