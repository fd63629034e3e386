"""Tests for session export."""

import json

import pytest

from duologue.reporting.exporter import (
    ExportFormat,
    SessionExporter,
    format_duration,
    to_markdown,
)
from duologue.state.schema import Attachment, Speaker
from duologue.utils.exceptions import ValidationError


@pytest.fixture
def completed_session(make_session):
    session = make_session()
    session.add_user_message("Topic: Remote work\nDescription: Pros and cons")
    session.add_user_message("See my notes", [Attachment(name="notes.pdf")])
    session.add_ai_message(Speaker.A, "Async work scales.", token_count=4)
    session.add_ai_message(Speaker.B, "Offices build trust.", token_count=4)
    session.stop()
    session.summary = "They disagreed politely."
    session.insights = ["Write things down", "Meet sometimes"]
    return session


class TestMarkdown:
    def test_report_sections(self, completed_session):
        report = to_markdown(completed_session)

        assert report.startswith("# Brainstorm Session: Remote work")
        assert "**Description:** Pros and cons" in report
        assert "**Total Messages:** 4" in report
        assert "**Status:** completed" in report
        assert "## Conversation" in report
        assert "### User" in report
        assert "### Claude (A)\nAsync work scales." in report
        assert "### Grok (B)\nOffices build trust." in report
        assert "_Attachments: notes.pdf_" in report
        assert "## Summary\n\nThey disagreed politely." in report
        assert "## Key Insights\n\n1. Write things down\n2. Meet sometimes" in report

    def test_running_session_has_no_summary_section(self, make_session):
        report = to_markdown(make_session())
        assert "## Summary" not in report
        assert "**Duration:** in progress" in report

    @pytest.mark.parametrize(
        "seconds,expected",
        [(None, "in progress"), (42, "42 seconds"), (120, "2 minutes"), (125, "2 minutes 5 seconds")],
    )
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected


class TestSessionExporter:
    """Test export formats and files."""

    def test_json_export(self, completed_session):
        result = SessionExporter().export(completed_session, "json")
        assert result.media_type == "application/json"
        assert result.filename == f"brainstorm-{completed_session.id}.json"
        assert result.content["topic"] == "Remote work"
        assert json.loads(result.text())["currentTurn"] == 2

    def test_markdown_export(self, completed_session):
        result = SessionExporter().export(completed_session, ExportFormat.MARKDOWN)
        assert result.media_type == "text/markdown"
        assert result.filename.endswith(".md")
        assert result.text() == result.content

    def test_export_does_not_modify_session(self, completed_session):
        before = completed_session.to_document()
        SessionExporter().export(completed_session, "markdown")
        assert completed_session.to_document() == before

    def test_unsupported_format(self, completed_session):
        with pytest.raises(ValidationError) as exc_info:
            SessionExporter().export(completed_session, "pdf")
        assert exc_info.value.field == "format"

    def test_write(self, completed_session, tmp_path):
        path = SessionExporter().write(completed_session, tmp_path / "exports")
        assert path.name == f"brainstorm-{completed_session.id}.md"
        assert path.read_text(encoding="utf-8").startswith("# Brainstorm Session")
