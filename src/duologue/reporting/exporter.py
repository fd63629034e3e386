"""Transcript export for Duologue.

Sessions export as the full JSON document or as a Markdown report with
the topic, metadata, the conversation, the summary and the numbered key
insights. Exporting never modifies the session.
"""

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

from duologue.state.schema import BrainstormSession, Speaker
from duologue.utils.exceptions import ValidationError
from duologue.utils.logging import get_logger

logger = get_logger(__name__)


class ExportFormat(str, Enum):
    JSON = "json"
    MARKDOWN = "markdown"

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValidationError(
                f"Unsupported export format: {value}",
                field="format",
                value=value,
                details={"supported": [f.value for f in cls]},
            ) from None


@dataclass
class ExportResult:
    content: Union[str, Dict[str, Any]]
    media_type: str
    filename: str

    def text(self) -> str:
        if isinstance(self.content, str):
            return self.content
        return json.dumps(self.content, indent=2, ensure_ascii=False)


def speaker_label(session: BrainstormSession, speaker: Speaker) -> str:
    if speaker is Speaker.USER:
        return "User"
    name = session.participants.for_speaker(speaker).display_name
    return f"{name} ({speaker.value})" if name else speaker.value


def format_duration(seconds: Optional[int]) -> str:
    if seconds is None:
        return "in progress"
    minutes, secs = divmod(int(seconds), 60)
    if minutes:
        return f"{minutes} minutes {secs} seconds" if secs else f"{minutes} minutes"
    return f"{secs} seconds"


def to_markdown(session: BrainstormSession) -> str:
    lines = [f"# Brainstorm Session: {session.topic}", ""]

    if session.description:
        lines += [f"**Description:** {session.description}", ""]

    participants = session.participants
    lines += [
        f"**Date:** {session.created_at.strftime('%Y-%m-%d')}",
        f"**Duration:** {format_duration(session.duration)}",
        f"**Total Messages:** {len(session.messages)}",
        f"**Status:** {session.status.value}",
        f"**Participants:** A = {participants.a.display_name or participants.a.model_id} "
        f"({participants.a.provider.value}:{participants.a.model_id}), "
        f"B = {participants.b.display_name or participants.b.model_id} "
        f"({participants.b.provider.value}:{participants.b.model_id})",
        "",
        "## Conversation",
        "",
    ]

    for message in session.messages:
        lines.append(f"### {speaker_label(session, message.speaker)}")
        lines.append(message.content)
        if message.attachments:
            names = ", ".join(a.name for a in message.attachments)
            lines.append(f"_Attachments: {names}_")
        lines.append("")

    if session.summary:
        lines += ["## Summary", "", session.summary, ""]

    if session.insights:
        lines += ["## Key Insights", ""]
        lines += [f"{i}. {insight}" for i, insight in enumerate(session.insights, 1)]
        lines.append("")

    return "\n".join(lines)


class SessionExporter:
    """Renders sessions in the supported export formats."""

    def export(
        self, session: BrainstormSession, format: Union[str, ExportFormat] = "json"
    ) -> ExportResult:
        export_format = ExportFormat.parse(format)
        logger.debug(f"Exporting session {session.id} as {export_format.value}")

        if export_format is ExportFormat.MARKDOWN:
            return ExportResult(
                content=to_markdown(session),
                media_type="text/markdown",
                filename=f"brainstorm-{session.id}.md",
            )
        return ExportResult(
            content=session.to_document(),
            media_type="application/json",
            filename=f"brainstorm-{session.id}.json",
        )

    def write(
        self,
        session: BrainstormSession,
        directory: Union[str, Path],
        format: Union[str, ExportFormat] = "markdown",
    ) -> Path:
        """Write an export into ``directory`` and return its path."""
        result = self.export(session, format)
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)
        path = directory / result.filename
        path.write_text(result.text(), encoding="utf-8")
        logger.info(f"Exported session {session.id} to {path}")
        return path
