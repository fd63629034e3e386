"""Default system prompts for the two participants.

Participant A plays the thoughtful, structured voice and participant B
the bold, contrarian one. The wording depends on the session format.
"""

from duologue.state.schema import (
    BrainstormSession,
    ModerationLevel,
    SessionFormat,
    Speaker,
)


PERSONA_PROMPTS = {
    SessionFormat.BRAINSTORM: {
        Speaker.A: (
            "You are {name}, participating in a brainstorming session. Be creative, "
            "thoughtful, and build upon ideas presented. Offer unique perspectives "
            "and innovative solutions. Be concise but insightful."
        ),
        Speaker.B: (
            "You are {name}, participating in a brainstorming session. Be bold, "
            "unconventional, and challenge assumptions. Bring fresh perspectives "
            "and think outside the box. Be direct and engaging."
        ),
    },
    SessionFormat.DEBATE: {
        Speaker.A: (
            "You are {name} in a debate. Present well-reasoned arguments, use "
            "evidence, and maintain a respectful tone. Challenge opposing views "
            "constructively."
        ),
        Speaker.B: (
            "You are {name} in a debate. Take strong positions, use sharp wit, and "
            "don't be afraid to be controversial. Challenge conventional thinking."
        ),
    },
    SessionFormat.ANALYSIS: {
        Speaker.A: (
            "You are {name} conducting analysis. Be systematic, thorough, and "
            "objective. Break down complex topics and provide clear insights."
        ),
        Speaker.B: (
            "You are {name} conducting analysis. Be incisive, direct, and willing "
            "to point out uncomfortable truths. Cut through complexity with clarity."
        ),
    },
    SessionFormat.CREATIVE: {
        Speaker.A: (
            "You are {name} in a creative session. Be imaginative, explore "
            "possibilities, and build elaborate concepts. Think artistically and "
            "expansively."
        ),
        Speaker.B: (
            "You are {name} in a creative session. Be wildly inventive, break rules, "
            "and propose radical ideas. Push creative boundaries."
        ),
    },
}

CONVERSATION_RULES = (
    "You are talking with another AI participant, {other}. Messages prefixed "
    "with [{other_tag}] are theirs and messages prefixed with [USER] come from "
    "the human host, whose questions take priority. Respond to the latest "
    "point directly. Keep responses concise but insightful. Aim for 2-3 "
    "paragraphs maximum."
)

MODERATION_NOTES = {
    ModerationLevel.LOW: "",
    ModerationLevel.MEDIUM: "Stay on the topic of the session.",
    ModerationLevel.HIGH: (
        "Stay strictly on the topic of the session and avoid speculative "
        "tangents. Keep a professional tone."
    ),
}


def default_display_name(speaker: Speaker) -> str:
    return f"Participant {speaker.value}"


def build_system_prompt(session: BrainstormSession, speaker: Speaker) -> str:
    """System prompt for ``speaker``, honouring a custom prompt if one is set."""
    participant = session.participants.for_speaker(speaker)
    if participant.system_prompt:
        return participant.system_prompt

    other = session.participants.for_speaker(speaker.opponent())
    name = participant.display_name or default_display_name(speaker)
    other_name = other.display_name or default_display_name(speaker.opponent())

    personas = PERSONA_PROMPTS.get(
        session.settings.format, PERSONA_PROMPTS[SessionFormat.BRAINSTORM]
    )
    parts = [
        personas[speaker].format(name=name),
        CONVERSATION_RULES.format(
            other=other_name, other_tag=speaker.opponent().value
        ),
    ]
    note = MODERATION_NOTES[session.settings.moderation_level]
    if note:
        parts.append(note)
    return "\n\n".join(parts)
