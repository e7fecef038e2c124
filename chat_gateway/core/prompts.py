# chat_gateway/core/prompts.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Prompt builder
-----------------------------------
Turns (mode, history, new message) into the single text prompt sent to
Ollama's /api/generate endpoint:

    <persona instruction>

    User: ...
    Assistant: ...
    User: <new message>
    Assistant:

The trailing "Assistant:" cue tells the model to continue from there.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional, Sequence

from chat_gateway.runtime_state import SessionTurn

DEFAULT_MAX_HISTORY_TURNS = 16


class Mode(str, Enum):
    """Persona presets selectable from the UI."""

    CUSTOMER_SUPPORT = "customer_support"
    STUDY_HELPER = "study_helper"
    BUSINESS_ASSISTANT = "business_assistant"
    VIRTUAL_ASSISTANT = "virtual_assistant"
    INTERVIEW_AI = "interview_ai"


PERSONA_PROMPTS: Dict[Mode, str] = {
    Mode.CUSTOMER_SUPPORT: (
        "You are a professional customer support agent. Be polite, calm, and "
        "step-by-step. Ask for missing details and offer clear solutions. "
        "If unsure, ask clarifying questions."
    ),
    Mode.STUDY_HELPER: (
        "You are a study tutor. Explain clearly with examples, then give a "
        "short quiz. Encourage the student to try first."
    ),
    Mode.BUSINESS_ASSISTANT: (
        "You are a business assistant. Provide structured, actionable answers "
        "with bullet points, templates, and next steps."
    ),
    Mode.VIRTUAL_ASSISTANT: (
        "You are a general virtual assistant. Be fast, practical, and "
        "friendly. Ask at most 1–2 questions if needed."
    ),
    Mode.INTERVIEW_AI: (
        "You are an interview coach. Ask ONE interview question at a time. "
        "After the user answers: give feedback + a stronger version + a "
        "score (1–10)."
    ),
}


def resolve_mode(mode: Optional[str]) -> Mode:
    """Map a raw query value to a Mode, falling back to virtual_assistant."""
    try:
        return Mode(mode)
    except ValueError:
        return Mode.VIRTUAL_ASSISTANT


def system_prompt(mode: Optional[str]) -> str:
    return PERSONA_PROMPTS[resolve_mode(mode)]


def build_prompt(
    mode: Optional[str],
    history: Sequence[SessionTurn],
    new_message: str,
    max_turns: int = DEFAULT_MAX_HISTORY_TURNS,
) -> str:
    """
    Render the full prompt for one request.

    Only the last `max_turns` entries of `history` are replayed, oldest
    first. Older turns stay in the session but never reach the model.
    """
    trimmed = list(history)[-max_turns:] if max_turns > 0 else []

    lines = [f"{system_prompt(mode)}\n"]
    for turn in trimmed:
        speaker = "User" if turn.role == "user" else "Assistant"
        lines.append(f"{speaker}: {turn.text}")
    lines.append(f"User: {new_message}")
    lines.append("Assistant:")
    return "\n".join(lines)
