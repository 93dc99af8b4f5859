"""
Voice Interview - Finalizer.

Scores a finished interview. Whatever the model returns, and even when
the call fails outright, the result is a complete FinalFeedback with an
integer mark in [0, 100].
"""

import json
import logging
import re
from typing import Any

from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import FinalFeedback, Role, Turn
from voice_interview.core.prompts import FEEDBACK_PROMPT, FEEDBACK_SYSTEM_INSTRUCTION
from voice_interview.infra.llm.gemini import GeminiClient


logger = logging.getLogger(__name__)


DEFAULT_MARK = 70
FALLBACK_MARK = 65

_CODE_FENCE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


def render_conversation(transcript: list[Turn]) -> str:
    return "\n".join(f"{turn.role.value.upper()}: {turn.content}" for turn in transcript)


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text.strip()).strip()


def _string_list(value: Any, default: list[str]) -> list[str]:
    if isinstance(value, list):
        return [str(item) for item in value]
    return list(default)


def clamp_mark(value: Any) -> int:
    """Integer mark in [0, 100]; non-numeric values get the default."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_MARK
    if value != value:  # NaN
        return DEFAULT_MARK
    return int(max(0, min(100, value)))


def normalize_feedback(data: Any) -> FinalFeedback:
    """Fill every missing or malformed field with its default."""
    if not isinstance(data, dict):
        data = {}
    return FinalFeedback(
        overall_analysis=str(data.get("overall_analysis") or "Interview completed successfully."),
        notable_strengths=_string_list(data.get("notable_strengths"), ["Communication skills"]),
        areas_for_improvement=_string_list(data.get("areas_for_improvement"), ["Technical depth"]),
        overall_mark=clamp_mark(data.get("overall_mark")),
        marks_cutdown_points=_string_list(
            data.get("marks_cutdown_points"),
            ["Did not provide enough practical examples."],
        ),
        final_tip=str(data.get("final_tip") or "Continue practicing and improving your skills."),
    )


def parse_feedback(text: str) -> FinalFeedback:
    try:
        data = json.loads(strip_code_fences(text))
    except ValueError as e:
        logger.warning(f"Feedback was not valid JSON, using defaults: {e}")
        data = {}
    return normalize_feedback(data)


def default_feedback() -> FinalFeedback:
    return FinalFeedback(
        overall_analysis="Interview completed. Unable to generate detailed analysis at this time.",
        notable_strengths=["Active participation", "Professional communication"],
        areas_for_improvement=["Technical depth", "Specific examples"],
        overall_mark=FALLBACK_MARK,
        marks_cutdown_points=["Detailed scoring was unavailable for this interview."],
        final_tip="Continue practicing technical skills and prepare specific examples from your experience.",
    )


class Finalizer:
    """Generates the structured end-of-interview report."""

    def __init__(self, gemini: GeminiClient | None = None):
        self._settings = get_settings()
        self._gemini = gemini or GeminiClient()

    async def generate_feedback(self, resume_text: str, transcript: list[Turn]) -> FinalFeedback:
        prompt = FEEDBACK_PROMPT.format(
            conversation=render_conversation(transcript),
            resume_text=resume_text,
        )

        try:
            text = await self._gemini.generate(
                prompt,
                model_name=self._settings.GEMINI_FEEDBACK_MODEL,
                system_instruction=FEEDBACK_SYSTEM_INSTRUCTION,
            )
        except Exception as e:
            logger.error(f"Error generating final feedback: {e}", exc_info=True)
            return default_feedback()

        feedback = parse_feedback(text)
        user_turns = sum(1 for turn in transcript if turn.role == Role.USER)
        logger.info(f"⭐ Final feedback: mark={feedback.overall_mark} over {user_turns} answers")
        return feedback
