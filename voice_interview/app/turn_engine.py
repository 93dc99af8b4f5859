"""
Voice Interview - Turn Engine.

Turns the accumulated transcript, resume and interview configuration into
the interviewer's next utterance. The only side effect is the Gemini call.
"""

import logging
from datetime import datetime, timedelta
from typing import Any

from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import (
    InterviewConfiguration,
    Role,
    TimingWindow,
    Turn,
)
from voice_interview.core.prompts import (
    DEADLINE_REACHED_REPLY,
    DEV_MODE_REPLY,
    INTERVIEWER_SYSTEM_PROMPT,
    TERMINATION_SENTINEL,
    apology_for,
)
from voice_interview.infra.llm.gemini import GeminiClient


logger = logging.getLogger(__name__)


def build_history(transcript: list[Turn]) -> list[dict[str, Any]]:
    """Map transcript turns onto Gemini's user/model convention."""
    return [
        {
            "role": "user" if turn.role == Role.USER else "model",
            "parts": [{"text": turn.content}],
        }
        for turn in transcript
    ]


def build_system_instruction(
    resume_text: str,
    configuration: InterviewConfiguration,
    window: TimingWindow,
    current_time: str,
) -> str:
    questions = "\n".join(
        f"{i}. {q}" for i, q in enumerate(configuration.questions, start=1)
    )
    return INTERVIEWER_SYSTEM_PROMPT.format(
        role_of_ai=configuration.role_of_ai,
        job_position=configuration.job_position,
        level=configuration.level,
        language=configuration.language,
        resume_text=resume_text or "[RESUME_CONTENT]",
        job_description=configuration.job_description or "[JOB_DESCRIPTION]",
        skills=", ".join(configuration.skills) or "[SKILLS]",
        minimum_qualification=configuration.minimum_qualification or "Not specified",
        minimum_skills=configuration.minimum_skills or "Not specified",
        questions=questions or "[MANDATORY_QUESTIONS]",
        start_time=window.start_time or "[START_TIME]",
        current_time=current_time or "[CURRENT_TIME]",
        end_time=window.end_time or "[END_TIME]",
        sentinel=TERMINATION_SENTINEL,
    )


class TurnEngine:
    """
    Produces the next interviewer utterance.

    The returned text may contain the termination sentinel; it is passed
    through untouched for the client to interpret. A failed model call
    never propagates: the candidate hears a localized apology instead.
    """

    def __init__(self, gemini: GeminiClient | None = None):
        self._settings = get_settings()
        self._gemini = gemini or GeminiClient()

    def _deadline_passed(self, window: TimingWindow, now: datetime | None) -> bool:
        if not self._settings.ENFORCE_INTERVIEW_DEADLINE:
            return False
        if window.ends_at is None or now is None:
            return False
        grace = timedelta(minutes=self._settings.INTERVIEW_GRACE_MINUTES)
        return now > window.ends_at + grace

    async def next_utterance(
        self,
        transcript: list[Turn],
        resume_text: str,
        configuration: InterviewConfiguration,
        window: TimingWindow,
        current_time: str,
        now: datetime | None = None,
    ) -> str:
        if self._deadline_passed(window, now):
            logger.info("Interview deadline passed; closing without model call")
            return DEADLINE_REACHED_REPLY

        if not self._gemini.has_api_key:
            return DEV_MODE_REPLY

        system_instruction = build_system_instruction(
            resume_text, configuration, window, current_time
        )

        try:
            reply = await self._gemini.generate(
                build_history(transcript),
                model_name=self._settings.GEMINI_TURN_MODEL,
                system_instruction=system_instruction,
                temperature=self._settings.TURN_TEMPERATURE,
                max_output_tokens=self._settings.TURN_MAX_OUTPUT_TOKENS,
                top_k=1,
                top_p=1,
            )
        except Exception as e:
            logger.error(f"Turn generation failed: {e}", exc_info=True)
            return apology_for(configuration.language)

        logger.info(f"📝 Interviewer reply: {len(reply)} chars")
        return reply
