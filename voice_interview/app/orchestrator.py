"""
Voice Interview - Interview Orchestrator.

Runs the conversational turns and the end-of-interview flow for an
authenticated candidate, independent of the transport.

Turn Flow:
user-message -> load state -> append user turn -> load configuration
-> timing window -> Turn Engine -> append ai turn -> persist

End Flow:
end-interview -> Finalizer -> store result -> record completion
-> count attempt -> notify -> clear session
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable

from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import (
    CandidateIdentity,
    FinalFeedback,
    InterviewConfiguration,
    InterviewSessionState,
    Role,
)
from voice_interview.core.exceptions import (
    AuthenticationError,
    EmptyTranscriptError,
    RecordNotFoundError,
    ResumeNotFoundError,
    SessionError,
    SessionNotFoundError,
    ValidationError,
)
from voice_interview.app.finalizer import Finalizer
from voice_interview.app.turn_engine import TurnEngine
from voice_interview.infra.persistence.repository import InterviewRepository
from voice_interview.infra.persistence.session_store import SessionStore


logger = logging.getLogger(__name__)


CompletionCallback = Callable[[FinalFeedback, dict], Awaitable[None]]


class CandidateLocks:
    """
    One asyncio.Lock per candidate, serialising the load-mutate-store cycle
    on that candidate's session state. Locks are dropped when unused.
    """

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}
        self._holders: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, candidate_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(candidate_id, asyncio.Lock())
        self._holders[candidate_id] = self._holders.get(candidate_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._holders[candidate_id] -= 1
            if self._holders[candidate_id] == 0:
                del self._holders[candidate_id]
                del self._locks[candidate_id]

    def __len__(self) -> int:
        return len(self._locks)


def _text(payload: dict[str, Any], key: str) -> str:
    value = payload.get(key)
    return value if isinstance(value, str) else ""


class InterviewOrchestrator:
    """
    Coordinates the session store, the durable records, the Turn Engine
    and the Finalizer for one candidate at a time.
    """

    def __init__(
        self,
        store: SessionStore,
        repository: InterviewRepository,
        turn_engine: TurnEngine | None = None,
        finalizer: Finalizer | None = None,
        locks: CandidateLocks | None = None,
    ):
        self._settings = get_settings()
        self._store = store
        self._repository = repository
        self._turn_engine = turn_engine or TurnEngine()
        self._finalizer = finalizer or Finalizer()
        self._locks = locks or CandidateLocks()

    # -------------------------------------------------------------------------
    # Conversation
    # -------------------------------------------------------------------------

    async def load_configuration(self, session_id: str, candidate_id: str) -> InterviewConfiguration:
        """Cached configuration, refreshed from the durable record on a miss."""
        configuration = await self._store.get_configuration(session_id, candidate_id)
        if configuration is not None:
            return configuration

        record = await self._repository.get_interview(session_id)
        if not record:
            raise SessionNotFoundError("Interview details not found")

        configuration = InterviewConfiguration(raw=record)
        await self._store.cache_configuration(session_id, candidate_id, configuration)
        return configuration

    async def handle_user_message(
        self, identity: CandidateIdentity | None, payload: dict[str, Any]
    ) -> str:
        """
        Record the candidate's message and produce the interviewer's reply.

        Returns:
            The reply text, exactly as the Turn Engine produced it.
        """
        if identity is None:
            raise AuthenticationError()

        message = _text(payload, "messageContent")
        if not message.strip():
            raise ValidationError("No message content provided.")

        session_id = _text(payload, "sessionId")
        if not session_id:
            raise ValidationError("sessionId not found")

        candidate_id = identity.candidate_id

        async with self._locks.hold(candidate_id):
            state = await self._store.load_state(candidate_id)
            if state is None:
                raise SessionNotFoundError()
            if not state.resume_text:
                raise ResumeNotFoundError()

            state.add_turn(Role.USER, message)

            configuration = await self.load_configuration(session_id, candidate_id)
            window = await self._store.get_or_create_timing_window(
                session_id,
                candidate_id,
                configuration.duration_minutes(self._settings.DEFAULT_INTERVIEW_DURATION_MINUTES),
            )

            reply = await self._turn_engine.next_utterance(
                state.transcript,
                state.resume_text,
                configuration,
                window,
                current_time=self._store.current_clock(),
                now=self._store.now(),
            )

            state.add_turn(Role.AI, reply)
            await self._store.save_state(candidate_id, state)

        logger.info(f"💬 Turn recorded for {candidate_id} ({len(state.transcript)} turns)")
        return reply

    # -------------------------------------------------------------------------
    # Finalization
    # -------------------------------------------------------------------------

    async def end_interview(
        self,
        identity: CandidateIdentity | None,
        payload: dict[str, Any],
        on_complete: CompletionCallback | None = None,
    ) -> tuple[FinalFeedback, dict]:
        """
        Score the interview, persist the result and clear the session.

        ``on_complete`` runs after every durable update succeeded and
        before the session store is cleared.
        """
        session_id = _text(payload, "sessionId")
        video_url = _text(payload, "videoUrl")
        if not session_id or not video_url:
            raise ValidationError("videoUrl or sessionId missing")

        if identity is None:
            raise AuthenticationError("user not authenticated")

        candidate_id = identity.candidate_id

        async with self._locks.hold(candidate_id):
            state = await self._store.load_state(candidate_id)
            if state is None:
                raise SessionNotFoundError("Candidate interview not found")
            if not state.transcript:
                raise EmptyTranscriptError()
            if not state.interview_record_id:
                raise SessionError("intreviewid not found")

            feedback = await self._finalizer.generate_feedback(state.resume_text, state.transcript)
            updated_details = await self._persist_result(identity, session_id, video_url, state, feedback)

            if on_complete is not None:
                await on_complete(feedback, updated_details)

            await self._store.delete_state(candidate_id)
            await self._store.delete_configuration(session_id, candidate_id)

        logger.info(f"🏁 Interview {session_id} finalized for {candidate_id}")
        return feedback, updated_details

    async def _persist_result(
        self,
        identity: CandidateIdentity,
        session_id: str,
        video_url: str,
        state: InterviewSessionState,
        feedback: FinalFeedback,
    ) -> dict:
        record_id = state.interview_record_id

        updated = await self._repository.complete_result(
            record_id, feedback.to_dict(), video_url, state.transcript_dicts()
        )
        if not updated:
            raise RecordNotFoundError("Failed to update interview with feedback")

        updated_details = await self._repository.push_completion(
            session_id, identity.email, record_id
        )
        if not updated_details:
            raise RecordNotFoundError("Failed to update interview details")

        candidate = await self._repository.increment_attempts(identity.candidate_id)
        if not candidate:
            logger.warning(f"Attempt counter not updated for {identity.candidate_id}")

        return updated_details

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    async def get_transcript(self, identity: CandidateIdentity) -> list[dict[str, Any]]:
        """Current transcript for a reconnecting client; empty when none."""
        state = await self._store.load_state(identity.candidate_id)
        if state is None:
            return []
        return state.transcript_dicts()
