"""
Voice Interview - Session Store.

Redis-backed persistence of per-candidate interview state, the cached
interview configuration and the interview timing window.

Usage:
    store = SessionStore(redis.asyncio.from_url(url, decode_responses=True))

    state = await store.load_state(candidate_id)
    state.add_turn(Role.USER, "Hello")
    await store.save_state(candidate_id, state)

    window = await store.get_or_create_timing_window(session_id, candidate_id, 10)
"""

import json
import logging
from datetime import datetime, timedelta
from typing import Any, Callable, Optional

from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import (
    InterviewConfiguration,
    InterviewSessionState,
    TimingWindow,
)

logger = logging.getLogger(__name__)


def state_key(candidate_id: str) -> str:
    return f"interview:{candidate_id}"


def config_key(session_id: str, candidate_id: str) -> str:
    return f"interviewdetails:{session_id}:{candidate_id}"


def timing_key(session_id: str, candidate_id: str) -> str:
    return f"interviewtime:{session_id}:{candidate_id}"


def format_clock(moment: datetime) -> str:
    """Wall-clock display string used in prompts, e.g. ``02:05 PM``."""
    return moment.strftime("%I:%M %p")


class SessionStore:
    """
    Key-value session persistence.

    Every write is a whole-record overwrite; the last writer wins.
    """

    def __init__(
        self,
        redis_client: Any,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self._redis = redis_client
        self._clock = clock
        self._settings = get_settings()

    async def _get_json(self, key: str) -> Optional[Any]:
        raw = await self._redis.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (ValueError, TypeError) as e:
            logger.warning(f"Discarding unparseable value at {key}: {e}")
            return None

    # -------------------------------------------------------------------------
    # Session State
    # -------------------------------------------------------------------------

    async def load_state(self, candidate_id: str) -> Optional[InterviewSessionState]:
        """Load the candidate's session state, or None if none was started."""
        data = await self._get_json(state_key(candidate_id))
        if not isinstance(data, dict):
            return None
        return InterviewSessionState.from_dict(data)

    async def save_state(self, candidate_id: str, state: InterviewSessionState) -> None:
        await self._redis.set(state_key(candidate_id), json.dumps(state.to_dict()))
        logger.debug(f"Saved session state for {candidate_id} ({len(state.transcript)} turns)")

    async def delete_state(self, candidate_id: str) -> None:
        await self._redis.delete(state_key(candidate_id))

    # -------------------------------------------------------------------------
    # Interview Configuration Cache
    # -------------------------------------------------------------------------

    async def get_configuration(
        self, session_id: str, candidate_id: str
    ) -> Optional[InterviewConfiguration]:
        data = await self._get_json(config_key(session_id, candidate_id))
        if not isinstance(data, dict):
            return None
        return InterviewConfiguration(raw=data)

    async def cache_configuration(
        self, session_id: str, candidate_id: str, configuration: InterviewConfiguration
    ) -> None:
        await self._redis.set(
            config_key(session_id, candidate_id),
            json.dumps(configuration.to_dict(), default=str),
            ex=self._settings.CONFIG_CACHE_TTL_SECONDS,
        )

    async def delete_configuration(self, session_id: str, candidate_id: str) -> None:
        await self._redis.delete(config_key(session_id, candidate_id))

    # -------------------------------------------------------------------------
    # Timing Window
    # -------------------------------------------------------------------------

    async def get_or_create_timing_window(
        self, session_id: str, candidate_id: str, duration_minutes: int
    ) -> TimingWindow:
        """
        Return the session's timing window, computing it on first request.

        The window is written with SET NX so concurrent first requests agree
        on a single start/end pair.
        """
        key = timing_key(session_id, candidate_id)
        existing = await self._get_json(key)
        if isinstance(existing, dict):
            return TimingWindow.from_dict(existing)

        started = self._clock()
        ends = started + timedelta(minutes=duration_minutes)
        window = TimingWindow(
            start_time=format_clock(started),
            end_time=format_clock(ends),
            ends_at=ends,
        )

        created = await self._redis.set(
            key,
            json.dumps(window.to_dict()),
            ex=self._settings.TIMING_WINDOW_TTL_SECONDS,
            nx=True,
        )
        if not created:
            existing = await self._get_json(key)
            if isinstance(existing, dict):
                return TimingWindow.from_dict(existing)

        logger.info(f"Interview {session_id} ends at {window.end_time}")
        return window

    def current_clock(self) -> str:
        return format_clock(self._clock())

    def now(self) -> datetime:
        return self._clock()
