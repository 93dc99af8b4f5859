"""
Pytest configuration and fixtures for Voice Interview tests.

External collaborators (Redis, MongoDB, Gemini, Sarvam) are replaced by
small in-memory doubles defined here.
"""

import asyncio
import json
import sys
from datetime import datetime
from pathlib import Path
from typing import Any

import pytest


# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


from voice_interview.app.finalizer import Finalizer
from voice_interview.app.orchestrator import InterviewOrchestrator
from voice_interview.app.turn_engine import TurnEngine
from voice_interview.core.domain.models import CandidateIdentity
from voice_interview.infra.persistence.session_store import SessionStore


CANDIDATE_ID = "64b7f0c2a1b2c3d4e5f60718"
SESSION_ID = "64b7f0c2a1b2c3d4e5f60799"
RECORD_ID = "64b7f0c2a1b2c3d4e5f60742"
CANDIDATE_EMAIL = "jane@example.com"


# =============================================================================
# Collaborator Doubles
# =============================================================================

class FakeRedis:
    """In-memory stand-in for the redis.asyncio client calls we use."""

    def __init__(self):
        self.data: dict[str, str] = {}
        self.ttls: dict[str, int] = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None, nx=False):
        if nx and key in self.data:
            return None
        self.data[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class FakeRepository:
    """In-memory durable record store."""

    def __init__(self):
        self.candidates: dict[str, dict] = {
            CANDIDATE_ID: {"_id": CANDIDATE_ID, "email": CANDIDATE_EMAIL, "numberofattempt": 0},
        }
        self.interviews: dict[str, dict] = {
            SESSION_ID: {
                "_id": SESSION_ID,
                "jobPosition": "Backend Engineer",
                "launguage": "English",
                "duration": "10",
                "skills": ["Python", "SQL"],
                "questions": ["Why do you want this role?"],
                "usercompleteintreviewemailandid": [],
            },
        }
        self.results: dict[str, dict] = {RECORD_ID: {"_id": RECORD_ID, "iscompleted": False}}
        self.interview_reads = 0

    async def get_candidate(self, candidate_id):
        return self.candidates.get(candidate_id)

    async def get_interview(self, session_id):
        self.interview_reads += 1
        return self.interviews.get(session_id)

    async def complete_result(self, record_id, feedback, video_url, transcript):
        record = self.results.get(record_id)
        if record is None:
            return None
        record.update(feedback=feedback, videoUrl=video_url, iscompleted=True, transcript=transcript)
        return dict(record)

    async def push_completion(self, session_id, email, record_id):
        interview = self.interviews.get(session_id)
        if interview is None:
            return None
        interview["usercompleteintreviewemailandid"].append({"email": email, "intreviewid": record_id})
        return dict(interview)

    async def increment_attempts(self, candidate_id):
        candidate = self.candidates.get(candidate_id)
        if candidate is None:
            return None
        candidate["numberofattempt"] += 1
        return dict(candidate)


class FakeGemini:
    """Scripted Gemini client; each reply is a string or an exception."""

    def __init__(self, replies=None, has_api_key=True):
        self.replies = list(replies or [])
        self.has_api_key = has_api_key
        self.calls: list[dict[str, Any]] = []

    async def generate(self, contents, **kwargs):
        self.calls.append({"contents": contents, **kwargs})
        reply = self.replies.pop(0) if self.replies else "Tell me about yourself."
        if isinstance(reply, Exception):
            raise reply
        return reply


_CLOSED = object()


class FakeUpstream:
    """Upstream STT socket double; optionally answers a flush with scripted messages."""

    def __init__(self, replies_on_flush=None):
        self.sent: list[str] = []
        self.close_calls = 0
        self.close_code = None
        self.close_reason = ""
        self.closed = False
        self._replies_on_flush = replies_on_flush
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def send(self, message):
        if self.closed:
            raise RuntimeError("socket closed")
        self.sent.append(message)
        if self._replies_on_flush and json.loads(message).get("type") == "flush":
            for reply in self._replies_on_flush:
                self.push(reply)

    async def close(self):
        self.close_calls += 1
        if not self.closed:
            self.closed = True
            self.close_code = 1000
            self._inbox.put_nowait(_CLOSED)

    def push(self, message):
        self._inbox.put_nowait(json.dumps(message) if isinstance(message, dict) else message)

    def server_close(self, code=1000, reason="done"):
        self.closed = True
        self.close_code = code
        self.close_reason = reason
        self._inbox.put_nowait(_CLOSED)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        return item


class FakeConnector:
    """Hands out FakeUpstream sockets and remembers every connect."""

    def __init__(self, replies_on_flush=None, fail_with=None):
        self.upstreams: list[FakeUpstream] = []
        self.options: list[dict] = []
        self._replies_on_flush = replies_on_flush
        self._fail_with = fail_with

    async def connect(self, options=None):
        self.options.append(options or {})
        if self._fail_with is not None:
            raise self._fail_with
        upstream = FakeUpstream(self._replies_on_flush)
        self.upstreams.append(upstream)
        return upstream


class EventRecorder:
    """Collects (event, data) pairs emitted to a client."""

    def __init__(self):
        self.events: list[tuple[str, Any]] = []

    async def __call__(self, event, data=None):
        self.events.append((event, data))

    def names(self) -> list[str]:
        return [event for event, _ in self.events]

    def named(self, name: str) -> list[Any]:
        return [data for event, data in self.events if event == name]


async def settle(delay: float = 0.01) -> None:
    """Let background reader tasks drain their queues."""
    await asyncio.sleep(delay)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def identity():
    return CandidateIdentity(candidate_id=CANDIDATE_ID, email=CANDIDATE_EMAIL)


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def gemini():
    return FakeGemini()


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 10, 19, 14, 5)


@pytest.fixture
def store(fake_redis, fixed_clock):
    return SessionStore(fake_redis, clock=fixed_clock)


@pytest.fixture
def orchestrator(store, repository, gemini):
    return InterviewOrchestrator(
        store=store,
        repository=repository,
        turn_engine=TurnEngine(gemini),
        finalizer=Finalizer(gemini),
    )


@pytest.fixture
def seed_session(fake_redis):
    """Write the session state the resume upload step would have created."""

    def _seed(resume_text="Experienced backend engineer", transcript=None, record_id=RECORD_ID):
        state = {"resumeText": resume_text, "transcript": transcript or []}
        if record_id:
            state["_id"] = record_id
        fake_redis.data[f"interview:{CANDIDATE_ID}"] = json.dumps(state)

    return _seed

