"""
Voice Interview - Domain Models.

Defines the core data structures used throughout the application.
Uses dataclasses for clarity and immutability where appropriate.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


# -----------------------------------------------------------------------------
# Enums
# -----------------------------------------------------------------------------

class Role(str, Enum):
    """Speaker of a transcript turn."""
    USER = "user"
    AI = "ai"


class SttRelayState(str, Enum):
    """States of the per-connection speech-to-text relay."""
    IDLE = "idle"
    OPENING = "opening"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"


# -----------------------------------------------------------------------------
# Identity
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class CandidateIdentity:
    """Candidate resolved from the connection credential."""

    candidate_id: str
    email: str

    @property
    def room(self) -> str:
        """Routing group joined by every connection of this candidate."""
        return self.candidate_id


# -----------------------------------------------------------------------------
# Session State
# -----------------------------------------------------------------------------

@dataclass
class Turn:
    """One role-tagged utterance in a transcript."""

    role: Role
    content: str

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role.value, "content": self.content}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Turn":
        role = Role.USER if data.get("role") == Role.USER.value else Role.AI
        return cls(role=role, content=str(data.get("content") or ""))


@dataclass
class InterviewSessionState:
    """
    Per-candidate interview state held in the session store.

    Fields the interview flow does not own (written by the resume upload
    step) are carried through ``extra`` so a whole-record overwrite never
    drops them.
    """

    resume_text: str = ""
    transcript: list[Turn] = field(default_factory=list)
    interview_record_id: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def add_turn(self, role: Role, content: str) -> Turn:
        """Append a turn; insertion order is chronological order."""
        turn = Turn(role=role, content=content)
        self.transcript.append(turn)
        return turn

    def transcript_dicts(self) -> list[dict[str, Any]]:
        return [turn.to_dict() for turn in self.transcript]

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data["resumeText"] = self.resume_text
        data["transcript"] = self.transcript_dicts()
        if self.interview_record_id is not None:
            data["_id"] = self.interview_record_id
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InterviewSessionState":
        extra = {
            key: value
            for key, value in data.items()
            if key not in ("resumeText", "resume", "transcript", "_id")
        }
        record_id = data.get("_id")
        return cls(
            resume_text=str(data.get("resumeText") or data.get("resume") or ""),
            transcript=[Turn.from_dict(t) for t in data.get("transcript") or []],
            interview_record_id=str(record_id) if record_id else None,
            extra=extra,
        )


# -----------------------------------------------------------------------------
# Interview Configuration
# -----------------------------------------------------------------------------

_LEADING_INT = re.compile(r"\s*[+-]?\d+")


@dataclass(frozen=True)
class InterviewConfiguration:
    """Cached copy of the durable interview record driving the Turn Engine."""

    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def role_of_ai(self) -> str:
        return self.raw.get("roleofai") or "Professional AI Interviewer"

    @property
    def job_position(self) -> str:
        return self.raw.get("jobPosition") or "Software Developer"

    @property
    def level(self) -> str:
        return self.raw.get("level") or "Intermediate"

    @property
    def skills(self) -> list[str]:
        skills = self.raw.get("skills")
        return [str(s) for s in skills] if isinstance(skills, list) else []

    @property
    def job_description(self) -> str:
        return self.raw.get("jobDescription") or ""

    @property
    def language(self) -> str:
        # Stored under the historical field name.
        return self.raw.get("launguage") or self.raw.get("language") or "English"

    @property
    def minimum_qualification(self) -> str:
        return self.raw.get("minimumQualification") or ""

    @property
    def minimum_skills(self) -> str:
        return self.raw.get("minimumSkills") or ""

    @property
    def questions(self) -> list[str]:
        questions = self.raw.get("questions")
        return [str(q) for q in questions] if isinstance(questions, list) else []

    def duration_minutes(self, default: int = 10) -> int:
        """
        Configured duration in whole minutes.

        Reads the leading integer, so "15.5" and "15 minutes" both give 15.
        Unparseable or non-positive values fall back to the default.
        """
        match = _LEADING_INT.match(str(self.raw.get("duration", default)))
        if match is None:
            return default
        minutes = int(match.group())
        return minutes if minutes > 0 else default

    def to_dict(self) -> dict[str, Any]:
        return dict(self.raw)


@dataclass(frozen=True)
class TimingWindow:
    """Display-formatted interview start/end, fixed once per session."""

    start_time: str
    end_time: str
    ends_at: datetime | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"startTime": self.start_time, "endTime": self.end_time}
        if self.ends_at is not None:
            data["endsAt"] = self.ends_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TimingWindow":
        ends_at = data.get("endsAt")
        return cls(
            start_time=str(data.get("startTime", "")),
            end_time=str(data.get("endTime", "")),
            ends_at=datetime.fromisoformat(ends_at) if ends_at else None,
        )


# -----------------------------------------------------------------------------
# Final Feedback
# -----------------------------------------------------------------------------

@dataclass
class FinalFeedback:
    """Structured end-of-interview report."""

    overall_analysis: str
    notable_strengths: list[str]
    areas_for_improvement: list[str]
    overall_mark: int
    marks_cutdown_points: list[str]
    final_tip: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "overall_analysis": self.overall_analysis,
            "notable_strengths": list(self.notable_strengths),
            "areas_for_improvement": list(self.areas_for_improvement),
            "overall_mark": self.overall_mark,
            "marks_cutdown_points": list(self.marks_cutdown_points),
            "final_tip": self.final_tip,
        }


# -----------------------------------------------------------------------------
# STT Relay Session
# -----------------------------------------------------------------------------

@dataclass
class SttRelaySession:
    """
    Per-connection STT relay state.

    Owned by the gateway connection and handed to the relay on every call.
    At most one upstream connection is live per session object.
    """

    state: SttRelayState = SttRelayState.IDLE
    upstream: Any = None
    transcript_buffer: str = ""
    flush_pending: bool = False
    close_timer: Any = None
    reader_task: Any = None

    @property
    def is_open(self) -> bool:
        return self.state == SttRelayState.OPEN and self.upstream is not None

    @property
    def is_live(self) -> bool:
        """An upstream connection is opening or open."""
        return self.state in (SttRelayState.OPENING, SttRelayState.OPEN)

    def append_transcript(self, fragment: str) -> None:
        self.transcript_buffer = f"{self.transcript_buffer} {fragment}".strip()

    def take_transcript(self) -> str:
        """Return the buffered text and reset the buffer."""
        text = self.transcript_buffer.strip()
        self.transcript_buffer = ""
        return text
