"""
Voice Interview - API Schemas.

Pydantic models for the HTTP routes and the WebSocket event envelope.
"""

from typing import Any

from pydantic import BaseModel, Field


# =============================================================================
# WebSocket Envelope
# =============================================================================

class EventEnvelope(BaseModel):
    """One text frame on the interview socket, in either direction."""
    event: str = Field(..., min_length=1)
    data: Any = None


# =============================================================================
# Response Schemas
# =============================================================================

class HealthResponse(BaseModel):
    status: str
    service: str


class TurnResponse(BaseModel):
    role: str
    content: str


class TranscriptResponse(BaseModel):
    """Transcript of the candidate's in-progress interview."""
    candidate_id: str
    transcript: list[TurnResponse]
