"""
Voice Interview - API Routes.

HTTP endpoints next to the interview socket: a health probe and the
transcript lookup a reconnecting client uses to redraw the conversation.
Includes rate limiting so a reconnect loop cannot hammer the session store.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from voice_interview.api.deps import Services, get_services
from voice_interview.api.schemas import HealthResponse, TranscriptResponse, TurnResponse
from voice_interview.core.config import get_settings
from voice_interview.infra.auth import bearer_token, extract_token


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["interview"])

limiter = Limiter(key_func=get_remote_address)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """API health check."""
    return HealthResponse(status="healthy", service="Voice Interview")


@router.get("/interview/transcript", response_model=TranscriptResponse)
@limiter.limit("60/minute")
async def get_transcript(request: Request, services: Services = Depends(get_services)):
    """Transcript of the authenticated candidate's current interview."""
    settings = get_settings()
    token = extract_token(request.cookies, {}, settings.AUTH_COOKIE_NAME) or bearer_token(
        request.headers.get("Authorization")
    )

    identity = await services.authenticator.resolve(token)
    if identity is None:
        raise HTTPException(status_code=401, detail="Candidate not authenticated. Please log in first.")

    try:
        transcript = await services.orchestrator.get_transcript(identity)
    except Exception as e:
        logger.error(f"Failed to load transcript: {e}")
        raise HTTPException(status_code=500, detail="Failed to load transcript")

    return TranscriptResponse(
        candidate_id=identity.candidate_id,
        transcript=[TurnResponse(**turn) for turn in transcript],
    )
