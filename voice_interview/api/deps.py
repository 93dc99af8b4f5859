"""
Voice Interview - Service Wiring.

Builds the collaborators shared by every connection and exposes them to
routes and the WebSocket gateway through ``app.state.services``.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import redis.asyncio as redis_async
from fastapi import Request

from voice_interview.api.gateway import ConnectionRegistry
from voice_interview.app.finalizer import Finalizer
from voice_interview.app.orchestrator import InterviewOrchestrator
from voice_interview.app.turn_engine import TurnEngine
from voice_interview.core.config import get_settings
from voice_interview.infra.auth import Authenticator
from voice_interview.infra.llm.gemini import GeminiClient
from voice_interview.infra.persistence.repository import InterviewRepository
from voice_interview.infra.persistence.session_store import SessionStore
from voice_interview.infra.speech.sarvam import SarvamConnector

logger = logging.getLogger(__name__)


@dataclass
class Services:
    """Process-wide collaborators."""

    orchestrator: InterviewOrchestrator
    authenticator: Authenticator
    stt_connector: Any
    registry: ConnectionRegistry = field(default_factory=ConnectionRegistry)
    closers: list[Any] = field(default_factory=list)

    async def aclose(self) -> None:
        for closer in self.closers:
            try:
                result = closer()
                if hasattr(result, "__await__"):
                    await result
            except Exception as e:
                logger.warning(f"Error during shutdown: {e}")


def build_services() -> Services:
    """Wire production collaborators from settings."""
    settings = get_settings()

    redis_client = redis_async.from_url(settings.REDIS_URL, decode_responses=True)
    repository = InterviewRepository.from_settings()
    gemini = GeminiClient()

    orchestrator = InterviewOrchestrator(
        store=SessionStore(redis_client),
        repository=repository,
        turn_engine=TurnEngine(gemini),
        finalizer=Finalizer(gemini),
    )

    return Services(
        orchestrator=orchestrator,
        authenticator=Authenticator(repository),
        stt_connector=SarvamConnector(),
        closers=[redis_client.aclose, repository.close],
    )


def get_services(request: Request) -> Services:
    return request.app.state.services
