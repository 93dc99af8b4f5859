"""
Voice Interview - FastAPI Application.

Main FastAPI app serving the interview socket and the HTTP API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from voice_interview.api.deps import Services, build_services
from voice_interview.api.gateway import router as gateway_router
from voice_interview.api.routes import limiter, router as api_router
from voice_interview.core.config import configure_logging, get_settings

# Configure logging
configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    - Startup: wire Redis, MongoDB, Gemini and Sarvam collaborators unless
      services were injected
    - Shutdown: close the connections it opened
    """
    logger.info("🚀 Voice Interview API starting...")

    owned = app.state.services is None
    if owned:
        app.state.services = build_services()

    yield

    logger.info("👋 Voice Interview API shutting down...")
    if owned:
        await app.state.services.aclose()
        app.state.services = None


def create_app(services: Services | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Voice Interview",
        description="Real-time voice mock-interview API",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        lifespan=lifespan,
    )
    app.state.services = services

    # Rate limiting
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded
    from slowapi.middleware import SlowAPIMiddleware

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(gateway_router)

    return app


# Create app instance
app = create_app()
