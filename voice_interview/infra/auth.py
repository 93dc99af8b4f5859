"""
Voice Interview - Connection Authentication.

Resolves a candidate identity from a signed credential. Every failure is
soft: the caller gets None and the connection continues unauthenticated.
"""

import logging
from typing import Any, Mapping, Optional

from jose import JWTError, jwt

from voice_interview.core.config import get_settings
from voice_interview.core.domain.models import CandidateIdentity

logger = logging.getLogger(__name__)


def extract_token(
    cookies: Mapping[str, str],
    auth_payload: Mapping[str, Any],
    cookie_name: str = "usertoken",
) -> Optional[str]:
    """Credential from the cookie first, then from the handshake auth payload."""
    token = cookies.get(cookie_name)
    if token:
        return token
    token = auth_payload.get("token") or auth_payload.get("usertoken")
    return str(token) if token else None


def bearer_token(authorization: Optional[str]) -> Optional[str]:
    if authorization and authorization.startswith("Bearer "):
        return authorization[len("Bearer "):].strip() or None
    return None


class Authenticator:
    """Verifies HS256 credentials and looks the candidate up in the directory."""

    def __init__(self, repository, secret: str | None = None, algorithm: str | None = None):
        settings = get_settings()
        self._repository = repository
        self._secret = secret if secret is not None else settings.JWT_SECRET_KEY
        self._algorithm = algorithm or settings.JWT_ALGORITHM
        if not self._secret:
            logger.warning("⚠️ JWT_SECRET_KEY not set; every connection will be unauthenticated")

    def decode(self, token: str) -> Optional[dict]:
        """Verify signature and expiry; None on any failure."""
        if not self._secret:
            return None
        try:
            return jwt.decode(token, self._secret, algorithms=[self._algorithm])
        except JWTError as e:
            logger.info(f"❌ Invalid token provided: {e}")
            return None

    async def resolve(self, token: Optional[str]) -> Optional[CandidateIdentity]:
        if not token:
            return None

        payload = self.decode(token)
        if not payload:
            return None

        candidate_id = payload.get("_id") or payload.get("sub")
        if not candidate_id:
            logger.info("❌ Token payload carries no candidate id")
            return None

        try:
            candidate = await self._repository.get_candidate(str(candidate_id))
        except Exception as e:
            logger.error(f"Candidate lookup failed: {e}")
            return None

        if not candidate:
            logger.info("❌ Token provided but candidate not found")
            return None

        email = candidate.get("email") or ""
        identity = CandidateIdentity(candidate_id=str(candidate.get("_id") or candidate_id), email=email)
        logger.info(f"✅ Candidate authenticated: {identity.candidate_id}")
        return identity
