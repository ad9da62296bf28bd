"""LNURL-auth (LUD-04) challenges and sessions."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional
from urllib.parse import urlencode

from ...crypto.lnurl import encode_lnurl
from ...crypto.signatures import verify_k1_signature
from ...domain.entities import AuthSession, ChallengeKind, utcnow
from ...domain.errors import (
    InvalidTokenError,
    NotFoundError,
    SignatureError,
    UnauthorizedError,
    ValidationError,
)
from ...domain.repositories import AuthSessionRepository
from ..dtos import (
    AuthChallengeDTO,
    AuthVerifiedDTO,
    SessionDTO,
    SessionStatusDTO,
    StatusResponseDTO,
)
from ..validators import validate_auth_action, validate_auth_params
from .challenge import ChallengeService

logger = logging.getLogger(__name__)


class AuthService:
    """Signature-based login.

    A failed signature check leaves the challenge usable, so only a valid
    signature can consume it.
    """

    def __init__(
        self,
        challenge_service: ChallengeService,
        session_repository: AuthSessionRepository,
        domain: str,
        session_ttl_seconds: int = 3600,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.challenge_service = challenge_service
        self.session_repository = session_repository
        self.domain = domain
        self.session_ttl = timedelta(seconds=session_ttl_seconds)
        self.clock = clock

    def auth_url(self, k1: str, action: str) -> str:
        return f"{self.domain}/auth?" + urlencode(
            {"tag": "login", "k1": k1, "action": action}
        )

    async def generate(self, action: Optional[str] = None) -> AuthChallengeDTO:
        action = validate_auth_action(action)
        challenge = await self.challenge_service.mint(ChallengeKind.AUTH, action=action)
        return AuthChallengeDTO(
            k1=challenge.k1,
            action=action,
            callback=f"{self.domain}/auth",
            lnurl=encode_lnurl(self.auth_url(challenge.k1, action)),
        )

    async def verify(self, k1: str, sig: str, key: str) -> AuthVerifiedDTO:
        k1, sig, key = validate_auth_params(k1, sig, key)

        challenge = await self.challenge_service.get_active(k1, ChallengeKind.AUTH)
        if challenge is None:
            raise InvalidTokenError("Invalid or expired k1")

        try:
            verify_k1_signature(k1, sig, key)
        except SignatureError as e:
            logger.warning("Auth signature rejected for %s...: %s", k1[:8], e.reason)
            raise

        now = self.clock()
        session = AuthSession(
            id=secrets.token_hex(16),
            linking_key=key,
            action=challenge.action or "login",
            created_at=now,
            expires_at=now + self.session_ttl,
        )
        # Another request may have used the same k1 since get_active
        if await self.challenge_service.claim_for_session(k1, session) is None:
            raise InvalidTokenError("Invalid or expired k1")

        logger.info(
            "Auth %s... succeeded for key %s, session %s", k1[:8], key[:16], session.id
        )
        return AuthVerifiedDTO(
            session_id=session.id, linking_key=key, action=session.action
        )

    async def validate(self, session_id: Optional[str]) -> SessionStatusDTO:
        if not session_id:
            raise ValidationError("Missing sessionId parameter")
        session = await self._active_session(session_id)
        if session is None:
            raise UnauthorizedError("Invalid or expired session")
        return SessionStatusDTO(session=SessionDTO(**session.model_dump()))

    async def status(self, session_id: str) -> SessionStatusDTO:
        session = await self._active_session(session_id)
        if session is None:
            raise NotFoundError("Session not found")
        return SessionStatusDTO(session=SessionDTO(**session.model_dump()))

    async def logout(self, session_id: str) -> StatusResponseDTO:
        if not await self.session_repository.delete(session_id):
            raise NotFoundError("Session not found")
        logger.info("Session %s logged out", session_id)
        return StatusResponseDTO()

    async def _active_session(self, session_id: str) -> Optional[AuthSession]:
        session = await self.session_repository.get(session_id)
        if session is None or session.is_expired(self.clock()):
            return None
        return session
