"""Single-use challenge (k1) lifecycle."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timedelta
from typing import Callable, Optional

from ...domain.entities import (
    AuthSession,
    Challenge,
    ChallengeKind,
    ChallengeState,
    utcnow,
)
from ...domain.repositories import ChallengeRepository, TransitionStatus
from ..validators import validate_k1

logger = logging.getLogger(__name__)


class ChallengeService:
    """Mints challenges and redeems each of them at most once.

    All redemption goes through ``ChallengeRepository.claim``, which checks and
    flips the state in one atomic store operation; this service never decides
    on a stale read.
    """

    def __init__(
        self,
        challenge_repository: ChallengeRepository,
        auth_k1_ttl_seconds: int = 300,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.challenge_repository = challenge_repository
        self.auth_k1_ttl = timedelta(seconds=auth_k1_ttl_seconds)
        self.clock = clock

    async def mint(
        self,
        kind: ChallengeKind,
        *,
        min_withdrawable: Optional[int] = None,
        max_withdrawable: Optional[int] = None,
        action: Optional[str] = None,
    ) -> Challenge:
        now = self.clock()
        challenge = Challenge(
            k1=secrets.token_hex(32),
            kind=kind,
            created_at=now,
            expires_at=now + self.auth_k1_ttl if kind == ChallengeKind.AUTH else None,
            min_withdrawable=min_withdrawable,
            max_withdrawable=max_withdrawable,
            action=action,
        )
        created = await self.challenge_repository.create(challenge)
        logger.info("Minted %s challenge %s...", kind.value, created.k1[:8])
        return created

    async def claim(
        self,
        k1: str,
        kind: ChallengeKind,
        target: ChallengeState = ChallengeState.USED,
    ) -> Optional[Challenge]:
        """Redeem ``k1``. Returns the updated challenge, or None when it was not redeemable."""
        k1 = validate_k1(k1)
        now = self.clock()
        status, challenge = await self.challenge_repository.claim(k1, kind, target, now)
        if status != TransitionStatus.APPLIED or challenge is None:
            logger.info(
                "Rejected %s of %s challenge %s...: %s",
                target.value,
                kind.value,
                k1[:8],
                status.name.lower(),
            )
            return None
        return challenge.model_copy(update={"state": target, "consumed_at": now})

    async def cancel(self, k1: str, kind: ChallengeKind) -> Optional[Challenge]:
        return await self.claim(k1, kind, ChallengeState.CANCELLED)

    async def record_amount(self, k1: str, amount_sats: int) -> Optional[Challenge]:
        """Store the amount actually paid out for a withdraw challenge."""
        return await self.challenge_repository.set_amount(k1, amount_sats)

    async def get_active(self, k1: str, kind: ChallengeKind) -> Optional[Challenge]:
        """Read-only lookup of an unused, unexpired challenge. Never consumes it."""
        k1 = validate_k1(k1)
        challenge = await self.challenge_repository.get(k1)
        if challenge is None or challenge.kind != kind:
            return None
        if not challenge.is_unused or challenge.is_expired(self.clock()):
            return None
        return challenge

    async def claim_for_session(
        self, k1: str, session: AuthSession
    ) -> Optional[Challenge]:
        """Consume an auth challenge and persist ``session`` in one atomic step."""
        k1 = validate_k1(k1)
        now = self.clock()
        status, challenge = await self.challenge_repository.claim_with_session(
            k1, session, now
        )
        if status != TransitionStatus.APPLIED or challenge is None:
            logger.info(
                "Rejected auth claim of challenge %s...: %s", k1[:8], status.name.lower()
            )
            return None
        return challenge.model_copy(
            update={"state": ChallengeState.USED, "consumed_at": now}
        )
