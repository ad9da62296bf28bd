"""Use case tests for ChallengeService - single-use k1 semantics."""

from __future__ import annotations

import asyncio

import pytest

from lnurlgate.application.use_cases.challenge import ChallengeService
from lnurlgate.domain.entities import AuthSession, ChallengeKind, ChallengeState
from lnurlgate.domain.errors import ValidationError
from tests.fixtures import FakeClock, InMemoryRepositories


@pytest.mark.asyncio
async def test_mint_creates_unused_challenge(
    challenge_service: ChallengeService, repositories: InMemoryRepositories
) -> None:
    challenge = await challenge_service.mint(
        ChallengeKind.WITHDRAW, min_withdrawable=1000, max_withdrawable=5000
    )

    assert len(challenge.k1) == 64
    assert challenge.expires_at is None
    stored = await repositories.challenges.get(challenge.k1)
    assert stored is not None
    assert stored.state == ChallengeState.UNUSED
    assert stored.max_withdrawable == 5000


@pytest.mark.asyncio
async def test_auth_challenges_expire_after_ttl(
    challenge_service: ChallengeService, clock: FakeClock
) -> None:
    challenge = await challenge_service.mint(ChallengeKind.AUTH, action="login")

    assert challenge.expires_at is not None
    assert (challenge.expires_at - clock.now).total_seconds() == 300


@pytest.mark.asyncio
async def test_claim_succeeds_exactly_once(challenge_service: ChallengeService) -> None:
    challenge = await challenge_service.mint(ChallengeKind.WITHDRAW)

    first = await challenge_service.claim(challenge.k1, ChallengeKind.WITHDRAW)
    second = await challenge_service.claim(challenge.k1, ChallengeKind.WITHDRAW)

    assert first is not None
    assert first.state == ChallengeState.USED
    assert first.consumed_at is not None
    assert second is None


@pytest.mark.asyncio
async def test_concurrent_claims_yield_one_winner(
    challenge_service: ChallengeService,
) -> None:
    challenge = await challenge_service.mint(ChallengeKind.CHANNEL)

    results = await asyncio.gather(
        *(challenge_service.claim(challenge.k1, ChallengeKind.CHANNEL) for _ in range(20))
    )

    assert sum(1 for r in results if r is not None) == 1


@pytest.mark.asyncio
async def test_claim_rejects_other_kind_unknown_and_malformed(
    challenge_service: ChallengeService,
) -> None:
    challenge = await challenge_service.mint(ChallengeKind.WITHDRAW)

    assert await challenge_service.claim(challenge.k1, ChallengeKind.CHANNEL) is None
    assert await challenge_service.claim("00" * 32, ChallengeKind.WITHDRAW) is None
    with pytest.raises(ValidationError):
        await challenge_service.claim("xyz", ChallengeKind.WITHDRAW)

    # The kind mismatch did not consume it
    assert await challenge_service.claim(challenge.k1, ChallengeKind.WITHDRAW) is not None


@pytest.mark.asyncio
async def test_claim_accepts_uppercase_k1(challenge_service: ChallengeService) -> None:
    challenge = await challenge_service.mint(ChallengeKind.WITHDRAW)

    assert (
        await challenge_service.claim(challenge.k1.upper(), ChallengeKind.WITHDRAW)
        is not None
    )


@pytest.mark.asyncio
async def test_expired_challenge_cannot_be_claimed(
    challenge_service: ChallengeService,
    repositories: InMemoryRepositories,
    clock: FakeClock,
) -> None:
    challenge = await challenge_service.mint(ChallengeKind.AUTH, action="login")
    clock.advance(301)

    assert await challenge_service.get_active(challenge.k1, ChallengeKind.AUTH) is None
    assert await challenge_service.claim(challenge.k1, ChallengeKind.AUTH) is None
    stored = await repositories.challenges.get(challenge.k1)
    assert stored is not None
    assert stored.state == ChallengeState.UNUSED


@pytest.mark.asyncio
async def test_cancel_is_terminal(challenge_service: ChallengeService) -> None:
    challenge = await challenge_service.mint(ChallengeKind.CHANNEL)

    cancelled = await challenge_service.cancel(challenge.k1, ChallengeKind.CHANNEL)

    assert cancelled is not None
    assert cancelled.state == ChallengeState.CANCELLED
    assert await challenge_service.claim(challenge.k1, ChallengeKind.CHANNEL) is None
    assert await challenge_service.cancel(challenge.k1, ChallengeKind.CHANNEL) is None


@pytest.mark.asyncio
async def test_get_active_never_consumes(challenge_service: ChallengeService) -> None:
    challenge = await challenge_service.mint(ChallengeKind.AUTH, action="login")

    assert await challenge_service.get_active(challenge.k1, ChallengeKind.AUTH) is not None
    assert await challenge_service.get_active(challenge.k1, ChallengeKind.AUTH) is not None
    assert await challenge_service.get_active(challenge.k1, ChallengeKind.WITHDRAW) is None


@pytest.mark.asyncio
async def test_claim_for_session_writes_session_once(
    challenge_service: ChallengeService,
    repositories: InMemoryRepositories,
    clock: FakeClock,
) -> None:
    challenge = await challenge_service.mint(ChallengeKind.AUTH, action="login")

    def session(session_id: str) -> AuthSession:
        return AuthSession(
            id=session_id,
            linking_key="02" + "11" * 32,
            action="login",
            created_at=clock.now,
            expires_at=clock.now,
        )

    first = await challenge_service.claim_for_session(challenge.k1, session("aa" * 16))
    second = await challenge_service.claim_for_session(challenge.k1, session("bb" * 16))

    assert first is not None
    assert second is None
    assert await repositories.auth_sessions.get("aa" * 16) is not None
    assert await repositories.auth_sessions.get("bb" * 16) is None


@pytest.mark.asyncio
async def test_record_amount(
    challenge_service: ChallengeService, repositories: InMemoryRepositories
) -> None:
    challenge = await challenge_service.mint(ChallengeKind.WITHDRAW)
    await challenge_service.claim(challenge.k1, ChallengeKind.WITHDRAW)

    updated = await challenge_service.record_amount(challenge.k1, 5000)

    assert updated is not None
    assert updated.amount_sats == 5000
    assert updated.state == ChallengeState.USED
