"""Use case tests for AuthService - LNURL-auth challenges and sessions."""

from __future__ import annotations

import asyncio
from urllib.parse import parse_qs, urlparse

import pytest

from lnurlgate.application.use_cases.auth import AuthService
from lnurlgate.crypto.lnurl import decode_lnurl
from lnurlgate.domain.errors import (
    InvalidTokenError,
    NotFoundError,
    SignatureError,
    UnauthorizedError,
    ValidationError,
)
from tests.conftest import DOMAIN
from tests.fixtures import FakeClock, InMemoryRepositories, LinkingWallet


@pytest.mark.asyncio
async def test_generate_encodes_login_url(auth_service: AuthService) -> None:
    challenge = await auth_service.generate("register")

    assert challenge.tag == "login"
    assert challenge.action == "register"
    assert challenge.callback == f"{DOMAIN}/auth"
    url = urlparse(decode_lnurl(challenge.lnurl))
    assert f"{url.scheme}://{url.netloc}{url.path}" == f"{DOMAIN}/auth"
    assert parse_qs(url.query) == {
        "tag": ["login"],
        "k1": [challenge.k1],
        "action": ["register"],
    }


@pytest.mark.asyncio
async def test_generate_rejects_unknown_action(auth_service: AuthService) -> None:
    with pytest.raises(ValidationError):
        await auth_service.generate("sudo")


@pytest.mark.asyncio
async def test_valid_signature_creates_session_once(
    auth_service: AuthService, wallet: LinkingWallet
) -> None:
    challenge = await auth_service.generate()

    verified = await auth_service.verify(challenge.k1, wallet.sign(challenge.k1), wallet.key_hex)

    assert verified.status == "OK"
    assert verified.linking_key == wallet.key_hex
    assert verified.action == "login"
    status = await auth_service.validate(verified.session_id)
    assert status.session.linking_key == wallet.key_hex

    with pytest.raises(NotFoundError, match="Invalid or expired k1"):
        await auth_service.verify(challenge.k1, wallet.sign(challenge.k1), wallet.key_hex)


@pytest.mark.asyncio
async def test_signature_over_modified_k1_fails_without_consuming(
    auth_service: AuthService, wallet: LinkingWallet
) -> None:
    challenge = await auth_service.generate()
    other = await auth_service.generate()

    with pytest.raises(SignatureError):
        await auth_service.verify(other.k1, wallet.sign(challenge.k1), wallet.key_hex)

    # Both challenges are still redeemable with a correct signature
    await auth_service.verify(other.k1, wallet.sign(other.k1), wallet.key_hex)
    await auth_service.verify(challenge.k1, wallet.sign(challenge.k1), wallet.key_hex)


@pytest.mark.asyncio
async def test_signature_with_wrong_key_fails(
    auth_service: AuthService, wallet: LinkingWallet
) -> None:
    challenge = await auth_service.generate()
    impostor = LinkingWallet()

    with pytest.raises(SignatureError):
        await auth_service.verify(challenge.k1, impostor.sign(challenge.k1), wallet.key_hex)


@pytest.mark.asyncio
async def test_expired_challenge_is_rejected(
    auth_service: AuthService, wallet: LinkingWallet, clock: FakeClock
) -> None:
    challenge = await auth_service.generate()
    clock.advance(301)

    with pytest.raises(InvalidTokenError):
        await auth_service.verify(challenge.k1, wallet.sign(challenge.k1), wallet.key_hex)


@pytest.mark.asyncio
async def test_malformed_parameters(auth_service: AuthService, wallet: LinkingWallet) -> None:
    challenge = await auth_service.generate()

    with pytest.raises(ValidationError, match="Invalid hex format"):
        await auth_service.verify(challenge.k1, "zz", wallet.key_hex)


@pytest.mark.asyncio
async def test_concurrent_verifications_create_one_session(
    auth_service: AuthService,
    wallet: LinkingWallet,
    repositories: InMemoryRepositories,
) -> None:
    challenge = await auth_service.generate()
    sig = wallet.sign(challenge.k1)

    results = await asyncio.gather(
        *(auth_service.verify(challenge.k1, sig, wallet.key_hex) for _ in range(5)),
        return_exceptions=True,
    )

    failures = [r for r in results if isinstance(r, Exception)]
    assert len(failures) == 4
    assert all(isinstance(r, InvalidTokenError) for r in failures)
    assert len(await repositories.store.zrange("auth_sessions:expiry", 0, -1)) == 1


@pytest.mark.asyncio
async def test_session_validation_and_expiry(
    auth_service: AuthService, wallet: LinkingWallet, clock: FakeClock
) -> None:
    challenge = await auth_service.generate()
    verified = await auth_service.verify(
        challenge.k1, wallet.sign(challenge.k1), wallet.key_hex
    )

    status = await auth_service.status(verified.session_id)
    assert status.session.id == verified.session_id

    with pytest.raises(ValidationError, match="Missing sessionId"):
        await auth_service.validate(None)
    with pytest.raises(UnauthorizedError, match="Invalid or expired session"):
        await auth_service.validate("ff" * 16)

    clock.advance(3601)
    with pytest.raises(UnauthorizedError):
        await auth_service.validate(verified.session_id)
    with pytest.raises(NotFoundError, match="Session not found"):
        await auth_service.status(verified.session_id)


@pytest.mark.asyncio
async def test_logout(auth_service: AuthService, wallet: LinkingWallet) -> None:
    challenge = await auth_service.generate()
    verified = await auth_service.verify(
        challenge.k1, wallet.sign(challenge.k1), wallet.key_hex
    )

    assert (await auth_service.logout(verified.session_id)).status == "OK"

    with pytest.raises(UnauthorizedError):
        await auth_service.validate(verified.session_id)
    with pytest.raises(NotFoundError, match="Session not found"):
        await auth_service.logout(verified.session_id)
