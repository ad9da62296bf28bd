"""Shared pytest fixtures for the LNURL server tests."""

from __future__ import annotations

import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from redis.exceptions import ConnectionError as RedisConnectionError

from lnurlgate.application.use_cases.admin import AdminService
from lnurlgate.application.use_cases.auth import AuthService
from lnurlgate.application.use_cases.challenge import ChallengeService
from lnurlgate.application.use_cases.channel import ChannelService
from lnurlgate.application.use_cases.generate import LinkService
from lnurlgate.application.use_cases.pay import PayService
from lnurlgate.application.use_cases.withdraw import WithdrawService
from lnurlgate.infrastructure.database import DatabaseClient
from lnurlgate.infrastructure.repositories import register_lnurl_scripts
from lnurlgate.infrastructure.storage import RedisKeyValueStore
from tests.fixtures import (
    FakeChainClient,
    FakeClock,
    FakeLightningClient,
    InMemoryRepositories,
    LinkingWallet,
)

DOMAIN = "https://lnurl.example.com"


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add command-line options for race condition tests."""
    parser.addoption(
        "--race-iterations",
        type=int,
        default=50,
        help="Number of iterations to run for race condition tests (default: 50)",
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def lightning() -> FakeLightningClient:
    return FakeLightningClient()


@pytest.fixture
def chain() -> FakeChainClient:
    return FakeChainClient()


@pytest.fixture
def wallet() -> LinkingWallet:
    return LinkingWallet()


@pytest_asyncio.fixture
async def repositories() -> InMemoryRepositories:
    repos = InMemoryRepositories()
    await repos.initialize()
    return repos


@pytest.fixture
def challenge_service(
    repositories: InMemoryRepositories, clock: FakeClock
) -> ChallengeService:
    return ChallengeService(repositories.challenges, auth_k1_ttl_seconds=300, clock=clock)


@pytest.fixture
def withdraw_service(
    challenge_service: ChallengeService, lightning: FakeLightningClient
) -> WithdrawService:
    return WithdrawService(
        challenge_service,
        lightning,
        DOMAIN,
        min_withdrawable=1000,
        max_withdrawable=100_000_000,
    )


@pytest.fixture
def pay_service(
    repositories: InMemoryRepositories,
    lightning: FakeLightningClient,
    clock: FakeClock,
) -> PayService:
    return PayService(
        repositories.payment_configs,
        repositories.invoice_records,
        lightning,
        DOMAIN,
        clock=clock,
    )


@pytest.fixture
def channel_service(
    challenge_service: ChallengeService,
    repositories: InMemoryRepositories,
    lightning: FakeLightningClient,
    clock: FakeClock,
) -> ChannelService:
    return ChannelService(
        challenge_service,
        repositories.channel_requests,
        lightning,
        DOMAIN,
        default_capacity_sats=100_000,
        clock=clock,
    )


@pytest.fixture
def auth_service(
    challenge_service: ChallengeService,
    repositories: InMemoryRepositories,
    clock: FakeClock,
) -> AuthService:
    return AuthService(
        challenge_service,
        repositories.auth_sessions,
        DOMAIN,
        session_ttl_seconds=3600,
        clock=clock,
    )


@pytest.fixture
def link_service(pay_service: PayService, auth_service: AuthService) -> LinkService:
    return LinkService(pay_service, auth_service, DOMAIN)


@pytest.fixture
def admin_service(
    repositories: InMemoryRepositories,
    lightning: FakeLightningClient,
    chain: FakeChainClient,
) -> AdminService:
    return AdminService(
        repositories.challenges,
        repositories.invoice_records,
        repositories.channel_requests,
        lightning,
        chain,
        DOMAIN,
    )


@pytest_asyncio.fixture
async def redis_db_client() -> AsyncGenerator[DatabaseClient, None]:
    """Create a Redis database client for testing.

    Uses database 15 by default, or TEST_REDIS_URL if set.
    """
    test_redis_url = os.getenv("TEST_REDIS_URL", "redis://localhost:6379/15")
    client = DatabaseClient(test_redis_url)

    try:
        await client.ping()
    except (RedisConnectionError, OSError) as e:
        await client.close()
        pytest.skip(f"Redis not available at {test_redis_url}: {e}")

    async with client.get_connection() as conn:
        await conn.flushdb()
    yield client

    async with client.get_connection() as conn:
        await conn.flushdb()
    await client.close()


@pytest_asyncio.fixture
async def redis_store(redis_db_client: DatabaseClient) -> RedisKeyValueStore:
    """Create a Redis-backed key-value store with the scripts loaded."""
    store = RedisKeyValueStore(redis_db_client)
    await register_lnurl_scripts(store)
    return store
