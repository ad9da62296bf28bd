"""Dependency wiring for the LNURL API."""

from __future__ import annotations

from functools import lru_cache

from ..application.jobs import BackgroundJobs, SessionCleanup, SettlementReconciler
from ..application.use_cases.admin import AdminService
from ..application.use_cases.auth import AuthService
from ..application.use_cases.challenge import ChallengeService
from ..application.use_cases.channel import ChannelService
from ..application.use_cases.generate import LinkService
from ..application.use_cases.pay import PayService
from ..application.use_cases.withdraw import WithdrawService
from ..envs.server_env import Settings, get_settings
from ..infrastructure.chain.bitcoin_client import BitcoinRpcClient
from ..infrastructure.database import DatabaseClient
from ..infrastructure.lightning.lnd_client import LndRestClient
from ..infrastructure.repositories import (
    AuthSessionRepositoryImpl,
    ChallengeRepositoryImpl,
    ChannelRequestRepositoryImpl,
    InvoiceRecordRepositoryImpl,
    PaymentConfigRepositoryImpl,
)
from ..infrastructure.storage import RedisKeyValueStore


@lru_cache()
def get_settings_dependency() -> Settings:
    return get_settings()


@lru_cache()
def get_database_client_dependency() -> DatabaseClient:
    return DatabaseClient(get_settings_dependency().database_url)


@lru_cache()
def get_store_dependency() -> RedisKeyValueStore:
    db_client = get_database_client_dependency()
    return RedisKeyValueStore(db_client)


@lru_cache()
def get_lightning_client() -> LndRestClient:
    settings = get_settings_dependency()
    return LndRestClient(
        host=settings.lnd_rest_host,
        port=settings.lnd_rest_port,
        macaroon_path=settings.lnd_macaroon_path,
        tls_cert_path=settings.lnd_tls_cert_path,
        timeout=settings.lnd_timeout_seconds,
    )


@lru_cache()
def get_chain_client() -> BitcoinRpcClient:
    settings = get_settings_dependency()
    return BitcoinRpcClient(
        host=settings.bitcoin_rpc_host,
        port=settings.bitcoin_rpc_port,
        user=settings.bitcoin_rpc_user,
        password=settings.bitcoin_rpc_password,
        timeout=settings.bitcoin_timeout_seconds,
    )


def get_challenge_repository() -> ChallengeRepositoryImpl:
    return ChallengeRepositoryImpl(get_store_dependency())


def get_payment_config_repository() -> PaymentConfigRepositoryImpl:
    return PaymentConfigRepositoryImpl(get_store_dependency())


def get_invoice_record_repository() -> InvoiceRecordRepositoryImpl:
    return InvoiceRecordRepositoryImpl(get_store_dependency())


def get_channel_request_repository() -> ChannelRequestRepositoryImpl:
    return ChannelRequestRepositoryImpl(get_store_dependency())


def get_auth_session_repository() -> AuthSessionRepositoryImpl:
    return AuthSessionRepositoryImpl(get_store_dependency())


def get_challenge_service() -> ChallengeService:
    settings = get_settings_dependency()
    return ChallengeService(
        get_challenge_repository(),
        auth_k1_ttl_seconds=settings.auth_k1_ttl_seconds,
    )


def get_withdraw_service() -> WithdrawService:
    settings = get_settings_dependency()
    return WithdrawService(
        get_challenge_service(),
        get_lightning_client(),
        settings.domain,
        min_withdrawable=settings.min_withdrawable,
        max_withdrawable=settings.max_withdrawable,
    )


def get_pay_service() -> PayService:
    settings = get_settings_dependency()
    return PayService(
        get_payment_config_repository(),
        get_invoice_record_repository(),
        get_lightning_client(),
        settings.domain,
        min_sendable=settings.min_sendable,
        max_sendable=settings.max_sendable,
        comment_allowed=settings.comment_allowed,
        invoice_expiry_seconds=settings.invoice_expiry_seconds,
    )


def get_channel_service() -> ChannelService:
    settings = get_settings_dependency()
    return ChannelService(
        get_challenge_service(),
        get_channel_request_repository(),
        get_lightning_client(),
        settings.domain,
        default_capacity_sats=settings.default_channel_capacity_sats,
    )


def get_auth_service() -> AuthService:
    settings = get_settings_dependency()
    return AuthService(
        get_challenge_service(),
        get_auth_session_repository(),
        settings.domain,
        session_ttl_seconds=settings.auth_session_ttl_seconds,
    )


def get_link_service() -> LinkService:
    settings = get_settings_dependency()
    return LinkService(get_pay_service(), get_auth_service(), settings.domain)


def get_admin_service() -> AdminService:
    settings = get_settings_dependency()
    return AdminService(
        get_challenge_repository(),
        get_invoice_record_repository(),
        get_channel_request_repository(),
        get_lightning_client(),
        get_chain_client(),
        settings.domain,
    )


def get_background_jobs() -> BackgroundJobs:
    settings = get_settings_dependency()
    reconciler = SettlementReconciler(
        get_invoice_record_repository(),
        get_lightning_client(),
        max_age_seconds=settings.reconcile_max_age_seconds,
    )
    cleanup = SessionCleanup(get_challenge_repository(), get_auth_session_repository())
    return BackgroundJobs(
        reconciler,
        cleanup,
        payment_check_interval_seconds=settings.payment_check_interval_seconds,
        cleanup_interval_seconds=settings.cleanup_interval_seconds,
    )
