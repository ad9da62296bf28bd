from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class Settings(BaseModel):
    domain: str = "http://localhost:3000"

    database_url: str = "redis://localhost:6379/0"

    api_host: str = "0.0.0.0"
    api_port: int = 3000
    api_debug: bool = False
    api_cors_origins: list[str] = Field(default_factory=lambda: ["*"])

    app_name: str = "lnurlgate"
    app_version: str = "1.0.0"
    log_level: str = "INFO"

    lnd_rest_host: str = "localhost"
    lnd_rest_port: int = 8080
    lnd_macaroon_path: Optional[str] = None
    lnd_tls_cert_path: Optional[str] = None
    lnd_timeout_seconds: float = Field(default=10.0, gt=0)

    bitcoin_rpc_host: str = "localhost"
    bitcoin_rpc_port: int = 18443
    bitcoin_rpc_user: str = "polaruser"
    bitcoin_rpc_password: str = "polarpass"
    bitcoin_timeout_seconds: float = Field(default=10.0, gt=0)

    # Amounts in millisatoshi unless the name says otherwise
    min_withdrawable: int = Field(default=1000, gt=0)
    max_withdrawable: int = Field(default=100_000_000, gt=0)
    min_sendable: int = Field(default=1000, gt=0)
    max_sendable: int = Field(default=1_000_000_000, gt=0)
    comment_allowed: int = Field(default=255, ge=0)
    default_channel_capacity_sats: int = Field(default=100_000, gt=0)
    invoice_expiry_seconds: int = Field(default=3600, gt=0)

    auth_k1_ttl_seconds: int = Field(default=300, gt=0)
    auth_session_ttl_seconds: int = Field(default=3600, gt=0)

    payment_check_interval_seconds: float = Field(default=10.0, gt=0)
    cleanup_interval_seconds: float = Field(default=60.0, gt=0)
    reconcile_max_age_seconds: Optional[int] = Field(default=None, gt=0)

    @model_validator(mode="after")
    def validate_bounds(self) -> "Settings":
        if self.min_withdrawable > self.max_withdrawable:
            raise ValueError("min_withdrawable cannot exceed max_withdrawable")
        if self.min_sendable > self.max_sendable:
            raise ValueError("min_sendable cannot exceed max_sendable")
        self.domain = self.domain.rstrip("/")
        return self

    @property
    def domain_host(self) -> str:
        """Domain without scheme, as used in Lightning addresses."""
        return self.domain.split("://", 1)[-1]


def _env(name: str) -> Optional[str]:
    value = os.environ.get(name)
    return value if value not in (None, "") else None


def get_settings() -> Settings:
    """Build settings from the environment; unset variables keep their defaults."""
    raw = {
        "domain": _env("LNURL_DOMAIN"),
        "database_url": _env("LNURL_DATABASE_URL"),
        "api_host": _env("LNURL_API_HOST"),
        "api_port": _env("LNURL_API_PORT"),
        "api_debug": _env("LNURL_API_DEBUG"),
        "app_name": _env("LNURL_APP_NAME"),
        "app_version": _env("LNURL_APP_VERSION"),
        "log_level": _env("LNURL_LOG_LEVEL"),
        "lnd_rest_host": _env("LND_REST_HOST"),
        "lnd_rest_port": _env("LND_REST_PORT"),
        "lnd_macaroon_path": _env("LND_MACAROON_PATH"),
        "lnd_tls_cert_path": _env("LND_TLS_CERT_PATH"),
        "lnd_timeout_seconds": _env("LND_TIMEOUT_SECONDS"),
        "bitcoin_rpc_host": _env("BITCOIN_RPC_HOST"),
        "bitcoin_rpc_port": _env("BITCOIN_RPC_PORT"),
        "bitcoin_rpc_user": _env("BITCOIN_RPC_USER"),
        "bitcoin_rpc_password": _env("BITCOIN_RPC_PASS"),
        "bitcoin_timeout_seconds": _env("BITCOIN_RPC_TIMEOUT_SECONDS"),
        "min_withdrawable": _env("LNURL_MIN_WITHDRAWABLE"),
        "max_withdrawable": _env("LNURL_MAX_WITHDRAWABLE"),
        "min_sendable": _env("LNURL_MIN_SENDABLE"),
        "max_sendable": _env("LNURL_MAX_SENDABLE"),
        "comment_allowed": _env("LNURL_COMMENT_ALLOWED"),
        "default_channel_capacity_sats": _env("LNURL_CHANNEL_CAPACITY_SATS"),
        "invoice_expiry_seconds": _env("LNURL_INVOICE_EXPIRY_SECONDS"),
        "auth_k1_ttl_seconds": _env("LNURL_AUTH_K1_TTL_SECONDS"),
        "auth_session_ttl_seconds": _env("LNURL_AUTH_SESSION_TTL_SECONDS"),
        "payment_check_interval_seconds": _env("LNURL_PAYMENT_CHECK_INTERVAL_SECONDS"),
        "cleanup_interval_seconds": _env("LNURL_CLEANUP_INTERVAL_SECONDS"),
        "reconcile_max_age_seconds": _env("LNURL_RECONCILE_MAX_AGE_SECONDS"),
    }
    settings = {key: value for key, value in raw.items() if value is not None}

    cors_origins_str = _env("LNURL_API_CORS_ORIGINS")
    if cors_origins_str is not None:
        settings["api_cors_origins"] = cors_origins_str.split(",")

    return Settings(**settings)
