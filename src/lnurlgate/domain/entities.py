"""Domain entities: Challenge, PaymentConfig, InvoiceRecord, ChannelRequest, AuthSession."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, field_serializer


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChallengeKind(str, Enum):
    WITHDRAW = "withdraw"
    CHANNEL = "channel"
    AUTH = "auth"


class ChallengeState(str, Enum):
    UNUSED = "unused"
    USED = "used"
    CANCELLED = "cancelled"


class ChannelState(str, Enum):
    PENDING = "pending"
    COLLECTED = "collected"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class Challenge(BaseModel):
    """Single-use nonce (k1) identifying one withdraw, channel or auth exchange.

    Only the storage layer moves ``state`` away from ``unused``, and it does so
    at most once (see ``ChallengeRepository.claim``).
    """

    k1: str = Field(..., min_length=64, max_length=64)
    kind: ChallengeKind
    state: ChallengeState = ChallengeState.UNUSED
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None
    consumed_at: Optional[datetime] = None

    # withdraw payload (millisatoshi bounds, final amount in satoshi)
    min_withdrawable: Optional[int] = None
    max_withdrawable: Optional[int] = None
    amount_sats: Optional[int] = None

    # auth payload
    action: Optional[str] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    @field_serializer("expires_at", "consumed_at")
    def serialize_optional_datetime(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    @property
    def is_unused(self) -> bool:
        return self.state == ChallengeState.UNUSED

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Return True once ``expires_at`` has passed. Challenges without expiry never expire."""
        if self.expires_at is None:
            return False
        now = now or utcnow()
        return self.expires_at <= now


class PaymentConfig(BaseModel):
    """Reusable pay-flow target. Each callback against it issues a new invoice."""

    payment_id: str
    min_sendable: int = Field(..., gt=0)
    max_sendable: int = Field(..., gt=0)
    comment_allowed: int = Field(..., ge=0)
    lightning_address: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    def accepts_amount(self, amount_msat: int) -> bool:
        return self.min_sendable <= amount_msat <= self.max_sendable


class InvoiceRecord(BaseModel):
    """Invoice issued for a pay callback. Moves from unpaid to paid exactly once."""

    id: str
    payment_id: str
    amount_sats: int = Field(..., ge=0)
    payment_hash: str
    payment_request: str
    description: str
    comment: Optional[str] = None
    paid: bool = False
    created_at: datetime = Field(default_factory=utcnow)
    paid_at: Optional[datetime] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    @field_serializer("paid_at")
    def serialize_paid_at(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None


class ChannelRequest(BaseModel):
    """State of one LNURL-channel exchange, keyed by its k1."""

    id: str
    k1: str
    remote_id: Optional[str] = None
    private: bool = False
    state: ChannelState = ChannelState.PENDING
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()

    @field_serializer("updated_at")
    def serialize_updated_at(self, value: Optional[datetime]) -> Optional[str]:
        return value.isoformat() if value else None

    @property
    def is_terminal(self) -> bool:
        return self.state in (ChannelState.CANCELLED, ChannelState.COMPLETED)


class AuthSession(BaseModel):
    """Session created after a verified LNURL-auth signature."""

    id: str
    linking_key: str
    action: str
    created_at: datetime = Field(default_factory=utcnow)
    expires_at: datetime

    @field_serializer("created_at", "expires_at")
    def serialize_datetime(self, value: datetime) -> str:
        return value.isoformat()

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or utcnow()
        return self.expires_at <= now
