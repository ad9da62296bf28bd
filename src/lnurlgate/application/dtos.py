"""Data Transfer Objects returned by the LNURL services.

Wallet-facing responses use the camelCase keys of the LNURL documents
(``minWithdrawable``, ``sessionId`` ...); FastAPI serialises by alias.
"""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..domain.node_clients import NodeInfo


class LnurlResponseDTO(BaseModel):
    """Base for responses with camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class StatusResponseDTO(LnurlResponseDTO):
    status: Literal["OK"] = "OK"


class WithdrawRequestDTO(LnurlResponseDTO):
    """LUD-03 withdrawRequest."""

    tag: Literal["withdrawRequest"] = "withdrawRequest"
    callback: str
    k1: str
    default_description: str
    min_withdrawable: int
    max_withdrawable: int


class PayRequestDTO(LnurlResponseDTO):
    """LUD-06 payRequest. ``metadata`` is the JSON-encoded metadata array."""

    tag: Literal["payRequest"] = "payRequest"
    callback: str
    min_sendable: int
    max_sendable: int
    metadata: str
    comment_allowed: int


class InvoiceResponseDTO(LnurlResponseDTO):
    pr: str
    routes: List[list] = Field(default_factory=list)


class ChannelRequestDTO(LnurlResponseDTO):
    """LUD-02 channelRequest."""

    tag: Literal["channelRequest"] = "channelRequest"
    uri: str
    callback: str
    k1: str


class AuthChallengeDTO(LnurlResponseDTO):
    tag: Literal["login"] = "login"
    k1: str
    action: str
    callback: str
    lnurl: str


class AuthVerifiedDTO(LnurlResponseDTO):
    status: Literal["OK"] = "OK"
    session_id: str
    linking_key: str
    action: str


class SessionDTO(LnurlResponseDTO):
    id: str
    linking_key: str
    action: str
    created_at: datetime
    expires_at: datetime


class SessionStatusDTO(LnurlResponseDTO):
    status: Literal["OK"] = "OK"
    session: SessionDTO


class GeneratedLnurlDTO(LnurlResponseDTO):
    """Result of ``/generate/{type}``: the URL, its LNURL and type-specific fields."""

    url: str
    lnurl: str
    type: Literal["withdraw", "pay", "channel", "auth"]
    payment_id: Optional[str] = None
    min_sendable: Optional[int] = None
    max_sendable: Optional[int] = None
    comment_allowed: Optional[int] = None
    k1: Optional[str] = None
    action: Optional[str] = None


class CreatePaymentConfigDTO(BaseModel):
    """Optional overrides for a new pay configuration."""

    min_sendable: Optional[int] = None
    max_sendable: Optional[int] = None
    comment_allowed: Optional[int] = None


class PaymentStatusDTO(BaseModel):
    payment_id: str = Field(..., serialization_alias="paymentId")
    paid: bool
    amount_sats: int
    description: str
    comment: Optional[str] = None
    created_at: datetime
    settled_at: Optional[datetime] = None
    error: Optional[str] = None


class HealthDTO(BaseModel):
    status: Literal["healthy", "unhealthy"]
    lnurl_server: str = "running"
    bitcoin_connected: bool
    lnd_connected: bool
    block_height: Optional[int] = None
    lnd_info: Optional[NodeInfo] = None
    domain: str


class PaymentSummaryDTO(BaseModel):
    id: str
    payment_id: str
    amount_sats: int
    description: str
    comment: Optional[str] = None
    paid: bool
    created_at: datetime
    paid_at: Optional[datetime] = None


class PaymentListDTO(BaseModel):
    payments: List[PaymentSummaryDTO]


class WithdrawalSummaryDTO(BaseModel):
    k1: str
    amount_sats: Optional[int] = None
    used: bool
    state: str
    created_at: datetime
    consumed_at: Optional[datetime] = None


class WithdrawalListDTO(BaseModel):
    withdrawals: List[WithdrawalSummaryDTO]


class ChannelSummaryDTO(BaseModel):
    id: str
    k1: str
    remote_id: Optional[str] = None
    private: bool
    state: str
    cancelled: bool
    completed: bool
    created_at: datetime


class ChannelListDTO(BaseModel):
    channels: List[ChannelSummaryDTO]


class AddressDTO(BaseModel):
    address: str
