"""Operational visibility: health, listings and funding address."""

from __future__ import annotations

import logging

from ...domain.entities import ChallengeKind, ChallengeState, ChannelState
from ...domain.errors import UpstreamError
from ...domain.node_clients import ChainNodeClientProtocol, LightningNodeClientProtocol
from ...domain.repositories import (
    ChallengeRepository,
    ChannelRequestRepository,
    InvoiceRecordRepository,
)
from ..dtos import (
    AddressDTO,
    ChannelListDTO,
    ChannelSummaryDTO,
    HealthDTO,
    PaymentListDTO,
    PaymentSummaryDTO,
    WithdrawalListDTO,
    WithdrawalSummaryDTO,
)

logger = logging.getLogger(__name__)


class AdminService:
    def __init__(
        self,
        challenge_repository: ChallengeRepository,
        invoice_repository: InvoiceRecordRepository,
        channel_repository: ChannelRequestRepository,
        lightning: LightningNodeClientProtocol,
        chain: ChainNodeClientProtocol,
        domain: str,
    ):
        self.challenge_repository = challenge_repository
        self.invoice_repository = invoice_repository
        self.channel_repository = channel_repository
        self.lightning = lightning
        self.chain = chain
        self.domain = domain

    async def health(self) -> HealthDTO:
        """Probe both nodes. Never raises; failures show up as disconnected."""
        block_height = None
        node_info = None

        try:
            block_height = await self.chain.get_block_count()
        except UpstreamError as e:
            logger.warning("Bitcoin connection failed: %s", e.reason)
        else:
            logger.debug("Bitcoin connected at block %d", block_height)

        try:
            node_info = await self.lightning.get_info()
        except UpstreamError as e:
            logger.warning("LND connection failed: %s", e.reason)
        else:
            logger.debug("LND connected: %s", node_info.identity_pubkey)

        bitcoin_connected = block_height is not None
        lnd_connected = node_info is not None
        return HealthDTO(
            status="healthy" if bitcoin_connected and lnd_connected else "unhealthy",
            bitcoin_connected=bitcoin_connected,
            lnd_connected=lnd_connected,
            block_height=block_height,
            lnd_info=node_info,
            domain=self.domain,
        )

    async def list_payments(self, skip: int = 0, limit: int = 100) -> PaymentListDTO:
        records = await self.invoice_repository.get_all(skip=skip, limit=limit)
        return PaymentListDTO(
            payments=[PaymentSummaryDTO(**record.model_dump()) for record in records]
        )

    async def list_withdrawals(
        self, skip: int = 0, limit: int = 100
    ) -> WithdrawalListDTO:
        challenges = await self.challenge_repository.get_by_kind(
            ChallengeKind.WITHDRAW, skip=skip, limit=limit
        )
        return WithdrawalListDTO(
            withdrawals=[
                WithdrawalSummaryDTO(
                    k1=c.k1,
                    amount_sats=c.amount_sats,
                    used=c.state == ChallengeState.USED,
                    state=c.state.value,
                    created_at=c.created_at,
                    consumed_at=c.consumed_at,
                )
                for c in challenges
            ]
        )

    async def list_channels(self, skip: int = 0, limit: int = 100) -> ChannelListDTO:
        requests = await self.channel_repository.get_all(skip=skip, limit=limit)
        return ChannelListDTO(
            channels=[
                ChannelSummaryDTO(
                    id=r.id,
                    k1=r.k1,
                    remote_id=r.remote_id,
                    private=r.private,
                    state=r.state.value,
                    cancelled=r.state == ChannelState.CANCELLED,
                    completed=r.state == ChannelState.COMPLETED,
                    created_at=r.created_at,
                )
                for r in requests
            ]
        )

    async def new_address(self) -> AddressDTO:
        return AddressDTO(address=await self.lightning.new_onchain_address())
