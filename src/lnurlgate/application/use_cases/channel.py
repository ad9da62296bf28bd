"""LNURL-channel (LUD-02)."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime
from typing import Callable, Optional

from ...domain.entities import ChallengeKind, ChannelRequest, ChannelState, utcnow
from ...domain.errors import InvalidTokenError, UpstreamError
from ...domain.node_clients import LightningNodeClientProtocol
from ...domain.repositories import ChannelRequestRepository, TransitionStatus
from ..dtos import ChannelRequestDTO
from ..validators import parse_private_flag, validate_k1, validate_remote_id
from .challenge import ChallengeService

logger = logging.getLogger(__name__)


class ChannelService:
    """Channel requests: pending -> collected -> completed, or cancelled."""

    def __init__(
        self,
        challenge_service: ChallengeService,
        channel_repository: ChannelRequestRepository,
        lightning: LightningNodeClientProtocol,
        domain: str,
        default_capacity_sats: int = 100_000,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.challenge_service = challenge_service
        self.channel_repository = channel_repository
        self.lightning = lightning
        self.domain = domain
        self.default_capacity_sats = default_capacity_sats
        self.clock = clock

    async def generate(self) -> ChannelRequestDTO:
        info = await self.lightning.get_info()
        if not info.uris:
            raise UpstreamError("No public URI available for this node")

        challenge = await self.challenge_service.mint(ChallengeKind.CHANNEL)
        await self.channel_repository.create(
            ChannelRequest(
                id=secrets.token_hex(16),
                k1=challenge.k1,
                created_at=self.clock(),
            )
        )
        return ChannelRequestDTO(
            uri=info.uris[0],
            callback=f"{self.domain}/channel/callback",
            k1=challenge.k1,
        )

    async def callback(
        self,
        k1: Optional[str],
        remote_id: Optional[str] = None,
        private: Optional[str] = None,
        cancel: Optional[str] = None,
    ) -> Optional[ChannelRequest]:
        """Handle the wallet callback.

        Returns the collected request whose channel should now be opened, or
        None when the request was cancelled.
        """
        k1 = validate_k1(k1)
        if cancel == "1":
            await self._cancel(k1)
            return None

        remote_id = validate_remote_id(remote_id)
        is_private = parse_private_flag(private)

        challenge = await self.challenge_service.claim(k1, ChallengeKind.CHANNEL)
        if challenge is None:
            raise InvalidTokenError("Invalid or used k1")

        status, request = await self.channel_repository.transition(
            k1,
            [ChannelState.PENDING],
            ChannelState.COLLECTED,
            self.clock(),
            remote_id=remote_id,
            private=is_private,
        )
        if status != TransitionStatus.APPLIED or request is None:
            raise InvalidTokenError("Channel request is no longer pending")
        logger.info(
            "Channel request %s... collected for %s (private=%s)",
            k1[:8],
            remote_id,
            is_private,
        )
        return request

    async def _cancel(self, k1: str) -> None:
        challenge = await self.challenge_service.cancel(k1, ChallengeKind.CHANNEL)
        if challenge is None:
            raise InvalidTokenError("Invalid or used k1")
        await self.channel_repository.transition(
            k1,
            [ChannelState.PENDING],
            ChannelState.CANCELLED,
            self.clock(),
        )
        logger.info("Channel request %s... cancelled", k1[:8])

    async def open_channel(self, request: ChannelRequest) -> None:
        """Best-effort open towards the collected peer; always completes the request."""
        try:
            point = await self.lightning.open_channel(
                request.remote_id, self.default_capacity_sats, request.private
            )
        except UpstreamError as e:
            logger.error(
                "Channel open to %s for request %s... failed: %s",
                request.remote_id,
                request.k1[:8],
                e.reason,
            )
        else:
            logger.info(
                "Channel open to %s initiated: %s:%s",
                request.remote_id,
                point.funding_txid,
                point.output_index,
            )
        finally:
            await self.channel_repository.transition(
                request.k1,
                [ChannelState.COLLECTED],
                ChannelState.COMPLETED,
                self.clock(),
            )
