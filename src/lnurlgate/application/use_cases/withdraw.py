"""LNURL-withdraw (LUD-03)."""

from __future__ import annotations

import logging

from ...domain.entities import ChallengeKind
from ...domain.errors import InvalidTokenError, UpstreamError, ValidationError
from ...domain.node_clients import LightningNodeClientProtocol
from ..dtos import StatusResponseDTO, WithdrawRequestDTO
from ..validators import validate_k1, validate_payment_request
from .challenge import ChallengeService

logger = logging.getLogger(__name__)


class WithdrawService:
    """Issues withdraw challenges and pays the wallet's invoice on redemption."""

    def __init__(
        self,
        challenge_service: ChallengeService,
        lightning: LightningNodeClientProtocol,
        domain: str,
        min_withdrawable: int = 1000,
        max_withdrawable: int = 100_000_000,
        default_description: str = "LNURL Withdraw",
    ):
        self.challenge_service = challenge_service
        self.lightning = lightning
        self.domain = domain
        self.min_withdrawable = min_withdrawable
        self.max_withdrawable = max_withdrawable
        self.default_description = default_description

    async def generate(self) -> WithdrawRequestDTO:
        challenge = await self.challenge_service.mint(
            ChallengeKind.WITHDRAW,
            min_withdrawable=self.min_withdrawable,
            max_withdrawable=self.max_withdrawable,
        )
        return WithdrawRequestDTO(
            callback=f"{self.domain}/withdraw/callback",
            k1=challenge.k1,
            default_description=self.default_description,
            min_withdrawable=challenge.min_withdrawable,
            max_withdrawable=challenge.max_withdrawable,
        )

    async def redeem(self, k1: str, pr: str) -> StatusResponseDTO:
        """Claim ``k1`` and pay ``pr``.

        The claim happens before any node call, so a k1 can trigger at most one
        payment. Failures after the claim leave the challenge spent.
        """
        k1 = validate_k1(k1)
        pr = validate_payment_request(pr)

        challenge = await self.challenge_service.claim(k1, ChallengeKind.WITHDRAW)
        if challenge is None:
            raise InvalidTokenError("Invalid or used k1")

        decoded = await self.lightning.decode_invoice(pr)
        min_msat = challenge.min_withdrawable or self.min_withdrawable
        max_msat = challenge.max_withdrawable or self.max_withdrawable
        if decoded.amount_msat <= 0:
            raise ValidationError("Invoice must specify an amount")
        if not min_msat <= decoded.amount_msat <= max_msat:
            logger.warning(
                "Withdraw %s... rejected: %d msat outside [%d, %d]",
                k1[:8],
                decoded.amount_msat,
                min_msat,
                max_msat,
            )
            raise ValidationError(
                f"Amount must be between {min_msat} and {max_msat} millisatoshis"
            )

        try:
            await self.lightning.pay_invoice(pr)
        except UpstreamError as e:
            logger.error("Withdraw %s... payment failed: %s", k1[:8], e.reason)
            raise UpstreamError(f"Payment failed: {e.reason}") from e

        await self.challenge_service.record_amount(k1, decoded.amount_sats)
        logger.info("Withdraw %s... paid %d sats", k1[:8], decoded.amount_sats)
        return StatusResponseDTO()
