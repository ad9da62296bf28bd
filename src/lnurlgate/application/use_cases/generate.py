"""Shareable LNURL links for each flow (``/generate/{type}``)."""

from __future__ import annotations

from typing import Optional

from ...crypto.lnurl import encode_lnurl
from ...domain.errors import ValidationError
from ..dtos import CreatePaymentConfigDTO, GeneratedLnurlDTO
from .auth import AuthService
from .pay import PayService


class LinkService:
    def __init__(self, pay_service: PayService, auth_service: AuthService, domain: str):
        self.pay_service = pay_service
        self.auth_service = auth_service
        self.domain = domain

    async def generate(
        self,
        link_type: str,
        pay_options: Optional[CreatePaymentConfigDTO] = None,
        action: Optional[str] = None,
    ) -> GeneratedLnurlDTO:
        if link_type in ("withdraw", "channel"):
            # Each wallet scan mints its own k1 at the endpoint
            url = f"{self.domain}/{link_type}"
            return GeneratedLnurlDTO(url=url, lnurl=encode_lnurl(url), type=link_type)

        if link_type == "pay":
            options = pay_options or CreatePaymentConfigDTO()
            config = await self.pay_service.generate(
                min_sendable=options.min_sendable,
                max_sendable=options.max_sendable,
                comment_allowed=options.comment_allowed,
            )
            url = self.pay_service.pay_url(config.payment_id)
            return GeneratedLnurlDTO(
                url=url,
                lnurl=encode_lnurl(url),
                type="pay",
                payment_id=config.payment_id,
                min_sendable=config.min_sendable,
                max_sendable=config.max_sendable,
                comment_allowed=config.comment_allowed,
            )

        if link_type == "auth":
            challenge = await self.auth_service.generate(action)
            return GeneratedLnurlDTO(
                url=self.auth_service.auth_url(challenge.k1, challenge.action),
                lnurl=challenge.lnurl,
                type="auth",
                k1=challenge.k1,
                action=challenge.action,
            )

        raise ValidationError(
            'Invalid type. Use "withdraw", "pay", "channel", or "auth"'
        )
