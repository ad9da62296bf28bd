"""Shareable LNURL link generation."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...application.dtos import CreatePaymentConfigDTO, GeneratedLnurlDTO
from ...application.use_cases.generate import LinkService
from ..dependencies import get_link_service

router = APIRouter(prefix="/generate", tags=["generate"])


@router.get(
    "/{link_type}",
    response_model=GeneratedLnurlDTO,
    response_model_exclude_none=True,
)
async def generate_link(
    link_type: str,
    min_sendable: Optional[int] = Query(None, alias="minSendable"),
    max_sendable: Optional[int] = Query(None, alias="maxSendable"),
    comment_allowed: Optional[int] = Query(None, alias="commentAllowed"),
    action: Optional[str] = None,
    link_service: LinkService = Depends(get_link_service),
) -> GeneratedLnurlDTO:
    """Build the URL and bech32 LNURL for ``withdraw``, ``pay``, ``channel`` or ``auth``."""
    pay_options = CreatePaymentConfigDTO(
        min_sendable=min_sendable,
        max_sendable=max_sendable,
        comment_allowed=comment_allowed,
    )
    return await link_service.generate(link_type, pay_options=pay_options, action=action)
