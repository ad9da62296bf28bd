"""Lightning Address resolution (LUD-16)."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from ...application.dtos import PayRequestDTO
from ...application.use_cases.pay import PayService
from ..dependencies import get_pay_service

router = APIRouter(prefix="/.well-known", tags=["lightning-address"])


@router.get("/lnurlp/{username}", response_model=PayRequestDTO)
async def resolve_lightning_address(
    username: str, pay_service: PayService = Depends(get_pay_service)
) -> PayRequestDTO:
    return await pay_service.resolve_address(username)
