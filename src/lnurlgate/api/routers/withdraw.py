"""LNURL-withdraw routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ...application.dtos import StatusResponseDTO, WithdrawRequestDTO
from ...application.use_cases.withdraw import WithdrawService
from ..dependencies import get_withdraw_service

router = APIRouter(prefix="/withdraw", tags=["withdraw"])


@router.get("", response_model=WithdrawRequestDTO)
async def withdraw_request(
    withdraw_service: WithdrawService = Depends(get_withdraw_service),
) -> WithdrawRequestDTO:
    """Mint a withdraw challenge and describe it to the wallet."""
    return await withdraw_service.generate()


@router.get("/callback", response_model=StatusResponseDTO)
async def withdraw_callback(
    k1: Optional[str] = None,
    pr: Optional[str] = None,
    withdraw_service: WithdrawService = Depends(get_withdraw_service),
) -> StatusResponseDTO:
    """Redeem ``k1`` by paying the wallet's invoice ``pr``."""
    return await withdraw_service.redeem(k1, pr)
