"""LNURL-pay routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends

from ...application.dtos import InvoiceResponseDTO, PayRequestDTO
from ...application.use_cases.pay import PayService
from ..dependencies import get_pay_service

router = APIRouter(prefix="/pay", tags=["pay"])


@router.get("/{payment_id}", response_model=PayRequestDTO)
async def pay_request(
    payment_id: str, pay_service: PayService = Depends(get_pay_service)
) -> PayRequestDTO:
    return await pay_service.request(payment_id)


@router.get("/{payment_id}/callback", response_model=InvoiceResponseDTO)
async def pay_callback(
    payment_id: str,
    amount: Optional[str] = None,
    comment: Optional[str] = None,
    pay_service: PayService = Depends(get_pay_service),
) -> InvoiceResponseDTO:
    """Issue an invoice for ``amount`` millisatoshi."""
    return await pay_service.callback(payment_id, amount, comment)
