"""Operational endpoints: health, listings, payment status and funding address."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from ...application.dtos import (
    AddressDTO,
    ChannelListDTO,
    HealthDTO,
    PaymentListDTO,
    PaymentStatusDTO,
    WithdrawalListDTO,
)
from ...application.use_cases.admin import AdminService
from ...application.use_cases.pay import PayService
from ..dependencies import get_admin_service, get_pay_service

router = APIRouter(tags=["admin"])


@router.get("/health", response_model=HealthDTO)
async def health(admin_service: AdminService = Depends(get_admin_service)) -> HealthDTO:
    """Connectivity of the Lightning and chain nodes."""
    return await admin_service.health()


@router.get("/payments", response_model=PaymentListDTO)
async def list_payments(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    admin_service: AdminService = Depends(get_admin_service),
) -> PaymentListDTO:
    return await admin_service.list_payments(skip=skip, limit=limit)


@router.get("/withdrawals", response_model=WithdrawalListDTO)
async def list_withdrawals(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    admin_service: AdminService = Depends(get_admin_service),
) -> WithdrawalListDTO:
    return await admin_service.list_withdrawals(skip=skip, limit=limit)


@router.get("/channels", response_model=ChannelListDTO)
async def list_channels(
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    admin_service: AdminService = Depends(get_admin_service),
) -> ChannelListDTO:
    return await admin_service.list_channels(skip=skip, limit=limit)


@router.get("/payment/{record_id}/status", response_model=PaymentStatusDTO)
async def payment_status(
    record_id: str, pay_service: PayService = Depends(get_pay_service)
) -> PaymentStatusDTO:
    """Settlement state of one invoice record, checked against the node if unpaid."""
    return await pay_service.payment_status(record_id)


@router.get("/address", response_model=AddressDTO)
async def new_address(
    admin_service: AdminService = Depends(get_admin_service),
) -> AddressDTO:
    """Fresh on-chain address of the Lightning node, for funding channels."""
    return await admin_service.new_address()
