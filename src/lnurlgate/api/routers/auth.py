"""LNURL-auth routes."""

from __future__ import annotations

from typing import Optional, Union

from fastapi import APIRouter, Depends, Query

from ...application.dtos import (
    AuthChallengeDTO,
    AuthVerifiedDTO,
    SessionStatusDTO,
    StatusResponseDTO,
)
from ...application.use_cases.auth import AuthService
from ..dependencies import get_auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("", response_model=Union[AuthVerifiedDTO, AuthChallengeDTO])
async def auth(
    k1: Optional[str] = None,
    sig: Optional[str] = None,
    key: Optional[str] = None,
    action: Optional[str] = None,
    auth_service: AuthService = Depends(get_auth_service),
) -> Union[AuthVerifiedDTO, AuthChallengeDTO]:
    """Verify a signed challenge when k1, sig and key are all present; otherwise mint one."""
    if k1 and sig and key:
        return await auth_service.verify(k1, sig, key)
    return await auth_service.generate(action)


@router.get("/validate", response_model=SessionStatusDTO)
async def validate_session(
    session_id: Optional[str] = Query(None, alias="sessionId"),
    auth_service: AuthService = Depends(get_auth_service),
) -> SessionStatusDTO:
    return await auth_service.validate(session_id)


@router.get("/status/{session_id}", response_model=SessionStatusDTO)
async def session_status(
    session_id: str, auth_service: AuthService = Depends(get_auth_service)
) -> SessionStatusDTO:
    return await auth_service.status(session_id)


@router.delete("/logout/{session_id}", response_model=StatusResponseDTO)
async def logout(
    session_id: str, auth_service: AuthService = Depends(get_auth_service)
) -> StatusResponseDTO:
    return await auth_service.logout(session_id)
