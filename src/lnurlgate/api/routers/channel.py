"""LNURL-channel routes."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from ...application.dtos import ChannelRequestDTO, StatusResponseDTO
from ...application.use_cases.channel import ChannelService
from ..dependencies import get_channel_service

router = APIRouter(prefix="/channel", tags=["channel"])


@router.get("", response_model=ChannelRequestDTO)
async def channel_request(
    channel_service: ChannelService = Depends(get_channel_service),
) -> ChannelRequestDTO:
    return await channel_service.generate()


@router.get("/callback", response_model=StatusResponseDTO)
async def channel_callback(
    background_tasks: BackgroundTasks,
    k1: Optional[str] = None,
    remoteid: Optional[str] = None,
    private: Optional[str] = None,
    cancel: Optional[str] = None,
    channel_service: ChannelService = Depends(get_channel_service),
) -> StatusResponseDTO:
    """Collect the wallet's node id, or cancel with ``cancel=1``.

    The channel open runs after the response has been sent.
    """
    request = await channel_service.callback(k1, remoteid, private, cancel)
    if request is not None:
        background_tasks.add_task(channel_service.open_channel, request)
    return StatusResponseDTO()
