"""Active viewer presence API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from onair.api.core.dependencies import get_aggregation_service, get_presence_service
from onair.api.core.session import get_session_token
from onair.api.routers.schemas import (
    PresenceRequest,
    SuccessResponse,
    ViewerCountResponse,
    ViewerCountsResponse,
)
from onair.api.services import AggregationService, PresenceService
from onair.shared.errors import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/active-users", tags=["active-users"])


def _client_info(request: Request) -> dict[str, str | None]:
    return {
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


# ============================================
# Presence Writes
# ============================================


@router.post("/join", response_model=SuccessResponse)
async def join(
    body: PresenceRequest,
    request: Request,
    session_token: str = Depends(get_session_token),
    service: PresenceService = Depends(get_presence_service),
) -> SuccessResponse:
    """Register the caller as watching/listening to a stream."""
    try:
        await service.join(session_token, body.stream_type, **_client_info(request))
        return SuccessResponse()
    except ValidationError as e:
        logger.info(f"Rejected join: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to join: {e}")
        raise HTTPException(status_code=500, detail="Failed to join") from None


@router.post("/heartbeat", response_model=SuccessResponse)
async def heartbeat(
    body: PresenceRequest,
    request: Request,
    session_token: str = Depends(get_session_token),
    service: PresenceService = Depends(get_presence_service),
) -> SuccessResponse:
    """Keep the caller counted. Sent by clients every heartbeat interval."""
    try:
        await service.heartbeat(session_token, body.stream_type, **_client_info(request))
        return SuccessResponse()
    except ValidationError as e:
        logger.info(f"Rejected heartbeat: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to record heartbeat: {e}")
        raise HTTPException(status_code=500, detail="Failed to record heartbeat") from None


@router.post("/leave", response_model=SuccessResponse)
async def leave(
    body: PresenceRequest,
    session_token: str = Depends(get_session_token),
    service: PresenceService = Depends(get_presence_service),
) -> SuccessResponse:
    """Stop counting the caller. Succeeds even if they were never counted."""
    try:
        await service.leave(session_token, body.stream_type)
        return SuccessResponse()
    except ValidationError as e:
        logger.info(f"Rejected leave: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to leave: {e}")
        raise HTTPException(status_code=500, detail="Failed to leave") from None


# ============================================
# Viewer Counts
# ============================================


@router.get("/counts", response_model=ViewerCountsResponse)
async def get_viewer_counts(
    service: AggregationService = Depends(get_aggregation_service),
) -> ViewerCountsResponse:
    """Live viewer counts for every stream."""
    try:
        counts = await service.get_viewer_counts()
        return ViewerCountsResponse(**counts)
    except Exception as e:
        logger.exception(f"Failed to get viewer counts: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch viewer counts") from None


@router.get("/count/{stream_type}", response_model=ViewerCountResponse)
async def get_viewer_count(
    stream_type: str,
    service: AggregationService = Depends(get_aggregation_service),
) -> ViewerCountResponse:
    """Live viewer count for one stream."""
    try:
        count = await service.get_viewer_count(stream_type)
        return ViewerCountResponse(count=count)
    except ValidationError as e:
        logger.info(f"Rejected count request: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except Exception as e:
        logger.exception(f"Failed to get viewer count: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch viewer count") from None
