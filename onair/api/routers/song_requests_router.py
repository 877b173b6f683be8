"""Song request API routes.

Listeners submit requests; operators (``X-Admin-Token``) move them through
pending -> queued -> played / rejected and adjust priority.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from onair.api.core.dependencies import (
    get_aggregation_service,
    get_engagement_service,
    require_admin,
)
from onair.api.core.session import get_session_token, resolve_session_token
from onair.api.routers.schemas import (
    SongRequestCreate,
    SongRequestResponse,
    SongRequestStatusUpdate,
)
from onair.api.services import AggregationService, EngagementService
from onair.shared.errors import NotFound, StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/song-requests", tags=["song-requests"])


# ============================================
# Listener Endpoints
# ============================================


@router.post("", response_model=SongRequestResponse, status_code=201)
async def submit_song_request(
    body: SongRequestCreate,
    session_token: str = Depends(get_session_token),
    service: EngagementService = Depends(get_engagement_service),
) -> SongRequestResponse:
    """Request a song. New requests start as pending with priority 0."""
    try:
        request = await service.submit_song_request(
            body.stream_type,
            resolve_session_token(body.user_session, session_token),
            song_title=body.song_title if body.song_title is not None else body.title,
            requester_name=body.requester_name,
            artist_name=body.artist_name,
        )
        return SongRequestResponse.from_record(request)
    except ValidationError as e:
        logger.info(f"Rejected song request: {e}")
        raise HTTPException(status_code=400, detail="Invalid song request data") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to submit song request: {e}")
        raise HTTPException(status_code=500, detail="Failed to submit song request") from None


@router.get("", response_model=list[SongRequestResponse])
async def list_song_requests(
    stream_type: str | None = Query(default=None, alias="streamType"),
    status: str | None = Query(default=None),
    limit: int | None = Query(default=None, ge=1, le=100),
    service: AggregationService = Depends(get_aggregation_service),
) -> list[SongRequestResponse]:
    """Song requests, newest first."""
    try:
        requests = await service.get_song_requests(stream_type, status, limit)
        return [SongRequestResponse.from_record(r) for r in requests]
    except ValidationError as e:
        logger.info(f"Rejected song request query: {e}")
        raise HTTPException(status_code=400, detail="Invalid song request filter") from None
    except Exception as e:
        logger.exception(f"Failed to list song requests: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch song requests") from None


@router.get("/queue", response_model=list[SongRequestResponse])
async def get_song_request_queue(
    stream_type: str | None = Query(default=None, alias="streamType"),
    service: AggregationService = Depends(get_aggregation_service),
) -> list[SongRequestResponse]:
    """Open requests in play order (priority first, then oldest)."""
    try:
        requests = await service.get_song_request_queue(stream_type)
        return [SongRequestResponse.from_record(r) for r in requests]
    except ValidationError as e:
        logger.info(f"Rejected queue query: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except Exception as e:
        logger.exception(f"Failed to get song request queue: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch song request queue") from None


# ============================================
# Operator Endpoints
# ============================================


@router.patch(
    "/{request_id}/status",
    response_model=SongRequestResponse,
    dependencies=[Depends(require_admin)],
)
async def update_song_request_status(
    request_id: int,
    body: SongRequestStatusUpdate,
    service: EngagementService = Depends(get_engagement_service),
) -> SongRequestResponse:
    """Move a request to a new status, optionally re-prioritising it."""
    try:
        request = await service.update_song_request_status(request_id, body.status, body.priority)
        logger.info(f"Operator set song request {request_id} to {request.status}")
        return SongRequestResponse.from_record(request)
    except ValidationError as e:
        logger.info(f"Rejected status update: {e}")
        raise HTTPException(status_code=400, detail="Invalid status") from None
    except NotFound:
        raise HTTPException(status_code=404, detail="Song request not found") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to update song request {request_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to update song request") from None
