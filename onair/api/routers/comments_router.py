"""Live comment API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from onair.api.core.dependencies import get_aggregation_service, get_engagement_service
from onair.api.core.session import get_session_token, resolve_session_token
from onair.api.routers.schemas import CommentCreate, CommentResponse
from onair.api.services import AggregationService, EngagementService
from onair.shared.errors import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/live-comments", tags=["live-comments"])


@router.post("", response_model=CommentResponse, status_code=201)
async def submit_comment(
    body: CommentCreate,
    session_token: str = Depends(get_session_token),
    service: EngagementService = Depends(get_engagement_service),
) -> CommentResponse:
    """Post a chat message under a display name."""
    try:
        comment = await service.submit_comment(
            body.stream_type,
            resolve_session_token(body.user_session, session_token),
            body.username,
            body.message,
        )
        return CommentResponse.from_record(comment)
    except ValidationError as e:
        logger.info(f"Rejected comment: {e}")
        raise HTTPException(status_code=400, detail="Invalid comment data") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to submit comment: {e}")
        raise HTTPException(status_code=500, detail="Failed to submit comment") from None


@router.get("/{stream_type}", response_model=list[CommentResponse])
async def get_recent_comments(
    stream_type: str,
    limit: int = Query(default=50, ge=1, le=100),
    service: AggregationService = Depends(get_aggregation_service),
) -> list[CommentResponse]:
    """Most recent comments, newest first."""
    try:
        comments = await service.get_recent_comments(stream_type, limit)
        return [CommentResponse.from_record(c) for c in comments]
    except ValidationError as e:
        logger.info(f"Rejected comment query: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except Exception as e:
        logger.exception(f"Failed to get comments: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch comments") from None
