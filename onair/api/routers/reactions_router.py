"""Live reaction API routes."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from onair.api.core.dependencies import get_aggregation_service, get_engagement_service
from onair.api.core.session import get_session_token, resolve_session_token
from onair.api.routers.schemas import ReactionCreate, ReactionResponse
from onair.api.services import AggregationService, EngagementService
from onair.shared.errors import StoreUnavailable, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/live-reactions", tags=["live-reactions"])


@router.post("", response_model=ReactionResponse, status_code=201)
async def submit_reaction(
    body: ReactionCreate,
    session_token: str = Depends(get_session_token),
    service: EngagementService = Depends(get_engagement_service),
) -> ReactionResponse:
    """Send an emoji reaction to a live stream."""
    try:
        reaction = await service.submit_reaction(
            body.stream_type,
            resolve_session_token(body.user_session, session_token),
            body.emoji,
        )
        return ReactionResponse.from_record(reaction)
    except ValidationError as e:
        logger.info(f"Rejected reaction: {e}")
        raise HTTPException(status_code=400, detail="Invalid reaction data") from None
    except StoreUnavailable:
        raise
    except Exception as e:
        logger.exception(f"Failed to submit reaction: {e}")
        raise HTTPException(status_code=500, detail="Failed to submit reaction") from None


@router.get("/{stream_type}", response_model=list[ReactionResponse])
async def get_recent_reactions(
    stream_type: str,
    limit: int = Query(default=50, ge=1, le=100),
    service: AggregationService = Depends(get_aggregation_service),
) -> list[ReactionResponse]:
    """Most recent reactions, newest first."""
    try:
        reactions = await service.get_recent_reactions(stream_type, limit)
        return [ReactionResponse.from_record(r) for r in reactions]
    except ValidationError as e:
        logger.info(f"Rejected reaction query: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except Exception as e:
        logger.exception(f"Failed to get reactions: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch reactions") from None


@router.get("/{stream_type}/tally", response_model=dict[str, int])
async def get_reaction_tally(
    stream_type: str,
    window_seconds: int | None = Query(default=None, alias="windowSeconds", ge=1, le=86400),
    service: AggregationService = Depends(get_aggregation_service),
) -> dict[str, int]:
    """Emoji counts over the trailing window (default: configured reaction window)."""
    try:
        return await service.get_reaction_tally(stream_type, window_seconds)
    except ValidationError as e:
        logger.info(f"Rejected tally query: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except Exception as e:
        logger.exception(f"Failed to get reaction tally: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch reaction tally") from None
