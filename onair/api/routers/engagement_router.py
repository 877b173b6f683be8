"""Engagement snapshot API route (one poll for a whole live page)."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from onair.api.core.dependencies import get_aggregation_service
from onair.api.routers.schemas import EngagementSnapshotResponse
from onair.api.services import AggregationService
from onair.shared.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/engagement", tags=["engagement"])


@router.get("/{stream_type}", response_model=EngagementSnapshotResponse)
async def get_engagement_snapshot(
    stream_type: str,
    service: AggregationService = Depends(get_aggregation_service),
) -> EngagementSnapshotResponse:
    """Viewer count, reaction tally, recent comments and song requests."""
    try:
        snapshot = await service.get_engagement_snapshot(stream_type)
        return EngagementSnapshotResponse.from_snapshot(snapshot)
    except ValidationError as e:
        logger.info(f"Rejected snapshot request: {e}")
        raise HTTPException(status_code=400, detail="Invalid stream type") from None
    except Exception as e:
        logger.exception(f"Failed to build engagement snapshot: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch engagement") from None
