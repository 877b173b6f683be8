"""Operator dashboard API routes (``X-Admin-Token`` required)."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from onair.api.core.dependencies import get_aggregation_service, require_admin
from onair.api.routers.schemas import EngagementMetricsResponse, RealtimeActivityResponse
from onair.api.services import AggregationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/engagement-metrics", response_model=EngagementMetricsResponse)
async def get_engagement_metrics(
    service: AggregationService = Depends(get_aggregation_service),
) -> EngagementMetricsResponse:
    """Live audience per stream, interaction totals and the most used reactions."""
    try:
        metrics = await service.get_engagement_metrics()
        return EngagementMetricsResponse.from_metrics(metrics)
    except Exception as e:
        logger.exception(f"Failed to fetch engagement metrics: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch engagement metrics") from None


@router.get("/analytics/realtime", response_model=RealtimeActivityResponse)
async def get_realtime_activity(
    service: AggregationService = Depends(get_aggregation_service),
) -> RealtimeActivityResponse:
    """Active users and the latest activity across both streams."""
    try:
        activity = await service.get_realtime_activity()
        return RealtimeActivityResponse.from_activity(activity)
    except Exception as e:
        logger.exception(f"Failed to fetch real-time analytics: {e}")
        raise HTTPException(status_code=500, detail="Failed to fetch real-time analytics") from None
