"""Services layer - Business logic

Services receive the storage bundle, a clock and (for reads) the shared
cache through dependency injection; they hold no per-request state.
"""

from .aggregation_service import AggregationService
from .engagement_service import EngagementService
from .presence_service import PresenceService

__all__ = [
    "AggregationService",
    "EngagementService",
    "PresenceService",
]
