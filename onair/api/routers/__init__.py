"""API Routers package

This package contains all API route handlers.
Routers are organized by feature domain.
"""

from . import (
    admin_router,
    comments_router,
    engagement_router,
    presence_router,
    reactions_router,
    song_requests_router,
)

__all__ = [
    "admin_router",
    "comments_router",
    "engagement_router",
    "presence_router",
    "reactions_router",
    "song_requests_router",
]
