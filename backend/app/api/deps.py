"""API dependencies.

The search gateway is built once in the application lifespan and handed to
request handlers from app.state.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from app.services.search_service import SearchGateway


def get_search_gateway(request: Request) -> SearchGateway:
    gateway = getattr(request.app.state, "search_gateway", None)
    if gateway is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search is not initialized.",
        )
    return gateway
