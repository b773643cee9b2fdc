"""Subsidy search endpoint (read-only)."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_search_gateway
from app.schemas.subsidy import PaginationResult, SubsidySearchHit
from app.services.search_service import SearchGateway


router = APIRouter()


@router.get("/search", response_model=PaginationResult[SubsidySearchHit])
async def search_subsidies(
    q: str = Query(..., min_length=1, max_length=500),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    gateway: SearchGateway = Depends(get_search_gateway),
) -> PaginationResult[SubsidySearchHit]:
    """Subsidies ranked by semantic similarity to `q`."""
    return await gateway.search(q, page=page, limit=limit)
