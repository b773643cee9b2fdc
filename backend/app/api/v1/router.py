"""API v1 root router."""

from __future__ import annotations

from fastapi import APIRouter

from app.api.v1.subsidies import router as subsidies_router


router = APIRouter()
router.include_router(subsidies_router, prefix="/subsidies", tags=["subsidies"])
