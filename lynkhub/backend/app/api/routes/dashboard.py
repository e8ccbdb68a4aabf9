"""
LynkHub API — Channel dashboard routes (owner only).
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_viewer_id
from app.core.database import get_db
from app.schemas.schemas import Page
from app.services.dashboard.dashboard_service import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("")
async def channel_dashboard(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    """Overview, trends and leaderboards for the caller's channel."""
    return await dashboard_service.build_dashboard(db, viewer_id)


@router.get("/videos", response_model=Page)
async def channel_video_listing(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    sort_field: Optional[str] = Query(None, alias="sortBy"),
    sort_direction: Optional[str] = Query(None, alias="sortType"),
    search: Optional[str] = Query(None),
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.build_video_listing(
        db, viewer_id, page, limit, sort_field, sort_direction, search
    )


@router.get("/audience")
async def audience_insights(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await dashboard_service.build_audience_insights(db, viewer_id)
