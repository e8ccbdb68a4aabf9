"""
LynkHub API — User routes (profile, watch history, settings, search).
"""
from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import (
    AccountUpdate, PublicIdentity, SettingsRecord, UserCreate, UsernameAvailability, UserProfile,
)
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from app.services.history.watch_history import watch_history_service
from app.services.users.settings_service import setting_to_dict, settings_service
from app.services.users.user_service import user_service, user_to_dict

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=UserProfile, status_code=201)
async def create_user(data: UserCreate, db: AsyncSession = Depends(get_db)):
    """Create the profile record for a newly registered account."""
    user = await user_service.create_user(db, **data.model_dump())
    return user_to_dict(user)


@router.get("/me", response_model=UserProfile)
async def current_user(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return user_to_dict(await user_service.get_user(db, viewer_id))


@router.patch("/me", response_model=UserProfile)
async def update_account(
    data: AccountUpdate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    user = await user_service.update_account(db, viewer_id, **data.model_dump())
    return user_to_dict(user)


@router.get("/search", response_model=List[PublicIdentity])
async def search_users(q: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    return await user_service.search_users(db, q)


@router.get("/username-available", response_model=UsernameAvailability)
async def username_available(username: Optional[str] = Query(None), db: AsyncSession = Depends(get_db)):
    return await user_service.check_username_available(db, username)


# ── Watch history ────────────────────────────────────────────────────────

@router.get("/history")
async def watch_history(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await relationship_aggregator.watch_history(db, viewer_id)


@router.delete("/history/{video_id}")
async def remove_from_history(
    video_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    """Idempotent: removing an absent entry still succeeds."""
    video_uuid = parse_id(video_id, "video id")
    removed = await watch_history_service.remove_from_history(db, video_uuid, viewer_id)
    return {"video_id": video_uuid, "removed": removed}


# ── Settings ─────────────────────────────────────────────────────────────

@router.get("/settings", response_model=SettingsRecord)
async def get_settings(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return setting_to_dict(await settings_service.get_settings(db, viewer_id))


@router.patch("/settings", response_model=SettingsRecord)
async def toggle_setting(
    opt: Optional[str] = Query(None),
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return setting_to_dict(await settings_service.toggle_setting(db, viewer_id, opt))
