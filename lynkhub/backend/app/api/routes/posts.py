"""
LynkHub API — Post ("Lynk") routes.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_optional_viewer_id, get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import DeleteResponse, Page, PostCreate, PostRecord
from app.services.posts.post_service import post_service

router = APIRouter(prefix="/posts", tags=["Posts"])


@router.post("", response_model=PostRecord, status_code=201)
async def create_post(
    data: PostCreate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    post = await post_service.create_post(
        db,
        viewer_id,
        data.content,
        media=[m.model_dump() for m in data.media],
        parent_id=data.parent_id,
    )
    return PostRecord.model_validate(post)


@router.get("", response_model=Page)
async def post_feed(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.list_feed(db, viewer_id, page, limit)


@router.get("/user/{username}")
async def user_posts(
    username: str,
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.list_user_posts(db, username, viewer_id)


@router.get("/{post_id}")
async def post_thread(
    post_id: str,
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.get_post_thread(db, parse_id(post_id, "post id"), viewer_id)


@router.delete("/{post_id}", response_model=DeleteResponse)
async def delete_post(
    post_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await post_service.delete_post(db, parse_id(post_id, "post id"), viewer_id)
