"""
LynkHub API — Comment routes.
"""
from __future__ import annotations

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_optional_viewer_id, get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import CommentBody, CommentRecord, DeleteResponse, Page
from app.services.aggregation.relationship_aggregator import relationship_aggregator
from app.services.comments.comment_service import comment_service, comment_to_dict

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.get("/{video_id}", response_model=Page)
async def video_comments(
    video_id: str,
    sort_field: Optional[str] = Query(None, alias="sortBy"),
    sort_direction: Optional[str] = Query(None, alias="sortType"),
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    viewer_id: Optional[uuid.UUID] = Depends(get_optional_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await relationship_aggregator.video_comments(
        db, parse_id(video_id, "video id"), viewer_id, sort_field, sort_direction, page, limit
    )


@router.post("/{video_id}", response_model=CommentRecord, status_code=201)
async def add_comment(
    video_id: str,
    data: CommentBody,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, parse_id(video_id, "video id"), viewer_id, data.content)
    return comment_to_dict(comment)


@router.patch("/c/{comment_id}", response_model=CommentRecord)
async def update_comment(
    comment_id: str,
    data: CommentBody,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.update_comment(
        db, parse_id(comment_id, "comment id"), viewer_id, data.content
    )
    return comment_to_dict(comment)


@router.delete("/c/{comment_id}", response_model=DeleteResponse)
async def delete_comment(
    comment_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.delete_comment(db, parse_id(comment_id, "comment id"), viewer_id)
