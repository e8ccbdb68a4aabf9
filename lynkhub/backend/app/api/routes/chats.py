"""
LynkHub API — Chat & message routes.
"""
from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_viewer_id
from app.core.database import get_db
from app.core.errors import parse_id
from app.schemas.schemas import (
    ChatAccess, ChatRecord, GroupCreate, GroupMember, GroupRename, MessageCreate, MessageRecord,
)
from app.services.chats.chat_service import chat_service

router = APIRouter(tags=["Chats"])


# ── Chats ────────────────────────────────────────────────────────────────

@router.post("/chats", response_model=ChatRecord)
async def access_chat(
    data: ChatAccess,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    """Open (or create) the one-to-one chat with ``user_id``."""
    chat = await chat_service.access_chat(db, viewer_id, data.user_id)
    return await chat_service.chat_to_dict(db, chat)


@router.get("/chats", response_model=List[ChatRecord])
async def fetch_chats(
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    chats = await chat_service.fetch_chats(db, viewer_id)
    return [await chat_service.chat_to_dict(db, c) for c in chats]


@router.post("/chats/groups", response_model=ChatRecord, status_code=201)
async def create_group(
    data: GroupCreate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    chat = await chat_service.create_group(db, viewer_id, data.name, data.members)
    return await chat_service.chat_to_dict(db, chat)


@router.patch("/chats/groups/{chat_id}", response_model=ChatRecord)
async def rename_group(
    chat_id: str,
    data: GroupRename,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    chat = await chat_service.rename_group(db, parse_id(chat_id, "chat id"), viewer_id, data.name)
    return await chat_service.chat_to_dict(db, chat)


@router.post("/chats/groups/{chat_id}/members", response_model=ChatRecord)
async def add_to_group(
    chat_id: str,
    data: GroupMember,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    chat = await chat_service.add_to_group(db, parse_id(chat_id, "chat id"), viewer_id, data.user_id)
    return await chat_service.chat_to_dict(db, chat)


@router.delete("/chats/groups/{chat_id}/members/{user_id}", response_model=ChatRecord)
async def remove_from_group(
    chat_id: str,
    user_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    chat = await chat_service.remove_from_group(
        db, parse_id(chat_id, "chat id"), viewer_id, parse_id(user_id, "user id")
    )
    return await chat_service.chat_to_dict(db, chat)


@router.delete("/chats/groups/{chat_id}/messages")
async def clear_group(
    chat_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await chat_service.clear_group_messages(db, parse_id(chat_id, "chat id"), viewer_id)


@router.delete("/chats/groups/{chat_id}")
async def delete_group(
    chat_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await chat_service.delete_group(db, parse_id(chat_id, "chat id"), viewer_id)


# ── Messages ─────────────────────────────────────────────────────────────

@router.post("/messages", response_model=MessageRecord, status_code=201)
async def send_message(
    data: MessageCreate,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await chat_service.send_message(db, viewer_id, data.chat_id, data.content)


@router.get("/messages/{chat_id}", response_model=List[MessageRecord])
async def list_messages(
    chat_id: str,
    viewer_id: uuid.UUID = Depends(get_viewer_id),
    db: AsyncSession = Depends(get_db),
):
    return await chat_service.list_messages(db, parse_id(chat_id, "chat id"), viewer_id)
