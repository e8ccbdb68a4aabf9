"""
LynkHub API Schemas — Pydantic v2 models for request/response validation.

Service-level rules (length limits, ownership, existence) are enforced by
the services so that the same failure kinds surface for every caller;
these models only shape the payloads.
"""
from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


# ═══════════════════════════════════════════════════════════════════════
# Common
# ═══════════════════════════════════════════════════════════════════════

class ErrorResponse(BaseModel):
    kind: str
    message: str


class PublicIdentity(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    display_name: str
    avatar_url: Optional[str] = None


class Page(BaseModel):
    items: List[Dict[str, Any]]
    total_items: int
    total_pages: int
    current_page: int
    limit: int


class DeleteResponse(BaseModel):
    id: uuid.UUID
    deleted: bool = True


# ═══════════════════════════════════════════════════════════════════════
# Users & Channels
# ═══════════════════════════════════════════════════════════════════════

class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=64)
    email: str = Field(..., max_length=256)
    display_name: str = Field(..., min_length=1, max_length=128)
    avatar_url: str
    cover_image_url: Optional[str] = None
    age_bracket: Optional[str] = None
    gender: Optional[str] = None
    country: Optional[str] = Field(None, max_length=8)


class AccountUpdate(BaseModel):
    display_name: Optional[str] = Field(None, max_length=128)
    email: Optional[str] = Field(None, max_length=256)
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None


class UserProfile(BaseModel):
    id: uuid.UUID
    username: str
    display_name: str
    email: str
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    role: str
    is_confirmed: bool
    age_bracket: str
    gender: str
    country: Optional[str] = None
    created_at: Optional[datetime] = None


class ChannelProfile(BaseModel):
    id: uuid.UUID
    username: str
    display_name: str
    email: str
    avatar_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    total_videos: int
    subscribers_count: int
    channel_subscribed_to: int
    is_subscribed: bool


class UsernameAvailability(BaseModel):
    available: bool


# ═══════════════════════════════════════════════════════════════════════
# Videos & Comments
# ═══════════════════════════════════════════════════════════════════════

class VideoPublish(BaseModel):
    title: str
    description: str
    media_url: str
    thumbnail_url: str
    duration: float = Field(0.0, ge=0.0)


class VideoUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None


class VideoRecord(BaseModel):
    id: uuid.UUID
    owner_id: uuid.UUID
    title: str
    description: str
    media_url: str
    thumbnail_url: str
    duration: float
    is_published: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CommentBody(BaseModel):
    content: str = Field(..., max_length=5000)


class CommentRecord(BaseModel):
    id: uuid.UUID
    content: str
    video_id: uuid.UUID
    owner_id: uuid.UUID
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════
# Engagement
# ═══════════════════════════════════════════════════════════════════════

class ToggleResponse(BaseModel):
    result: str  # "added" | "removed"
    record: Optional[Dict[str, Any]] = None


# ═══════════════════════════════════════════════════════════════════════
# Playlists
# ═══════════════════════════════════════════════════════════════════════

class PlaylistCreate(BaseModel):
    name: str
    description: str = ""
    privacy: str = "public"


class PlaylistUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    privacy: Optional[str] = None


class PlaylistRecord(BaseModel):
    id: uuid.UUID
    name: str
    description: str
    privacy: str
    owner_id: uuid.UUID
    video_ids: List[uuid.UUID] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════
# Posts
# ═══════════════════════════════════════════════════════════════════════

class PostMedia(BaseModel):
    url: str
    type: str = "image"


class PostCreate(BaseModel):
    content: str
    media: List[PostMedia] = []
    parent_id: Optional[uuid.UUID] = None


class PostRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    author_id: uuid.UUID
    content: str
    media: Optional[List[Dict[str, Any]]] = None
    parent_id: Optional[uuid.UUID] = None
    hashtags: Optional[List[str]] = None
    mentions: Optional[List[str]] = None
    created_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════
# Chats & Messages
# ═══════════════════════════════════════════════════════════════════════

class ChatAccess(BaseModel):
    user_id: Optional[uuid.UUID] = None


class GroupCreate(BaseModel):
    name: str
    members: List[uuid.UUID]


class GroupRename(BaseModel):
    name: str


class GroupMember(BaseModel):
    user_id: uuid.UUID


class MessageCreate(BaseModel):
    chat_id: uuid.UUID
    content: str


class MessageRecord(BaseModel):
    id: uuid.UUID
    chat_id: uuid.UUID
    content: str
    created_at: Optional[datetime] = None
    sender: Optional[PublicIdentity] = None


class ChatRecord(BaseModel):
    id: uuid.UUID
    name: Optional[str] = None
    is_group: bool
    members: List[PublicIdentity] = []
    group_admin: Optional[PublicIdentity] = None
    latest_message: Optional[MessageRecord] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ═══════════════════════════════════════════════════════════════════════
# Settings
# ═══════════════════════════════════════════════════════════════════════

class SettingsRecord(BaseModel):
    id: uuid.UUID
    autoplay_on_start: bool
    autoplay_next: bool
    updated_at: Optional[datetime] = None
