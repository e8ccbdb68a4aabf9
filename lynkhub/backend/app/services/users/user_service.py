"""
User profiles — creation, lookups and account edits.

Credentials and sessions are handled upstream; this service only keeps the
profile records the rest of the platform joins against.
"""
from __future__ import annotations

import logging
import re
import uuid
from typing import Any, Dict, List, Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import Conflict, InvalidArgument, NotFound
from app.models.models import AgeBracket, Gender, User

logger = logging.getLogger(__name__)
settings = get_settings()

USERNAME_RE = re.compile(r"^[a-z0-9_.]{3,64}$")
EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def public_identity(user: User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "username": user.username,
        "display_name": user.display_name,
        "avatar_url": user.avatar_url,
    }


def user_to_dict(user: User) -> Dict[str, Any]:
    return {
        **public_identity(user),
        "email": user.email,
        "cover_image_url": user.cover_image_url,
        "role": user.role.value,
        "is_confirmed": user.is_confirmed,
        "age_bracket": user.age_bracket.value,
        "gender": user.gender.value,
        "country": user.country,
        "created_at": user.created_at,
    }


def _enum(enum_cls, value: Any, label: str):
    if value is None:
        return None
    try:
        return enum_cls(getattr(value, "value", value))
    except ValueError:
        raise InvalidArgument(f"Invalid {label}: {value}")


class UserService:

    async def _taken(self, db: AsyncSession, column, value: str, exclude: Optional[uuid.UUID] = None) -> bool:
        stmt = select(User.id).where(column == value)
        if exclude is not None:
            stmt = stmt.where(User.id != exclude)
        return await db.scalar(stmt.limit(1)) is not None

    async def create_user(
        self,
        db: AsyncSession,
        username: Optional[str],
        email: Optional[str],
        display_name: Optional[str],
        avatar_url: Optional[str],
        cover_image_url: Optional[str] = None,
        age_bracket: Any = None,
        gender: Any = None,
        country: Optional[str] = None,
    ) -> User:
        username = (username or "").strip().lower()
        email = (email or "").strip().lower()
        if not (username and email and display_name and display_name.strip() and avatar_url):
            raise InvalidArgument("All fields are required")
        if not USERNAME_RE.match(username):
            raise InvalidArgument("Username may only contain letters, digits, '_' and '.'")
        if not EMAIL_RE.match(email):
            raise InvalidArgument("Invalid email address")
        if await self._taken(db, User.username, username) or await self._taken(db, User.email, email):
            raise Conflict("User with this username or email already exists")

        user = User(
            username=username,
            email=email,
            display_name=display_name.strip(),
            avatar_url=avatar_url,
            cover_image_url=cover_image_url,
            age_bracket=_enum(AgeBracket, age_bracket, "age bracket") or AgeBracket.KID,
            gender=_enum(Gender, gender, "gender") or Gender.OTHER,
            country=country.strip().upper() if country else None,
        )
        db.add(user)
        await db.flush()
        logger.info(f"User created id={user.id} username={username}")
        return user

    async def get_user(self, db: AsyncSession, user_id: uuid.UUID) -> User:
        user = await db.get(User, user_id)
        if user is None:
            raise NotFound("User not found")
        return user

    async def update_account(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        display_name: Optional[str] = None,
        email: Optional[str] = None,
        avatar_url: Optional[str] = None,
        cover_image_url: Optional[str] = None,
    ) -> User:
        if display_name is None and email is None and avatar_url is None and cover_image_url is None:
            raise InvalidArgument("Nothing to update")

        user = await self.get_user(db, user_id)
        if display_name is not None:
            if not display_name.strip():
                raise InvalidArgument("Display name cannot be blank")
            user.display_name = display_name.strip()
        if email is not None:
            email = email.strip().lower()
            if not EMAIL_RE.match(email):
                raise InvalidArgument("Invalid email address")
            if await self._taken(db, User.email, email, exclude=user_id):
                raise Conflict("Email is already in use")
            user.email = email
        if avatar_url:
            user.avatar_url = avatar_url
        if cover_image_url:
            user.cover_image_url = cover_image_url
        await db.flush()
        await db.refresh(user)
        return user

    async def check_username_available(self, db: AsyncSession, username: Optional[str]) -> Dict[str, bool]:
        username = (username or "").strip().lower()
        if not username:
            raise InvalidArgument("Username is missing")
        return {"available": not await self._taken(db, User.username, username)}

    async def search_users(self, db: AsyncSession, query: Optional[str]) -> List[Dict[str, Any]]:
        """Case-insensitive substring match on username or display name."""
        query = (query or "").strip()
        if not query:
            return []
        result = await db.execute(
            select(User)
            .where(or_(
                User.username.icontains(query, autoescape=True),
                User.display_name.icontains(query, autoescape=True),
            ))
            .order_by(User.username)
            .limit(settings.max_page_size)
        )
        return [public_identity(u) for u in result.scalars().all()]


user_service = UserService()
