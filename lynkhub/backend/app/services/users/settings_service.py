"""Per-user playback settings, created with defaults on first access."""
from __future__ import annotations

import uuid
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import InvalidArgument, NotFound
from app.models.models import Setting, User


def setting_to_dict(setting: Setting) -> Dict[str, Any]:
    return {
        "id": setting.id,
        **{name: getattr(setting, name) for name in Setting.TOGGLES},
        "updated_at": setting.updated_at,
    }


class SettingsService:

    async def get_settings(self, db: AsyncSession, user_id: uuid.UUID) -> Setting:
        setting = await db.scalar(select(Setting).where(Setting.user_id == user_id))
        if setting is not None:
            return setting
        if await db.get(User, user_id) is None:
            raise NotFound("User not found")

        setting = Setting(user_id=user_id)
        db.add(setting)
        await db.flush()
        return setting

    async def toggle_setting(self, db: AsyncSession, user_id: uuid.UUID, option: Optional[str]) -> Setting:
        if not option:
            raise InvalidArgument("Invalid request")
        if option not in Setting.TOGGLES:
            raise InvalidArgument(f"Invalid setting option: {option}")

        setting = await self.get_settings(db, user_id)
        setattr(setting, option, not getattr(setting, option))
        await db.flush()
        return setting


settings_service = SettingsService()
