"""
LynkHub Chats & Messages

One-to-one chats are created lazily on first access; group chats have a
single admin who alone may rename them, change membership, clear or delete
them. Only members may read or post messages. Every new message is pushed
to the other members through the event hub.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.core.errors import InvalidArgument, NotFound, Unauthorized
from app.core.events import RelationEventType, event_hub
from app.models.models import Chat, ChatMember, Message, User
from app.services.aggregation.query_builders import OWNER_FIELDS

logger = logging.getLogger(__name__)
settings = get_settings()


class ChatService:

    # ── Helpers ──────────────────────────────────────────────────────────

    async def _identities(self, db: AsyncSession, user_ids: Iterable[uuid.UUID]) -> Dict[uuid.UUID, Dict[str, Any]]:
        ids = list(set(user_ids))
        if not ids:
            return {}
        columns = [getattr(User, name) for name in OWNER_FIELDS]
        rows = (await db.execute(select(*columns).where(User.id.in_(ids)))).mappings().all()
        return {row["id"]: dict(row) for row in rows}

    async def _get_chat(self, db: AsyncSession, chat_id: uuid.UUID) -> Chat:
        chat = await db.get(Chat, chat_id)
        if chat is None:
            raise NotFound("Chat not found")
        return chat

    async def _admin_group(self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID, action: str) -> Chat:
        chat = await self._get_chat(db, chat_id)
        if not chat.is_group:
            raise InvalidArgument(f"Only group chats can be {action}")
        if chat.group_admin_id != caller_id:
            raise Unauthorized("Only the group admin can do this")
        return chat

    async def _message_dict(self, db: AsyncSession, message: Message, senders=None) -> Dict[str, Any]:
        if senders is None:
            senders = await self._identities(db, [message.sender_id])
        return {
            "id": message.id,
            "chat_id": message.chat_id,
            "content": message.content,
            "created_at": message.created_at,
            "sender": senders.get(message.sender_id),
        }

    async def chat_to_dict(self, db: AsyncSession, chat: Chat) -> Dict[str, Any]:
        people = await self._identities(db, chat.member_ids + ([chat.group_admin_id] if chat.group_admin_id else []))
        latest = None
        if chat.latest_message_id is not None:
            message = await db.get(Message, chat.latest_message_id)
            if message is not None:
                latest = await self._message_dict(db, message)
        return {
            "id": chat.id,
            "name": chat.name,
            "is_group": chat.is_group,
            "members": [people[uid] for uid in chat.member_ids if uid in people],
            "group_admin": people.get(chat.group_admin_id) if chat.group_admin_id else None,
            "latest_message": latest,
            "created_at": chat.created_at,
            "updated_at": chat.updated_at,
        }

    # ═══════════════════════════════════════════════════════════════════════
    # Chats
    # ═══════════════════════════════════════════════════════════════════════

    async def access_chat(self, db: AsyncSession, caller_id: uuid.UUID, other_id: Optional[uuid.UUID]) -> Chat:
        """Return the one-to-one chat between the two users, creating it if needed."""
        if other_id is None:
            raise InvalidArgument("User id is missing")
        if other_id == caller_id:
            raise InvalidArgument("Cannot start a chat with yourself")
        if await db.get(User, other_id) is None:
            raise NotFound("User not found")

        caller_chats = select(ChatMember.chat_id).where(ChatMember.user_id == caller_id)
        other_chats = select(ChatMember.chat_id).where(ChatMember.user_id == other_id)
        chat = await db.scalar(
            select(Chat)
            .where(
                Chat.is_group.is_(False),
                Chat.id.in_(caller_chats),
                Chat.id.in_(other_chats),
            )
            .limit(1)
        )
        if chat is not None:
            return chat

        chat = Chat(
            is_group=False,
            members=[ChatMember(user_id=caller_id), ChatMember(user_id=other_id)],
        )
        db.add(chat)
        await db.flush()
        logger.debug(f"Chat {chat.id} created between {caller_id} and {other_id}")
        return chat

    async def fetch_chats(self, db: AsyncSession, caller_id: uuid.UUID) -> List[Chat]:
        result = await db.execute(
            select(Chat)
            .where(Chat.id.in_(select(ChatMember.chat_id).where(ChatMember.user_id == caller_id)))
            .order_by(Chat.updated_at.desc())
        )
        return list(result.scalars().all())

    async def create_group(
        self, db: AsyncSession, caller_id: uuid.UUID, name: Optional[str], member_ids: Optional[List[uuid.UUID]]
    ) -> Chat:
        if not name or not name.strip() or member_ids is None:
            raise InvalidArgument("All fields are required")

        others = [uid for uid in dict.fromkeys(member_ids) if uid != caller_id]
        if len(others) < settings.group_min_members:
            raise InvalidArgument(
                f"At least {settings.group_min_members} other users are required to form a group chat"
            )
        found = await db.scalars(select(User.id).where(User.id.in_(others)))
        missing = set(others) - set(found.all())
        if missing:
            raise NotFound(f"Users not found: {', '.join(str(m) for m in sorted(missing, key=str))}")

        chat = Chat(
            name=name.strip(),
            is_group=True,
            group_admin_id=caller_id,
            members=[ChatMember(user_id=uid) for uid in [caller_id, *others]],
        )
        db.add(chat)
        await db.flush()
        logger.info(f"Group chat {chat.id} created by {caller_id} with {len(others)} members")
        return chat

    async def rename_group(self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID, name: Optional[str]) -> Chat:
        if not name or not name.strip():
            raise InvalidArgument("Chat name is required")
        chat = await self._admin_group(db, chat_id, caller_id, "renamed")
        chat.name = name.strip()
        await db.flush()
        return chat

    async def add_to_group(self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID, user_id: uuid.UUID) -> Chat:
        chat = await self._admin_group(db, chat_id, caller_id, "extended")
        if await db.get(User, user_id) is None:
            raise NotFound("User not found")
        if user_id not in chat.member_ids:
            chat.members.append(ChatMember(user_id=user_id))
            await db.flush()
        return chat

    async def remove_from_group(
        self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID, user_id: uuid.UUID
    ) -> Chat:
        chat = await self._admin_group(db, chat_id, caller_id, "modified")
        member = next((m for m in chat.members if m.user_id == user_id), None)
        if member is None:
            raise InvalidArgument("User is not a member of this group")
        chat.members.remove(member)
        await db.flush()
        return chat

    async def clear_group_messages(self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID) -> Dict[str, Any]:
        chat = await self._admin_group(db, chat_id, caller_id, "cleared")
        result = await db.execute(
            delete(Message).where(Message.chat_id == chat_id)
            .execution_options(synchronize_session=False)
        )
        chat.latest_message_id = None
        await db.flush()
        return {"id": chat_id, "cleared": result.rowcount}

    async def delete_group(self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID) -> Dict[str, Any]:
        chat = await self._admin_group(db, chat_id, caller_id, "deleted")
        await db.execute(
            delete(Message).where(Message.chat_id == chat_id)
            .execution_options(synchronize_session=False)
        )
        await db.delete(chat)
        await db.flush()
        logger.info(f"Group chat {chat_id} deleted by {caller_id}")
        return {"id": chat_id, "deleted": True}

    # ═══════════════════════════════════════════════════════════════════════
    # Messages
    # ═══════════════════════════════════════════════════════════════════════

    async def send_message(
        self, db: AsyncSession, caller_id: uuid.UUID, chat_id: uuid.UUID, content: Optional[str]
    ) -> Dict[str, Any]:
        content = (content or "").strip()
        if not content:
            raise InvalidArgument("Message content is required")

        chat = await self._get_chat(db, chat_id)
        if caller_id not in chat.member_ids:
            raise Unauthorized("Unauthorized access to the chat")

        message = Message(sender_id=caller_id, chat_id=chat_id, content=content)
        db.add(message)
        await db.flush()
        chat.latest_message_id = message.id
        await db.flush()

        event_hub.defer_relation(
            db,
            RelationEventType.MESSAGE_SENT,
            actor_id=caller_id,
            target_kind="chat",
            target_id=chat_id,
            recipients=[uid for uid in chat.member_ids if uid != caller_id],
            data={"message_id": str(message.id), "content": content},
        )
        return await self._message_dict(db, message)

    async def list_messages(self, db: AsyncSession, chat_id: uuid.UUID, caller_id: uuid.UUID) -> List[Dict[str, Any]]:
        chat = await self._get_chat(db, chat_id)
        if caller_id not in chat.member_ids:
            raise Unauthorized("Unauthorized access to the chat")

        messages = (await db.execute(
            select(Message).where(Message.chat_id == chat_id).order_by(Message.created_at)
        )).scalars().all()
        senders = await self._identities(db, [m.sender_id for m in messages])
        return [await self._message_dict(db, m, senders) for m in messages]


chat_service = ChatService()
