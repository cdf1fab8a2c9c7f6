from __future__ import annotations

from typing import List

from copilot_chat.models.storage import (
    GLOBAL_CHAT_ID,
    ChatMessage,
    ChatParticipant,
    ChatSession,
    MemorySource,
)
from .base import Repository


class ChatSessionRepository(Repository[ChatSession]):
    """Repository for chat sessions."""


class ChatMessageRepository(Repository[ChatMessage]):
    """Repository for chat messages."""

    async def find_by_chat_id(self, chat_id: str) -> List[ChatMessage]:
        return await self.find(lambda m: m.chat_id == chat_id)

    async def find_last_by_chat_id(self, chat_id: str, count: int = 1) -> List[ChatMessage]:
        """Return up to `count` messages of the chat, most recent first."""
        messages = await self.find_by_chat_id(chat_id)
        messages.sort(key=lambda m: m.timestamp, reverse=True)
        return messages[:count]


class ChatParticipantRepository(Repository[ChatParticipant]):
    """Repository for chat membership records."""

    async def find_by_user_id(self, user_id: str) -> List[ChatParticipant]:
        return await self.find(lambda p: p.user_id == user_id)

    async def find_by_chat_id(self, chat_id: str) -> List[ChatParticipant]:
        return await self.find(lambda p: p.chat_id == chat_id)

    async def is_user_in_chat(self, user_id: str, chat_id: str) -> bool:
        matches = await self.find(lambda p: p.user_id == user_id and p.chat_id == chat_id)
        return len(matches) > 0


class ChatMemorySourceRepository(Repository[MemorySource]):
    """Repository for documents and links imported into chat memory."""

    async def find_by_chat_id(self, chat_id: str, include_global: bool = True) -> List[MemorySource]:
        """Return the chat's sources, plus the global ones unless include_global is False."""
        if include_global:
            return await self.find(lambda s: s.chat_id in (chat_id, GLOBAL_CHAT_ID))
        return await self.find(lambda s: s.chat_id == chat_id)

    async def find_by_name(self, name: str) -> List[MemorySource]:
        return await self.find(lambda s: s.name == name)

    async def get_all(self) -> List[MemorySource]:
        return await self.find(lambda _: True)
