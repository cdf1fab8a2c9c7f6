"""
Repository layer for data access.

Repositories wrap a storage context and add domain lookups (by chat id, by
user id, membership checks). They never pick a backend themselves; the
services container hands each one its storage context.
"""

from .base import Repository
from .chat import (
    ChatMemorySourceRepository,
    ChatMessageRepository,
    ChatParticipantRepository,
    ChatSessionRepository,
)

__all__ = [
    "Repository",
    "ChatSessionRepository",
    "ChatMessageRepository",
    "ChatParticipantRepository",
    "ChatMemorySourceRepository",
]
