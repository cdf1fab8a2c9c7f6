"""
Storage entities persisted by the chat store.
"""

from .storage import (  # noqa: F401
    AuthorRole,
    ChatMessage,
    ChatMessageType,
    ChatParticipant,
    ChatSession,
    MemorySource,
    MemorySourceType,
    StorageEntity,
    empty_token_usages,
)
