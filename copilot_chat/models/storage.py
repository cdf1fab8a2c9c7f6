from __future__ import annotations

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field
from pydantic.alias_generators import to_camel

# Memory sources stored under this chat id are visible from every chat.
GLOBAL_CHAT_ID = str(uuid.UUID(int=0))

TOKEN_USAGE_KEYS = (
    "audienceExtraction",
    "userIntentExtraction",
    "metaPromptTemplate",
    "responseCompletion",
    "workingMemoryExtraction",
    "longTermMemoryExtraction",
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def empty_token_usages() -> Dict[str, int]:
    """Return a token usage mapping with every tracked function at zero."""
    return {key: 0 for key in TOKEN_USAGE_KEYS}


class StorageEntity(BaseModel):
    """
    Base for records kept by a storage context.

    Serialized with camelCase keys; both camelCase and snake_case are accepted
    on input.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=_new_id, description="Unique id within the store")

    @computed_field  # type: ignore[misc]
    @property
    def partition(self) -> str:
        """Partition key value used by the document store."""
        return self._partition_key()

    def _partition_key(self) -> str:
        return self.id


class ChatSession(StorageEntity):
    """A conversation thread with a title and system prompt."""
    title: str = Field(..., description="Title of the chat")
    system_description: str = Field(default="", description="System prompt for the chat")
    memory_balance: float = Field(
        default=0.5,
        ge=0.0,
        le=1.0,
        description="Balance between long and short term memory (0 = short term only).",
    )
    created_on: datetime = Field(default_factory=_utcnow)


class AuthorRole(str, Enum):
    USER = "User"
    BOT = "Bot"


class ChatMessageType(str, Enum):
    MESSAGE = "Message"
    PLAN = "Plan"
    DOCUMENT = "Document"


class ChatMessage(StorageEntity):
    """A single message of a chat session."""
    chat_id: str
    user_id: str
    user_name: str
    content: str
    timestamp: datetime = Field(default_factory=_utcnow)
    prompt: str = Field(default="")
    author_role: AuthorRole = Field(default=AuthorRole.USER)
    type: ChatMessageType = Field(default=ChatMessageType.MESSAGE)
    token_usage: Optional[Dict[str, int]] = Field(default=None)

    def _partition_key(self) -> str:
        return self.chat_id

    @classmethod
    def create_bot_response_message(
        cls,
        chat_id: str,
        content: str,
        prompt: str,
        token_usage: Optional[Dict[str, int]] = None,
    ) -> "ChatMessage":
        return cls(
            chat_id=chat_id,
            user_id="Bot",
            user_name="Bot",
            content=content,
            prompt=prompt,
            author_role=AuthorRole.BOT,
            type=ChatMessageType.MESSAGE,
            token_usage=token_usage,
        )


class ChatParticipant(StorageEntity):
    """Membership record linking a user to a chat session."""
    user_id: str
    chat_id: str

    def _partition_key(self) -> str:
        return self.user_id


class MemorySourceType(str, Enum):
    FILE = "File"
    URL = "Url"


class MemorySource(StorageEntity):
    """A document or link imported into a chat's memory."""
    chat_id: str
    name: str
    hyper_link: Optional[str] = Field(default=None)
    source_type: MemorySourceType = Field(default=MemorySourceType.FILE)
    shared_by: str = Field(default="")
    created_on: datetime = Field(default_factory=_utcnow)
    size: int = Field(default=0, ge=0)
    tokens: int = Field(default=0, ge=0)

    def _partition_key(self) -> str:
        return self.chat_id
