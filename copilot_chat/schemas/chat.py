from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from copilot_chat.models.storage import ChatMessage, ChatSession


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateChatParameters(_CamelModel):
    """Request body for creating a chat session."""
    title: Optional[str] = Field(None, description="Title of the new chat")


class CreateChatResponse(_CamelModel):
    """The new chat session and the bot's greeting message."""
    chat_session: ChatSession
    initial_bot_message: ChatMessage


class EditChatParameters(_CamelModel):
    """Request body for editing a chat session; omitted fields keep their value."""
    id: Optional[str] = Field(None, description="Id of the chat to edit")
    title: Optional[str] = Field(None)
    system_description: Optional[str] = Field(None)
    memory_balance: Optional[float] = Field(None, ge=0.0, le=1.0)
