"""
Service wiring: turns AppSettings into the long-lived objects request handlers use.

Everything here runs once at startup. A selected backend whose configuration
section is missing raises ConfigurationError, which aborts application
construction.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from copilot_chat.core.errors import ConfigurationError
from copilot_chat.core.security import (
    Authenticator,
    AzureAdAuthenticator,
    PassThroughAuthenticator,
)
from copilot_chat.core.settings import (
    AppSettings,
    AuthenticationType,
    ChatAuthenticationOptions,
    ChatStoreOptions,
    ChatStoreType,
    OcrSupportOptions,
    OcrSupportType,
    PromptsOptions,
)
from copilot_chat.models.storage import ChatMessage, ChatParticipant, ChatSession, MemorySource
from copilot_chat.repositories import (
    ChatMemorySourceRepository,
    ChatMessageRepository,
    ChatParticipantRepository,
    ChatSessionRepository,
)
from copilot_chat.storage import (
    CosmosDbContext,
    FileSystemContext,
    VolatileContext,
    derive_entity_path,
)
from .ocr import AzureFormRecognizerOcrEngine, NullOcrEngine, OcrEngine, TesseractOcrEngine
from .realtime import MessageRelay

logger = logging.getLogger(__name__)


@dataclass
class ChatRepositories:
    """The four repositories of the chat store, all on the same backend kind."""
    sessions: ChatSessionRepository
    messages: ChatMessageRepository
    participants: ChatParticipantRepository
    sources: ChatMemorySourceRepository

    async def close(self) -> None:
        for repo in (self.sessions, self.messages, self.participants, self.sources):
            await repo.close()


@dataclass
class ChatServices:
    """Process-wide services handed to request handlers through dependencies."""
    repositories: ChatRepositories
    ocr_engine: OcrEngine
    authenticator: Authenticator
    prompts: PromptsOptions
    relay: MessageRelay = field(default_factory=MessageRelay)

    async def close(self) -> None:
        await self.repositories.close()
        await self.ocr_engine.close()
        await self.authenticator.close()


# PUBLIC_INTERFACE
def build_chat_store(options: ChatStoreOptions) -> ChatRepositories:
    """
    Select the storage backend and construct the four chat repositories.

    Raises:
        ConfigurationError: Filesystem or Cosmos selected without its section.
    """
    if options.type == ChatStoreType.VOLATILE:
        sessions = VolatileContext(ChatSession)
        messages = VolatileContext(ChatMessage)
        sources = VolatileContext(MemorySource)
        participants = VolatileContext(ChatParticipant)

    elif options.type == ChatStoreType.FILESYSTEM:
        if options.filesystem is None:
            raise ConfigurationError(
                "CHAT_STORE__FILESYSTEM is required when CHAT_STORE__TYPE is 'Filesystem'"
            )
        base = options.filesystem.file_path
        sessions = FileSystemContext(ChatSession, derive_entity_path(base, "sessions"))
        messages = FileSystemContext(ChatMessage, derive_entity_path(base, "messages"))
        sources = FileSystemContext(MemorySource, derive_entity_path(base, "memorysources"))
        participants = FileSystemContext(ChatParticipant, derive_entity_path(base, "participants"))

    elif options.type == ChatStoreType.COSMOS:
        cosmos = options.cosmos
        if cosmos is None:
            raise ConfigurationError(
                "CHAT_STORE__COSMOS is required when CHAT_STORE__TYPE is 'Cosmos'"
            )
        sessions = CosmosDbContext.from_connection_string(
            ChatSession, cosmos.connection_string, cosmos.database, cosmos.chat_sessions_container
        )
        messages = CosmosDbContext.from_connection_string(
            ChatMessage, cosmos.connection_string, cosmos.database, cosmos.chat_messages_container
        )
        sources = CosmosDbContext.from_connection_string(
            MemorySource, cosmos.connection_string, cosmos.database, cosmos.chat_memory_sources_container
        )
        participants = CosmosDbContext.from_connection_string(
            ChatParticipant, cosmos.connection_string, cosmos.database, cosmos.chat_participants_container
        )

    else:
        raise ConfigurationError(f"Invalid CHAT_STORE__TYPE '{options.type}'")

    logger.info("Chat store backend: %s", options.type.value)
    return ChatRepositories(
        sessions=ChatSessionRepository(sessions),
        messages=ChatMessageRepository(messages),
        participants=ChatParticipantRepository(participants),
        sources=ChatMemorySourceRepository(sources),
    )


# PUBLIC_INTERFACE
def build_ocr_engine(options: OcrSupportOptions) -> OcrEngine:
    """Select the OCR engine implementation."""
    if options.type == OcrSupportType.AZURE_FORM_RECOGNIZER:
        if options.azure_form_recognizer is None:
            raise ConfigurationError(
                "OCR_SUPPORT__AZURE_FORM_RECOGNIZER is required when OCR_SUPPORT__TYPE is 'AzureFormRecognizer'"
            )
        return AzureFormRecognizerOcrEngine(
            options.azure_form_recognizer.endpoint, options.azure_form_recognizer.key
        )
    if options.type == OcrSupportType.TESSERACT:
        if options.tesseract is None:
            raise ConfigurationError(
                "OCR_SUPPORT__TESSERACT is required when OCR_SUPPORT__TYPE is 'Tesseract'"
            )
        return TesseractOcrEngine(options.tesseract.file_path, options.tesseract.language)
    if options.type == OcrSupportType.NONE:
        return NullOcrEngine()
    raise ConfigurationError(f"Unsupported OCR_SUPPORT__TYPE '{options.type}'")


# PUBLIC_INTERFACE
def build_authenticator(options: ChatAuthenticationOptions) -> Authenticator:
    """Select the authentication scheme."""
    if options.type == AuthenticationType.AZURE_AD:
        if options.azure_ad is None:
            raise ConfigurationError(
                "AUTHENTICATION__AZURE_AD is required when AUTHENTICATION__TYPE is 'AzureAd'"
            )
        return AzureAdAuthenticator(options.azure_ad)
    if options.type == AuthenticationType.NONE:
        return PassThroughAuthenticator()
    raise ConfigurationError(f"Invalid AUTHENTICATION__TYPE '{options.type}'")


# PUBLIC_INTERFACE
def create_services(settings: AppSettings, relay: Optional[MessageRelay] = None) -> ChatServices:
    """Build every long-lived service from settings."""
    return ChatServices(
        repositories=build_chat_store(settings.CHAT_STORE),
        ocr_engine=build_ocr_engine(settings.OCR_SUPPORT),
        authenticator=build_authenticator(settings.AUTHENTICATION),
        prompts=settings.PROMPTS,
        relay=relay or MessageRelay(),
    )
