from __future__ import annotations


class CopilotChatError(Exception):
    """Base class for errors raised by the chat backend."""


class ConfigurationError(CopilotChatError):
    """
    Raised at startup when the selected options are incomplete.

    For example, choosing the Cosmos chat store without a Cosmos section.
    This is never recovered from; application construction aborts.
    """


class StorageError(CopilotChatError):
    """Base class for storage context contract violations."""


class InvalidEntityError(StorageError, ValueError):
    """The entity cannot be stored (e.g. blank id)."""


class DuplicateEntityError(StorageError):
    """An entity with the same id already exists in the store."""

    def __init__(self, entity_id: str) -> None:
        super().__init__(f"Entity with id '{entity_id}' already exists.")
        self.entity_id = entity_id


class AuthenticationError(CopilotChatError):
    """The request carries no valid identity."""


class OcrNotSupportedError(CopilotChatError):
    """Raised by the null OCR engine when OCR support is disabled."""
