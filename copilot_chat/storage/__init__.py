"""
Storage contexts: the create/upsert/find contract and its backends.

- VolatileContext: process memory
- FileSystemContext: one JSON file per entity type
- CosmosDbContext: one Azure Cosmos DB container per entity type

The backend is chosen once at startup by copilot_chat.services.container.
"""

from .base import StorageContext
from .cosmos import CosmosDbContext
from .filesystem import FileSystemContext, derive_entity_path
from .volatile import VolatileContext

__all__ = [
    "StorageContext",
    "VolatileContext",
    "FileSystemContext",
    "CosmosDbContext",
    "derive_entity_path",
]
