from __future__ import annotations

from typing import Callable, List, Optional, Protocol, TypeVar

from copilot_chat.core.errors import InvalidEntityError
from copilot_chat.models.storage import StorageEntity

T = TypeVar("T", bound=StorageEntity)


class StorageContext(Protocol[T]):
    """
    Defines the persistence operations a repository needs for one entity type.

    Implementations must be safe for concurrent calls from simultaneous requests
    and must hand out copies, so a caller mutating a returned entity does not
    change the store until it calls upsert.
    """

    async def create(self, entity: T) -> None:
        """Insert a new entity; raises DuplicateEntityError if the id exists."""
        ...

    async def upsert(self, entity: T) -> None:
        """Insert or replace the entity with the same id."""
        ...

    async def delete(self, entity: T) -> None:
        """Remove the entity with the same id; absent ids are ignored."""
        ...

    async def try_find_by_id(self, entity_id: str) -> Optional[T]:
        """Return the entity or None when absent."""
        ...

    async def find(self, predicate: Callable[[T], bool]) -> List[T]:
        """Return every entity matching predicate, in no particular order."""
        ...

    async def close(self) -> None:
        ...


def ensure_valid_id(entity: StorageEntity) -> str:
    """Return the entity id, rejecting blank ids."""
    if not entity.id or not entity.id.strip():
        raise InvalidEntityError("Entity id cannot be null or empty.")
    return entity.id
