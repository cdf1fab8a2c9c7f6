from __future__ import annotations

from typing import Callable, Generic, List, Optional

from copilot_chat.storage.base import StorageContext, T


class Repository(Generic[T]):
    """
    Base class for repositories providing common helpers.

    Note:
      The repository owns its storage context exclusively; domain repositories
      layer their lookups on top of `find`.
    """

    def __init__(self, storage_context: StorageContext[T]) -> None:
        self.storage_context = storage_context

    async def create(self, entity: T) -> None:
        """Create a new entity; fails if the id is already taken."""
        await self.storage_context.create(entity)

    async def upsert(self, entity: T) -> None:
        """Insert or replace an entity by id."""
        await self.storage_context.upsert(entity)

    async def delete(self, entity: T) -> None:
        """Delete an entity by id."""
        await self.storage_context.delete(entity)

    async def try_find_by_id(self, entity_id: str) -> Optional[T]:
        """Return the entity or None when no entity has this id."""
        return await self.storage_context.try_find_by_id(entity_id)

    async def find(self, predicate: Callable[[T], bool]) -> List[T]:
        """Return the entities matching predicate."""
        return await self.storage_context.find(predicate)

    async def close(self) -> None:
        await self.storage_context.close()
