from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Generic, List, Optional, Type

from copilot_chat.core.errors import DuplicateEntityError
from .base import T, ensure_valid_id

logger = logging.getLogger(__name__)


class VolatileContext(Generic[T]):
    """
    In-memory storage context.

    Contents live in a dict keyed by entity id and are lost when the process
    exits. Suitable for local development and tests. Critical sections never
    await, so a threading.Lock guards them regardless of the calling event loop.
    """

    def __init__(self, entity_type: Type[T]) -> None:
        self.entity_type = entity_type
        self._entities: Dict[str, T] = {}
        self._lock = threading.Lock()

    async def create(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        with self._lock:
            if entity_id in self._entities:
                raise DuplicateEntityError(entity_id)
            self._entities[entity_id] = entity.model_copy(deep=True)

    async def upsert(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        with self._lock:
            self._entities[entity_id] = entity.model_copy(deep=True)

    async def delete(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        with self._lock:
            self._entities.pop(entity_id, None)

    async def try_find_by_id(self, entity_id: str) -> Optional[T]:
        with self._lock:
            found = self._entities.get(entity_id)
        return found.model_copy(deep=True) if found is not None else None

    async def find(self, predicate: Callable[[T], bool]) -> List[T]:
        with self._lock:
            snapshot = list(self._entities.values())
        return [e.model_copy(deep=True) for e in snapshot if predicate(e)]

    async def close(self) -> None:
        logger.debug("Discarding %d volatile %s records", len(self._entities), self.entity_type.__name__)
