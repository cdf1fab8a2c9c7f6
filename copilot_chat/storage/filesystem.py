from __future__ import annotations

import asyncio
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Generic, List, Optional, Type, Union
from uuid import uuid4

from copilot_chat.core.errors import DuplicateEntityError
from .base import T, ensure_valid_id

logger = logging.getLogger(__name__)

# One lock per resolved file path, shared by every context and event loop in the process.
_FILE_LOCKS: Dict[str, threading.Lock] = {}
_FILE_LOCKS_GUARD = threading.Lock()


def _file_lock(path: Path) -> threading.Lock:
    with _FILE_LOCKS_GUARD:
        return _FILE_LOCKS.setdefault(str(path), threading.Lock())


# PUBLIC_INTERFACE
def derive_entity_path(base_path: Union[str, Path], suffix: str) -> Path:
    """
    Insert an entity suffix into the configured base file path.

    Example:
        derive_entity_path("data/chats.json", "sessions") -> <abs>/data/chats_sessions.json
    """
    full = Path(base_path).expanduser().resolve()
    return full.with_name(f"{full.stem}_{suffix}{full.suffix}")


class FileSystemContext(Generic[T]):
    """
    Storage context backed by a single JSON file per entity type.

    The file holds one object keyed by entity id. Every operation reads the whole
    file; every mutation rewrites it through a temp file and os.replace. Each
    read-modify-write cycle runs in a worker thread under a threading.Lock per
    path, so contexts on different event loops in one process stay serialized.
    Concurrent writers in other processes are not supported.
    """

    def __init__(self, entity_type: Type[T], file_path: Union[str, Path]) -> None:
        self.entity_type = entity_type
        self.file_path = Path(file_path).expanduser().resolve()
        self._lock = _file_lock(self.file_path)
        logger.info("Using %s store at %s", entity_type.__name__, self.file_path)

    def _read(self) -> Dict[str, Dict[str, Any]]:
        if not self.file_path.exists():
            return {}
        text = self.file_path.read_text(encoding="utf-8")
        if not text.strip():
            return {}
        return json.loads(text)

    def _write(self, records: Dict[str, Dict[str, Any]]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.file_path.with_name(f"{self.file_path.name}.{uuid4().hex}.tmp")
        try:
            tmp_path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp_path, self.file_path)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()

    def _to_record(self, entity: T) -> Dict[str, Any]:
        return entity.model_dump(mode="json", by_alias=True)

    def _to_entity(self, record: Dict[str, Any]) -> T:
        return self.entity_type.model_validate(record)

    def _mutate(self, change: Callable[[Dict[str, Dict[str, Any]]], bool]) -> None:
        """Read, apply `change`, and rewrite the file if it reports a modification."""
        with self._lock:
            records = self._read()
            if change(records):
                self._write(records)

    def _snapshot(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return self._read()

    async def create(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        record = self._to_record(entity)

        def insert(records: Dict[str, Dict[str, Any]]) -> bool:
            if entity_id in records:
                raise DuplicateEntityError(entity_id)
            records[entity_id] = record
            return True

        await asyncio.to_thread(self._mutate, insert)

    async def upsert(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        record = self._to_record(entity)

        def replace(records: Dict[str, Dict[str, Any]]) -> bool:
            records[entity_id] = record
            return True

        await asyncio.to_thread(self._mutate, replace)

    async def delete(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        await asyncio.to_thread(self._mutate, lambda records: records.pop(entity_id, None) is not None)

    async def try_find_by_id(self, entity_id: str) -> Optional[T]:
        records = await asyncio.to_thread(self._snapshot)
        record = records.get(entity_id)
        return self._to_entity(record) if record is not None else None

    async def find(self, predicate: Callable[[T], bool]) -> List[T]:
        records = await asyncio.to_thread(self._snapshot)
        entities = (self._to_entity(r) for r in records.values())
        return [e for e in entities if predicate(e)]

    async def close(self) -> None:
        return None
