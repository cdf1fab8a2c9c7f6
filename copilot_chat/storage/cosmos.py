from __future__ import annotations

import logging
from typing import Any, Callable, Dict, Generic, List, Optional, Type

from azure.cosmos.aio import ContainerProxy, CosmosClient
from azure.cosmos.exceptions import CosmosResourceExistsError, CosmosResourceNotFoundError

from copilot_chat.core.errors import DuplicateEntityError
from .base import T, ensure_valid_id

logger = logging.getLogger(__name__)


class CosmosDbContext(Generic[T]):
    """
    Storage context backed by an Azure Cosmos DB container.

    One container per entity type; documents are partitioned by the entity's
    `partition` value. Concurrency control, durability and remote failures are
    left to the Cosmos service and client.
    """

    def __init__(
        self,
        entity_type: Type[T],
        container: ContainerProxy,
        client: Optional[CosmosClient] = None,
    ) -> None:
        self.entity_type = entity_type
        self._container = container
        self._client = client

    @classmethod
    def from_connection_string(
        cls,
        entity_type: Type[T],
        connection_string: str,
        database: str,
        container: str,
    ) -> "CosmosDbContext[T]":
        """Create a context that owns its own CosmosClient; closed by close()."""
        client = CosmosClient.from_connection_string(connection_string)
        container_proxy = client.get_database_client(database).get_container_client(container)
        logger.info("Using %s store in Cosmos container %s/%s", entity_type.__name__, database, container)
        return cls(entity_type, container_proxy, client=client)

    def _to_document(self, entity: T) -> Dict[str, Any]:
        return entity.model_dump(mode="json", by_alias=True)

    def _to_entity(self, document: Dict[str, Any]) -> T:
        return self.entity_type.model_validate(document)

    async def create(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        try:
            await self._container.create_item(body=self._to_document(entity))
        except CosmosResourceExistsError as exc:
            raise DuplicateEntityError(entity_id) from exc

    async def upsert(self, entity: T) -> None:
        ensure_valid_id(entity)
        await self._container.upsert_item(body=self._to_document(entity))

    async def delete(self, entity: T) -> None:
        entity_id = ensure_valid_id(entity)
        try:
            await self._container.delete_item(item=entity_id, partition_key=entity.partition)
        except CosmosResourceNotFoundError:
            logger.debug("Delete of missing %s id=%s ignored", self.entity_type.__name__, entity_id)

    async def try_find_by_id(self, entity_id: str) -> Optional[T]:
        items = self._container.query_items(
            query="SELECT * FROM c WHERE c.id = @id",
            parameters=[{"name": "@id", "value": entity_id}],
        )
        async for document in items:
            return self._to_entity(document)
        return None

    async def find(self, predicate: Callable[[T], bool]) -> List[T]:
        result: List[T] = []
        async for document in self._container.read_all_items():
            entity = self._to_entity(document)
            if predicate(entity):
                result.append(entity)
        return result

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
