"""
MongoDB adapter for the query layer.

Every operation takes a connection identity and a collection name, looks
them up in the adapter's registry and delegates to the collection facade
or the join engine.
"""
import logging
from typing import Any, AsyncIterator, Optional, Union

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection

from mongo_adapter.config import Settings
from mongo_adapter.core.utils import object_id
from mongo_adapter.database.connections import ClientFactory
from mongo_adapter.database.registry import CollectionDefs, ConnectionRegistry
from mongo_adapter.models.connection import ConnectionConfig, Criteria
from mongo_adapter.services.join import JoinEngine, JoinPlanner
from mongo_adapter.services.planner import BasicJoinPlanner

logger = logging.getLogger(__name__)

CriteriaLike = Union[Criteria, dict[str, Any], None]


class MongoAdapter:
    """
    Caller-facing adapter.

    Usable as an async context manager; leaving the block tears down every
    registered connection.
    """

    identity = "mongo-adapter"
    pk_format = "string"
    syncable = True

    def __init__(
        self,
        settings: Optional[Settings] = None,
        join_planner: Optional[JoinPlanner] = None,
        client_factory: ClientFactory = AsyncIOMotorClient,
    ):
        self.registry = ConnectionRegistry(settings, client_factory)
        self.join_planner = join_planner or BasicJoinPlanner()

    async def __aenter__(self) -> "MongoAdapter":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.teardown()

    # ==================== Lifecycle ====================

    async def register_connection(
        self,
        config: Union[ConnectionConfig, dict[str, Any]],
        collections: Optional[CollectionDefs] = None,
    ) -> None:
        await self.registry.register(config, collections)

    async def teardown(self, identity: Optional[str] = None) -> None:
        await self.registry.teardown(identity)

    # ==================== Schema ====================

    async def describe(self, connection_name: str, collection_name: str) -> Optional[dict]:
        """Declared schema of a collection, or None if the store does not have it."""
        entry = self.registry.lookup(connection_name)
        collection = entry.collection(collection_name)
        if await entry.connection.collection_exists(collection_name):
            return collection.schema
        return None

    async def define(
        self,
        connection_name: str,
        collection_name: str,
        definition: Optional[dict[str, Any]] = None,
    ) -> None:
        """Create a collection and its indexes. No-op on read-only connections."""
        entry = self.registry.lookup(connection_name)
        if entry.config.read_only:
            return

        collection = entry.collection(collection_name)
        await entry.connection.create_collection(collection_name, collection.indexes)

    async def drop(self, connection_name: str, collection_name: str) -> None:
        """Drop a collection. Dropping a missing collection succeeds."""
        entry = self.registry.lookup(connection_name)
        if entry.config.read_only:
            return
        await entry.connection.drop_collection(collection_name)

    def native(self, connection_name: str, collection_name: str) -> AsyncIOMotorCollection:
        """Raw motor collection, bypassing the adapter."""
        entry = self.registry.lookup(connection_name)
        return entry.connection.collection(collection_name)

    # ==================== CRUD ====================

    async def create(
        self, connection_name: str, collection_name: str, values: dict[str, Any]
    ) -> Optional[dict]:
        collection = self.registry.collection(connection_name, collection_name)
        inserted = await collection.insert(values)
        return inserted[0] if inserted else None

    async def create_each(
        self, connection_name: str, collection_name: str, values: list[dict[str, Any]]
    ) -> list[dict]:
        if not values:
            return []
        collection = self.registry.collection(connection_name, collection_name)
        return await collection.insert(list(values))

    async def find(
        self, connection_name: str, collection_name: str, criteria: CriteriaLike = None
    ) -> list[dict]:
        collection = self.registry.collection(connection_name, collection_name)
        return await collection.find(criteria)

    async def update(
        self,
        connection_name: str,
        collection_name: str,
        criteria: CriteriaLike,
        values: dict[str, Any],
    ) -> list[dict]:
        collection = self.registry.collection(connection_name, collection_name)
        return await collection.update(criteria, values)

    async def destroy(
        self, connection_name: str, collection_name: str, criteria: CriteriaLike = None
    ) -> list[dict]:
        collection = self.registry.collection(connection_name, collection_name)
        return await collection.destroy(criteria)

    async def count(
        self, connection_name: str, collection_name: str, criteria: CriteriaLike = None
    ) -> int:
        collection = self.registry.collection(connection_name, collection_name)
        return await collection.count(criteria)

    def stream(
        self, connection_name: str, collection_name: str, criteria: CriteriaLike = None
    ) -> AsyncIterator[dict]:
        collection = self.registry.collection(connection_name, collection_name)
        return collection.stream(criteria)

    # ==================== Joins ====================

    async def join(
        self, connection_name: str, collection_name: str, criteria: CriteriaLike = None
    ) -> list[dict]:
        """Populate associations of `collection_name` records through the join planner."""
        self.registry.collection(connection_name, collection_name)
        engine = JoinEngine(self.registry, connection_name)
        return await engine.run(self.join_planner, collection_name, criteria)

    # ==================== Helpers ====================

    @staticmethod
    def object_id(value: Any) -> Optional[ObjectId]:
        return object_id(value)
