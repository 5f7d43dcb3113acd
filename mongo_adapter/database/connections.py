"""
Connection management for one logical MongoDB connection.
"""
import logging
import time
from typing import Callable, Iterable, Optional

from motor.motor_asyncio import (
    AsyncIOMotorClient,
    AsyncIOMotorCollection,
    AsyncIOMotorDatabase,
)
from pymongo.errors import CollectionInvalid, OperationFailure, PyMongoError

from mongo_adapter.config import Settings
from mongo_adapter.core.errors import ConnectionFailure
from mongo_adapter.core.utils import redact_uri
from mongo_adapter.database.indexes import ensure_indexes
from mongo_adapter.database.options import ConnectPlan, build_connect_plan, client_kwargs
from mongo_adapter.models.connection import ConnectionConfig, IndexSpec

logger = logging.getLogger(__name__)

NAMESPACE_NOT_FOUND = 26

ClientFactory = Callable[..., AsyncIOMotorClient]


class Connection:
    """A live client plus the database it was opened against."""

    def __init__(self, config: ConnectionConfig, client: AsyncIOMotorClient, plan: ConnectPlan):
        self.config = config
        self.client: Optional[AsyncIOMotorClient] = client
        self.plan = plan

    @classmethod
    async def open(
        cls,
        config: ConnectionConfig,
        settings: Optional[Settings] = None,
        client_factory: ClientFactory = AsyncIOMotorClient,
    ) -> "Connection":
        """
        Open a connection and verify the server answers a ping.

        Raises:
            ConfigurationError: credentials are inconsistent (no network call made).
            ConnectionFailure: the driver could not connect.
        """
        plan = build_connect_plan(config, settings)
        started = time.monotonic()
        logger.info(
            f"Connecting '{config.identity}' to {redact_uri(plan.connection_string)}"
        )

        try:
            client = client_factory(plan.connection_string, **client_kwargs(plan.options))
            await client["admin"].command("ping")
        except PyMongoError as e:
            logger.error(f"Connection '{config.identity}' to {plan.host} failed: {e}")
            raise ConnectionFailure(plan.host, plan.config, e) from e

        logger.info(
            f"Connected '{config.identity}' to {plan.host} "
            f"in {(time.monotonic() - started) * 1000:.0f} ms"
        )
        return cls(config, client, plan)

    @property
    def db(self) -> AsyncIOMotorDatabase:
        return self.client[self.plan.database]

    def collection(self, name: str) -> AsyncIOMotorCollection:
        return self.db[name]

    async def collection_exists(self, name: str) -> bool:
        names = await self.db.list_collection_names()
        return name in names

    async def create_collection(
        self, name: str, indexes: Iterable[IndexSpec] = ()
    ) -> AsyncIOMotorCollection:
        """Create a collection (reusing it if it already exists) and its indexes."""
        try:
            await self.db.create_collection(name)
        except CollectionInvalid:
            logger.debug(f"Collection {name} already exists")

        collection = self.collection(name)
        await ensure_indexes(collection, indexes)
        return collection

    async def drop_collection(self, name: str) -> None:
        """Drop a collection; dropping one that does not exist is not an error."""
        try:
            await self.db.drop_collection(name)
        except OperationFailure as e:
            if e.code == NAMESPACE_NOT_FOUND or "ns not found" in str(e):
                return
            raise

    async def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None
            logger.info(f"Closed connection '{self.config.identity}'")
