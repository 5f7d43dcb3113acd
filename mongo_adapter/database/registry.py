"""
Connection registry.

Maps connection identities to their config, live connection and
collection map. Each identity goes absent -> registered -> absent; an
entry only becomes visible once its connection is open and every
collection's indexes are in place.
"""
import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Optional, Union

from motor.motor_asyncio import AsyncIOMotorClient

from mongo_adapter.config import Settings, get_settings
from mongo_adapter.core.errors import IdentityDuplicate, IdentityMissing, UnknownCollection
from mongo_adapter.database.collection import Collection
from mongo_adapter.database.connections import ClientFactory, Connection
from mongo_adapter.database.indexes import ensure_indexes
from mongo_adapter.models.connection import CollectionDefinition, ConnectionConfig

logger = logging.getLogger(__name__)

CollectionDefs = Mapping[str, Union[CollectionDefinition, dict[str, Any]]]


@dataclass
class ConnectionEntry:
    """A registered connection and the collections built on it."""
    config: ConnectionConfig
    connection: Optional[Connection]
    collections: dict[str, Collection] = field(default_factory=dict)

    def collection(self, name: str) -> Collection:
        try:
            return self.collections[name]
        except KeyError:
            raise UnknownCollection(self.config.identity, name) from None


class ConnectionRegistry:
    """Owns every live connection of one adapter instance."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        client_factory: ClientFactory = AsyncIOMotorClient,
    ):
        self.settings = settings or get_settings()
        self.client_factory = client_factory
        self._entries: dict[str, ConnectionEntry] = {}
        self._pending: set[str] = set()
        self._lock = threading.RLock()

    def __contains__(self, identity: str) -> bool:
        with self._lock:
            return identity in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        with self._lock:
            return iter(list(self._entries))

    def _reserve(self, identity: Optional[str]) -> None:
        if not identity:
            raise IdentityMissing()
        with self._lock:
            if identity in self._entries or identity in self._pending:
                raise IdentityDuplicate(identity)
            self._pending.add(identity)

    def _release(self, identity: str) -> None:
        with self._lock:
            self._pending.discard(identity)

    async def register(
        self,
        config: Union[ConnectionConfig, dict[str, Any]],
        collections: Optional[CollectionDefs] = None,
    ) -> ConnectionEntry:
        """
        Open a connection, provision indexes and insert the entry.

        Raises:
            IdentityMissing: config has no identity.
            IdentityDuplicate: identity is already registered (the existing
                entry is left untouched).
            ConfigurationError: credentials are inconsistent.
            ConnectionFailure: the driver could not connect.
        """
        if not isinstance(config, ConnectionConfig):
            config = ConnectionConfig.model_validate(config)
        identity = config.identity
        self._reserve(identity)

        try:
            logger.info(f"Registering connection '{identity}'")
            connection = await Connection.open(config, self.settings, self.client_factory)
            try:
                entry = ConnectionEntry(config=config, connection=connection)
                for name, definition in (collections or {}).items():
                    entry.collections[name] = await self._build_collection(
                        name, definition, connection
                    )
            except BaseException:
                await connection.close()
                raise

            with self._lock:
                self._entries[identity] = entry
            logger.info(
                f"Registered connection '{identity}' with {len(entry.collections)} collection(s)"
            )
            return entry
        finally:
            self._release(identity)

    async def _build_collection(
        self,
        name: str,
        definition: Union[CollectionDefinition, dict[str, Any]],
        connection: Connection,
    ) -> Collection:
        if not isinstance(definition, CollectionDefinition):
            definition = CollectionDefinition.model_validate(definition)
        if definition.identity is None:
            definition = definition.model_copy(update={"identity": name})

        collection = Collection(name, definition, connection)
        if not collection.read_only:
            await ensure_indexes(collection.handle, definition.indexes)
        return collection

    def lookup(self, identity: str) -> ConnectionEntry:
        """Return the entry for an identity. Unregistered identities raise KeyError."""
        with self._lock:
            return self._entries[identity]

    def get(self, identity: str) -> Optional[ConnectionEntry]:
        with self._lock:
            return self._entries.get(identity)

    def collection(self, identity: str, name: str) -> Collection:
        return self.lookup(identity).collection(name)

    async def teardown(self, identity: Optional[str] = None) -> None:
        """
        Close one connection, or all of them when identity is None.

        Tearing down an unknown identity, an empty registry or an entry
        whose connection is already gone succeeds without error.
        """
        if identity is None:
            with self._lock:
                entries = list(self._entries.values())
                self._entries.clear()
            await asyncio.gather(
                *(e.connection.close() for e in entries if e.connection is not None)
            )
            return

        with self._lock:
            entry = self._entries.pop(identity, None)
        if entry is not None and entry.connection is not None:
            await entry.connection.close()
