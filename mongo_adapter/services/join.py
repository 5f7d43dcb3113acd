"""
Cross-collection join emulation.

MongoDB has no join across collections, so population is delegated to a
join planner. The planner gets exactly two capabilities scoped to one
connection: find records in a collection, and name a collection's
primary key.
"""
import logging
from typing import Any, Awaitable, Callable, Optional, Protocol, Union, runtime_checkable

from mongo_adapter.core.errors import ConsistencyViolation, UnknownCollection
from mongo_adapter.database.registry import ConnectionRegistry
from mongo_adapter.models.connection import Criteria

logger = logging.getLogger(__name__)

FindCallback = Callable[[str, Any], Awaitable[list[dict]]]
GetPKCallback = Callable[[str], Optional[str]]


@runtime_checkable
class JoinSource(Protocol):
    """Data access a join planner is allowed to use."""

    async def find(self, collection_identity: str, criteria: Any) -> list[dict]:
        """Find records in a collection of the same connection."""

    def get_pk(self, collection_identity: str) -> Optional[str]:
        """Primary key field name of a collection."""


class JoinPlanner(Protocol):
    """Decides which associations to populate and in what order."""

    async def __call__(
        self,
        *,
        instructions: Criteria,
        parent_collection: str,
        find: FindCallback,
        get_pk: GetPKCallback,
    ) -> list[dict]:
        ...


class JoinEngine:
    """JoinSource bound to one registered connection."""

    def __init__(self, registry: ConnectionRegistry, connection_name: str):
        self.registry = registry
        self.connection_name = connection_name

    async def find(self, collection_identity: str, criteria: Any) -> list[dict]:
        entry = self.registry.get(self.connection_name)
        if entry is None:
            raise UnknownCollection(self.connection_name, collection_identity)
        collection = entry.collection(collection_identity)
        return await collection.find(criteria)

    def get_pk(self, collection_identity: str) -> Optional[str]:
        if not collection_identity:
            return None

        entry = self.registry.get(self.connection_name)
        if entry is None:
            raise ConsistencyViolation(
                f"Unrecognized datastore (i.e. connection): '{self.connection_name}'."
            )
        collection = entry.collections.get(collection_identity)
        if collection is None:
            raise ConsistencyViolation(
                f"Unrecognized collection: '{collection_identity}' "
                f"in datastore (i.e. connection): '{self.connection_name}'."
            )
        return collection.get_pk()

    async def run(
        self,
        planner: JoinPlanner,
        parent_collection: str,
        criteria: Union[Criteria, dict[str, Any], None],
    ) -> list[dict]:
        """Strip projection from the criteria and hand the rest to the planner."""
        instructions = Criteria.coerce(criteria).model_copy(update={"select": None})
        logger.debug(
            f"Running join on '{self.connection_name}.{parent_collection}'"
        )
        return await planner(
            instructions=instructions,
            parent_collection=parent_collection,
            find=self.find,
            get_pk=self.get_pk,
        )
