"""
Collection facade: CRUD and streaming over one registered collection.

Mutating verbs on a read-only connection are silent no-ops that return an
empty result; they never raise.
"""
from typing import Any, AsyncIterator, Union

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from mongo_adapter.core.errors import clarify_error
from mongo_adapter.database.connections import Connection
from mongo_adapter.models.connection import CollectionDefinition, Criteria, IndexSpec

CriteriaLike = Union[Criteria, dict[str, Any], None]


class Collection:
    """One logical collection bound to the connection it was built from."""

    def __init__(self, name: str, definition: CollectionDefinition, connection: Connection):
        self.name = name
        self.definition = definition
        self.connection = connection

    @property
    def schema(self) -> dict[str, Any]:
        return self.definition.attributes

    @property
    def indexes(self) -> list[IndexSpec]:
        return self.definition.indexes

    @property
    def read_only(self) -> bool:
        return self.connection.config.read_only

    @property
    def handle(self) -> AsyncIOMotorCollection:
        return self.connection.collection(self.name)

    def get_pk(self) -> str:
        return self.definition.get_pk()

    # ==================== Writes ====================

    async def insert(self, values: Union[dict, list[dict]]) -> list[dict]:
        """Insert one or many documents and return them with their _id."""
        if self.read_only:
            return []

        documents = [dict(v) for v in values] if isinstance(values, list) else [dict(values)]
        if not documents:
            return []

        try:
            if len(documents) == 1:
                result = await self.handle.insert_one(documents[0])
                documents[0]["_id"] = result.inserted_id
            else:
                result = await self.handle.insert_many(documents)
                for doc, inserted_id in zip(documents, result.inserted_ids):
                    doc["_id"] = inserted_id
        except PyMongoError as e:
            clarified = clarify_error(e)
            if clarified is e:
                raise
            raise clarified from e
        return documents

    async def update(self, criteria: CriteriaLike, values: dict[str, Any]) -> list[dict]:
        """Update matching documents and return them as they are after the update."""
        if self.read_only:
            return []

        criteria = Criteria.coerce(criteria)
        ids = await self._matching_ids(criteria)
        if not ids:
            return []

        update = values if any(k.startswith("$") for k in values) else {"$set": values}
        try:
            await self.handle.update_many({"_id": {"$in": ids}}, update)
        except PyMongoError as e:
            clarified = clarify_error(e)
            if clarified is e:
                raise
            raise clarified from e

        return await self.handle.find({"_id": {"$in": ids}}).to_list(length=None)

    async def destroy(self, criteria: CriteriaLike) -> list[dict]:
        """
        Delete matching documents and return what was deleted.

        The store's delete does not return documents, so matches are read
        first. Records changing between the two steps is not guarded against.
        """
        if self.read_only:
            return []

        criteria = Criteria.coerce(criteria)
        found = await self.find(criteria)
        ids = [doc["_id"] for doc in found if "_id" in doc]
        if ids:
            await self.handle.delete_many({"_id": {"$in": ids}})
        return found

    # ==================== Reads ====================

    async def _matching_ids(self, criteria: Criteria) -> list:
        """Ids of the documents a criteria selects, honouring sort/skip/limit."""
        kwargs = criteria.find_kwargs()
        kwargs["projection"] = {"_id": 1}
        cursor = self.handle.find(criteria.where, **kwargs)
        return [doc["_id"] for doc in await cursor.to_list(length=None)]

    async def find(self, criteria: CriteriaLike = None) -> list[dict]:
        criteria = Criteria.coerce(criteria)
        cursor = self.handle.find(criteria.where, **criteria.find_kwargs())
        return await cursor.to_list(length=None)

    async def count(self, criteria: CriteriaLike = None) -> int:
        criteria = Criteria.coerce(criteria)
        kwargs: dict[str, Any] = {}
        if criteria.skip:
            kwargs["skip"] = criteria.skip
        if criteria.limit:
            kwargs["limit"] = criteria.limit
        return await self.handle.count_documents(criteria.where, **kwargs)

    async def stream(self, criteria: CriteriaLike = None) -> AsyncIterator[dict]:
        criteria = Criteria.coerce(criteria)
        async for document in self.handle.find(criteria.where, **criteria.find_kwargs()):
            yield document
