"""
Index provisioning for registered collections.
"""
import asyncio
import logging
from typing import Iterable

from motor.motor_asyncio import AsyncIOMotorCollection

from mongo_adapter.models.connection import IndexSpec

logger = logging.getLogger(__name__)


async def ensure_indexes(
    collection: AsyncIOMotorCollection, indexes: Iterable[IndexSpec]
) -> list[str]:
    """
    Create every declared index on a collection.

    Indexes are created concurrently; the first failure propagates and
    indexes already created stay in place. Re-running with the same specs
    is a no-op on the server.

    Returns:
        Index names reported by the server.
    """
    indexes = list(indexes)
    if not indexes:
        return []

    names = await asyncio.gather(
        *(collection.create_index(spec.keys(), **spec.options) for spec in indexes)
    )
    logger.debug(f"Ensured {len(names)} index(es) on {collection.name}: {names}")
    return list(names)
