"""
Readiness check: connect with the environment's settings and list collections.

Usage:
    python -m mongo_adapter

Environment Variables:
    MONGO_ADAPTER_URL: Connection string (overrides host/port)
    MONGO_ADAPTER_HOST / MONGO_ADAPTER_PORT: Server address
    MONGO_ADAPTER_DATABASE: Database name
    MONGO_ADAPTER_LOG_LEVEL: Logging level (default: INFO)
"""
import asyncio
import sys
from typing import Optional

from mongo_adapter.config import Settings, get_settings
from mongo_adapter.core.errors import AdapterError
from mongo_adapter.core.logging import setup_logging
from mongo_adapter.models.connection import ConnectionConfig
from mongo_adapter.services.adapter import MongoAdapter

CONNECTION_NAME = "default"


async def check(settings: Settings, adapter: Optional[MongoAdapter] = None) -> list[str]:
    """Register the default connection and return its collection names."""
    adapter = adapter or MongoAdapter(settings)
    config = ConnectionConfig(
        identity=CONNECTION_NAME, url=settings.url, database=settings.database, read_only=True
    )
    async with adapter:
        await adapter.register_connection(config)
        entry = adapter.registry.lookup(CONNECTION_NAME)
        return await entry.connection.db.list_collection_names()


def main() -> int:
    settings = get_settings()
    logger = setup_logging(settings)

    try:
        names = asyncio.run(check(settings))
    except AdapterError as e:
        logger.error(f"MongoDB not ready: {e}")
        return 1

    logger.info(f"MongoDB ready, {len(names)} collection(s): {', '.join(sorted(names))}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
