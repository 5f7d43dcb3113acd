"""
Global test fixtures for the MongoDB adapter.

This module provides shared fixtures for all tests including:
- Settings isolated from the environment
- A client factory backed by mongomock-motor
- Adapter instances with users/posts collections
"""
from unittest.mock import MagicMock

import pytest
import pytest_asyncio

from mongo_adapter.config import Settings
from mongo_adapter.services.adapter import MongoAdapter


# =============================================================================
# Settings
# =============================================================================

@pytest.fixture
def settings() -> Settings:
    """Default settings, ignoring any .env file or MONGO_ADAPTER_* variables."""
    return Settings(_env_file=None, host="localhost", port=27017, database=None, url=None)


# =============================================================================
# MongoDB Fixtures (mongomock-motor)
# =============================================================================

@pytest.fixture
def mongo_factory():
    """
    Client factory that records its calls and hands out in-memory clients.

    Each call returns a fresh AsyncMongoMockClient, so every registered
    connection gets its own store.
    """
    try:
        from mongomock_motor import AsyncMongoMockClient
    except ImportError:
        pytest.skip("mongomock-motor not installed")

    return MagicMock(side_effect=lambda *args, **kwargs: AsyncMongoMockClient())


@pytest_asyncio.fixture
async def adapter(settings, mongo_factory):
    """Adapter wired to the in-memory store; torn down after the test."""
    instance = MongoAdapter(settings, client_factory=mongo_factory)
    yield instance
    await instance.teardown()


# =============================================================================
# Collection Definitions
# =============================================================================

@pytest.fixture
def user_collections() -> dict:
    """users/posts definitions as the query layer would register them."""
    return {
        "users": {
            "schema": {
                "_id": {"type": "objectid", "primaryKey": True},
                "email": {"type": "string"},
                "name": {"type": "string"},
            },
            "indexes": [
                {"index": {"email": 1}, "options": {"unique": True}},
            ],
        },
        "posts": {
            "schema": {
                "title": {"type": "string"},
                "author": {"type": "objectid"},
            },
            "indexes": [
                {"index": {"author": 1}},
            ],
            "primary_key": "_id",
        },
    }


@pytest.fixture
def app_config() -> dict:
    """Writable connection config."""
    return {"identity": "main", "database": "app_db"}


@pytest.fixture
def readonly_config() -> dict:
    """Read-only connection config."""
    return {"identity": "reports", "database": "app_db", "read_only": True}


@pytest_asyncio.fixture
async def registered(adapter, app_config, user_collections):
    """Adapter with the writable connection registered and collections defined."""
    await adapter.register_connection(app_config, user_collections)
    await adapter.define("main", "users")
    await adapter.define("main", "posts")
    return adapter
