"""
Database module - connection options, connections, collections and the registry.
"""
from mongo_adapter.database.collection import Collection
from mongo_adapter.database.connections import Connection
from mongo_adapter.database.registry import ConnectionEntry, ConnectionRegistry

__all__ = ["Collection", "Connection", "ConnectionEntry", "ConnectionRegistry"]
