"""
MongoDB adapter - connection registry, collection facade and join emulation
for a storage-agnostic object-query layer.
"""
from mongo_adapter.config import Settings, get_settings
from mongo_adapter.models.connection import (
    CollectionDefinition,
    ConnectionConfig,
    Criteria,
    IndexSpec,
)
from mongo_adapter.services.adapter import MongoAdapter

__all__ = [
    "Settings",
    "get_settings",
    "CollectionDefinition",
    "ConnectionConfig",
    "Criteria",
    "IndexSpec",
    "MongoAdapter",
]
