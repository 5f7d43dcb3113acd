"""
Pydantic models for connection configs, collection definitions and criteria.
"""
from mongo_adapter.models.connection import (
    CollectionDefinition,
    ConnectionConfig,
    Criteria,
    IndexSpec,
)

__all__ = ["CollectionDefinition", "ConnectionConfig", "Criteria", "IndexSpec"]
