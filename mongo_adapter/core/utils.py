"""
Small helpers shared across the adapter.
"""
from typing import Any, Optional
from urllib.parse import urlsplit, urlunsplit

from bson import ObjectId
from bson.errors import InvalidId


def object_id(value: Any) -> Optional[ObjectId]:
    """Return a Mongo ObjectId from a string, or None if empty/invalid."""
    if not value:
        return None
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


def redact_uri(uri: str) -> str:
    """Mask the password of a connection string for logging."""
    parts = urlsplit(uri)
    if parts.password is None:
        return uri
    netloc = parts.netloc.rsplit("@", 1)[1]
    netloc = f"{parts.username}:***@{netloc}"
    return urlunsplit(parts._replace(netloc=netloc))
