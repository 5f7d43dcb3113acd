"""
Adapter exceptions.

Configuration, identity and connection errors are raised at registration
time. Store errors from CRUD primitives are passed through unchanged,
except duplicate-key failures which are clarified into RecordNotUnique.
"""
from typing import Any, Optional

from pymongo.errors import BulkWriteError, DuplicateKeyError

DUPLICATE_KEY_CODE = 11000


class AdapterError(Exception):
    """Base exception for all adapter errors."""

    pass


class ConfigurationError(AdapterError):
    """Raised when a connection config is inconsistent (before any network call)."""

    pass


class IdentityMissing(AdapterError):
    """Raised when a connection is registered without an identity."""

    def __init__(self):
        super().__init__("Connection is missing an identity.")


class IdentityDuplicate(AdapterError):
    """Raised when a connection identity is already registered.

    Attributes:
        identity: The identity that is already in use.
    """

    def __init__(self, identity: str):
        self.identity = identity
        super().__init__(f"Connection identity '{identity}' is already registered.")


class ConnectionFailure(AdapterError):
    """Raised when the driver cannot open a connection.

    Attributes:
        host: Target host (no credentials).
        config: Config snapshot without the password.
        original: The underlying driver error.
    """

    def __init__(self, host: str, config: dict[str, Any], original: BaseException):
        self.host = host
        self.config = config
        self.original = original
        super().__init__(
            f"Failed to connect to MongoDB at {host}. "
            f"Are you sure your configured Mongo instance is running? "
            f"Error details: {type(original).__name__}: {original}"
        )


class UnknownCollection(AdapterError):
    """Raised when a collection is not registered on a connection."""

    def __init__(self, connection: str, collection: str):
        self.connection = connection
        self.collection = collection
        super().__init__(
            f"Unrecognized collection '{collection}' in connection '{connection}'."
        )


class ConsistencyViolation(AdapterError, RuntimeError):
    """Raised when a join planner references a connection or collection the
    registry does not know. Indicates a schema mismatch, not a transient error.
    """

    pass


class RecordNotUnique(AdapterError):
    """Raised when a write violates a unique index.

    Attributes:
        invalid_attributes: Mapping of offending field -> value, when known.
        original: The underlying driver error.
    """

    def __init__(self, invalid_attributes: dict[str, Any], original: BaseException):
        self.invalid_attributes = invalid_attributes
        self.original = original
        fields = ", ".join(invalid_attributes) or "unknown field"
        super().__init__(f"A record with that value already exists ({fields}).")


def _duplicate_key_values(details: Optional[dict]) -> dict[str, Any]:
    if not details:
        return {}
    return dict(details.get("keyValue") or {})


def clarify_error(err: Exception) -> Exception:
    """Turn duplicate-key driver errors into RecordNotUnique; return others unchanged."""
    if isinstance(err, DuplicateKeyError):
        return RecordNotUnique(_duplicate_key_values(err.details), err)

    if isinstance(err, BulkWriteError):
        write_errors = (err.details or {}).get("writeErrors", [])
        duplicates = [w for w in write_errors if w.get("code") == DUPLICATE_KEY_CODE]
        if duplicates:
            values: dict[str, Any] = {}
            for w in duplicates:
                values.update(_duplicate_key_values(w))
            return RecordNotUnique(values, err)

    return err
