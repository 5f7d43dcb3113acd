"""
Connection and collection models.
"""
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr, model_validator

from mongo_adapter.core.utils import redact_uri

IndexKeys = Union[str, list[tuple[str, Any]], dict[str, Any]]

# Fields whose value is folded into the connection string rather than
# passed to the driver as a keyword option.
CONNECTION_STRING_FIELDS = ("host", "port", "user", "password", "database")

CRITERIA_KEYS = frozenset({"where", "select", "sort", "skip", "limit", "joins"})


class IndexSpec(BaseModel):
    """
    One index declaration: the key specification and its creation options.
    """
    index: IndexKeys = Field(..., description="Index keys, e.g. {'email': 1}")
    options: dict[str, Any] = Field(default_factory=dict, description="create_index options")

    def keys(self) -> Union[str, list[tuple[str, Any]]]:
        """Keys in the form create_index accepts."""
        if isinstance(self.index, dict):
            return list(self.index.items())
        return self.index


class CollectionDefinition(BaseModel):
    """
    A logical collection as declared by the query layer.
    """
    model_config = ConfigDict(populate_by_name=True)

    identity: Optional[str] = Field(None, description="Collection name")
    attributes: dict[str, Any] = Field(
        default_factory=dict, alias="schema", description="Field definitions"
    )
    indexes: list[IndexSpec] = Field(default_factory=list)
    primary_key: Optional[str] = Field(None, description="Explicit primary key field")

    def get_pk(self) -> str:
        """Name of the primary key field."""
        if self.primary_key:
            return self.primary_key
        for name, attribute in self.attributes.items():
            if isinstance(attribute, dict) and (
                attribute.get("primary_key") or attribute.get("primaryKey")
            ):
                return name
        return "_id"


class ConnectionConfig(BaseModel):
    """
    Configuration of one logical connection.

    Discrete fields left as None fall back to the URL query string and
    then to Settings.
    """
    identity: Optional[str] = None

    host: Optional[str] = None
    port: Optional[int] = None
    user: Optional[str] = None
    password: Optional[SecretStr] = None
    database: Optional[str] = None
    url: Optional[str] = None
    auth_source: Optional[str] = None

    read_only: bool = False
    unified_topology: Optional[bool] = None

    # Legacy pool / retry options
    read_preference: Optional[str] = None
    pool_size: Optional[int] = None
    auto_reconnect: Optional[bool] = None
    reconnect_tries: Optional[int] = None
    reconnect_interval: Optional[int] = None

    # TLS
    ssl: Optional[bool] = None
    ssl_validate: Optional[bool] = None
    ssl_ca: Optional[str] = None
    ssl_cert: Optional[str] = None

    # Driver-native keyword options, passed through unmodified
    options: dict[str, Any] = Field(default_factory=dict)

    def password_value(self) -> Optional[str]:
        return self.password.get_secret_value() if self.password else None

    def safe_dump(self) -> dict[str, Any]:
        """Snapshot for diagnostics, without the password or URL credentials."""
        snapshot = self.model_dump(exclude={"password"})
        if snapshot.get("url"):
            snapshot["url"] = redact_uri(snapshot["url"])
        return snapshot


class Criteria(BaseModel):
    """
    Query criteria handed down by the query layer.

    `where` is already a store-native filter. Top-level keys that are not
    criteria keys are filter fields: `{"name": "A", "limit": 1}` means
    `where={"name": "A"}, limit=1`.
    """
    where: dict[str, Any] = Field(default_factory=dict)
    select: Optional[list[str]] = None
    sort: Optional[Union[dict[str, int], list[tuple[str, int]]]] = None
    skip: int = 0
    limit: int = 0
    joins: list[dict[str, Any]] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _fold_filter_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        filter_fields = {k: v for k, v in data.items() if k not in CRITERIA_KEYS}
        if not filter_fields:
            return data
        criteria = {k: v for k, v in data.items() if k in CRITERIA_KEYS}
        criteria["where"] = {**filter_fields, **(data.get("where") or {})}
        return criteria

    @classmethod
    def coerce(cls, value: Union["Criteria", dict[str, Any], None]) -> "Criteria":
        if value is None:
            return cls()
        if isinstance(value, cls):
            return value
        return cls.model_validate(value)

    def projection(self) -> Optional[dict[str, int]]:
        if not self.select:
            return None
        return {field: 1 for field in self.select}

    def sort_spec(self) -> Optional[list[tuple[str, int]]]:
        if not self.sort:
            return None
        if isinstance(self.sort, dict):
            return list(self.sort.items())
        return [tuple(pair) for pair in self.sort]

    def find_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for collection.find()."""
        kwargs: dict[str, Any] = {}
        projection = self.projection()
        if projection:
            kwargs["projection"] = projection
        sort = self.sort_spec()
        if sort:
            kwargs["sort"] = sort
        if self.skip:
            kwargs["skip"] = self.skip
        if self.limit:
            kwargs["limit"] = self.limit
        return kwargs
