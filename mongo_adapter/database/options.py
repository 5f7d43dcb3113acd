"""
Connection option normalization.

Three config shapes are reconciled into one canonical option set:
discrete ConnectionConfig fields, the query string of an opaque URL, and
Settings defaults. Precedence is discrete > URL query > defaults. This is
pure data transformation; nothing here touches the network.
"""
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote_plus, urlsplit

from pymongo import uri_parser
from pymongo.errors import ConfigurationError as DriverConfigurationError

from mongo_adapter.config import Settings, get_settings
from mongo_adapter.core.errors import ConfigurationError
from mongo_adapter.models.connection import CONNECTION_STRING_FIELDS, ConnectionConfig

SCHEME = "mongodb://"
SRV_SCHEME = "mongodb+srv://"
DEFAULT_DATABASE = "test"

# Superseded by unified topology; the two families are never merged.
LEGACY_OPTIONS = ("readPreference", "autoReconnect", "reconnectInterval", "reconnectTries")

# Canonical name -> ConnectionConfig field
DISCRETE_OPTIONS = {
    "host": "host",
    "port": "port",
    "user": "user",
    "database": "database",
    "authSource": "auth_source",
    "useUnifiedTopology": "unified_topology",
    "readPreference": "read_preference",
    "maxPoolSize": "pool_size",
    "autoReconnect": "auto_reconnect",
    "reconnectTries": "reconnect_tries",
    "reconnectInterval": "reconnect_interval",
    "tls": "ssl",
    "tlsCAFile": "ssl_ca",
    "tlsCertificateKeyFile": "ssl_cert",
}

# Lower-cased URI option name -> canonical spelling
KNOWN_OPTIONS = {
    name.lower(): name
    for name in (*DISCRETE_OPTIONS, "useNewUrlParser", "tlsAllowInvalidCertificates")
}

# Canonical options PyMongo has no keyword for.
DRIVER_IGNORED = ("useNewUrlParser", "useUnifiedTopology", "reconnectTries", "reconnectInterval")


@dataclass
class ConnectPlan:
    """Everything the opener needs: connection string, options and target."""
    connection_string: str
    options: dict[str, Any]
    database: str
    host: str
    unified_topology: bool = False
    config: dict[str, Any] = field(default_factory=dict)


def canonical_name(key: str) -> str:
    """Map a case-insensitive URI option name onto its canonical spelling."""
    return KNOWN_OPTIONS.get(key.lower(), key)


def parse_url_options(url: Optional[str]) -> dict[str, Any]:
    """
    Validated, typed query-string options of a connection URL.

    Raises:
        ConfigurationError: the URL or one of its options is invalid.
    """
    if not url:
        return {}
    try:
        if url.startswith(SRV_SCHEME):
            # parse_uri would resolve SRV/TXT records; only the options are needed.
            query = urlsplit(url).query
            if not query:
                return {}
            split = uri_parser.split_options(query)
            parsed = {split.cased_key(key): split[key] for key in split}
        else:
            parsed = uri_parser.parse_uri(url)["options"]
    except (DriverConfigurationError, ValueError) as e:
        raise ConfigurationError(f"Invalid connection URL: {e}") from e
    return {canonical_name(key): value for key, value in parsed.items()}


def builtin_defaults(settings: Settings) -> dict[str, Any]:
    return {
        "useNewUrlParser": True,
        "host": settings.host,
        "port": settings.port,
        "database": settings.database,
        "maxPoolSize": settings.pool_size,
        "autoReconnect": settings.auto_reconnect,
        "reconnectTries": settings.reconnect_tries,
        "reconnectInterval": settings.reconnect_interval,
        "useUnifiedTopology": settings.unified_topology,
    }


def explicit_options(config: ConnectionConfig) -> dict[str, Any]:
    """Canonical options for every discrete field that was actually set."""
    options: dict[str, Any] = {}
    for name, attr in DISCRETE_OPTIONS.items():
        value = getattr(config, attr)
        if value is not None:
            options[name] = value
    if config.password is not None:
        options["password"] = config.password_value()
    if config.ssl_validate is not None:
        options["tlsAllowInvalidCertificates"] = not config.ssl_validate
    options.update({canonical_name(k): v for k, v in config.options.items()})
    return options


def merge_options(config: ConnectionConfig, settings: Settings) -> dict[str, Any]:
    merged = builtin_defaults(settings)
    merged.update(parse_url_options(config.url))
    merged.update(explicit_options(config))

    if merged.get("useUnifiedTopology"):
        for name in LEGACY_OPTIONS:
            merged.pop(name, None)
    return merged


def validate_credentials(options: dict[str, Any], url: Optional[str] = None) -> None:
    """Fail fast on credential misconfiguration, before any connect attempt."""
    user = options.get("user")
    password = options.get("password")

    if user and password and not options.get("database"):
        raise ConfigurationError(
            "The MongoDB adapter requires a database config option if authentication is used."
        )
    if not url and bool(user) != bool(password):
        missing = "password" if user else "user"
        raise ConfigurationError(
            f"Both user and password are required for authentication; {missing} is missing."
        )


def build_connection_string(options: dict[str, Any]) -> str:
    connection_string = SCHEME

    user = options.get("user")
    password = options.get("password")
    if user and password:
        connection_string += f"{quote_plus(str(user))}:{quote_plus(str(password))}@"

    connection_string += f"{options.get('host')}:{options.get('port')}/"

    if options.get("database"):
        connection_string += options["database"]
    return connection_string


def _target_host(config: ConnectionConfig, options: dict[str, Any]) -> str:
    if config.url:
        return urlsplit(config.url).netloc.rsplit("@", 1)[-1]
    return f"{options.get('host')}:{options.get('port')}"


def _database_name(config: ConnectionConfig, options: dict[str, Any]) -> str:
    if config.database:
        return config.database
    if config.url:
        path_db = urlsplit(config.url).path.lstrip("/")
        if path_db:
            return path_db
    return options.get("database") or DEFAULT_DATABASE


def build_connect_plan(
    config: ConnectionConfig, settings: Optional[Settings] = None
) -> ConnectPlan:
    """
    Resolve a ConnectionConfig into a connection string and canonical options.

    Raises:
        ConfigurationError: credentials are inconsistent or the URL is invalid.
    """
    settings = settings or get_settings()
    options = merge_options(config, settings)
    validate_credentials(options, config.url)

    connection_string = config.url or build_connection_string(options)

    host = _target_host(config, options)
    database = _database_name(config, options)

    # Folded into the string; no longer needed as separate options.
    for name in CONNECTION_STRING_FIELDS:
        options.pop(name, None)

    return ConnectPlan(
        connection_string=connection_string,
        options=options,
        database=database,
        host=host,
        unified_topology=bool(options.get("useUnifiedTopology")),
        config=config.safe_dump(),
    )


def client_kwargs(options: dict[str, Any]) -> dict[str, Any]:
    """Translate canonical options into PyMongo / motor client keyword arguments."""
    kwargs = {k: v for k, v in options.items() if k not in DRIVER_IGNORED}
    if "autoReconnect" in kwargs:
        kwargs["retryReads"] = kwargs.pop("autoReconnect")
    return {k: v for k, v in kwargs.items() if v is not None}
