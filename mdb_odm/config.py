"""
Connection configuration for MDB_ODM.

ConnectionConfig can be built from direct parameters or from environment
variables, and turns into the keyword arguments of AsyncIOMotorClient.

Options written in the URI query string take precedence over the same
options set on the config object.
"""

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import parse_qs, urlsplit

from .constants import (DEFAULT_CONNECT_TIMEOUT_MS, DEFAULT_HOST,
                        DEFAULT_MAX_POOL_SIZE, DEFAULT_MIN_POOL_SIZE,
                        DEFAULT_PORT, DEFAULT_SOCKET_TIMEOUT_MS,
                        RESERVED_CREDENTIAL_CHARS, SUPPORTED_READ_PREFERENCES)
from .exceptions import ConfigurationError


@dataclass
class Credential:
    """
    Authentication options for the client.

    Attributes:
        auth_mechanism: e.g. "SCRAM-SHA-256", "MONGODB-X509", "PLAIN"
        auth_source: Database to authenticate against
        username: User name (must not contain ':', '/' or '@')
        password: Password (same restriction)
        password_set: For GSSAPI, whether a password was given even if empty
    """

    auth_mechanism: str = ""
    auth_source: str = ""
    username: str = ""
    password: str = ""
    password_set: bool = False


@dataclass
class ReadPref:
    """
    Read preference for the client.

    Attributes:
        mode: One of SUPPORTED_READ_PREFERENCES (primary by default)
        max_staleness_ms: Maximum replication lag of eligible secondaries
    """

    mode: str = "primary"
    max_staleness_ms: int = 0


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(name)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except ValueError as e:
        raise ConfigurationError(
            f"Environment variable {name} must be an integer",
            config_key=name,
            config_value=value,
        ) from e


class ConnectionConfig:
    """
    MongoDB connection configuration.

    Example:
        # Using environment variables (MONGO_URI, DB_NAME, ...)
        config = ConnectionConfig()

        # Or direct parameters
        config = ConnectionConfig(uri="mongodb://localhost:27017", database="app")
        conn = await Connection.connect(config)
    """

    def __init__(
        self,
        uri: str | None = None,
        database: str | None = None,
        collection: str | None = None,
        host: str | None = None,
        port: str | None = None,
        connect_timeout_ms: int | None = None,
        max_pool_size: int | None = None,
        min_pool_size: int | None = None,
        socket_timeout_ms: int | None = None,
        read_preference: ReadPref | None = None,
        auth: Credential | None = None,
    ):
        """
        Initialize configuration.

        Args:
            uri: MongoDB URI (defaults to MONGO_URI, else built from host/port)
            database: Default database name (defaults to DB_NAME)
            collection: Default collection name (defaults to MONGO_COLLECTION)
            host: Host used when no URI is given (defaults to MONGO_HOST or localhost)
            port: Port used when no URI is given (defaults to MONGO_PORT or 27017)
            connect_timeout_ms: Connection timeout (defaults to 30000)
            max_pool_size: Maximum pool size per server (defaults to 100)
            min_pool_size: Minimum pool size per server (defaults to 0)
            socket_timeout_ms: Socket read/write timeout (defaults to 300000)
            read_preference: Read preference (primary when None)
            auth: Credentials, when not given in the URI
        """
        self.host = host or os.getenv("MONGO_HOST", DEFAULT_HOST)
        self.port = port or os.getenv("MONGO_PORT", DEFAULT_PORT)
        self.uri = uri or os.getenv("MONGO_URI", "") or f"mongodb://{self.host}:{self.port}"
        self.database = database or os.getenv("DB_NAME", "")
        self.collection = collection or os.getenv("MONGO_COLLECTION", "")
        self.connect_timeout_ms = _first_set(
            connect_timeout_ms, _env_int("MONGO_CONNECT_TIMEOUT_MS"), DEFAULT_CONNECT_TIMEOUT_MS
        )
        self.max_pool_size = _first_set(
            max_pool_size, _env_int("MONGO_MAX_POOL_SIZE"), DEFAULT_MAX_POOL_SIZE
        )
        self.min_pool_size = _first_set(
            min_pool_size, _env_int("MONGO_MIN_POOL_SIZE"), DEFAULT_MIN_POOL_SIZE
        )
        self.socket_timeout_ms = _first_set(
            socket_timeout_ms, _env_int("MONGO_SOCKET_TIMEOUT_MS"), DEFAULT_SOCKET_TIMEOUT_MS
        )
        self.read_preference = read_preference
        self.auth = auth

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is missing or invalid
        """
        if not self.uri.startswith(("mongodb://", "mongodb+srv://")):
            raise ConfigurationError(
                "uri must start with mongodb:// or mongodb+srv://",
                config_key="uri",
            )

        if self.connect_timeout_ms < 0:
            raise ConfigurationError(
                f"connect_timeout_ms must be >= 0, got {self.connect_timeout_ms}",
                config_key="connect_timeout_ms",
            )

        if self.socket_timeout_ms < 0:
            raise ConfigurationError(
                f"socket_timeout_ms must be >= 0, got {self.socket_timeout_ms}",
                config_key="socket_timeout_ms",
            )

        if self.min_pool_size < 0 or self.max_pool_size < 0:
            raise ConfigurationError("pool sizes must be >= 0", config_key="max_pool_size")

        if self.max_pool_size and self.min_pool_size > self.max_pool_size:
            raise ConfigurationError(
                f"min_pool_size ({self.min_pool_size}) cannot be greater than "
                f"max_pool_size ({self.max_pool_size})",
                config_key="min_pool_size",
            )

        if self.read_preference is not None:
            if self.read_preference.mode not in SUPPORTED_READ_PREFERENCES:
                raise ConfigurationError(
                    f"Unsupported read preference mode '{self.read_preference.mode}'",
                    config_key="read_preference.mode",
                    config_value=self.read_preference.mode,
                )
            if self.read_preference.max_staleness_ms < 0:
                raise ConfigurationError(
                    "read_preference.max_staleness_ms must be >= 0",
                    config_key="read_preference.max_staleness_ms",
                )

        if self.auth is not None:
            for key in ("username", "password"):
                value = getattr(self.auth, key)
                if any(char in value for char in RESERVED_CREDENTIAL_CHARS):
                    raise ConfigurationError(
                        f"{key} not supported: must not contain "
                        f"{', '.join(RESERVED_CREDENTIAL_CHARS)}",
                        config_key=f"auth.{key}",
                    )

    def uri_options(self) -> set[str]:
        """Lower-cased option names present in the URI query string."""
        return {key.lower() for key in parse_qs(urlsplit(self.uri).query)}

    def client_kwargs(self) -> Dict[str, Any]:
        """
        Build AsyncIOMotorClient keyword arguments (host included).

        Options already present in the URI are not repeated. Dates are read
        back timezone-aware (UTC), like the values `utils.now()` writes.
        """
        in_uri = self.uri_options()
        kwargs: Dict[str, Any] = {}

        def put(name: str, value: Any) -> None:
            if name.lower() not in in_uri:
                kwargs[name] = value

        put("connectTimeoutMS", self.connect_timeout_ms)
        put("maxPoolSize", self.max_pool_size)
        put("minPoolSize", self.min_pool_size)
        put("socketTimeoutMS", self.socket_timeout_ms)
        put("tz_aware", True)

        if self.read_preference is not None:
            put("readPreference", self.read_preference.mode)
            if self.read_preference.max_staleness_ms:
                put(
                    "maxStalenessSeconds",
                    max(1, self.read_preference.max_staleness_ms // 1000),
                )

        if self.auth is not None:
            if self.auth.username:
                put("username", self.auth.username)
            if self.auth.password or self.auth.password_set:
                put("password", self.auth.password)
            if self.auth.auth_source:
                put("authSource", self.auth.auth_source)
            if self.auth.auth_mechanism:
                put("authMechanism", self.auth.auth_mechanism)

        return {"host": self.uri, **kwargs}


def _first_set(*values: Optional[int]) -> int:
    for value in values:
        if value is not None:
            return value
    raise ValueError("no value set")
