"""
MongoDB connection, database and session handles.

Connection owns one AsyncIOMotorClient built from a ConnectionConfig, the
middleware pipeline shared by its collections, and a registry of models.

Transactions:

    async def transfer(ctx):
        await accounts.update_one({"_id": a}, {"$inc": {"balance": -10}}, ctx=ctx)
        await accounts.update_one({"_id": b}, {"$inc": {"balance": 10}}, ctx=ctx)

    await conn.do_transaction(transfer)

Every operation inside the callback must be given the ctx it receives. The
callback may be run more than once, so it must be idempotent; raising
TransactionRetryError from it asks for another attempt.

This module is part of MDB_ODM.

Usage:
    from mdb_odm import Connection, ConnectionConfig

    conn = await Connection.connect(ConnectionConfig(database="app"))
    users = conn.collection("users")
"""

import asyncio
import inspect
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from motor.motor_asyncio import (AsyncIOMotorClient, AsyncIOMotorClientSession,
                                 AsyncIOMotorDatabase)
from pymongo import ReadPreference
from pymongo.errors import (ConnectionFailure, OperationFailure, PyMongoError,
                            ServerSelectionTimeoutError)

from ..config import ConnectionConfig
from ..constants import (DEFAULT_PING_TIMEOUT_S, MIN_TRANSACTION_SERVER_VERSION,
                         STANDALONE_TOPOLOGY, TRANSIENT_TRANSACTION_ERROR)
from ..context import OperationContext
from ..exceptions import (ConfigurationError, TransactionNotSupportedError,
                          TransactionRetryError)
from ..middleware import Pipeline, get_default_pipeline
from ..observability.logging import get_logger
from ..utils import compare_versions
from .collection import Collection
from .model import Model, ModelRegistry

logger = get_logger(__name__)

TransactionCallback = Callable[[OperationContext], Awaitable[Any]]


class Database:
    """Handle on a MongoDB database whose collections share one pipeline."""

    def __init__(self, database: AsyncIOMotorDatabase, pipeline: Optional[Pipeline] = None):
        self._database = database
        self._pipeline = pipeline or get_default_pipeline()

    @property
    def name(self) -> str:
        return self._database.name

    @property
    def motor_database(self) -> AsyncIOMotorDatabase:
        return self._database

    def collection(self, name: str, document_class: Optional[Type[Any]] = None) -> Collection:
        """Get a collection handle (no server round trip)."""
        if not name:
            raise ConfigurationError("Collection name is required", config_key="collection")
        return Collection(
            self._database[name], pipeline=self._pipeline, document_class=document_class
        )

    async def create_collection(
        self, name: str, ctx: Optional[OperationContext] = None, **options: Any
    ) -> Collection:
        """
        Explicitly create a collection (capped, validator, timeseries...).

        Raises:
            pymongo.errors.CollectionInvalid: If it already exists
        """
        kwargs = (ctx or OperationContext()).driver_kwargs(time_limit_key=None)
        await self._database.create_collection(name, **options, **kwargs)
        logger.info(f"Created collection '{name}' in '{self.name}'")
        return self.collection(name)

    async def run_command(
        self, command: Any, ctx: Optional[OperationContext] = None, **kwargs: Any
    ) -> Dict[str, Any]:
        """
        Run a database command. Use an ordered mapping (e.g. SON) when the
        command has several keys.
        """
        session_kwargs = (ctx or OperationContext()).driver_kwargs(time_limit_key=None)
        return await self._database.command(command, **kwargs, **session_kwargs)

    async def drop(self, ctx: Optional[OperationContext] = None) -> None:
        """Drop the whole database."""
        session_kwargs = (ctx or OperationContext()).driver_kwargs(time_limit_key=None)
        await self._database.client.drop_database(self.name, **session_kwargs)
        logger.info(f"Dropped database '{self.name}'")

    def __repr__(self) -> str:
        return f"Database(name={self.name!r})"


class Session:
    """
    Client session wrapper. End it when done, or use it as an async
    context manager.
    """

    def __init__(self, session: AsyncIOMotorClientSession):
        self._session = session

    @property
    def motor_session(self) -> AsyncIOMotorClientSession:
        return self._session

    def context(self, base: Optional[OperationContext] = None) -> OperationContext:
        """Operation context running in this session."""
        base = base or OperationContext()
        return OperationContext(
            session=self._session,
            max_time_ms=base.max_time_ms,
            collection_name=base.collection_name,
            values=base.values,
        )

    async def start_transaction(
        self,
        callback: TransactionCallback,
        ctx: Optional[OperationContext] = None,
        **transaction_options: Any,
    ) -> Any:
        """
        Run `callback` in a transaction, committing when it returns.

        The driver re-runs the callback on transient transaction errors and
        retries the commit on unknown commit results. A TransactionRetryError
        raised by the callback is reported to the driver as a transient error.

        Args:
            callback: Coroutine function receiving the session's OperationContext
            ctx: Base context (time limit, values) for the callback
            **transaction_options: read_concern, write_concern, read_preference,
                max_commit_time_ms

        Returns:
            The callback's return value
        """
        session_ctx = self.context(ctx)

        async def run(_session: AsyncIOMotorClientSession) -> Any:
            try:
                return await callback(session_ctx)
            except TransactionRetryError as e:
                logger.info(f"Transaction callback asked for a retry: {e}")
                raise PyMongoError(str(e), error_labels=[TRANSIENT_TRANSACTION_ERROR]) from e

        return await self._session.with_transaction(run, **transaction_options)

    async def abort_transaction(self) -> None:
        """Abort the transaction in progress."""
        await self._session.abort_transaction()

    async def end_session(self) -> None:
        """End the session, aborting any transaction in progress."""
        result = self._session.end_session()
        if inspect.isawaitable(result):
            await result

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.end_session()


class Connection:
    """
    MongoDB connection.

    Example:
        conn = await Connection.connect(ConnectionConfig(uri="mongodb://localhost:27017",
                                                         database="app"))
        try:
            users = conn.collection("users")
            ...
        finally:
            conn.close()
    """

    def __init__(
        self,
        client: AsyncIOMotorClient,
        config: ConnectionConfig,
        pipeline: Optional[Pipeline] = None,
    ):
        """
        Wrap an existing client; use `connect()` to create one from config.

        Args:
            client: Motor client
            config: Configuration the client was built from
            pipeline: Middleware pipeline for this connection's collections
                (process-wide default when None)
        """
        self._client = client
        self.config = config
        self._pipeline = pipeline or get_default_pipeline()
        self._models = ModelRegistry()

    @classmethod
    async def connect(
        cls,
        config: Optional[ConnectionConfig] = None,
        pipeline: Optional[Pipeline] = None,
        **client_options: Any,
    ) -> "Connection":
        """
        Create a client from `config` and check the primary answers a ping.

        Args:
            config: Connection configuration (from environment when None)
            pipeline: Middleware pipeline for this connection
            **client_options: Extra AsyncIOMotorClient options

        Raises:
            ConfigurationError: If the configuration is invalid
            pymongo.errors.ConnectionFailure: If the server cannot be reached
        """
        config = config or ConnectionConfig()
        config.validate()

        kwargs = {**config.client_kwargs(), **client_options}
        client = AsyncIOMotorClient(**kwargs)
        connection = cls(client, config, pipeline=pipeline)

        try:
            await connection.ping(DEFAULT_PING_TIMEOUT_S)
        except (ConnectionFailure, OperationFailure, asyncio.TimeoutError) as e:
            logger.error(f"Failed to connect to MongoDB: {e}", exc_info=True)
            client.close()
            raise

        logger.info(
            f"Connected to MongoDB (database={config.database or '-'}, "
            f"max_pool_size={config.max_pool_size}, min_pool_size={config.min_pool_size})"
        )
        return connection

    @property
    def client(self) -> AsyncIOMotorClient:
        return self._client

    @property
    def pipeline(self) -> Pipeline:
        return self._pipeline

    def database(self, name: Optional[str] = None, **options: Any) -> Database:
        """
        Get a database handle; defaults to the configured database.

        Raises:
            ConfigurationError: If no name is given and none is configured
        """
        name = name or self.config.database
        if not name:
            raise ConfigurationError(
                "Database name is required (set DB_NAME or ConnectionConfig.database)",
                config_key="database",
            )
        return Database(self._client.get_database(name, **options), pipeline=self._pipeline)

    def collection(
        self, name: Optional[str] = None, database: Optional[str] = None
    ) -> Collection:
        """
        Get a collection handle; defaults to the configured database and collection.

        Raises:
            ConfigurationError: If a name is missing and not configured
        """
        return self.database(database).collection(name or self.config.collection)

    def close(self) -> None:
        """Close the client's sockets."""
        self._client.close()
        logger.info("MongoDB connection closed")

    async def ping(self, timeout_s: float = DEFAULT_PING_TIMEOUT_S) -> None:
        """
        Confirm the primary answers within `timeout_s` seconds.

        Raises:
            asyncio.TimeoutError: If it does not answer in time
            pymongo.errors.PyMongoError: If the ping fails
        """
        await asyncio.wait_for(
            self._client.admin.command("ping", read_preference=ReadPreference.PRIMARY),
            timeout=timeout_s,
        )

    async def server_version(self) -> str:
        """Version of the server, like "7.0.2" ("" when it cannot be read)."""
        try:
            build_info = await self._client.admin.command("buildInfo")
        except (OperationFailure, ConnectionFailure, ServerSelectionTimeoutError) as e:
            logger.warning(f"Could not read server version: {e}")
            return ""
        return str(build_info.get("version", ""))

    def topology_type(self) -> str:
        """Topology type name as the driver sees it ("Single", "ReplicaSetWithPrimary"...)."""
        return self._client.topology_description.topology_type_name

    async def transaction_allowed(self) -> bool:
        """Whether the server version and topology support transactions."""
        version = await self.server_version()
        try:
            if compare_versions(MIN_TRANSACTION_SERVER_VERSION, version) > 0:
                logger.warning(
                    f"Transactions are not supported: server version {version} is below "
                    f"{MIN_TRANSACTION_SERVER_VERSION}"
                )
                return False
        except ValueError:
            logger.warning(f"Transactions are not supported: unknown server version {version!r}")
            return False

        if self.topology_type() == STANDALONE_TOPOLOGY:
            logger.warning("Transactions are not supported on a standalone server")
            return False
        return True

    async def session(self, **options: Any) -> Session:
        """
        Start a client session. End it after use.

        Args:
            **options: causal_consistency, default_transaction_options, snapshot
        """
        return Session(await self._client.start_session(**options))

    async def do_transaction(
        self,
        callback: TransactionCallback,
        ctx: Optional[OperationContext] = None,
        **transaction_options: Any,
    ) -> Any:
        """
        Run `callback` in a transaction on a new session.

        Raises:
            TransactionNotSupportedError: If the server cannot run transactions
        """
        if not await self.transaction_allowed():
            raise TransactionNotSupportedError()

        async with await self.session() as session:
            return await session.start_transaction(callback, ctx, **transaction_options)

    def register_model(
        self,
        document_class: Any,
        collection_name: str,
        database: Optional[str] = None,
    ) -> Model:
        """Bind a document class to a collection of the configured database."""
        collection = self.database(database).collection(collection_name)
        return self._models.register(document_class, collection)

    def model(self, name: str) -> Model:
        """
        Look up a registered model by class name, case-insensitively.

        Raises:
            ModelNotRegisteredError: If no model has that name
        """
        return self._models.get(name)

    def models(self) -> List[str]:
        return self._models.names()
