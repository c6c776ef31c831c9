"""
Session management for the MongoDB backed document store.

A session owns the Motor client and, after a successful health check, a
handle to the configured database. The handle is the only piece of mutable
shared state and is always replaced with a single assignment, so concurrent
operations see either the old binding or the new one.

Example:
    ```python
    from cordstore import Session, MongoDBDocumentStore

    session = Session.connect("mongodb://localhost:27017")
    await session.open()
    await session.health_check()

    store = MongoDBDocumentStore(session)
    await store.insert_one("users", {"name": "alice"})

    await session.close()
    ```
"""
import logging
from enum import Enum
from typing import Any, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ReadPreference, uri_parser
from pymongo.errors import PyMongoError

from .config import StoreSettings
from .errors import (
    ConfigurationError,
    NotReadyError,
    StoreConnectionError,
    translate_driver_error,
)

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """Lifecycle states of a session."""
    UNCONNECTED = "unconnected"
    CONNECTED = "connected"
    HEALTHY = "healthy"
    CLOSED = "closed"


class Session:
    """
    Connection to a document store plus the database bound to it.

    Lifecycle:
        UNCONNECTED --open()--> CONNECTED --health_check()--> HEALTHY

    ``health_check()`` moves between CONNECTED and HEALTHY, and ``close()``
    moves to CLOSED from any state. Accessor operations need HEALTHY.
    """

    def __init__(self, client: Any, settings: Optional[StoreSettings] = None):
        """
        Initialize a session around an existing client.

        Prefer ``Session.connect()``; this constructor is for callers that
        already hold a Motor (or Motor compatible) client.

        Args:
            client: Motor client
            settings: Settings providing the database name
        """
        self.client = client
        self.settings = settings or StoreSettings()
        self._database: Optional[AsyncIOMotorDatabase] = None
        self._state = SessionState.UNCONNECTED

    @classmethod
    def connect(
        cls,
        uri: Optional[str] = None,
        *,
        settings: Optional[StoreSettings] = None,
        client: Optional[Any] = None,
    ) -> "Session":
        """
        Build a session for the given connection string.

        No network I/O happens here.

        Args:
            uri: MongoDB connection string, defaults to ``settings.uri``
            settings: Session settings, loaded from the environment if omitted
            client: Optional pre-configured Motor client

        Returns:
            An unconnected session

        Raises:
            ConfigurationError: If the URI is malformed or the client cannot be built
        """
        settings = settings or StoreSettings()
        if uri is not None:
            settings = settings.model_copy(update={"uri": uri})

        if client is None:
            try:
                # SRV records are resolved by the client itself, parsing them here would hit DNS.
                if not settings.uri.startswith("mongodb+srv://"):
                    uri_parser.parse_uri(settings.uri)
                client = AsyncIOMotorClient(settings.uri, **settings.client_options())
            except (PyMongoError, ValueError, TypeError) as exc:
                raise ConfigurationError("create mongo client", exc) from exc

        logger.info(f"Created session for {settings.uri_display} (database={settings.database_name})")
        return cls(client, settings=settings)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_healthy(self) -> bool:
        return self._database is not None

    @property
    def database(self) -> AsyncIOMotorDatabase:
        """
        The bound database handle.

        Raises:
            NotReadyError: If the last health check did not succeed
        """
        database = self._database
        if database is None:
            raise NotReadyError("get database", message=f"session is {self._state.value}, not healthy")
        return database

    def collection(self, name: str) -> AsyncIOMotorCollection:
        """Resolve a collection on the bound database."""
        return self.database[name]

    async def open(self) -> None:
        """
        Perform the handshake with the store.

        Raises:
            NotReadyError: If the session is closed
            StoreConnectionError: On network, authentication or protocol failure
        """
        if self._state is SessionState.CLOSED:
            raise NotReadyError("connect mongo client", message="session is closed")

        try:
            await self.client.admin.command("ping")
        except PyMongoError as exc:
            logger.error(f"Handshake with {self.settings.uri_display} failed: {exc}")
            raise translate_driver_error("connect mongo client", exc, StoreConnectionError) from exc

        if self._state is SessionState.UNCONNECTED:
            self._state = SessionState.CONNECTED
        logger.info(f"Connected to {self.settings.uri_display}")

    async def close(self) -> None:
        """
        Tear down the connection.

        The session ends up CLOSED even when teardown fails.

        Raises:
            StoreConnectionError: If the client could not be closed
        """
        if self._state is SessionState.CLOSED:
            return

        self._database = None
        self._state = SessionState.CLOSED
        try:
            self.client.close()
        except PyMongoError as exc:
            logger.warning(f"Disconnect from {self.settings.uri_display} failed: {exc}")
            raise StoreConnectionError("disconnect mongo client", exc) from exc

        logger.info(f"Disconnected from {self.settings.uri_display}")

    async def health_check(self) -> None:
        """
        Ping the primary and bind the database on success.

        A failed ping clears any previously bound database before raising.

        Raises:
            NotReadyError: If the session was never opened or is closed
            StoreConnectionError: If the ping failed
        """
        if self._state not in (SessionState.CONNECTED, SessionState.HEALTHY):
            raise NotReadyError("ping mongo", message=f"session is {self._state.value}")

        try:
            await self.client.admin.command("ping", read_preference=ReadPreference.PRIMARY)
        except PyMongoError as exc:
            self._database = None
            self._state = SessionState.CONNECTED
            logger.warning(f"Health check against {self.settings.uri_display} failed: {exc}")
            raise translate_driver_error("ping mongo", exc, StoreConnectionError) from exc
        except BaseException:
            self._database = None
            self._state = SessionState.CONNECTED
            raise

        self._database = self.client[self.settings.database_name]
        self._state = SessionState.HEALTHY
        logger.debug(f"Health check passed, bound database '{self.settings.database_name}'")

    async def __aenter__(self) -> "Session":
        await self.open()
        await self.health_check()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"Session(uri={self.settings.uri_display!r}, database={self.settings.database_name!r}, state={self._state.value})"
