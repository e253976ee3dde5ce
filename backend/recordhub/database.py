"""
RecordHub Backend - MongoDB Connection Management
==================================================

What:  Owns the single long-lived MongoDB client and its readiness state.
How:   `Database` wraps a motor `AsyncIOMotorClient`. It is created by the
       bootstrap, connected once before the server listens, stored on
       `app.state.database` and handed to route handlers through the
       `get_database` dependency.
Who:   server.py (connect/close), routes (db access), health route (state).

Connection state machine:

    DISCONNECTED ──connect()──▶ CONNECTING ──ping ok──▶ CONNECTED
         ▲                          │                      │  ▲
         │                    ping failed                  │  │ topology
         └──────────────────────────┘                      │  │ listener
         ▲                                                 ▼  │
         └───── close() ◀──── DISCONNECTING ◀──── close() ─ DISCONNECTED

    After boot, a pymongo topology listener flips CONNECTED ⇄ DISCONNECTED
    as the driver loses and regains a writable server.

No retry: a failed boot connection is reported to the caller, which
terminates the process (see server.connect_db).
"""

import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import monitoring
from pymongo.errors import PyMongoError

from recordhub.config import Settings
from recordhub.exceptions import (
    ConfigurationError,
    DatabaseConnectionError,
    DatabaseError,
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    """Readiness of the MongoDB connection, as reported by /api/health."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"
    CONNECTING = "connecting"
    DISCONNECTING = "disconnecting"


class _TopologyStateListener(monitoring.TopologyListener):
    """
    Keeps `Database.state` in step with the driver's view of the cluster.

    Runs on pymongo's monitor threads. Only touches the state while it is
    CONNECTED or DISCONNECTED, under the same lock connect() and close()
    take for their transitions.
    """

    def __init__(self, database: "Database"):
        self._database = database

    def opened(self, event: monitoring.TopologyOpenedEvent) -> None:
        pass

    def description_changed(self, event: monitoring.TopologyDescriptionChangedEvent) -> None:
        self._database._on_topology_change(event.new_description.has_writable_server())

    def closed(self, event: monitoring.TopologyClosedEvent) -> None:
        pass


class Database:
    """
    Explicitly owned MongoDB resource handle.

    Args:
        uri: MongoDB connection string. None means "not configured".
        default_db_name: Database used when the URI names none.
        timeout_ms: Server selection timeout for the boot ping.
        client_factory: Callable building the motor client (tests pass a fake).
    """

    def __init__(
        self,
        uri: Optional[str],
        default_db_name: str = "test",
        timeout_ms: int = 10_000,
        client_factory: Callable[..., Any] = AsyncIOMotorClient,
    ):
        self.uri = uri
        self.default_db_name = default_db_name
        self.timeout_ms = timeout_ms
        self._client_factory = client_factory
        self._client: Optional[AsyncIOMotorClient] = None
        self._db: Optional[AsyncIOMotorDatabase] = None
        self._state = ConnectionState.DISCONNECTED
        # Topology events arrive on pymongo monitor threads
        self._state_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "Database":
        return cls(
            uri=settings.mongo_uri,
            default_db_name=settings.mongo_db_name,
            timeout_ms=settings.mongo_timeout_ms,
        )

    # ── State ─────────────────────────────────────────────────────────────

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_ready(self) -> bool:
        """True iff the connection is usable. Reports state, never probes."""
        return self._state is ConnectionState.CONNECTED

    @property
    def database_name(self) -> Optional[str]:
        return self._db.name if self._db is not None else None

    @property
    def db(self) -> AsyncIOMotorDatabase:
        """The motor database handle. Raises DatabaseError when not connected."""
        if self._db is None or not self.is_ready():
            raise DatabaseError(
                message="Database is not connected",
                context={"state": self._state.value},
            )
        return self._db

    def _on_topology_change(self, has_writable_server: bool) -> None:
        new_state = (
            ConnectionState.CONNECTED if has_writable_server else ConnectionState.DISCONNECTED
        )
        with self._state_lock:
            if self._state not in (ConnectionState.CONNECTED, ConnectionState.DISCONNECTED):
                return
            if self._client is None or new_state is self._state:
                return
            self._state = new_state

        if has_writable_server:
            logger.info("MongoDB connection restored")
        else:
            logger.warning("MongoDB connection lost")

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(self) -> None:
        """
        Open the client and verify the server with a single ping.

        motor connects lazily, so the ping is what turns a bad URI, an
        unreachable host or bad credentials into an error here rather than
        on the first request.

        Raises:
            ConfigurationError: No URI configured
            DatabaseConnectionError: The driver rejected the URI or the ping failed
        """
        if not self.uri:
            raise ConfigurationError("MongoDB URI is not defined in environment variables")

        with self._state_lock:
            self._state = ConnectionState.CONNECTING
        client = None
        try:
            client = self._client_factory(
                self.uri,
                serverSelectionTimeoutMS=self.timeout_ms,
                tz_aware=True,
                event_listeners=[_TopologyStateListener(self)],
            )
            await client.admin.command("ping")
            db = client.get_default_database(default=self.default_db_name)
        except (PyMongoError, ValueError, TypeError) as e:
            with self._state_lock:
                self._state = ConnectionState.DISCONNECTED
            if client is not None:
                client.close()
            raise DatabaseConnectionError(
                message=f"MongoDB connection error: {e}",
                context={"error_type": type(e).__name__},
            ) from e

        with self._state_lock:
            self._client = client
            self._db = db
            self._state = ConnectionState.CONNECTED
        logger.info("MongoDB connected successfully (database=%s)", db.name)

    async def close(self) -> None:
        """Close the client. A second call, or a call before connect(), does nothing."""
        with self._state_lock:
            if self._client is None:
                return
            self._state = ConnectionState.DISCONNECTING
            client, self._client, self._db = self._client, None, None

        # Outside the lock: pymongo may publish topology events on this thread while closing
        client.close()

        with self._state_lock:
            self._state = ConnectionState.DISCONNECTED
        logger.info("MongoDB connection closed")


# ── Request Dependency ────────────────────────────────────────────────────
def get_database(request: Request) -> Database:
    """
    FastAPI dependency returning the app's Database handle.

    Example usage in a route:
        @router.get("/records")
        async def list_records(database: Database = Depends(get_database)):
            return await record_service.list_records(database.db)
    """
    return request.app.state.database
