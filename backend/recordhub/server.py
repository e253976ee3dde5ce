"""
RecordHub Backend - Process Lifecycle
======================================

What:  Entry point that brings the service up in a fixed order and takes it
       down in the reverse order.
How:   Plain asyncio around a programmatic uvicorn.Server, so that the
       database is connected before the socket is bound and closed only after
       the server has drained.
Who:   `python -m recordhub` and the `recordhub-server` console script.

Startup (any failure before LISTENING exits with status 1, no retry):

    INIT → CONFIG_LOADED → DB_CONNECTING → DB_CONNECTED → LISTENING

Shutdown (SIGTERM / SIGINT), each step after the previous one completes:

    1. uvicorn stops accepting connections and waits for in-flight requests
    2. the MongoDB client is closed
    3. the process exits with status 0
"""

import asyncio
import contextlib
import logging
import signal
import sys
import threading
from enum import Enum
from typing import Any, Callable, Iterator, Optional

import uvicorn
from pydantic import ValidationError as SettingsValidationError

from recordhub.config import Settings, get_settings
from recordhub.database import Database
from recordhub.exceptions import ConfigurationError, DatabaseConnectionError
from recordhub.main import create_app, setup_logging

logger = logging.getLogger(__name__)

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class StartupPhase(str, Enum):
    INIT = "init"
    CONFIG_LOADED = "config_loaded"
    DB_CONNECTING = "db_connecting"
    DB_CONNECTED = "db_connected"
    LISTENING = "listening"


def load_settings() -> Settings:
    """
    Read configuration once. Invalid values (e.g. PORT=abc) are fatal.

    Raises:
        SystemExit(1) on a settings validation error.
    """
    try:
        settings = get_settings()
    except SettingsValidationError as e:
        logger.error("Configuration error: %s", e)
        raise SystemExit(1) from e
    settings.log_summary()
    return settings


async def connect_db(database: Database) -> None:
    """
    Connect once; on any failure log it and terminate with status 1.

    A missing URI, a malformed URI, an unreachable host and an auth failure
    are all treated the same: the service does not start without its
    database.
    """
    try:
        await database.connect()
    except (ConfigurationError, DatabaseConnectionError) as e:
        logger.error("MongoDB connection error: %s", e.message)
        raise SystemExit(1) from e


@contextlib.contextmanager
def _hold_shutdown_signals() -> Iterator[None]:
    """
    Keep SIGINT/SIGTERM from killing the process after uvicorn has drained.

    uvicorn captures these signals while serving and re-raises them once it
    has shut down; with the default handlers that would end the process
    before the database is closed.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    def _log_signal(signum: int, frame: Any) -> None:
        logger.info("%s signal received", signal.Signals(signum).name)

    previous = {sig: signal.signal(sig, _log_signal) for sig in SHUTDOWN_SIGNALS}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


async def serve(
    settings: Settings,
    database: Optional[Database] = None,
    server_factory: Callable[[uvicorn.Config], Any] = uvicorn.Server,
) -> int:
    """
    Run the service until a shutdown signal. Returns the process exit code.

    Args:
        settings: Loaded configuration.
        database: Connector to use; built from settings when omitted.
        server_factory: Builds the ASGI server from a uvicorn.Config.

    Raises:
        SystemExit(1) when the database cannot be connected.
    """
    phase = StartupPhase.CONFIG_LOADED
    database = database or Database.from_settings(settings)

    phase = StartupPhase.DB_CONNECTING
    await connect_db(database)
    phase = StartupPhase.DB_CONNECTED

    app = create_app(settings, database=database)
    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        lifespan="on",
        log_config=None,
        access_log=False,
    )
    server = server_factory(config)

    try:
        with _hold_shutdown_signals():
            await server.serve()
        if server.started:
            phase = StartupPhase.LISTENING
    finally:
        await database.close()

    if phase is not StartupPhase.LISTENING:
        logger.error("Server startup error: stopped in phase %s", phase.value)
        return 1

    logger.info("Shutdown complete")
    return 0


def main() -> None:
    setup_logging()
    settings = load_settings()
    setup_logging(settings.log_level)
    sys.exit(asyncio.run(serve(settings)))


if __name__ == "__main__":
    main()
