"""
RecordHub Backend - Process Lifecycle Tests
============================================

serve() is mostly driven with a fake uvicorn server so that ordering and
exit codes can be checked without binding a socket. TestSignalShutdown runs
the real server in a child process and stops it with SIGTERM or SIGINT.
"""

import os
import signal
import socket
import subprocess
import sys
import time
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from pymongo.errors import ServerSelectionTimeoutError

import recordhub
from recordhub.config import get_settings
from recordhub.database import Database
from recordhub.server import load_settings, serve

TEST_MONGO_URI = "mongodb://localhost:27017/recordhub_test"


class FakeServer:
    """Stands in for uvicorn.Server; records when serve() ran."""

    def __init__(self, config, events, started=True):
        self.config = config
        self.events = events
        self.started = False
        self._will_start = started

    async def serve(self):
        self.events.append("serve")
        self.started = self._will_start


def _tracking_database(client_factory, fake_client, events) -> Database:
    fake_client.close.side_effect = lambda: events.append("db_close")
    return Database(uri=TEST_MONGO_URI, client_factory=client_factory)


class TestServe:
    @pytest.mark.asyncio
    async def test_clean_run_closes_db_after_server(self, settings, client_factory, fake_client):
        events = []
        servers = []
        database = _tracking_database(client_factory, fake_client, events)

        def factory(config):
            server = FakeServer(config, events)
            servers.append(server)
            return server

        exit_code = await serve(settings, database=database, server_factory=factory)

        assert exit_code == 0
        assert events == ["serve", "db_close"]
        assert servers[0].config.port == settings.port
        assert servers[0].config.host == settings.host

    @pytest.mark.asyncio
    async def test_db_connected_before_server_built(self, settings, client_factory, fake_client):
        database = Database(uri=TEST_MONGO_URI, client_factory=client_factory)
        seen_ready = []

        def factory(config):
            seen_ready.append(database.is_ready())
            return FakeServer(config, [])

        await serve(settings, database=database, server_factory=factory)

        assert seen_ready == [True]

    @pytest.mark.asyncio
    async def test_missing_uri_exits_without_listening(self, settings, client_factory):
        factory = MagicMock()

        with pytest.raises(SystemExit) as exc_info:
            await serve(
                settings,
                database=Database(uri=None, client_factory=client_factory),
                server_factory=factory,
            )

        assert exc_info.value.code == 1
        factory.assert_not_called()
        client_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_unreachable_db_exits_without_listening(self, settings, client_factory, fake_client):
        fake_client.admin.command = AsyncMock(side_effect=ServerSelectionTimeoutError("timed out"))
        factory = MagicMock()

        with pytest.raises(SystemExit) as exc_info:
            await serve(
                settings,
                database=Database(uri=TEST_MONGO_URI, client_factory=client_factory),
                server_factory=factory,
            )

        assert exc_info.value.code == 1
        factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_bind_failure_returns_1_and_closes_db(self, settings, client_factory, fake_client):
        events = []
        database = _tracking_database(client_factory, fake_client, events)

        exit_code = await serve(
            settings,
            database=database,
            server_factory=lambda config: FakeServer(config, events, started=False),
        )

        assert exit_code == 1
        assert events == ["serve", "db_close"]

    @pytest.mark.asyncio
    async def test_server_crash_still_closes_db(self, settings, client_factory, fake_client):
        events = []
        database = _tracking_database(client_factory, fake_client, events)
        server = MagicMock()
        server.serve = AsyncMock(side_effect=RuntimeError("boom"))

        with pytest.raises(RuntimeError):
            await serve(settings, database=database, server_factory=lambda config: server)

        assert events == ["db_close"]


class TestLoadSettings:
    def test_invalid_port_is_fatal(self, monkeypatch):
        monkeypatch.setenv("PORT", "abc")
        get_settings.cache_clear()
        try:
            with pytest.raises(SystemExit) as exc_info:
                load_settings()
        finally:
            get_settings.cache_clear()

        assert exc_info.value.code == 1

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PORT", "9090")
        monkeypatch.setenv("MONGO_URI", TEST_MONGO_URI)
        get_settings.cache_clear()
        try:
            settings = load_settings()
        finally:
            get_settings.cache_clear()

        assert settings.port == 9090
        assert settings.mongo_uri == TEST_MONGO_URI


# ── Real Signal Shutdown ──────────────────────────────────────────────────

# Runs serve() with real uvicorn and a fake motor client whose close() is logged
SERVE_WITH_FAKE_MONGO = """
import asyncio
import logging
import sys
from unittest.mock import AsyncMock, MagicMock

from recordhub.config import Settings
from recordhub.database import Database
from recordhub.main import setup_logging
from recordhub.server import serve

setup_logging("INFO")
fake_log = logging.getLogger("fake_motor")

motor_db = MagicMock()
motor_db.name = "recordhub_test"
client = MagicMock()
client.admin.command = AsyncMock(return_value={"ok": 1.0})
client.get_default_database.return_value = motor_db
client.close.side_effect = lambda: fake_log.info("motor client closed")

settings = Settings(
    mongo_uri="mongodb://localhost:27017/recordhub_test",
    host="127.0.0.1",
    port=int(sys.argv[1]),
    upload_dir=sys.argv[2],
    _env_file=None,
)
database = Database(uri=settings.mongo_uri, client_factory=MagicMock(return_value=client))
sys.exit(asyncio.run(serve(settings, database=database)))
"""


def _free_port() -> int:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _wait_until_healthy(proc: subprocess.Popen, port: int, timeout: float = 20.0) -> None:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if proc.poll() is not None:
            output, _ = proc.communicate()
            pytest.fail(f"server exited early with {proc.returncode}:\n{output}")
        try:
            response = httpx.get(f"http://127.0.0.1:{port}/api/health", timeout=1.0)
            if response.status_code == 200 and response.json()["status"] == "ok":
                return
        except httpx.TransportError:
            pass
        time.sleep(0.1)
    proc.kill()
    output, _ = proc.communicate()
    pytest.fail(f"server never became healthy:\n{output}")


@pytest.mark.skipif(sys.platform == "win32", reason="POSIX signals")
class TestSignalShutdown:
    @pytest.mark.parametrize("sig", [signal.SIGTERM, signal.SIGINT], ids=["SIGTERM", "SIGINT"])
    def test_signal_drains_then_closes_db_then_exits_0(self, tmp_path, sig):
        port = _free_port()
        backend_dir = Path(recordhub.__file__).resolve().parent.parent
        env = dict(os.environ, PYTHONUNBUFFERED="1")
        env["PYTHONPATH"] = os.pathsep.join(filter(None, [str(backend_dir), env.get("PYTHONPATH")]))

        proc = subprocess.Popen(
            [sys.executable, "-c", SERVE_WITH_FAKE_MONGO, str(port), str(tmp_path / "uploads")],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            env=env,
        )
        try:
            _wait_until_healthy(proc, port)
            proc.send_signal(sig)
            output, _ = proc.communicate(timeout=20)
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.communicate()

        assert proc.returncode == 0, output
        http_closed = output.index("HTTP server closed")
        db_closed = output.index("motor client closed")
        shutdown = output.index("Shutdown complete")
        assert http_closed < db_closed < shutdown
        assert f"{sig.name} signal received" in output
