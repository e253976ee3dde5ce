"""
RecordHub Backend - Test Configuration (conftest.py)
=====================================================

What:  Shared pytest fixtures for the entire test suite.
How:   No real MongoDB: the motor client is replaced by a MagicMock whose
       collections are AsyncMocks, injected through Database(client_factory=...).

Fixtures:
    settings          Settings pointing uploads at a tmp dir, no .env file
    mock_db           Fake motor database; every db[name] is the same collection mock
    fake_client       Fake AsyncIOMotorClient returning mock_db
    database          Connected Database built on fake_client
    test_client       HTTPX AsyncClient talking to create_app(...) in-process
"""

import os
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Keep test output quiet and independent of the developer's shell
os.environ["LOG_LEVEL"] = "WARNING"
os.environ.pop("MONGO_URI", None)

from recordhub.config import Settings  # noqa: E402
from recordhub.database import Database  # noqa: E402
from recordhub.main import create_app  # noqa: E402

TEST_MONGO_URI = "mongodb://localhost:27017/recordhub_test"


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        mongo_uri=TEST_MONGO_URI,
        upload_dir=str(tmp_path / "uploads"),
        max_upload_size=1024 * 1024,
        _env_file=None,
    )


@pytest.fixture
def mock_db():
    """
    A MagicMock standing in for AsyncIOMotorDatabase.

    Usage:
        mock_db["records"].find_one.return_value = {...}
    """
    db = MagicMock(name="AsyncIOMotorDatabase")
    db.name = "recordhub_test"

    collection = MagicMock(name="AsyncIOMotorCollection")
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.find_one_and_update = AsyncMock(return_value=None)
    collection.delete_one = AsyncMock(return_value=MagicMock(deleted_count=1))
    collection.count_documents = AsyncMock(return_value=0)
    db.__getitem__.return_value = collection
    return db


@pytest.fixture
def fake_client(mock_db):
    client = MagicMock(name="AsyncIOMotorClient")
    client.admin.command = AsyncMock(return_value={"ok": 1.0})
    client.get_default_database.return_value = mock_db
    return client


@pytest.fixture
def client_factory(fake_client):
    """Records the kwargs Database passes to the motor client constructor."""
    return MagicMock(name="client_factory", return_value=fake_client)


@pytest_asyncio.fixture
async def database(client_factory) -> AsyncGenerator[Database, None]:
    db = Database(uri=TEST_MONGO_URI, client_factory=client_factory)
    await db.connect()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def test_client(settings, database) -> AsyncGenerator[AsyncClient, None]:
    """
    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    app = create_app(settings, database=database)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
