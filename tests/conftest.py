"""Test configuration and fixtures."""

import os
import asyncio
import tempfile
from unittest.mock import MagicMock

# Set test environment variables before importing doctalk modules
_TMP_DIR = tempfile.mkdtemp()
os.environ.setdefault("DATABASE_URL", f"sqlite+aiosqlite:///{_TMP_DIR}/doctalk-default.db")
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from fastapi.testclient import TestClient

from doctalk.auth import get_settings
from doctalk.config import Settings
from doctalk.db import create_tables, get_async_session, make_engine, make_sessionmaker
from doctalk.main import app, get_uploader
from doctalk.storage import ObjectStoreUploader
from tests.helpers import SIGNING_KEY, make_token


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path}/doctalk.db",
        signing_key=SIGNING_KEY,
        minio_endpoint="minio.test:9000",
        minio_bucket="documents",
        storage_public_url="https://files.example.com",
        storage_folder="doctalk/documents",
    )


@pytest.fixture
def minio_client():
    """Stand-in for minio.Minio that acknowledges every write."""
    client = MagicMock()
    client.bucket_exists.return_value = True
    client.put_object.side_effect = lambda bucket, name, data, length, content_type: MagicMock(
        bucket_name=bucket, object_name=name, etag="etag-" + name[-8:]
    )
    return client


@pytest.fixture
def uploader(settings, minio_client):
    return ObjectStoreUploader(settings, client=minio_client)


@pytest.fixture
def engine(settings):
    engine = make_engine(settings.database_url)
    asyncio.run(create_tables(engine))
    yield engine
    asyncio.run(engine.dispose())


@pytest.fixture
def sessionmaker(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def db_sessionmaker(settings):
    """Same database setup for async tests, created on the test's own loop."""
    engine = make_engine(settings.database_url)
    await create_tables(engine)
    yield make_sessionmaker(engine)
    await engine.dispose()


@pytest.fixture
def client(settings, sessionmaker, uploader):
    """Test client wired to the per-test database and the fake object store."""

    async def override_get_async_session():
        async with sessionmaker() as session:
            yield session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_uploader] = lambda: uploader
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    def _headers(owner="U1"):
        return {"Authorization": f"Bearer {make_token(owner)}"}
    return _headers
