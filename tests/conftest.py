"""Pytest configuration and shared fixtures."""

import pytest
from fastapi.testclient import TestClient

from hashvault.api.v1.routes_uploads import get_uploader
from hashvault.main import app
from hashvault.storage.local import LocalObjectStore
from hashvault.uploads.service import StreamingDigestUploader


@pytest.fixture
def store(tmp_path):
    """Local object store rooted in a per-test directory.

    A tiny read chunk size makes downloads exercise multi-chunk streaming.
    """
    return LocalObjectStore(tmp_path / "objects", chunk_size=4)


@pytest.fixture
def uploader(store):
    """Uploader over the per-test store."""
    return StreamingDigestUploader(store)


@pytest.fixture
def make_client():
    """Build a test client whose routes use the given store."""
    def _make(object_store):
        app.dependency_overrides[get_uploader] = lambda: StreamingDigestUploader(object_store)
        return TestClient(app)

    yield _make
    app.dependency_overrides.clear()


@pytest.fixture
def client(make_client, store):
    """Test client backed by the per-test local store."""
    return make_client(store)
