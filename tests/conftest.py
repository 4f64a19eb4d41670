"""
pytest configuration for the pinboard test suite.

Engine tests run against the in-memory RelationStore; API tests drive the
FastAPI app through TestClient with the store and uploader dependencies
overridden, so neither PostgreSQL nor object storage is needed.
"""
import os

# Must be set before pinboard.config is imported anywhere
os.environ.setdefault("TRACING_ENABLED", "false")
os.environ.setdefault("JWT_SECRET", "test-secret-that-is-long-enough-for-hs256")

import jwt  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from memory_store import MemoryRelationStore  # noqa: E402
from pinboard.config import settings  # noqa: E402
from pinboard.dependencies import get_store, get_uploader  # noqa: E402
from pinboard.main import app  # noqa: E402

API = settings.api_prefix


@pytest.fixture
def store():
    return MemoryRelationStore()


@pytest.fixture
def alice(store):
    return store.create_user("alice", bio="cats & cameras", avatar_url="http://img/alice.png")


@pytest.fixture
def bob(store):
    return store.create_user("bob")


@pytest.fixture
def uploaded():
    """Records (bytes, mime) pairs handed to the uploader."""
    return []


@pytest.fixture
def uploader(uploaded):
    def _upload(data, content_type):
        uploaded.append((data, content_type))
        return f"http://objects.test/pinboard-images/images/{len(uploaded)}.png"

    return _upload


@pytest.fixture
def client(store, uploader):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_uploader] = lambda: uploader
    # No context manager: lifespan (database, bucket) is not started
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


def make_token(user_id, claim="userId", secret=None):
    return jwt.encode(
        {claim: user_id}, secret or settings.jwt_secret, algorithm=settings.jwt_algorithm
    )


@pytest.fixture
def auth():
    def _headers(user):
        return {"Authorization": f"Bearer {make_token(user.id)}"}

    return _headers
