"""Root conftest — fake store and FastAPI test client.

Invariants:
    - Every test app gets a fresh FakeCollection; no MongoDB server needed
    - get_events_collection dependency overridden on the app under test
    - Settings built explicitly (_env_file=None): no .env leakage into tests
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Ensure importing modules that read settings never needs a real database
os.environ.setdefault("MONGODB_URI", "mongodb://localhost:27017")

from tests.app_factory import build_app  # noqa: E402
from tests.mock_mongo import FakeCollection  # noqa: E402


@pytest.fixture
def fake_collection():
    return FakeCollection()


@pytest.fixture
def app(fake_collection):
    return build_app(fake_collection)


@pytest.fixture
async def client(app):
    """Test client for the default app (fake store, default limits)."""
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c
