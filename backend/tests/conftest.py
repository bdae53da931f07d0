"""
Shared test fixtures for ZRP BOM engine tests

Provides the in-memory upstream fake and a TestClient wired to it
"""
import pytest
from fastapi.testclient import TestClient

from app.api.v1.deps import get_ops_client
from app.main import app
from tests.factories import reset_sequences
from tests.fakes import FakeOpsClient


@pytest.fixture(autouse=True)
def _reset_sequences():
    reset_sequences()
    yield


@pytest.fixture
def ops():
    """Fresh fake operations API for each test"""
    return FakeOpsClient()


@pytest.fixture
def client(ops):
    """Create a test client with the upstream client overridden"""
    app.dependency_overrides[get_ops_client] = lambda: ops
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
