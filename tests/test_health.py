"""Tests for health check endpoints."""

import pytest
from fastapi.testclient import TestClient

from itemgen.main import app


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


def test_health_check(client: TestClient) -> None:
    """Test health endpoint returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "itemgen-api"
    assert "version" in data


def test_readiness_check(client: TestClient) -> None:
    """Test readiness endpoint with the in-memory backend."""
    response = client.get("/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ready", "storage": "memory"}
