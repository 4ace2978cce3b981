"""Tests for health endpoints."""

from fastapi import FastAPI
from fastapi.testclient import TestClient


def test_liveness(client: TestClient) -> None:
    """Test the liveness endpoint."""
    response = client.get("/health/live")
    assert response.status_code == 200
    assert response.json() == {"status": "alive"}


def test_readiness(client: TestClient) -> None:
    """Test the readiness endpoint."""
    response = client.get("/health/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["ready"] is True
    assert data["storage"] == "memory"
    assert "environment" in data


def test_readiness_before_startup(app: FastAPI) -> None:
    """Readiness reports starting until the comment service is wired."""
    app.state.comment_service = None
    response = TestClient(app).get("/health/ready")
    assert response.status_code == 200
    assert response.json()["ready"] is False


def test_health(client: TestClient) -> None:
    """Test the general health endpoint."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["app_name"] == "blogengine"
    assert "version" in data
    assert "environment" in data


def test_root(client: TestClient) -> None:
    """Test the root endpoint."""
    response = client.get("/")
    assert response.status_code == 200
    data = response.json()
    assert "message" in data
    assert "BlogEngine" in data["message"]
    assert "version" in data


def test_request_id_header(client: TestClient) -> None:
    """Responses echo the caller's request id."""
    response = client.get("/health/live", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_comment_service_missing(app: FastAPI) -> None:
    """Comment routes answer 503 until the service is wired."""
    app.state.comment_service = None
    response = TestClient(app).get("/v1/comments")
    assert response.status_code == 503
