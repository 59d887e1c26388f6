from fastapi import status

from leave_ledger.core.config import settings


def test_health_check(client):
    """Test the /health endpoint returns 200 and up status."""
    response = client.get("/health")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "up"
    assert data["environment"] == "testing"
    assert "version" in data
    assert "timestamp" in data


def test_readiness_check(client):
    """Test the /readiness endpoint returns 200 and database status."""
    response = client.get("/readiness")
    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "ready"
    assert data["components"]["database"] == "connected"


def test_root_endpoint(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Leave Ledger API" in response.json()["message"]


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "trace-123"})
    assert response.headers["X-Request-ID"] == "trace-123"


def test_request_id_generated_when_missing(client):
    response = client.get("/health")
    assert response.headers.get("X-Request-ID")


def test_missing_actor_header_is_rejected(client):
    response = client.get("/api/notifications")
    assert response.status_code == 401
    assert response.json()["success"] is False


def test_unknown_actor_in_configured_header_is_rejected(client):
    response = client.get("/api/notifications", headers={settings.actor_header: "99999"})
    assert response.status_code == 401
    assert response.json()["success"] is False
