"""
Integration tests for FastAPI middleware (CORS, correlation_id).
"""
import uuid

import pytest


@pytest.mark.integration
def test_cors_headers_included(client):
    """Test that CORS headers are included in responses."""
    response = client.get(
        "/health",
        headers={"Origin": "http://localhost:3000"}
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"


@pytest.mark.integration
def test_cors_preflight_request(client):
    """Test CORS preflight (OPTIONS) request."""
    response = client.options(
        "/api/auth/login",
        headers={
            "Origin": "http://localhost:5173",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "content-type",
        }
    )

    assert response.status_code == 200
    assert "access-control-allow-origin" in response.headers
    assert "access-control-allow-methods" in response.headers


@pytest.mark.integration
def test_correlation_id_generated(client):
    """Test that correlation ID is generated if not provided."""
    response = client.get("/health")

    correlation_id = response.headers["X-Correlation-ID"]
    assert str(uuid.UUID(correlation_id)) == correlation_id


@pytest.mark.integration
def test_correlation_id_echoed(client):
    """Test that a supplied correlation ID is echoed back and used in error bodies."""
    response = client.get("/api/vendors/999", headers={"X-Correlation-ID": "trace-abc"})

    assert response.status_code == 404
    assert response.headers["X-Correlation-ID"] == "trace-abc"
    assert response.json()["correlation_id"] == "trace-abc"


@pytest.mark.integration
def test_unknown_route(client):
    response = client.get("/api/nothing-here")

    assert response.status_code == 404
    assert response.json()["message"] == "Not Found"
