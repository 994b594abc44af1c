"""
Tests for security headers middleware.
"""

import pytest
from unittest.mock import patch
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_security_headers_present(client: AsyncClient):
    """Test that all required security headers are present in responses."""
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers.get("X-Content-Type-Options") == "nosniff"
    assert response.headers.get("X-Frame-Options") == "DENY"
    assert response.headers.get("X-XSS-Protection") == "1; mode=block"
    assert response.headers.get("Referrer-Policy") == "strict-origin-when-cross-origin"
    assert "Content-Security-Policy" in response.headers


@pytest.mark.asyncio
async def test_permissions_policy_allows_recording(client: AsyncClient):
    """Camera and microphone stay available to our own origin for video answers."""
    response = await client.get("/")

    policy = response.headers["Permissions-Policy"]
    assert "camera=(self)" in policy
    assert "microphone=(self)" in policy
    assert "geolocation=()" in policy


@pytest.mark.asyncio
@pytest.mark.parametrize("endpoint", ["/", "/health", "/metrics", "/jobs"])
async def test_security_headers_on_all_endpoints(client: AsyncClient, endpoint):
    response = await client.get(endpoint)

    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_hsts_header_not_in_dev(client: AsyncClient):
    """HSTS is only sent in production."""
    response = await client.get("/health")
    assert response.headers.get("Strict-Transport-Security") is None


@pytest.mark.asyncio
async def test_hsts_header_in_production(client: AsyncClient):
    with patch("jobzworld.middleware.settings") as mock_settings:
        mock_settings.is_production = True
        response = await client.get("/")

    assert response.headers["Strict-Transport-Security"].startswith("max-age=31536000")


@pytest.mark.asyncio
async def test_csp_header_content(client: AsyncClient):
    response = await client.get("/health")

    csp = response.headers.get("Content-Security-Policy")
    assert "default-src 'self'" in csp
    assert "script-src" in csp
    assert "style-src" in csp


@pytest.mark.asyncio
async def test_security_headers_on_error_responses(client: AsyncClient):
    """Test that security headers are present even on error responses."""
    not_found = await client.get("/nonexistent")
    unauthorized = await client.get("/auth/profile")
    invalid = await client.post("/auth/register", json={"email": "security-test@example.com"})

    for response in (not_found, unauthorized, invalid):
        assert response.status_code >= 400
        assert response.headers.get("X-Content-Type-Options") == "nosniff"
        assert response.headers.get("X-Frame-Options") == "DENY"


@pytest.mark.asyncio
async def test_cors_preflight(client: AsyncClient):
    response = await client.options("/auth/login", headers={
        "Origin": "http://localhost:3000",
        "Access-Control-Request-Method": "POST",
    })

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
