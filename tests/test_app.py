"""
Тесты приложения: health check, middleware, формат ошибок.
"""

from unittest.mock import AsyncMock, patch

import pytest
from httpx import ASGITransport, AsyncClient

from yalla_admin.core.errors import ErrorCode
from yalla_admin.main import app
from yalla_admin.models.database import get_db


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["environment"] == "testing"


class TestMiddleware:
    """Тесты заголовков ответа."""

    @pytest.mark.asyncio
    async def test_security_headers(self, client):
        response = await client.get("/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "Strict-Transport-Security" not in response.headers

    @pytest.mark.asyncio
    async def test_correlation_id_generated(self, client):
        response = await client.get("/health")

        assert len(response.headers["X-Correlation-ID"]) == 36

    @pytest.mark.asyncio
    async def test_correlation_id_reused(self, client):
        response = await client.get("/health", headers={"X-Correlation-ID": "req-42"})

        assert response.headers["X-Correlation-ID"] == "req-42"


class TestErrorEnvelope:
    """Тесты единого формата ошибок."""

    @pytest.mark.asyncio
    async def test_unknown_route(self, client):
        response = await client.get("/api/v1/unknown")

        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == ErrorCode.NOT_FOUND
        assert body["error"]["type"] == "not_found"
        assert body["path"] == "/api/v1/unknown"
        assert body["timestamp"]

    @pytest.mark.asyncio
    async def test_business_error_message(self, client, admin_headers):
        response = await client.get("/api/v1/employees/00000000-0000-0000-0000-000000000000", headers=admin_headers)

        assert response.status_code == 404
        error = response.json()["error"]
        assert error["code"] == ErrorCode.EMP_NOT_FOUND
        assert error["message"] == "Сотрудник не найден"

    @pytest.mark.asyncio
    async def test_unhandled_error_hides_details(self, db_session, admin_headers):
        async def override_get_db():
            yield db_session

        app.dependency_overrides[get_db] = override_get_db
        failing = AsyncMock(side_effect=RuntimeError("connection string with password"))
        try:
            with patch("yalla_admin.api.v1.home.dashboard_service.get_dashboard", failing):
                transport = ASGITransport(app=app, raise_app_exceptions=False)
                async with AsyncClient(transport=transport, base_url="http://test") as ac:
                    response = await ac.get("/api/v1/home/dashboard", headers=admin_headers)
        finally:
            app.dependency_overrides.clear()

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == ErrorCode.INTERNAL_ERROR
        assert error["type"] == "internal"
        assert "password" not in error["message"]
