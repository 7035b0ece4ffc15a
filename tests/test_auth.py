"""
Тесты аутентификации: вход, обновление токена, имперсонация.
"""

import pytest
from sqlalchemy import select

from yalla_admin.core.errors import ErrorCode
from yalla_admin.models.user import AuditLog
from yalla_admin.services.token_service import token_service

ADMIN_PHONE = "+992900000001"
ADMIN_PASSWORD = "Secret#123"


class TestLogin:
    """Тесты входа по телефону и паролю."""

    @pytest.mark.asyncio
    async def test_login_success(self, client, admin_user, company, mock_rate_limiter):
        response = await client.post(
            "/api/v1/auth/login",
            json={"phone": "+992 90 000-00-01", "password": ADMIN_PASSWORD},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["refreshToken"]
        assert data["user"]["id"] == admin_user.id
        assert data["user"]["companyName"] == company.name
        assert data["user"]["isHeadquarters"] is True
        assert "users" in data["user"]["permissions"]
        assert "X-Access-Token" in response.cookies
        mock_rate_limiter.reset_failed_logins.assert_awaited_once()

        payload = token_service.decode_access_token(data["token"])
        assert payload.sub == admin_user.id
        assert payload.company_id == company.id

    @pytest.mark.asyncio
    async def test_login_wrong_password(self, client, admin_user, db_session, mock_rate_limiter):
        response = await client.post(
            "/api/v1/auth/login",
            json={"phone": ADMIN_PHONE, "password": "Wrong#123"},
        )

        assert response.status_code == 401
        error = response.json()["error"]
        assert error["code"] == ErrorCode.AUTH_INVALID_CREDENTIALS
        assert error["type"] == "unauthorized"
        mock_rate_limiter.record_failed_login.assert_awaited_once_with(ADMIN_PHONE, "127.0.0.1")

        failures = (await db_session.execute(select(AuditLog).where(AuditLog.success.is_(False)))).scalars().all()
        assert len(failures) == 1

    @pytest.mark.asyncio
    async def test_login_locked_out(self, client, admin_user, mock_rate_limiter):
        mock_rate_limiter.is_locked_out.return_value = (True, "phone")

        response = await client.post(
            "/api/v1/auth/login",
            json={"phone": ADMIN_PHONE, "password": ADMIN_PASSWORD},
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == ErrorCode.AUTH_TOO_MANY_ATTEMPTS

    @pytest.mark.asyncio
    async def test_login_validation_error(self, client):
        response = await client.post("/api/v1/auth/login", json={"phone": ADMIN_PHONE})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == ErrorCode.VALIDATION_ERROR
        assert body["error"]["details"]["errors"][0]["field"] == "password"


class TestRefresh:
    """Тесты ротации refresh токена."""

    @pytest.mark.asyncio
    async def test_refresh_rotates_token(self, client, admin_user):
        login = await client.post(
            "/api/v1/auth/login",
            json={"phone": ADMIN_PHONE, "password": ADMIN_PASSWORD},
        )
        refresh_token = login.json()["refreshToken"]

        response = await client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})
        assert response.status_code == 200
        assert response.json()["refreshToken"] != refresh_token

        # старый токен отозван
        reused = await client.post("/api/v1/auth/refresh", json={"refreshToken": refresh_token})
        assert reused.status_code == 401
        assert reused.json()["error"]["code"] == ErrorCode.AUTH_REFRESH_TOKEN_INVALID

    @pytest.mark.asyncio
    async def test_refresh_without_token(self, client):
        client.cookies.clear()
        response = await client.post("/api/v1/auth/refresh")

        assert response.status_code == 401


class TestCurrentUser:
    """Тесты текущего пользователя и проверки токена."""

    @pytest.mark.asyncio
    async def test_me(self, client, admin_user, admin_headers):
        response = await client.get("/api/v1/auth/me", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["phone"] == ADMIN_PHONE

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401
        assert response.json()["error"]["code"] == ErrorCode.AUTH_UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_invalid_token(self, client):
        response = await client.get("/api/v1/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_legacy_api_prefix(self, client, admin_user, admin_headers):
        response = await client.get("/api/auth/me", headers=admin_headers)

        assert response.status_code == 200


class TestImpersonation:
    """Тесты входа под другим пользователем (только чтение)."""

    @pytest.mark.asyncio
    async def test_impersonated_session_is_read_only(self, client, super_admin, admin_user, project, make_headers):
        response = await client.post(
            f"/api/v1/auth/impersonate/{admin_user.id}",
            headers=make_headers(super_admin),
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["impersonatedBy"] == super_admin.id
        headers = {"Authorization": f"Bearer {data['token']}"}

        read = await client.get(f"/api/v1/projects/{project.id}", headers=headers)
        assert read.status_code == 200

        write = await client.put(f"/api/v1/projects/{project.id}", json={"name": "Новое имя"}, headers=headers)
        assert write.status_code == 403
        assert write.json()["error"]["code"] == ErrorCode.AUTH_READ_ONLY_SESSION

        back = await client.post("/api/v1/auth/stop-impersonation", headers=headers)
        assert back.status_code == 200
        assert back.json()["user"]["id"] == super_admin.id

    @pytest.mark.asyncio
    async def test_only_super_admin_can_impersonate(self, client, admin_user, admin_headers, super_admin):
        response = await client.post(f"/api/v1/auth/impersonate/{super_admin.id}", headers=admin_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == ErrorCode.AUTH_FORBIDDEN
