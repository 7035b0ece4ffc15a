"""
Тесты проектов, пользователей панели, сотрудников и бизнес-настроек.
"""

import pytest
from sqlalchemy import select

from yalla_admin.core.errors import BusinessRuleException, ErrorCode
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import UserRole
from yalla_admin.schemas.auth import CurrentUser
from yalla_admin.services.user_service import AVAILABLE_ROUTES, sanitize_permissions, user_service


class TestProjects:
    """Тесты изменения и удаления проектов."""

    @pytest.mark.asyncio
    async def test_address_is_immutable(self, client, admin_headers, project):
        response = await client.put(
            f"/api/v1/projects/{project.id}",
            json={"address": {"name": "Офис", "fullAddress": "Худжанд, ул. Ленина 5"}},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.PROJ_ADDRESS_IMMUTABLE

    @pytest.mark.asyncio
    async def test_same_address_and_new_name(self, client, admin_headers, project):
        response = await client.put(
            f"/api/v1/projects/{project.id}",
            json={
                "name": "Новый офис",
                "address": {"name": "Офис", "fullAddress": "Душанбе, пр. Рудаки 1"},
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Новый офис"
        assert response.json()["address"]["fullAddress"] == "Душанбе, пр. Рудаки 1"

    @pytest.mark.asyncio
    async def test_headquarters_cannot_be_deleted(self, client, admin_headers, project):
        response = await client.delete(f"/api/v1/projects/{project.id}", headers=admin_headers)

        assert response.status_code == 400
        assert project.deleted_at is None

    @pytest.mark.asyncio
    async def test_list_projects(self, client, admin_headers, project):
        response = await client.get("/api/v1/projects", headers=admin_headers)

        assert response.status_code == 200
        assert [item["id"] for item in response.json()] == [project.id]


class TestUsers:
    """Тесты управления пользователями панели."""

    def test_admin_gets_every_route(self):
        assert sanitize_permissions(UserRole.ADMIN.value, []) == list(AVAILABLE_ROUTES)

    def test_manager_cannot_manage_users(self):
        permissions = sanitize_permissions(UserRole.MANAGER.value, ["employees", "users", "unknown", "employees"])
        assert permissions == ["employees"]

    @pytest.mark.asyncio
    async def test_create_manager(self, client, admin_headers, project):
        response = await client.post(
            "/api/v1/users",
            json={
                "fullName": "Менеджер",
                "phone": "+992900000002",
                "password": "Manager#123",
                "role": "MANAGER",
                "projectId": project.id,
                "permissions": ["employees", "users"],
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["role"] == UserRole.MANAGER.value
        assert data["permissions"] == ["employees"]

    @pytest.mark.asyncio
    async def test_create_super_admin_forbidden(self, client, admin_headers):
        response = await client.post(
            "/api/v1/users",
            json={"fullName": "Хакер", "phone": "+992900000003", "role": "SUPER_ADMIN"},
            headers=admin_headers,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_cannot_delete_self(self, client, admin_user, admin_headers):
        response = await client.delete(f"/api/v1/users/{admin_user.id}", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.USER_CANNOT_DELETE_SELF

    @pytest.mark.asyncio
    async def test_last_admin_cannot_be_deleted(self, db_session, admin_user, super_admin, company):
        current = CurrentUser(
            user_id=super_admin.id,
            phone=super_admin.phone,
            role=UserRole.SUPER_ADMIN.value,
            company_id=company.id,
        )

        with pytest.raises(BusinessRuleException) as exc_info:
            await user_service.delete_user(db_session, current, admin_user.id)

        assert exc_info.value.code == ErrorCode.USER_LAST_ADMIN
        assert admin_user.deleted_at is None


class TestEmployees:
    """Тесты сотрудников."""

    @pytest.mark.asyncio
    async def test_create_employee(self, client, admin_headers, project, db_session):
        response = await client.post(
            "/api/v1/employees",
            json={
                "fullName": "Мария Иванова",
                "phone": "+992 90 000-02-01",
                "position": "Бухгалтер",
                "projectId": project.id,
                "serviceType": "LUNCH",
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["phone"] == "+992900000201"
        assert data["fullName"] == "Мария Иванова"

        employee = await db_session.scalar(select(Employee).where(Employee.phone == "+992900000201"))
        assert employee.working_days == [1, 2, 3, 4, 5]
        assert employee.budget is not None

    @pytest.mark.asyncio
    async def test_create_employee_reports_every_field(self, client, admin_headers):
        response = await client.post(
            "/api/v1/employees",
            json={"fullName": "", "phone": "12-34", "workingDays": [1, 9]},
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == ErrorCode.VALIDATION_ERROR
        fields = {item["field"] for item in error["details"]["errors"]}
        assert {"fullName", "phone", "workingDays"} <= fields

    @pytest.mark.asyncio
    async def test_duplicate_phone(self, client, admin_headers, employee):
        response = await client.post(
            "/api/v1/employees",
            json={"fullName": "Двойник", "phone": employee.phone},
            headers=admin_headers,
        )

        assert response.status_code == 400
        errors = response.json()["error"]["details"]["errors"]
        assert errors[0]["code"] == ErrorCode.EMP_PHONE_EXISTS

    @pytest.mark.asyncio
    async def test_export_employees_csv(self, client, admin_headers, employee):
        response = await client.get("/api/v1/employees/export", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="employees_' in response.headers["content-disposition"]
        assert response.content.startswith(b"\xef\xbb\xbf")

        lines = response.content.decode("utf-8-sig").split("\r\n")
        assert lines[0].startswith("ФИО;Телефон")
        assert lines[1].startswith(f"{employee.full_name};{employee.phone}")


class TestBusinessConfig:
    """Тесты бизнес-настроек."""

    @pytest.mark.asyncio
    async def test_public_config(self, client):
        response = await client.get("/api/v1/config")

        assert response.status_code == 200
        data = response.json()
        assert data["subscription"]["minDays"] == 5
        assert data["subscription"]["maxFreezesPerWeek"] == 2
        assert data["combo"]["prices"]["Комбо 25"] == 25

    @pytest.mark.asyncio
    async def test_update_requires_super_admin(self, client, admin_headers):
        response = await client.put(
            "/api/v1/config/min_subscription_days",
            json={"value": 3},
            headers=admin_headers,
        )

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_super_admin_updates_value(self, client, super_admin, make_headers):
        response = await client.put(
            "/api/v1/config/min_subscription_days",
            json={"value": 7},
            headers=make_headers(super_admin),
        )
        assert response.status_code == 200

        public = await client.get("/api/v1/config")
        assert public.json()["subscription"]["minDays"] == 7
