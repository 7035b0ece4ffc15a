"""
Тесты подписок на обеды.
"""

from datetime import timedelta
from unittest.mock import call, patch

import pytest
from sqlalchemy import select

from yalla_admin.core.errors import ErrorCode
from yalla_admin.models.enums import OrderStatus, ServiceType, SubscriptionStatus
from yalla_admin.models.order import Order
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.utils.dates import local_today


def subscription_payload(employee, start, days: int) -> dict:
    return {
        "employeeId": employee.id,
        "comboType": "Комбо 25",
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=days - 1)).isoformat(),
    }


class TestCreateSubscription:
    """Тесты создания подписки."""

    @pytest.mark.asyncio
    async def test_create_generates_orders(self, client, admin_headers, employee, week_start, db_session):
        response = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 7),
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == SubscriptionStatus.ACTIVE.value
        assert data["totalDays"] == 5  # суббота и воскресенье не рабочие
        assert data["totalPrice"] == 125.0
        assert data["pricePerDay"] == 25.0
        assert data["employeeName"] == employee.full_name

        orders = (await db_session.execute(select(Order).where(Order.employee_id == employee.id))).scalars().all()
        assert len(orders) == 5
        assert {order.status for order in orders} == {OrderStatus.ACTIVE.value}

    @pytest.mark.asyncio
    async def test_minimum_period(self, client, admin_headers, employee, week_start):
        response = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 4),
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == ErrorCode.SUB_MIN_DAYS_REQUIRED
        assert error["message"] == "Минимальный период подписки - 5 дней"

    @pytest.mark.asyncio
    async def test_end_before_start(self, client, admin_headers, employee, week_start):
        payload = subscription_payload(employee, week_start, 5)
        payload["endDate"] = (week_start - timedelta(days=1)).isoformat()

        response = await client.post("/api/v1/subscriptions", json=payload, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.SUB_INVALID_PERIOD

    @pytest.mark.asyncio
    async def test_duplicate_active_subscription(self, client, admin_headers, employee, week_start):
        payload = subscription_payload(employee, week_start, 5)
        first = await client.post("/api/v1/subscriptions", json=payload, headers=admin_headers)
        assert first.status_code == 201

        second = await client.post("/api/v1/subscriptions", json=payload, headers=admin_headers)

        assert second.status_code == 409
        assert second.json()["error"]["type"] == "conflict"

    @pytest.mark.asyncio
    async def test_compensation_employee_rejected(self, client, admin_headers, employee, week_start, db_session):
        employee.service_type = ServiceType.COMPENSATION.value
        await db_session.commit()

        response = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 5),
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.EMP_COMPENSATION_SERVICE

    @pytest.mark.asyncio
    async def test_inactive_employee_rejected(self, client, admin_headers, employee, week_start, db_session):
        employee.is_active = False
        await db_session.commit()

        response = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 5),
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.EMP_INACTIVE

    @pytest.mark.asyncio
    async def test_min_days_from_business_config(self, client, admin_headers, employee, week_start, db_session):
        await business_config_service.set(db_session, "min_subscription_days", 3)

        response = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 3),
            headers=admin_headers,
        )

        assert response.status_code == 201


class TestSubscriptionLifecycle:
    """Тесты паузы, возобновления и отмены."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, client, admin_headers, employee, week_start, db_session):
        created = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 5),
            headers=admin_headers,
        )
        subscription_id = created.json()["id"]

        paused = await client.post(f"/api/v1/subscriptions/{subscription_id}/pause", headers=admin_headers)
        assert paused.status_code == 200
        assert paused.json()["status"] == SubscriptionStatus.PAUSED.value
        orders = (await db_session.execute(select(Order).where(Order.employee_id == employee.id))).scalars().all()
        assert {order.status for order in orders} == {OrderStatus.PAUSED.value}

        again = await client.post(f"/api/v1/subscriptions/{subscription_id}/pause", headers=admin_headers)
        assert again.status_code == 400
        assert again.json()["error"]["code"] == ErrorCode.SUB_INVALID_STATUS

        resumed = await client.post(f"/api/v1/subscriptions/{subscription_id}/resume", headers=admin_headers)
        assert resumed.json()["status"] == SubscriptionStatus.ACTIVE.value
        assert {order.status for order in orders} == {OrderStatus.ACTIVE.value}

    @pytest.mark.asyncio
    async def test_delete_cancels_future_orders(self, client, admin_headers, employee, week_start, db_session):
        created = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 5),
            headers=admin_headers,
        )
        subscription_id = created.json()["id"]

        response = await client.delete(f"/api/v1/subscriptions/{subscription_id}", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["message"] == "Подписка отменена"
        orders = (await db_session.execute(select(Order).where(Order.employee_id == employee.id))).scalars().all()
        assert {order.status for order in orders} == {OrderStatus.CANCELLED.value}

    @pytest.mark.asyncio
    async def test_today_uses_project_timezone(
        self, client, admin_headers, employee, project, week_start, db_session
    ):
        created = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 5),
            headers=admin_headers,
        )
        project.timezone = "Asia/Tokyo"
        await db_session.commit()

        with patch("yalla_admin.services.subscription_service.local_today", wraps=local_today) as today_mock:
            paused = await client.post(f"/api/v1/subscriptions/{created.json()['id']}/pause", headers=admin_headers)
            deleted = await client.delete(f"/api/v1/subscriptions/{created.json()['id']}", headers=admin_headers)

        assert paused.status_code == 200
        assert deleted.status_code == 200
        assert today_mock.call_args_list
        assert all(args == call("Asia/Tokyo") for args in today_mock.call_args_list)

    @pytest.mark.asyncio
    async def test_bulk_pause_reports_errors(self, client, admin_headers, employee, week_start):
        created = await client.post(
            "/api/v1/subscriptions",
            json=subscription_payload(employee, week_start, 5),
            headers=admin_headers,
        )
        subscription_id = created.json()["id"]
        await client.post(f"/api/v1/subscriptions/{subscription_id}/pause", headers=admin_headers)

        response = await client.post(
            "/api/v1/subscriptions/bulk/pause",
            json={"ids": [subscription_id]},
            headers=admin_headers,
        )

        data = response.json()
        assert data["processed"] == 0
        assert data["errors"][0]["code"] == ErrorCode.SUB_INVALID_STATUS


class TestPricePreview:
    """Тесты предварительного расчёта стоимости."""

    @pytest.mark.asyncio
    async def test_preview_without_employees(self, client, admin_headers, week_start):
        response = await client.post(
            "/api/v1/subscriptions/price-preview",
            json={
                "comboType": "Комбо 35",
                "startDate": week_start.isoformat(),
                "endDate": (week_start + timedelta(days=13)).isoformat(),
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["days"] == 10
        assert data["employees"] == 0
        assert data["total"] == 350.0

    @pytest.mark.asyncio
    async def test_preview_for_employees(self, client, admin_headers, employee, week_start):
        response = await client.post(
            "/api/v1/subscriptions/price-preview",
            json={
                "comboType": "Комбо 25",
                "startDate": week_start.isoformat(),
                "endDate": (week_start + timedelta(days=6)).isoformat(),
                "scheduleType": "EVERY_OTHER_DAY",
                "employeeIds": [employee.id],
            },
            headers=admin_headers,
        )

        data = response.json()
        assert data["employees"] == 1
        assert data["days"] == 3
        assert data["total"] == 75.0
