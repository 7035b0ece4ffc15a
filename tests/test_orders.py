"""
Тесты заказов: заморозка, отсечка, гостевые заказы, массовые действия, экспорт.
"""

from datetime import time, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio
from sqlalchemy import select

from yalla_admin.core.errors import ErrorCode
from yalla_admin.models.enums import OrderStatus, SubscriptionStatus
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import EmployeeFreezeHistory, LunchSubscription
from yalla_admin.utils.dates import local_today


@pytest_asyncio.fixture
async def subscription(db_session, company, project, employee, week_start):
    subscription = LunchSubscription(
        employee_id=employee.id,
        company_id=company.id,
        project_id=project.id,
        combo_type="Комбо 25",
        is_active=True,
        status=SubscriptionStatus.ACTIVE.value,
        start_date=week_start,
        end_date=week_start + timedelta(days=25),  # пятница
        total_days=20,
        total_price=Decimal("500"),
        schedule_type="EVERY_DAY",
        employee=employee,
    )
    db_session.add(subscription)
    await db_session.commit()
    return subscription


@pytest_asyncio.fixture
async def week_orders(db_session, company, project, employee, subscription, week_start):
    """Заказы сотрудника на понедельник, вторник и среду следующей недели."""
    orders = [
        Order(
            company_id=company.id,
            project_id=project.id,
            employee_id=employee.id,
            combo_type="Комбо 25",
            price=Decimal("25"),
            status=OrderStatus.ACTIVE.value,
            order_date=week_start + timedelta(days=offset),
            employee=employee,
            project=project,
        )
        for offset in range(3)
    ]
    db_session.add_all(orders)
    await db_session.commit()
    return orders


class TestFreeze:
    """Тесты заморозки заказов."""

    @pytest.mark.asyncio
    async def test_freeze_extends_subscription(self, client, admin_headers, week_orders, subscription, week_start):
        order = week_orders[0]

        response = await client.post(
            f"/api/v1/orders/{order.id}/freeze",
            json={"reason": "Командировка"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == OrderStatus.FROZEN.value
        # после пятницы следующий рабочий день - понедельник
        assert data["replacementDate"] == (week_start + timedelta(days=28)).isoformat()
        assert data["subscriptionEndDate"] == data["replacementDate"]
        assert data["freezeInfo"]["freezesThisWeek"] == 1
        assert data["freezeInfo"]["remainingFreezes"] == 1
        assert subscription.frozen_days_count == 1
        assert subscription.original_end_date == week_start + timedelta(days=25)

    @pytest.mark.asyncio
    async def test_third_freeze_in_week_is_rejected(self, client, admin_headers, week_orders, db_session):
        for order in week_orders[:2]:
            response = await client.post(f"/api/v1/orders/{order.id}/freeze", headers=admin_headers)
            assert response.status_code == 200

        response = await client.post(f"/api/v1/orders/{week_orders[2].id}/freeze", headers=admin_headers)

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == ErrorCode.FREEZE_LIMIT_EXCEEDED
        assert error["type"] == "business_rule"
        assert error["details"] == {"freezesThisWeek": 2, "maxFreezesPerWeek": 2}

        history = (await db_session.execute(select(EmployeeFreezeHistory))).scalars().all()
        assert len(history) == 2

    @pytest.mark.asyncio
    async def test_unfreeze_removes_replacement(self, client, admin_headers, week_orders, subscription, db_session):
        order = week_orders[0]
        frozen = await client.post(f"/api/v1/orders/{order.id}/freeze", headers=admin_headers)
        replacement_id = frozen.json()["replacementOrderId"]

        response = await client.post(f"/api/v1/orders/{order.id}/unfreeze", headers=admin_headers)

        assert response.status_code == 200
        assert response.json()["status"] == OrderStatus.ACTIVE.value
        assert await db_session.get(Order, replacement_id) is None
        assert subscription.frozen_days_count == 0

    @pytest.mark.asyncio
    async def test_unfreeze_active_order(self, client, admin_headers, week_orders):
        response = await client.post(f"/api/v1/orders/{week_orders[0].id}/unfreeze", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.FREEZE_NOT_FROZEN

    @pytest.mark.asyncio
    async def test_freeze_completed_order(self, client, admin_headers, week_orders, db_session):
        order = week_orders[0]
        order.status = OrderStatus.COMPLETED.value
        await db_session.commit()

        response = await client.post(f"/api/v1/orders/{order.id}/freeze", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.FREEZE_ORDER_NOT_ACTIVE

    @pytest.mark.asyncio
    async def test_freeze_requires_active_subscription(
        self, client, admin_headers, week_orders, subscription, db_session
    ):
        subscription.is_active = False
        await db_session.commit()

        response = await client.post(f"/api/v1/orders/{week_orders[0].id}/freeze", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.SUB_NOT_FOUND

    @pytest.mark.asyncio
    async def test_freeze_info(self, client, admin_headers, week_orders, employee, week_start):
        await client.post(f"/api/v1/orders/{week_orders[1].id}/freeze", headers=admin_headers)

        response = await client.get(
            f"/api/v1/orders/employee/{employee.id}/freeze-info",
            params={"date": week_start.isoformat()},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["freezesThisWeek"] == 1
        assert data["frozenDates"] == [(week_start + timedelta(days=1)).isoformat()]
        assert data["weekStart"] == week_start.isoformat()

    @pytest.mark.asyncio
    async def test_unknown_order(self, client, admin_headers):
        response = await client.post("/api/v1/orders/missing/freeze", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["error"]["code"] == ErrorCode.ORDER_NOT_FOUND


class TestGuestOrders:
    """Тесты гостевых заказов."""

    @pytest.mark.asyncio
    async def test_create_guest_orders(self, client, admin_headers, project, week_start):
        response = await client.post(
            "/api/v1/home/guest-orders",
            json={
                "orderName": "Гости партнёра",
                "quantity": 2,
                "comboType": "Комбо 35",
                "projectId": project.id,
                "date": week_start.isoformat(),
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()
        assert len(data["orders"]) == 2
        assert data["totalCost"] == 70.0
        assert data["orders"][0]["type"] == "Гость"
        # бюджет списывается только при расчёте
        assert data["remainingBudget"] == 5000.0

    @pytest.mark.asyncio
    async def test_insufficient_budget(self, client, admin_headers, project, db_session, week_start):
        project.budget = Decimal("10")
        await db_session.commit()

        response = await client.post(
            "/api/v1/home/guest-orders",
            json={
                "orderName": "Гость",
                "quantity": 2,
                "comboType": "Комбо 25",
                "projectId": project.id,
                "date": week_start.isoformat(),
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == ErrorCode.BUDGET_INSUFFICIENT
        assert error["details"] == {"available": 10.0, "required": 50.0}

    @pytest.mark.asyncio
    async def test_past_date_rejected(self, client, admin_headers, project):
        yesterday = local_today(project.timezone) - timedelta(days=1)

        response = await client.post(
            "/api/v1/home/guest-orders",
            json={
                "orderName": "Гость",
                "comboType": "Комбо 25",
                "projectId": project.id,
                "date": yesterday.isoformat(),
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.ORDER_PAST_DATE

    @pytest.mark.asyncio
    async def test_today_after_cutoff_rejected(self, client, admin_headers, project, db_session):
        project.cutoff_time = time(0, 0)
        await db_session.commit()

        response = await client.post(
            "/api/v1/home/guest-orders",
            json={
                "orderName": "Гость",
                "comboType": "Комбо 25",
                "projectId": project.id,
                "date": local_today(project.timezone).isoformat(),
            },
            headers=admin_headers,
        )

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == ErrorCode.ORDER_CUTOFF_PASSED
        assert "00:00" in error["message"]


class TestBulkActions:
    """Тесты массовых действий над заказами."""

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, client, admin_headers, week_orders):
        ids = [order.id for order in week_orders[:2]]

        paused = await client.post(
            "/api/v1/home/bulk-action",
            json={"orderIds": ids, "action": "pause"},
            headers=admin_headers,
        )
        assert paused.status_code == 200
        assert paused.json()["updatedCount"] == 2
        assert week_orders[0].status == OrderStatus.PAUSED.value

        resumed = await client.post(
            "/api/v1/home/bulk-action",
            json={"orderIds": ids, "action": "resume"},
            headers=admin_headers,
        )
        assert resumed.json()["updatedCount"] == 2
        assert week_orders[0].status == OrderStatus.ACTIVE.value

    @pytest.mark.asyncio
    async def test_completed_order_is_skipped(self, client, admin_headers, week_orders, db_session):
        week_orders[0].status = OrderStatus.COMPLETED.value
        await db_session.commit()

        response = await client.post(
            "/api/v1/home/bulk-action",
            json={"orderIds": [week_orders[0].id, week_orders[1].id], "action": "cancel"},
            headers=admin_headers,
        )

        data = response.json()
        assert data["updatedCount"] == 1
        assert data["skippedCount"] == 1
        assert week_orders[1].status == OrderStatus.CANCELLED.value

    @pytest.mark.asyncio
    async def test_change_combo_updates_price(self, client, admin_headers, week_orders):
        response = await client.post(
            "/api/v1/home/bulk-action",
            json={"orderIds": [week_orders[0].id], "action": "changecombo", "comboType": "Комбо 35"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert week_orders[0].combo_type == "Комбо 35"
        assert week_orders[0].price == Decimal("35")

    @pytest.mark.asyncio
    async def test_unknown_action(self, client, admin_headers, week_orders):
        response = await client.post(
            "/api/v1/home/bulk-action",
            json={"orderIds": [week_orders[0].id], "action": "explode"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.ORDER_UNKNOWN_ACTION

    @pytest.mark.asyncio
    async def test_today_orders_locked_after_cutoff(
        self, client, admin_headers, db_session, company, project, employee
    ):
        project.cutoff_time = time(0, 0)
        order = Order(
            company_id=company.id,
            project_id=project.id,
            employee_id=employee.id,
            combo_type="Комбо 25",
            price=Decimal("25"),
            status=OrderStatus.ACTIVE.value,
            order_date=local_today(project.timezone),
            employee=employee,
            project=project,
        )
        db_session.add(order)
        await db_session.commit()

        response = await client.post(
            "/api/v1/home/bulk-action",
            json={"orderIds": [order.id], "action": "pause"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.ORDER_CUTOFF_PASSED
        assert order.status == OrderStatus.ACTIVE.value


class TestSubscriptionComboChange:
    """Тесты смены комбо в подписке сотрудника с дашборда."""

    @pytest.mark.asyncio
    async def test_locked_orders_keep_combo(
        self, client, admin_headers, db_session, company, project, employee, week_orders
    ):
        project.cutoff_time = time(0, 0)
        today = local_today(project.timezone)
        locked = [
            Order(
                company_id=company.id,
                project_id=project.id,
                employee_id=employee.id,
                combo_type="Комбо 25",
                price=Decimal("25"),
                status=OrderStatus.ACTIVE.value,
                order_date=order_date,
                employee=employee,
                project=project,
            )
            for order_date in (today - timedelta(days=1), today)
        ]
        db_session.add_all(locked)
        await db_session.commit()

        response = await client.put(
            f"/api/v1/home/subscriptions/{employee.id}",
            json={"comboType": "Комбо 35"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert {order.combo_type for order in locked} == {"Комбо 25"}
        assert {order.combo_type for order in week_orders} == {"Комбо 35"}
        assert {order.price for order in week_orders} == {Decimal("35")}


class TestOrderList:
    """Тесты списка заказов, дашборда и экспорта."""

    @pytest.mark.asyncio
    async def test_list_orders(self, client, admin_headers, week_orders, employee):
        response = await client.get("/api/v1/home/orders", params={"pageSize": 2}, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 3
        assert data["totalPages"] == 2
        assert len(data["items"]) == 2
        assert data["items"][0]["employeeName"] == employee.full_name
        # сначала самые поздние даты
        assert data["items"][0]["date"] > data["items"][1]["date"]

    @pytest.mark.asyncio
    async def test_dashboard(self, client, admin_headers, week_orders, company):
        response = await client.get("/api/v1/home/dashboard", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["totalOrders"] == 3
        assert data["activeOrders"] == 3
        assert data["forecast"] == 75.0
        assert data["totalBudget"] == 10000.0
        assert data["isBudgetLow"] is False
        assert data["cutoffTime"] == "10:30"

    @pytest.mark.asyncio
    async def test_export_orders_csv(self, client, admin_headers, week_orders, employee):
        response = await client.get("/api/v1/home/orders/export", headers=admin_headers)

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/csv; charset=utf-8"
        assert response.headers["content-disposition"].startswith('attachment; filename="orders_')
        lines = response.content.decode("utf-8-sig").splitlines()
        assert lines[0].startswith("Дата;Тип;ФИО")
        assert len(lines) == 4
        assert employee.full_name in lines[1]
