"""
Тесты подписок проекта на питание и назначений сотрудникам.
"""

from datetime import time, timedelta
from decimal import Decimal

import pytest
import pytest_asyncio

from yalla_admin.core.errors import ErrorCode
from yalla_admin.models.enums import AssignmentStatus, SubscriptionStatus
from yalla_admin.models.subscription import CompanySubscription, EmployeeFreezeHistory, EmployeeMealAssignment
from yalla_admin.utils.dates import iso_week, local_today


def meal_payload(project, employee, start, days: int) -> dict:
    return {
        "projectId": project.id,
        "startDate": start.isoformat(),
        "endDate": (start + timedelta(days=days - 1)).isoformat(),
        "employees": [{"employeeId": employee.id, "comboType": "Комбо 25"}],
    }


async def create_meal_subscription(client, headers, project, employee, start, days: int = 7) -> dict:
    response = await client.post(
        "/api/v1/meal-subscriptions",
        json=meal_payload(project, employee, start, days),
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


class TestCreateMealSubscription:
    """Тесты создания подписки проекта."""

    @pytest.mark.asyncio
    async def test_create_schedules_working_days(self, client, admin_headers, project, employee, week_start):
        data = await create_meal_subscription(client, admin_headers, project, employee, week_start)

        assert data["status"] == SubscriptionStatus.ACTIVE.value
        assert data["totalDays"] == 7
        assert data["totalAmount"] == 125.0
        assert data["employeesCount"] == 1
        assert data["assignmentsCount"] == 5

        assignments = await client.get(f"/api/v1/meal-subscriptions/{data['id']}/assignments", headers=admin_headers)
        items = assignments.json()
        assert len(items) == 5
        assert items[0]["assignmentDate"] == week_start.isoformat()
        assert items[0]["employeeName"] == employee.full_name
        assert {item["status"] for item in items} == {AssignmentStatus.SCHEDULED.value}

    @pytest.mark.asyncio
    async def test_minimum_period(self, client, admin_headers, project, employee, week_start):
        response = await client.post(
            "/api/v1/meal-subscriptions",
            json=meal_payload(project, employee, week_start, 3),
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.SUB_MIN_DAYS_REQUIRED

    @pytest.mark.asyncio
    async def test_price_preview(self, client, admin_headers, project, employee, week_start):
        response = await client.post(
            "/api/v1/meal-subscriptions/price-preview",
            json=meal_payload(project, employee, week_start, 14),
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["assignments"] == 10
        assert data["totalAmount"] == 250.0


class TestAssignmentFreeze:
    """Тесты заморозки назначений."""

    @pytest.mark.asyncio
    async def test_freeze_moves_meal_after_end(self, client, admin_headers, project, employee, week_start):
        subscription = await create_meal_subscription(client, admin_headers, project, employee, week_start)
        assignments = await client.get(
            f"/api/v1/meal-subscriptions/{subscription['id']}/assignments",
            headers=admin_headers,
        )
        first = assignments.json()[0]

        response = await client.post(
            f"/api/v1/meal-subscriptions/assignments/{first['id']}/freeze",
            json={"reason": "Больничный"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == AssignmentStatus.FROZEN.value
        # подписка заканчивается в воскресенье, обед переносится на понедельник
        assert data["replacementDate"] == (week_start + timedelta(days=7)).isoformat()

        updated = await client.get(f"/api/v1/meal-subscriptions/{subscription['id']}", headers=admin_headers)
        assert updated.json()["endDate"] == data["replacementDate"]

        info = await client.get(
            f"/api/v1/meal-subscriptions/employees/{employee.id}/freeze-info?date={week_start.isoformat()}",
            headers=admin_headers,
        )
        assert info.json()["freezesUsed"] == 1
        assert info.json()["remaining"] == 1

    @pytest.mark.asyncio
    async def test_weekly_limit(self, client, admin_headers, project, employee, week_start):
        subscription = await create_meal_subscription(client, admin_headers, project, employee, week_start)
        assignments = await client.get(
            f"/api/v1/meal-subscriptions/{subscription['id']}/assignments",
            headers=admin_headers,
        )
        items = assignments.json()

        for item in items[:2]:
            response = await client.post(
                f"/api/v1/meal-subscriptions/assignments/{item['id']}/freeze",
                headers=admin_headers,
            )
            assert response.status_code == 200

        third = await client.post(
            f"/api/v1/meal-subscriptions/assignments/{items[2]['id']}/freeze",
            headers=admin_headers,
        )

        assert third.status_code == 400
        error = third.json()["error"]
        assert error["code"] == ErrorCode.FREEZE_LIMIT_EXCEEDED
        assert error["details"] == {"freezesThisWeek": 2, "maxFreezesPerWeek": 2}

    @pytest.mark.asyncio
    async def test_unfreeze_restores_assignment(self, client, admin_headers, project, employee, week_start):
        subscription = await create_meal_subscription(client, admin_headers, project, employee, week_start)
        assignments = await client.get(
            f"/api/v1/meal-subscriptions/{subscription['id']}/assignments",
            headers=admin_headers,
        )
        assignment_id = assignments.json()[0]["id"]
        await client.post(f"/api/v1/meal-subscriptions/assignments/{assignment_id}/freeze", headers=admin_headers)

        response = await client.post(
            f"/api/v1/meal-subscriptions/assignments/{assignment_id}/unfreeze",
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["status"] == AssignmentStatus.SCHEDULED.value
        assert response.json()["replacementDate"] is None

        again = await client.post(
            f"/api/v1/meal-subscriptions/assignments/{assignment_id}/unfreeze",
            headers=admin_headers,
        )
        assert again.json()["error"]["code"] == ErrorCode.FREEZE_NOT_FROZEN


class TestMealSubscriptionLifecycle:
    """Тесты паузы и возобновления подписки проекта."""

    @pytest.mark.asyncio
    async def test_pause_extends_and_resume_restores(self, client, admin_headers, project, employee, week_start):
        subscription = await create_meal_subscription(client, admin_headers, project, employee, week_start)
        original_end = subscription["endDate"]

        paused = await client.post(f"/api/v1/meal-subscriptions/{subscription['id']}/pause", headers=admin_headers)
        assert paused.status_code == 200
        assert paused.json()["status"] == SubscriptionStatus.PAUSED.value
        assert paused.json()["endDate"] == (week_start + timedelta(days=11)).isoformat()

        resumed = await client.post(f"/api/v1/meal-subscriptions/{subscription['id']}/resume", headers=admin_headers)
        assert resumed.status_code == 200
        assert resumed.json()["status"] == SubscriptionStatus.ACTIVE.value
        assert resumed.json()["endDate"] == original_end

        assignments = await client.get(
            f"/api/v1/meal-subscriptions/{subscription['id']}/assignments",
            headers=admin_headers,
        )
        assert {item["status"] for item in assignments.json()} == {AssignmentStatus.SCHEDULED.value}

    @pytest.mark.asyncio
    async def test_resume_active_rejected(self, client, admin_headers, project, employee, week_start):
        subscription = await create_meal_subscription(client, admin_headers, project, employee, week_start)

        response = await client.post(f"/api/v1/meal-subscriptions/{subscription['id']}/resume", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.SUB_INVALID_STATUS


@pytest_asyncio.fixture
async def locked_assignments(db_session, project, employee):
    """Обеды на вчера и на сегодня в проекте, где время отсечки уже прошло."""
    today = local_today(project.timezone)
    project.cutoff_time = time(0, 0)
    subscription = CompanySubscription(
        project_id=project.id,
        start_date=today - timedelta(days=1),
        end_date=today + timedelta(days=6),
        total_days=8,
        total_amount=Decimal("200"),
    )
    db_session.add(subscription)
    await db_session.flush()

    def make(on_date, status=AssignmentStatus.SCHEDULED.value):
        return EmployeeMealAssignment(
            subscription_id=subscription.id,
            employee_id=employee.id,
            project_id=project.id,
            assignment_date=on_date,
            combo_type="Комбо 25",
            price=Decimal("25"),
            status=status,
        )

    yesterday = make(today - timedelta(days=1))
    frozen = make(today - timedelta(days=1), AssignmentStatus.FROZEN.value)
    current = make(today)
    db_session.add_all([yesterday, frozen, current])
    await db_session.commit()
    return {"yesterday": yesterday, "frozen": frozen, "today": current}


class TestAssignmentCutoff:
    """Тесты запрета изменений прошедших обедов и обедов после отсечки."""

    @pytest.mark.asyncio
    async def test_freeze_today_after_cutoff(self, client, admin_headers, locked_assignments):
        assignment = locked_assignments["today"]

        response = await client.post(
            f"/api/v1/meal-subscriptions/assignments/{assignment.id}/freeze",
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.ORDER_CUTOFF_PASSED

    @pytest.mark.asyncio
    async def test_change_combo_today_after_cutoff(self, client, admin_headers, locked_assignments):
        assignment = locked_assignments["today"]

        response = await client.put(
            f"/api/v1/meal-subscriptions/assignments/{assignment.id}",
            json={"comboType": "Комбо 35"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.ORDER_CUTOFF_PASSED
        assert assignment.combo_type == "Комбо 25"

    @pytest.mark.asyncio
    async def test_past_assignment_is_read_only(self, client, admin_headers, locked_assignments):
        past = locked_assignments["yesterday"]

        updated = await client.put(
            f"/api/v1/meal-subscriptions/assignments/{past.id}",
            json={"comboType": "Комбо 35"},
            headers=admin_headers,
        )
        cancelled = await client.post(f"/api/v1/meal-subscriptions/assignments/{past.id}/cancel", headers=admin_headers)

        assert updated.json()["error"]["code"] == ErrorCode.ORDER_PAST_DATE
        assert cancelled.json()["error"]["code"] == ErrorCode.ORDER_PAST_DATE
        assert past.status == AssignmentStatus.SCHEDULED.value

    @pytest.mark.asyncio
    async def test_unfreeze_past_assignment(self, client, admin_headers, locked_assignments):
        frozen = locked_assignments["frozen"]

        response = await client.post(
            f"/api/v1/meal-subscriptions/assignments/{frozen.id}/unfreeze",
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.ORDER_PAST_DATE
        assert frozen.status == AssignmentStatus.FROZEN.value


class TestFreezeLimitScope:
    """Заморозки обедов по подписке на питание и заказов считаются раздельно."""

    @pytest.mark.asyncio
    async def test_lunch_order_freezes_not_counted(self, client, admin_headers, db_session, employee, week_start):
        week_year, week_number = iso_week(week_start)
        db_session.add(
            EmployeeFreezeHistory(
                employee_id=employee.id,
                order_id="lunch-order",
                original_date=week_start,
                week_year=week_year,
                week_number=week_number,
            )
        )
        await db_session.commit()

        info = await client.get(
            f"/api/v1/meal-subscriptions/employees/{employee.id}/freeze-info?date={week_start.isoformat()}",
            headers=admin_headers,
        )

        assert info.json()["freezesUsed"] == 0
        assert info.json()["remaining"] == 2
