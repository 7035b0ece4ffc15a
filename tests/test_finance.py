"""
Тесты финансов: счета, компенсация, ежедневное списание за обеды.
"""

from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from yalla_admin.core.errors import BusinessRuleException, ErrorCode
from yalla_admin.models.enums import OrderStatus, ServiceType, TransactionType
from yalla_admin.models.finance import CompanyTransaction, EmployeeCompensationBalance
from yalla_admin.models.order import Order
from yalla_admin.services.budget_service import budget_service
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.settlement_service import SettlementRunner, settlement_service
from yalla_admin.utils.dates import local_today


def make_order(company, project, employee, order_date, price="25") -> Order:
    return Order(
        company_id=company.id,
        project_id=project.id,
        employee_id=employee.id,
        combo_type="Комбо 25",
        price=Decimal(price),
        status=OrderStatus.ACTIVE.value,
        order_date=order_date,
    )


class TestInvoices:
    """Тесты выставления и оплаты счетов."""

    @pytest.mark.asyncio
    async def test_pay_invoice_deposits_to_project(self, client, admin_headers, project, db_session):
        created = await client.post(
            "/api/v1/invoices",
            json={"amount": 1000, "externalId": "INV-1", "projectId": project.id},
            headers=admin_headers,
        )
        assert created.status_code == 201
        assert created.json()["status"] == "UNPAID"

        paid = await client.post(f"/api/v1/invoices/{created.json()['id']}/pay", headers=admin_headers)

        assert paid.status_code == 200
        assert paid.json()["status"] == "PAID"
        assert paid.json()["paidAt"] is not None
        await db_session.refresh(project)
        assert project.budget == Decimal("6000")

        deposits = (
            await db_session.execute(
                select(CompanyTransaction).where(CompanyTransaction.type == TransactionType.DEPOSIT.value)
            )
        ).scalars().all()
        assert len(deposits) == 1
        assert deposits[0].amount == Decimal("1000")
        assert deposits[0].balance_after == Decimal("6000")

    @pytest.mark.asyncio
    async def test_pay_without_project_goes_to_company(self, client, admin_headers, company, db_session):
        created = await client.post("/api/v1/invoices", json={"amount": 250}, headers=admin_headers)

        await client.post(f"/api/v1/invoices/{created.json()['id']}/pay", headers=admin_headers)

        await db_session.refresh(company)
        assert company.budget == Decimal("10250")

    @pytest.mark.asyncio
    async def test_pay_twice_rejected(self, client, admin_headers):
        created = await client.post("/api/v1/invoices", json={"amount": 100}, headers=admin_headers)
        invoice_id = created.json()["id"]
        await client.post(f"/api/v1/invoices/{invoice_id}/pay", headers=admin_headers)

        response = await client.post(f"/api/v1/invoices/{invoice_id}/pay", headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.INVOICE_ALREADY_PAID

    @pytest.mark.asyncio
    async def test_duplicate_external_id(self, client, admin_headers):
        payload = {"amount": 100, "externalId": "INV-7"}
        await client.post("/api/v1/invoices", json=payload, headers=admin_headers)

        response = await client.post("/api/v1/invoices", json=payload, headers=admin_headers)

        assert response.status_code == 409
        assert response.json()["error"]["code"] == ErrorCode.INVOICE_DUPLICATE

    @pytest.mark.asyncio
    async def test_non_positive_amount(self, client, admin_headers):
        response = await client.post("/api/v1/invoices", json={"amount": 0}, headers=admin_headers)

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.VALIDATION_ERROR


class TestBalance:
    """Тесты баланса и истории транзакций."""

    @pytest.mark.asyncio
    async def test_company_balance(self, client, admin_headers):
        response = await client.get("/api/v1/transactions/balance", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["balance"] == 10000.0
        assert data["available"] == 10000.0

    @pytest.mark.asyncio
    async def test_project_balance_and_history(self, client, admin_headers, project):
        created = await client.post(
            "/api/v1/invoices",
            json={"amount": 300, "projectId": project.id},
            headers=admin_headers,
        )
        await client.post(f"/api/v1/invoices/{created.json()['id']}/pay", headers=admin_headers)

        balance = await client.get(f"/api/v1/transactions/balance?projectId={project.id}", headers=admin_headers)
        assert balance.json()["balance"] == 5300.0

        history = await client.get(f"/api/v1/transactions?projectId={project.id}", headers=admin_headers)
        assert history.status_code == 200
        items = history.json()["items"]
        assert len(items) == 1
        assert items[0]["type"] == TransactionType.DEPOSIT.value
        assert items[0]["amount"] == 300.0


class TestBudget:
    """Тесты списания с бюджета проекта с учётом овердрафта."""

    @pytest.mark.asyncio
    async def test_charge_within_overdraft(self, db_session, project):
        project.overdraft_limit = Decimal("1000")
        await db_session.commit()

        assert await budget_service.available(db_session, project) == Decimal("6000")
        transaction = await budget_service.charge_project(db_session, project, Decimal("5500"))

        assert project.budget == Decimal("-500")
        assert transaction.balance_after == Decimal("-500")

    @pytest.mark.asyncio
    async def test_charge_beyond_overdraft_rejected(self, db_session, project):
        project.overdraft_limit = Decimal("1000")
        await db_session.commit()

        with pytest.raises(BusinessRuleException) as exc_info:
            await budget_service.charge_project(db_session, project, Decimal("6001"))

        assert exc_info.value.code == ErrorCode.BUDGET_INSUFFICIENT
        assert project.budget == Decimal("5000")

    @pytest.mark.asyncio
    async def test_overdraft_disabled_by_config(self, db_session, project):
        project.overdraft_limit = Decimal("1000")
        await db_session.commit()
        await business_config_service.set(db_session, "allow_overdraft", False)

        assert await budget_service.available(db_session, project) == Decimal("5000")
        with pytest.raises(BusinessRuleException) as exc_info:
            await budget_service.charge_project(db_session, project, Decimal("5500"))

        assert exc_info.value.code == ErrorCode.BUDGET_INSUFFICIENT


class TestCompensation:
    """Тесты разделения чека между компанией и сотрудником."""

    @pytest.fixture
    def compensation_project(self, project, employee):
        project.service_types = [ServiceType.COMPENSATION.value]
        project.compensation_daily_limit = Decimal("50")
        employee.service_type = ServiceType.COMPENSATION.value
        return project

    @pytest.mark.asyncio
    async def test_company_pays_up_to_daily_limit(
        self, client, admin_headers, compensation_project, employee, db_session
    ):
        await db_session.commit()

        first = await client.post(
            "/api/v1/compensation/transactions",
            json={"employeeId": employee.id, "totalAmount": 80, "restaurantName": "Чайхона"},
            headers=admin_headers,
        )

        assert first.status_code == 201
        assert first.json()["companyPaidAmount"] == 50.0
        assert first.json()["employeePaidAmount"] == 30.0
        await db_session.refresh(compensation_project)
        assert compensation_project.budget == Decimal("4950")

        # лимит на сегодня исчерпан
        second = await client.post(
            "/api/v1/compensation/transactions",
            json={"employeeId": employee.id, "totalAmount": 20},
            headers=admin_headers,
        )
        assert second.json()["companyPaidAmount"] == 0.0
        assert second.json()["employeePaidAmount"] == 20.0

        balance = await client.get(f"/api/v1/compensation/employees/{employee.id}/balance", headers=admin_headers)
        assert balance.json()["usedToday"] == 50.0
        assert balance.json()["remainingToday"] == 0.0

    @pytest.mark.asyncio
    async def test_company_share_recorded_as_transaction(
        self, client, admin_headers, compensation_project, employee, db_session
    ):
        await db_session.commit()

        await client.post(
            "/api/v1/compensation/transactions",
            json={"employeeId": employee.id, "totalAmount": 40},
            headers=admin_headers,
        )

        charges = (
            await db_session.execute(
                select(CompanyTransaction).where(CompanyTransaction.type == TransactionType.CLIENT_APP_ORDER.value)
            )
        ).scalars().all()
        assert len(charges) == 1
        assert charges[0].amount == Decimal("-40")

    @pytest.mark.asyncio
    async def test_rollover_covers_second_bill(
        self, client, admin_headers, compensation_project, employee, db_session
    ):
        compensation_project.compensation_daily_limit = Decimal("100")
        compensation_project.compensation_rollover = True
        db_session.add(
            EmployeeCompensationBalance(
                employee_id=employee.id,
                project_id=compensation_project.id,
                accumulated_balance=Decimal("50"),
            )
        )
        await db_session.commit()

        first = await client.post(
            "/api/v1/compensation/transactions",
            json={"employeeId": employee.id, "totalAmount": 120},
            headers=admin_headers,
        )
        assert first.json()["companyPaidAmount"] == 120.0

        # от накопленного остатка осталось 30
        second = await client.post(
            "/api/v1/compensation/transactions",
            json={"employeeId": employee.id, "totalAmount": 100},
            headers=admin_headers,
        )
        assert second.json()["companyPaidAmount"] == 30.0
        assert second.json()["employeePaidAmount"] == 70.0

        balance = await client.get(f"/api/v1/compensation/employees/{employee.id}/balance", headers=admin_headers)
        assert balance.json()["remainingToday"] == 0.0
        assert balance.json()["accumulatedBalance"] == 0.0

    @pytest.mark.asyncio
    async def test_requires_compensation_service(self, client, admin_headers, employee):
        response = await client.post(
            "/api/v1/compensation/transactions",
            json={"employeeId": employee.id, "totalAmount": 30},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == ErrorCode.PROJ_SERVICE_NOT_ENABLED


class TestSettlement:
    """Тесты ежедневного списания за обеды."""

    @pytest.mark.asyncio
    async def test_past_orders_completed_and_charged(self, db_session, company, project, employee, week_start):
        yesterday = local_today(project.timezone) - timedelta(days=1)
        past = [make_order(company, project, employee, yesterday - timedelta(days=offset)) for offset in range(2)]
        future = make_order(company, project, employee, week_start)
        db_session.add_all([*past, future])
        project.budget = Decimal("10")
        await db_session.commit()

        result = await settlement_service.settle_project(db_session, project)

        assert result.orders == 2
        assert result.amount == Decimal("50")
        # обеды уже выданы, поэтому бюджет может уйти в минус
        assert project.budget == Decimal("-40")
        assert {order.status for order in past} == {OrderStatus.COMPLETED.value}
        assert future.status == OrderStatus.ACTIVE.value

        deductions = (
            await db_session.execute(
                select(CompanyTransaction).where(CompanyTransaction.type == TransactionType.LUNCH_DEDUCTION.value)
            )
        ).scalars().all()
        assert len(deductions) == 1
        assert deductions[0].amount == Decimal("-50")

    @pytest.mark.asyncio
    async def test_nothing_to_settle(self, db_session, project):
        result = await settlement_service.settle_project(db_session, project)

        assert result.orders == 0
        assert result.amount == Decimal("0")

    @pytest.mark.asyncio
    async def test_runner_settles_all_projects(self, db_engine, db_session, company, project, employee):
        order = make_order(company, project, employee, local_today(project.timezone) - timedelta(days=3))
        db_session.add(order)
        await db_session.commit()

        runner = SettlementRunner(async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False))
        settled = await runner.run_once()

        assert len(settled) == 1
        assert settled[0].project_id == project.id
        await db_session.refresh(order)
        assert order.status == OrderStatus.COMPLETED.value
        assert not runner.is_running()
