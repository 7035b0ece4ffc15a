"""Compensation service: daily meal allowances paid at partner restaurants"""

from collections import defaultdict
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode
from yalla_admin.models.company import Project
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import ServiceType, TransactionType
from yalla_admin.models.finance import CompensationTransaction, EmployeeCompensationBalance
from yalla_admin.schemas.finance import (
    CompensationBalance,
    CompensationDailySummary,
    CompensationDailySummaryItem,
    CompensationSettings,
    CompensationSettingsUpdate,
    CompensationTransactionCreate,
    CompensationTransactionResponse,
)
from yalla_admin.services.budget_service import budget_service
from yalla_admin.services.queries import get_company_employee, get_company_project
from yalla_admin.utils.dates import local_today

ZERO = Decimal("0")


class CompensationService:
    """
    Compensation projects pay part of each employee's meal

    The company covers up to the project's daily limit per employee. With
    rollover enabled, the unused allowance accumulated earlier is added on top.
    """

    async def get_settings(self, db: AsyncSession, company_id: str, project_id: str) -> CompensationSettings:
        project = await self._get_project(db, company_id, project_id)
        return self._settings(project)

    async def update_settings(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str,
        data: CompensationSettingsUpdate,
    ) -> CompensationSettings:
        project = await self._get_project(db, company_id, project_id)
        if data.daily_limit is not None:
            project.compensation_daily_limit = data.daily_limit
        if data.rollover is not None:
            project.compensation_rollover = data.rollover
        await db.commit()

        logger.info(
            f"Compensation settings updated for project {project.id}: "
            f"limit={project.compensation_daily_limit}, rollover={project.compensation_rollover}"
        )
        return self._settings(project)

    async def get_employee_balance(self, db: AsyncSession, company_id: str, employee_id: str) -> CompensationBalance:
        employee = await get_company_employee(db, company_id, employee_id)
        project = await self._employee_project(db, employee)
        today = local_today(project.timezone)

        used_today = await self._used_on(db, employee.id, today)
        accumulated = await self._accumulated(db, employee.id, project)
        daily_limit = project.compensation_daily_limit or ZERO
        remaining = max(ZERO, daily_limit - min(used_today, daily_limit)) + accumulated
        return CompensationBalance(
            employee_id=employee.id,
            project_id=project.id,
            daily_limit=project.compensation_daily_limit,
            used_today=used_today,
            remaining_today=remaining,
            accumulated_balance=accumulated,
            rollover=project.compensation_rollover,
        )

    async def process_transaction(
        self,
        db: AsyncSession,
        company_id: str,
        data: CompensationTransactionCreate,
    ) -> CompensationTransactionResponse:
        """
        Split a restaurant bill between the company and the employee

        Args:
            db: Database session
            company_id: Company of the caller
            data: Bill amount and employee

        Returns:
            Recorded compensation transaction

        Raises:
            BusinessRuleException: Project without compensation or insufficient project budget
        """
        employee = await get_company_employee(db, company_id, data.employee_id)
        project = await self._employee_project(db, employee)
        transaction_date = data.transaction_date or local_today(project.timezone)

        daily_limit = project.compensation_daily_limit or ZERO
        used_today = await self._used_on(db, employee.id, transaction_date)
        balance = await self._balance_row(db, employee.id, project.id) if project.compensation_rollover else None
        accumulated = balance.accumulated_balance if balance is not None else ZERO

        # Earlier over-limit spend today has already been taken off the rolled-over balance
        available = max(ZERO, daily_limit - min(used_today, daily_limit)) + accumulated
        company_pays = min(data.total_amount, available)
        employee_pays = data.total_amount - company_pays

        if company_pays > 0:
            await budget_service.charge_project(
                db,
                project,
                company_pays,
                TransactionType.CLIENT_APP_ORDER,
                description=f"Компенсация: {employee.full_name}",
            )

        # Anything above today's limit comes out of the rolled-over balance
        from_accumulated = max(ZERO, used_today + company_pays - daily_limit) - max(ZERO, used_today - daily_limit)
        if balance is not None and from_accumulated > 0:
            balance.accumulated_balance = max(ZERO, balance.accumulated_balance - from_accumulated)

        transaction = CompensationTransaction(
            project_id=project.id,
            employee_id=employee.id,
            total_amount=data.total_amount,
            company_paid_amount=company_pays,
            employee_paid_amount=employee_pays,
            restaurant_name=data.restaurant_name,
            description=data.description,
            transaction_date=transaction_date,
        )
        db.add(transaction)
        await db.commit()

        logger.info(
            f"Compensation processed for employee {employee.id}: total={data.total_amount}, "
            f"company={company_pays}, employee={employee_pays}",
            extra={"project_id": project.id},
        )
        return CompensationTransactionResponse.model_validate(transaction)

    async def get_employee_transactions(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[CompensationTransactionResponse]:
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)
        query = select(CompensationTransaction).where(CompensationTransaction.employee_id == employee.id)
        if date_from:
            query = query.where(CompensationTransaction.transaction_date >= date_from)
        if date_to:
            query = query.where(CompensationTransaction.transaction_date <= date_to)
        result = await db.execute(query.order_by(CompensationTransaction.created_at.desc()))
        return [CompensationTransactionResponse.model_validate(row) for row in result.scalars().all()]

    async def get_daily_summary(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str,
        on_date: date | None = None,
    ) -> CompensationDailySummary:
        """Per-employee totals of one project for one day"""
        project = await get_company_project(db, company_id, project_id)
        on_date = on_date or local_today(project.timezone)

        result = await db.execute(
            select(CompensationTransaction, Employee.full_name)
            .join(Employee, Employee.id == CompensationTransaction.employee_id)
            .where(
                CompensationTransaction.project_id == project.id,
                CompensationTransaction.transaction_date == on_date,
            )
        )
        grouped: dict[str, list] = defaultdict(list)
        names: dict[str, str] = {}
        for transaction, name in result.all():
            grouped[transaction.employee_id].append(transaction)
            names[transaction.employee_id] = name

        summary = CompensationDailySummary(project_id=project.id, date=on_date.isoformat())
        for employee_id, transactions in grouped.items():
            item = CompensationDailySummaryItem(
                employee_id=employee_id,
                employee_name=names[employee_id],
                transactions=len(transactions),
                total_amount=sum((t.total_amount for t in transactions), ZERO),
                company_paid=sum((t.company_paid_amount for t in transactions), ZERO),
                employee_paid=sum((t.employee_paid_amount for t in transactions), ZERO),
            )
            summary.employees.append(item)
            summary.total_amount += item.total_amount
            summary.company_paid += item.company_paid
            summary.employee_paid += item.employee_paid
        return summary

    @staticmethod
    def _settings(project: Project) -> CompensationSettings:
        return CompensationSettings(
            project_id=project.id,
            daily_limit=project.compensation_daily_limit,
            rollover=project.compensation_rollover,
            currency_code=project.currency_code,
        )

    @staticmethod
    async def _get_project(db: AsyncSession, company_id: str, project_id: str) -> Project:
        project = await get_company_project(db, company_id, project_id)
        if ServiceType.COMPENSATION.value not in (project.service_types or []):
            raise BusinessRuleException(
                ErrorCode.PROJ_SERVICE_NOT_ENABLED,
                "Компенсация не подключена для этого проекта",
            )
        return project

    async def _employee_project(self, db: AsyncSession, employee: Employee) -> Project:
        if not employee.project_id:
            raise BusinessRuleException(ErrorCode.EMP_NO_PROJECT, "Сотрудник не привязан к проекту компенсации")
        return await self._get_project(db, employee.company_id, employee.project_id)

    @staticmethod
    async def _used_on(db: AsyncSession, employee_id: str, on_date: date) -> Decimal:
        used = await db.scalar(
            select(func.coalesce(func.sum(CompensationTransaction.company_paid_amount), 0)).where(
                CompensationTransaction.employee_id == employee_id,
                CompensationTransaction.transaction_date == on_date,
            )
        )
        return Decimal(str(used or 0))

    async def _accumulated(self, db: AsyncSession, employee_id: str, project: Project) -> Decimal:
        if not project.compensation_rollover:
            return ZERO
        balance = await self._balance_row(db, employee_id, project.id)
        return balance.accumulated_balance if balance is not None else ZERO

    @staticmethod
    async def _balance_row(db: AsyncSession, employee_id: str, project_id: str) -> EmployeeCompensationBalance | None:
        return await db.scalar(
            select(EmployeeCompensationBalance).where(
                EmployeeCompensationBalance.employee_id == employee_id,
                EmployeeCompensationBalance.project_id == project_id,
            )
        )


# Global instance
compensation_service = CompensationService()
