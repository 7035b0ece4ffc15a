"""Employee budget service"""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode, NotFoundException
from yalla_admin.models.employee import Employee, EmployeeBudget
from yalla_admin.models.enums import BudgetPeriod
from yalla_admin.schemas.common import MessageResponse
from yalla_admin.schemas.employee import BatchBudgetUpdate, BudgetUpdate, EmployeeBudgetSchema
from yalla_admin.services.queries import get_company_employee


class EmployeeBudgetService:
    """Per-employee spending limits"""

    async def get_budget(self, db: AsyncSession, company_id: str, employee_id: str) -> EmployeeBudgetSchema:
        employee = await get_company_employee(db, company_id, employee_id)
        if employee.budget is None:
            return EmployeeBudgetSchema()
        return EmployeeBudgetSchema.model_validate(employee.budget)

    async def update_budget(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        data: BudgetUpdate,
    ) -> EmployeeBudgetSchema:
        """
        Update the budget of one employee, creating it if missing

        Raises:
            BusinessRuleException: BUDGET_NEGATIVE_NOT_ALLOWED
        """
        self._validate(data)
        employee = await get_company_employee(db, company_id, employee_id)
        budget = self._apply(employee, data)
        await db.commit()
        logger.info(f"Budget updated for employee {employee.id}: {budget.total_budget} {budget.period}")
        return EmployeeBudgetSchema.model_validate(budget)

    async def batch_update(self, db: AsyncSession, company_id: str, data: BatchBudgetUpdate) -> MessageResponse:
        """Apply the same budget change to several employees"""
        self._validate(data)
        result = await db.execute(
            select(Employee).where(
                Employee.id.in_(data.employee_ids),
                Employee.company_id == company_id,
                Employee.deleted_at.is_(None),
            )
        )
        employees = result.scalars().all()
        if not employees:
            raise NotFoundException(ErrorCode.EMP_NOT_FOUND)

        for employee in employees:
            self._apply(employee, data)
        await db.commit()

        logger.info(f"Batch budget update for {len(employees)} employees", extra={"company_id": company_id})
        return MessageResponse(message=f"Бюджет обновлен для {len(employees)} сотрудников")

    @staticmethod
    def _validate(data: BudgetUpdate) -> None:
        for value in (data.total_budget, data.daily_limit):
            if value is not None and value < 0:
                raise BusinessRuleException(ErrorCode.BUDGET_NEGATIVE_NOT_ALLOWED)

    @staticmethod
    def _apply(employee: Employee, data: BudgetUpdate) -> EmployeeBudget:
        budget = employee.budget
        if budget is None:
            budget = EmployeeBudget(
                total_budget=Decimal("0"),
                daily_limit=Decimal("0"),
                period=BudgetPeriod.MONTHLY.value,
                auto_renew=True,
            )
            employee.budget = budget

        if data.total_budget is not None:
            budget.total_budget = data.total_budget
        if data.daily_limit is not None:
            budget.daily_limit = data.daily_limit
        if data.period is not None:
            budget.period = BudgetPeriod.parse(data.period).value
        if data.auto_renew is not None:
            budget.auto_renew = data.auto_renew
        return budget


# Global instance
employee_budget_service = EmployeeBudgetService()
