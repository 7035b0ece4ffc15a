"""Budget service: project budget charges and refunds"""

from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode
from yalla_admin.models.company import Project
from yalla_admin.models.enums import TransactionType
from yalla_admin.models.finance import CompanyTransaction
from yalla_admin.services.business_config_service import business_config_service


class BudgetService:
    """
    Moves money on project budgets and records each movement

    A project budget may go below zero only within its overdraft limit, and
    only while the allow_overdraft business setting is on.
    """

    async def available(self, db: AsyncSession, project: Project) -> Decimal:
        """Amount that can still be charged to the project"""
        overdraft = project.overdraft_limit or Decimal("0")
        if not await business_config_service.get_bool(db, "allow_overdraft", True):
            overdraft = Decimal("0")
        return (project.budget or Decimal("0")) + overdraft

    async def ensure_can_charge(self, db: AsyncSession, project: Project, amount: Decimal) -> None:
        """
        Check that the project can pay the amount

        Raises:
            BusinessRuleException: BUDGET_INSUFFICIENT
        """
        available = await self.available(db, project)
        if available < amount:
            raise BusinessRuleException(
                ErrorCode.BUDGET_INSUFFICIENT,
                f"Недостаточно средств. Доступно: {available:.2f}, требуется: {amount:.2f}",
                details={"available": float(available), "required": float(amount)},
            )

    async def charge_project(
        self,
        db: AsyncSession,
        project: Project,
        amount: Decimal,
        transaction_type: TransactionType = TransactionType.LUNCH_DEDUCTION,
        description: str | None = None,
        daily_order_id: str | None = None,
        enforce: bool = True,
    ) -> CompanyTransaction:
        """
        Deduct an amount from the project budget

        The caller commits, so the charge and the change it pays for are
        stored together.

        Args:
            db: Database session
            project: Project to charge
            amount: Positive amount
            transaction_type: Transaction type to record
            description: Transaction description
            daily_order_id: Related order (if any)
            enforce: Reject the charge when budget and overdraft do not cover it

        Returns:
            Recorded transaction (negative amount)

        Raises:
            BusinessRuleException: If the budget and overdraft do not cover the amount
        """
        amount = Decimal(amount)
        if enforce:
            await self.ensure_can_charge(db, project, amount)

        project.budget = (project.budget or Decimal("0")) - amount
        transaction = CompanyTransaction(
            company_id=project.company_id,
            project_id=project.id,
            type=transaction_type.value,
            amount=-amount,
            balance_after=project.budget,
            daily_order_id=daily_order_id,
            description=description,
        )
        db.add(transaction)

        logger.info(
            f"Project budget charged: project={project.id}, amount={amount}, balance={project.budget}",
            extra={"project_id": project.id, "transaction_type": transaction_type.value},
        )
        return transaction

    async def refund_project(
        self,
        db: AsyncSession,
        project: Project,
        amount: Decimal,
        description: str | None = None,
        daily_order_id: str | None = None,
    ) -> CompanyTransaction:
        """Return an amount to the project budget and record a REFUND"""
        amount = Decimal(amount)
        project.budget = (project.budget or Decimal("0")) + amount
        transaction = CompanyTransaction(
            company_id=project.company_id,
            project_id=project.id,
            type=TransactionType.REFUND.value,
            amount=amount,
            balance_after=project.budget,
            daily_order_id=daily_order_id,
            description=description,
        )
        db.add(transaction)

        logger.info(f"Project budget refunded: project={project.id}, amount={amount}")
        return transaction


# Global instance
budget_service = BudgetService()
