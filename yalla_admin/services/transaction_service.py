"""Company transactions and financial summary"""

from collections import defaultdict
from datetime import date, datetime, time, timezone
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.errors import ErrorCode, NotFoundException
from yalla_admin.models.company import Company, Project
from yalla_admin.models.enums import InvoiceStatus, OrderStatus, TransactionType
from yalla_admin.models.finance import CompanyTransaction, Invoice
from yalla_admin.models.order import Order
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.finance import BalanceResponse, FinancialSummary, PendingOperation, TransactionResponse
from yalla_admin.services.queries import get_company, get_company_project, paginate

ZERO = Decimal("0")
OPEN_INVOICE_STATUSES = (InvoiceStatus.UNPAID.value, InvoiceStatus.OVERDUE.value)


class TransactionService:
    """Read side of company money movements"""

    async def list_transactions(
        self,
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        page_size: int = 20,
        transaction_type: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
        project_id: str | None = None,
    ) -> PagedResponse[TransactionResponse]:
        query = select(CompanyTransaction).where(CompanyTransaction.company_id == company_id)
        if transaction_type:
            query = query.where(CompanyTransaction.type == transaction_type.upper())
        if project_id:
            query = query.where(CompanyTransaction.project_id == project_id)
        if date_from:
            start = datetime.combine(date_from, time.min, tzinfo=timezone.utc)
            query = query.where(CompanyTransaction.created_at >= start)
        if date_to:
            end = datetime.combine(date_to, time.max, tzinfo=timezone.utc)
            query = query.where(CompanyTransaction.created_at <= end)

        query = query.order_by(CompanyTransaction.created_at.desc())
        rows, total = await paginate(db, query, page, page_size)
        return PagedResponse.build(
            [TransactionResponse.model_validate(row) for row in rows],
            total,
            page,
            page_size,
        )

    async def get_transaction(self, db: AsyncSession, company_id: str, transaction_id: str) -> TransactionResponse:
        transaction = await db.scalar(
            select(CompanyTransaction).where(
                CompanyTransaction.id == transaction_id,
                CompanyTransaction.company_id == company_id,
            )
        )
        if transaction is None:
            raise NotFoundException(ErrorCode.TRANSACTION_NOT_FOUND)
        return TransactionResponse.model_validate(transaction)

    async def get_balance(self, db: AsyncSession, company_id: str, project_id: str | None = None) -> BalanceResponse:
        holder = await self._holder(db, company_id, project_id)
        return BalanceResponse(
            balance=holder.budget,
            overdraft_limit=holder.overdraft_limit,
            available=holder.budget + holder.overdraft_limit,
            currency_code=holder.currency_code,
        )

    async def get_financial_summary(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str | None = None,
    ) -> FinancialSummary:
        """
        Balance with the deductions and income that are still to come

        Pending deduction is the price of every active order not settled yet,
        pending income the amount of open invoices.
        """
        holder = await self._holder(db, company_id, project_id)
        orders = await self._pending_orders(db, company_id, project_id)
        invoices = await self._open_invoices(db, company_id, project_id)

        balance = holder.budget
        pending_deduction = sum((order.price for order in orders), ZERO)
        pending_income = sum((invoice.amount for invoice in invoices), ZERO)
        available = balance - pending_deduction

        warnings = []
        if available < 0:
            warnings.append(f"Недостаточно средств! После списания баланс будет {available:.0f} {holder.currency_code}")
        elif balance < pending_deduction:
            warnings.append("Баланс меньше суммы к списанию. Пополните счёт.")

        return FinancialSummary(
            balance=balance,
            overdraft_limit=holder.overdraft_limit,
            available=available,
            pending_deduction=pending_deduction,
            pending_income=pending_income,
            projected_balance=balance + pending_income - pending_deduction,
            is_low_balance=available < 0 or (pending_deduction > 0 and balance < pending_deduction),
            warnings=warnings,
            currency_code=holder.currency_code,
        )

    async def get_pending_operations(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str | None = None,
    ) -> list[PendingOperation]:
        """Upcoming lunch deductions grouped by day, then open invoices"""
        if project_id:
            await get_company_project(db, company_id, project_id)
        orders = await self._pending_orders(db, company_id, project_id)
        invoices = await self._open_invoices(db, company_id, project_id)

        by_date: dict[date, list[Order]] = defaultdict(list)
        for order in orders:
            by_date[order.order_date].append(order)

        operations = []
        for order_date in sorted(by_date):
            group = by_date[order_date]
            employees = sum(1 for order in group if not order.is_guest_order)
            guests = len(group) - employees
            parts = []
            if employees:
                parts.append(f"{employees} сотр.")
            if guests:
                parts.append(f"{guests} гост.")
            operations.append(
                PendingOperation(
                    id=group[0].id,
                    type=TransactionType.LUNCH_DEDUCTION.value,
                    amount=-sum((order.price for order in group), ZERO),
                    date=order_date.isoformat(),
                    description=", ".join(parts),
                    status="PENDING_DEDUCTION",
                )
            )

        for invoice in invoices:
            operations.append(
                PendingOperation(
                    id=invoice.id,
                    type=TransactionType.DEPOSIT.value,
                    amount=invoice.amount,
                    date=(invoice.due_date or invoice.created_at.date()).isoformat(),
                    description=f"Счёт {invoice.external_id or invoice.id}",
                    status=invoice.status,
                )
            )
        return operations

    @staticmethod
    async def _holder(db: AsyncSession, company_id: str, project_id: str | None) -> Company | Project:
        if project_id:
            return await get_company_project(db, company_id, project_id)
        return await get_company(db, company_id)

    @staticmethod
    async def _pending_orders(db: AsyncSession, company_id: str, project_id: str | None) -> list[Order]:
        query = select(Order).where(Order.company_id == company_id, Order.status == OrderStatus.ACTIVE.value)
        if project_id:
            query = query.where(Order.project_id == project_id)
        result = await db.execute(query.order_by(Order.order_date))
        return list(result.scalars().all())

    @staticmethod
    async def _open_invoices(db: AsyncSession, company_id: str, project_id: str | None) -> list[Invoice]:
        query = select(Invoice).where(Invoice.company_id == company_id, Invoice.status.in_(OPEN_INVOICE_STATUSES))
        if project_id:
            query = query.where(Invoice.project_id == project_id)
        result = await db.execute(query.order_by(Invoice.due_date))
        return list(result.scalars().all())


# Global instance
transaction_service = TransactionService()
