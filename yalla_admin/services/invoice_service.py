"""Invoice service: company top-ups"""

from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ConflictException, ErrorCode, NotFoundException
from yalla_admin.models.enums import InvoiceStatus, TransactionType
from yalla_admin.models.finance import CompanyTransaction, Invoice
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.finance import InvoiceCreate, InvoicePayRequest, InvoiceResponse
from yalla_admin.services.queries import get_company, get_company_project, paginate


class InvoiceService:
    async def list_invoices(
        self,
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        page_size: int = 20,
        status: str | None = None,
    ) -> PagedResponse[InvoiceResponse]:
        query = select(Invoice).where(Invoice.company_id == company_id)
        if status:
            query = query.where(Invoice.status == status.upper())
        rows, total = await paginate(db, query.order_by(Invoice.created_at.desc()), page, page_size)
        return PagedResponse.build([InvoiceResponse.model_validate(row) for row in rows], total, page, page_size)

    async def get_invoice(self, db: AsyncSession, company_id: str, invoice_id: str) -> InvoiceResponse:
        return InvoiceResponse.model_validate(await self._get(db, company_id, invoice_id))

    async def create_invoice(self, db: AsyncSession, company_id: str, data: InvoiceCreate) -> InvoiceResponse:
        """
        Issue an unpaid invoice

        Raises:
            ConflictException: INVOICE_DUPLICATE if the external id is taken
        """
        if data.project_id:
            await get_company_project(db, company_id, data.project_id)
        if data.external_id:
            existing = await db.scalar(select(Invoice.id).where(Invoice.external_id == data.external_id))
            if existing is not None:
                raise ConflictException(ErrorCode.INVOICE_DUPLICATE)

        invoice = Invoice(
            company_id=company_id,
            project_id=data.project_id,
            external_id=data.external_id,
            amount=data.amount,
            currency_code=data.currency_code,
            status=InvoiceStatus.UNPAID.value,
            due_date=data.due_date,
        )
        db.add(invoice)
        await db.commit()

        logger.info(f"Invoice created: {invoice.id} amount={invoice.amount}", extra={"company_id": company_id})
        return InvoiceResponse.model_validate(invoice)

    async def pay_invoice(
        self,
        db: AsyncSession,
        company_id: str,
        invoice_id: str,
        data: InvoicePayRequest | None = None,
    ) -> InvoiceResponse:
        """
        Mark an invoice paid and deposit the money

        The deposit goes to the invoice's project budget, or to the company
        budget when the invoice has no project.

        Raises:
            NotFoundException: INVOICE_NOT_FOUND
            BusinessRuleException: INVOICE_ALREADY_PAID, INVOICE_CANCELLED
        """
        invoice = await self._get(db, company_id, invoice_id)
        if invoice.status == InvoiceStatus.PAID.value:
            raise BusinessRuleException(ErrorCode.INVOICE_ALREADY_PAID)
        if invoice.status == InvoiceStatus.CANCELLED.value:
            raise BusinessRuleException(ErrorCode.INVOICE_CANCELLED)

        amount = data.amount if data is not None and data.amount is not None else invoice.amount
        if invoice.project_id:
            holder = await get_company_project(db, company_id, invoice.project_id)
        else:
            holder = await get_company(db, company_id)
        holder.budget += amount

        invoice.status = InvoiceStatus.PAID.value
        invoice.paid_at = datetime.now(timezone.utc)
        db.add(
            CompanyTransaction(
                company_id=company_id,
                project_id=invoice.project_id,
                type=TransactionType.DEPOSIT.value,
                amount=amount,
                balance_after=holder.budget,
                invoice_id=invoice.id,
                description=f"Счёт #{invoice.external_id}" if invoice.external_id else "Пополнение",
            )
        )
        await db.commit()

        logger.info(f"Invoice paid: {invoice.id} amount={amount}", extra={"company_id": company_id})
        return InvoiceResponse.model_validate(invoice)

    @staticmethod
    async def _get(db: AsyncSession, company_id: str, invoice_id: str) -> Invoice:
        invoice = await db.scalar(select(Invoice).where(Invoice.id == invoice_id, Invoice.company_id == company_id))
        if invoice is None:
            raise NotFoundException(ErrorCode.INVOICE_NOT_FOUND)
        return invoice


# Global instance
invoice_service = InvoiceService()
