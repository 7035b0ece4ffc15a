"""Invoice endpoints"""

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyAdmin, CompanyUser, DBSession
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.finance import InvoiceCreate, InvoicePayRequest, InvoiceResponse
from yalla_admin.services.invoice_service import invoice_service

router = APIRouter()


@router.get("", response_model=PagedResponse[InvoiceResponse])
async def list_invoices(
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    status: str | None = None,
):
    return await invoice_service.list_invoices(db, user.company_id, page, page_size, status)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str, user: CompanyUser, db: DBSession):
    return await invoice_service.get_invoice(db, user.company_id, invoice_id)


@router.post("", response_model=InvoiceResponse, status_code=201)
async def create_invoice(data: InvoiceCreate, user: CompanyAdmin, db: DBSession):
    return await invoice_service.create_invoice(db, user.company_id, data)


@router.post("/{invoice_id}/pay", response_model=InvoiceResponse)
async def pay_invoice(invoice_id: str, user: CompanyAdmin, db: DBSession, data: InvoicePayRequest | None = None):
    """Mark an invoice paid and deposit the amount to the budget"""
    return await invoice_service.pay_invoice(db, user.company_id, invoice_id, data)
