"""Company transaction and balance endpoints"""

from datetime import date

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyUser, DBSession, scoped_project_id
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.finance import BalanceResponse, FinancialSummary, PendingOperation, TransactionResponse
from yalla_admin.services.transaction_service import transaction_service

router = APIRouter()


@router.get("", response_model=PagedResponse[TransactionResponse])
async def list_transactions(
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    transaction_type: str | None = Query(None, alias="type"),
    date_from: date | None = Query(None, alias="startDate"),
    date_to: date | None = Query(None, alias="endDate"),
    project_id: str | None = Query(None, alias="projectId"),
):
    return await transaction_service.list_transactions(
        db,
        user.company_id,
        page=page,
        page_size=page_size,
        transaction_type=transaction_type,
        date_from=date_from,
        date_to=date_to,
        project_id=scoped_project_id(user, project_id),
    )


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    user: CompanyUser,
    db: DBSession,
    project_id: str | None = Query(None, alias="projectId"),
):
    return await transaction_service.get_balance(db, user.company_id, scoped_project_id(user, project_id))


@router.get("/summary", response_model=FinancialSummary)
async def get_financial_summary(
    user: CompanyUser,
    db: DBSession,
    project_id: str | None = Query(None, alias="projectId"),
):
    """Balance with pending deductions and unpaid invoices"""
    return await transaction_service.get_financial_summary(db, user.company_id, scoped_project_id(user, project_id))


@router.get("/pending", response_model=list[PendingOperation])
async def get_pending_operations(
    user: CompanyUser,
    db: DBSession,
    project_id: str | None = Query(None, alias="projectId"),
):
    return await transaction_service.get_pending_operations(db, user.company_id, scoped_project_id(user, project_id))


@router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: str, user: CompanyUser, db: DBSession):
    return await transaction_service.get_transaction(db, user.company_id, transaction_id)
