"""Meal compensation endpoints"""

from datetime import date

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyAdmin, CompanyUser, DBSession, ensure_project_access
from yalla_admin.schemas.finance import (
    CompensationBalance,
    CompensationDailySummary,
    CompensationSettings,
    CompensationSettingsUpdate,
    CompensationTransactionCreate,
    CompensationTransactionResponse,
)
from yalla_admin.services.compensation_service import compensation_service

router = APIRouter()


@router.get("/projects/{project_id}/settings", response_model=CompensationSettings)
async def get_settings(project_id: str, user: CompanyUser, db: DBSession):
    ensure_project_access(user, project_id)
    return await compensation_service.get_settings(db, user.company_id, project_id)


@router.put("/projects/{project_id}/settings", response_model=CompensationSettings)
async def update_settings(project_id: str, data: CompensationSettingsUpdate, user: CompanyAdmin, db: DBSession):
    return await compensation_service.update_settings(db, user.company_id, project_id, data)


@router.get("/employees/{employee_id}/balance", response_model=CompensationBalance)
async def get_employee_balance(employee_id: str, user: CompanyUser, db: DBSession):
    return await compensation_service.get_employee_balance(db, user.company_id, employee_id)


@router.post("/transactions", response_model=CompensationTransactionResponse, status_code=201)
async def process_transaction(data: CompensationTransactionCreate, user: CompanyUser, db: DBSession):
    """Split a restaurant bill between the company and the employee"""
    return await compensation_service.process_transaction(db, user.company_id, data)


@router.get("/employees/{employee_id}/transactions", response_model=list[CompensationTransactionResponse])
async def get_employee_transactions(
    employee_id: str,
    user: CompanyUser,
    db: DBSession,
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
):
    return await compensation_service.get_employee_transactions(
        db,
        user.company_id,
        employee_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/projects/{project_id}/daily-summary", response_model=CompensationDailySummary)
async def get_daily_summary(
    project_id: str,
    user: CompanyUser,
    db: DBSession,
    on_date: date | None = Query(None, alias="date"),
):
    ensure_project_access(user, project_id)
    return await compensation_service.get_daily_summary(db, user.company_id, project_id, on_date)
