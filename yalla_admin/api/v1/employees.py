"""Employee endpoints"""

from datetime import date
from decimal import Decimal

from fastapi import APIRouter, Query

from yalla_admin.api.responses import csv_response
from yalla_admin.core.dependencies import CompanyAdmin, CompanyUser, DBSession, scoped_project_id
from yalla_admin.schemas.common import MessageResponse, PagedResponse
from yalla_admin.schemas.employee import (
    BatchBudgetUpdate,
    BudgetUpdate,
    EmployeeBudgetSchema,
    EmployeeCreate,
    EmployeeOrderItem,
    EmployeeResponse,
    EmployeeUpdate,
)
from yalla_admin.services.employee_budget_service import employee_budget_service
from yalla_admin.services.employee_service import employee_service
from yalla_admin.services.export_service import export_service

router = APIRouter()


@router.get("", response_model=PagedResponse[EmployeeResponse])
async def list_employees(
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    search: str | None = None,
    status: str | None = None,
    invite_status: str | None = Query(None, alias="inviteStatus"),
    order_status: str | None = Query(None, alias="orderStatus"),
    min_budget: Decimal | None = Query(None, alias="minBudget"),
    max_budget: Decimal | None = Query(None, alias="maxBudget"),
    has_subscription: bool | None = Query(None, alias="hasSubscription"),
    project_id: str | None = Query(None, alias="projectId"),
    service_type: str | None = Query(None, alias="serviceType"),
    sort_by: str | None = Query(None, alias="sortBy"),
    sort_desc: bool = Query(True, alias="sortDesc"),
):
    """
    List employees with filters, sorting and pagination

    Users of a non-headquarters project only see employees of their project.
    """
    return await employee_service.list_employees(
        db,
        user.company_id,
        page=page,
        page_size=page_size,
        search=search,
        status=status,
        invite_status=invite_status,
        order_status=order_status,
        min_budget=min_budget,
        max_budget=max_budget,
        has_subscription=has_subscription,
        project_id=scoped_project_id(user, project_id),
        service_type=service_type,
        sort_by=sort_by,
        sort_desc=sort_desc,
    )


@router.get("/invite-statuses", response_model=list[str])
async def get_invite_statuses(user: CompanyUser):
    return employee_service.get_invite_statuses()


@router.get("/export")
async def export_employees(user: CompanyUser, db: DBSession):
    """Employees as a CSV file (semicolon separated, UTF-8 with BOM)"""
    content = await export_service.export_employees(db, user.company_id)
    return csv_response(content, "employees")


@router.put("/budget/batch", response_model=MessageResponse)
async def batch_update_budget(data: BatchBudgetUpdate, user: CompanyAdmin, db: DBSession):
    return await employee_budget_service.batch_update(db, user.company_id, data)


@router.get("/{employee_id}", response_model=EmployeeResponse)
async def get_employee(employee_id: str, user: CompanyUser, db: DBSession):
    return await employee_service.get_employee(db, user.company_id, employee_id)


@router.post("", response_model=EmployeeResponse, status_code=201)
async def create_employee(data: EmployeeCreate, user: CompanyUser, db: DBSession):
    if data.project_id is None:
        data.project_id = scoped_project_id(user)
    return await employee_service.create_employee(db, user.company_id, data)


@router.put("/{employee_id}", response_model=EmployeeResponse)
async def update_employee(employee_id: str, data: EmployeeUpdate, user: CompanyUser, db: DBSession):
    return await employee_service.update_employee(db, user.company_id, employee_id, data)


@router.patch("/{employee_id}/activate", response_model=EmployeeResponse)
async def toggle_activation(employee_id: str, user: CompanyUser, db: DBSession):
    """Switch an employee between active and inactive"""
    return await employee_service.toggle_activation(db, user.company_id, employee_id)


@router.delete("/{employee_id}", response_model=MessageResponse)
async def delete_employee(employee_id: str, user: CompanyUser, db: DBSession):
    await employee_service.delete_employee(db, user.company_id, employee_id)
    return MessageResponse(message="Сотрудник удалён")


@router.delete("/{employee_id}/permanent", response_model=MessageResponse)
async def delete_employee_permanently(employee_id: str, user: CompanyAdmin, db: DBSession):
    await employee_service.delete_employee_permanently(db, user.company_id, employee_id)
    return MessageResponse(message="Сотрудник удалён безвозвратно")


@router.get("/{employee_id}/budget", response_model=EmployeeBudgetSchema)
async def get_budget(employee_id: str, user: CompanyUser, db: DBSession):
    return await employee_budget_service.get_budget(db, user.company_id, employee_id)


@router.put("/{employee_id}/budget", response_model=EmployeeBudgetSchema)
async def update_budget(employee_id: str, data: BudgetUpdate, user: CompanyAdmin, db: DBSession):
    return await employee_budget_service.update_budget(db, user.company_id, employee_id, data)


@router.get("/{employee_id}/orders", response_model=PagedResponse[EmployeeOrderItem])
async def get_order_history(
    employee_id: str,
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
    status: str | None = None,
):
    return await employee_service.get_order_history(
        db,
        user.company_id,
        employee_id,
        page=page,
        page_size=page_size,
        date_from=date_from,
        date_to=date_to,
        status=status,
    )
