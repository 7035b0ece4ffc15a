"""Home page endpoints: dashboard, daily orders and cutoff time"""

from fastapi import APIRouter, Query

from yalla_admin.api.responses import csv_response
from yalla_admin.core.dependencies import CompanyAdmin, CompanyUser, DBSession, scoped_project_id
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.content import ComboInfo, DashboardResponse
from yalla_admin.schemas.order import (
    AssignMealsRequest,
    AssignMealsResult,
    BulkActionRequest,
    BulkActionResult,
    CutoffTimeResponse,
    CutoffTimeUpdate,
    GuestOrderCreate,
    GuestOrderResult,
    OrderFilters,
    OrderListItem,
)
from yalla_admin.schemas.subscription import (
    BulkLunchSubscriptionUpdate,
    BulkOperationResult,
    DashboardSubscriptionUpdate,
)
from yalla_admin.services.cutoff_service import cutoff_service
from yalla_admin.services.dashboard_service import dashboard_service
from yalla_admin.services.export_service import export_service
from yalla_admin.services.order_service import order_service
from yalla_admin.utils.dates import parse_date

router = APIRouter()


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    user: CompanyUser,
    db: DBSession,
    project_id: str | None = Query(None, alias="projectId"),
):
    """Budget, order and cutoff metrics for the home page"""
    return await dashboard_service.get_dashboard(db, user.company_id, scoped_project_id(user, project_id))


@router.get("/orders", response_model=PagedResponse[OrderListItem])
async def get_orders(
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    search: str | None = None,
    status: str | None = None,
    date: str | None = None,
    date_from: str | None = Query(None, alias="dateFrom"),
    date_to: str | None = Query(None, alias="dateTo"),
    address: str | None = None,
    project_id: str | None = Query(None, alias="projectId"),
    type: str | None = None,
    combo_type: str | None = Query(None, alias="comboType"),
    service_type: str | None = Query(None, alias="serviceType"),
):
    """
    Lunch orders merged with compensation transactions

    `type` is "employee" or "guest"; `address` filters by project id.
    """
    filters = OrderFilters(
        search=search,
        status=status,
        date=date,
        date_from=date_from,
        date_to=date_to,
        address=address,
        project_id=project_id,
        type=type,
        combo_type=combo_type,
        service_type=service_type,
    )
    return await order_service.get_orders(
        db,
        user.company_id,
        filters,
        page=page,
        page_size=page_size,
        project_id=scoped_project_id(user),
    )


@router.get("/orders/export")
async def export_orders(
    user: CompanyUser,
    db: DBSession,
    status: str | None = None,
    date: str | None = None,
    project_id: str | None = Query(None, alias="projectId"),
):
    content = await export_service.export_orders(
        db,
        user.company_id,
        status=status,
        on_date=parse_date(date) if date else None,
        project_id=scoped_project_id(user, project_id),
    )
    return csv_response(content, "orders")


@router.post("/guest-orders", response_model=GuestOrderResult, status_code=201)
async def create_guest_orders(data: GuestOrderCreate, user: CompanyUser, db: DBSession):
    """Create guest orders; the budget is checked but charged at settlement"""
    pinned = scoped_project_id(user)
    if pinned:
        data.project_id = pinned
    return await order_service.create_guest_orders(
        db,
        user.company_id,
        data,
        project_id=user.project_id,
        user_id=user.user_id,
    )


@router.post("/assign-meals", response_model=AssignMealsResult)
async def assign_meals(data: AssignMealsRequest, user: CompanyUser, db: DBSession):
    return await order_service.assign_meals(db, user.company_id, data)


@router.post("/bulk-action", response_model=BulkActionResult)
async def bulk_action(data: BulkActionRequest, user: CompanyUser, db: DBSession):
    """Pause, resume, cancel or change combo of several orders"""
    return await order_service.bulk_action(db, user.company_id, data)


@router.put("/subscriptions/{employee_id}", response_model=BulkOperationResult)
async def update_subscription(
    employee_id: str,
    data: DashboardSubscriptionUpdate,
    user: CompanyUser,
    db: DBSession,
):
    return await order_service.update_subscription(db, user.company_id, employee_id, data.combo_type)


@router.post("/subscriptions/bulk", response_model=BulkOperationResult)
async def bulk_update_subscription(data: BulkLunchSubscriptionUpdate, user: CompanyUser, db: DBSession):
    return await order_service.bulk_update_subscription(db, user.company_id, data.employee_ids, data.combo_type)


@router.get("/cutoff-time", response_model=CutoffTimeResponse)
async def get_cutoff_time(
    user: CompanyUser,
    db: DBSession,
    project_id: str | None = Query(None, alias="projectId"),
):
    return await cutoff_service.get_cutoff(db, user.company_id, scoped_project_id(user, project_id))


@router.put("/cutoff-time", response_model=CutoffTimeResponse)
async def update_cutoff_time(data: CutoffTimeUpdate, user: CompanyAdmin, db: DBSession):
    """Set the company cutoff ("HH:mm") and apply it to every project"""
    return await cutoff_service.update_cutoff(db, user.company_id, data.cutoff_time)


@router.get("/combos", response_model=list[ComboInfo])
async def get_combos():
    return dashboard_service.get_combos()
