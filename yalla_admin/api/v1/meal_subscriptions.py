"""Project meal subscription endpoints"""

from datetime import date

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyUser, DBSession, ensure_project_access, scoped_project_id
from yalla_admin.schemas.subscription import (
    AssignmentFreezeRequest,
    AssignmentResponse,
    AssignmentUpdate,
    CalendarDay,
    MealFreezeInfo,
    MealPricePreview,
    MealSubscriptionCreate,
    MealSubscriptionResponse,
)
from yalla_admin.services.meal_subscription_service import meal_subscription_service

router = APIRouter()


@router.get("", response_model=list[MealSubscriptionResponse])
async def list_subscriptions(
    user: CompanyUser,
    db: DBSession,
    project_id: str | None = Query(None, alias="projectId"),
    status: str | None = None,
):
    return await meal_subscription_service.list_subscriptions(
        db,
        user.company_id,
        project_id=scoped_project_id(user, project_id),
        status=status,
    )


@router.post("", response_model=MealSubscriptionResponse, status_code=201)
async def create_subscription(data: MealSubscriptionCreate, user: CompanyUser, db: DBSession):
    """Create a subscription with one assignment per employee per delivery day"""
    pinned = scoped_project_id(user)
    if pinned:
        data.project_id = pinned
    return await meal_subscription_service.create_subscription(
        db,
        user.company_id,
        data,
        user_id=user.user_id,
        default_project_id=user.project_id,
    )


@router.post("/price-preview", response_model=MealPricePreview)
async def price_preview(data: MealSubscriptionCreate, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.price_preview(db, user.company_id, data)


@router.get("/calendar", response_model=list[CalendarDay])
async def get_calendar(
    user: CompanyUser,
    db: DBSession,
    project_id: str = Query(..., alias="projectId"),
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
):
    """Per-day assignment counts of a project"""
    ensure_project_access(user, project_id)
    return await meal_subscription_service.get_calendar(db, user.company_id, project_id, start_date, end_date)


@router.get("/employees/{employee_id}/assignments", response_model=list[AssignmentResponse])
async def get_employee_assignments(
    employee_id: str,
    user: CompanyUser,
    db: DBSession,
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
):
    return await meal_subscription_service.get_assignments(
        db,
        user.company_id,
        employee_id=employee_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.get("/employees/{employee_id}/freeze-info", response_model=MealFreezeInfo)
async def get_freeze_info(
    employee_id: str,
    user: CompanyUser,
    db: DBSession,
    on_date: date | None = Query(None, alias="date"),
):
    return await meal_subscription_service.get_freeze_info(db, user.company_id, employee_id, on_date)


@router.get("/projects/{project_id}/assignments", response_model=list[AssignmentResponse])
async def get_project_assignments(
    project_id: str,
    user: CompanyUser,
    db: DBSession,
    date_from: date | None = Query(None, alias="dateFrom"),
    date_to: date | None = Query(None, alias="dateTo"),
):
    ensure_project_access(user, project_id)
    return await meal_subscription_service.get_assignments(
        db,
        user.company_id,
        project_id=project_id,
        date_from=date_from,
        date_to=date_to,
    )


@router.put("/assignments/{assignment_id}", response_model=AssignmentResponse)
async def update_assignment(assignment_id: str, data: AssignmentUpdate, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.update_assignment(db, user.company_id, assignment_id, data)


@router.post("/assignments/{assignment_id}/cancel", response_model=AssignmentResponse)
async def cancel_assignment(assignment_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.cancel_assignment(db, user.company_id, assignment_id)


@router.post("/assignments/{assignment_id}/freeze", response_model=AssignmentResponse)
async def freeze_assignment(
    assignment_id: str,
    user: CompanyUser,
    db: DBSession,
    data: AssignmentFreezeRequest | None = None,
):
    """Freeze one assignment; the meal moves past the subscription end"""
    return await meal_subscription_service.freeze_assignment(
        db,
        user.company_id,
        assignment_id,
        data or AssignmentFreezeRequest(),
    )


@router.post("/assignments/{assignment_id}/unfreeze", response_model=AssignmentResponse)
async def unfreeze_assignment(assignment_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.unfreeze_assignment(db, user.company_id, assignment_id)


@router.get("/{subscription_id}", response_model=MealSubscriptionResponse)
async def get_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.get_subscription(db, user.company_id, subscription_id)


@router.get("/{subscription_id}/assignments", response_model=list[AssignmentResponse])
async def get_subscription_assignments(subscription_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.get_assignments(db, user.company_id, subscription_id=subscription_id)


@router.post("/{subscription_id}/cancel", response_model=MealSubscriptionResponse)
async def cancel_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.cancel_subscription(db, user.company_id, subscription_id)


@router.post("/{subscription_id}/pause", response_model=MealSubscriptionResponse)
async def pause_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.pause_subscription(db, user.company_id, subscription_id)


@router.post("/{subscription_id}/resume", response_model=MealSubscriptionResponse)
async def resume_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await meal_subscription_service.resume_subscription(db, user.company_id, subscription_id)
