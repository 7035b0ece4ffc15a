"""Lunch subscription endpoints"""

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyUser, DBSession, scoped_project_id
from yalla_admin.schemas.common import IdsRequest, MessageResponse, PagedResponse
from yalla_admin.schemas.subscription import (
    BulkLunchSubscriptionCreate,
    BulkLunchSubscriptionUpdate,
    BulkOperationResult,
    LunchSubscriptionCreate,
    LunchSubscriptionResponse,
    LunchSubscriptionUpdate,
    PricePreview,
    PricePreviewRequest,
)
from yalla_admin.services.subscription_service import subscription_service

router = APIRouter()


@router.get("", response_model=PagedResponse[LunchSubscriptionResponse])
async def list_subscriptions(
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    is_active: bool | None = Query(None, alias="isActive"),
    status: str | None = None,
    project_id: str | None = Query(None, alias="projectId"),
    search: str | None = None,
):
    return await subscription_service.list_subscriptions(
        db,
        user.company_id,
        page=page,
        page_size=page_size,
        is_active=is_active,
        status=status,
        project_id=scoped_project_id(user, project_id),
        search=search,
    )


@router.post("/price-preview", response_model=PricePreview)
async def price_preview(data: PricePreviewRequest, user: CompanyUser, db: DBSession):
    return await subscription_service.price_preview(db, user.company_id, data)


@router.post("/bulk", response_model=BulkOperationResult)
async def bulk_create(data: BulkLunchSubscriptionCreate, user: CompanyUser, db: DBSession):
    """Create subscriptions for several employees; failures are reported per employee"""
    return await subscription_service.bulk_create(db, user.company_id, data)


@router.put("/bulk", response_model=BulkOperationResult)
async def bulk_update(data: BulkLunchSubscriptionUpdate, user: CompanyUser, db: DBSession):
    return await subscription_service.bulk_update(db, user.company_id, data.employee_ids, data.combo_type)


@router.post("/bulk/pause", response_model=BulkOperationResult)
async def bulk_pause(data: IdsRequest, user: CompanyUser, db: DBSession):
    return await subscription_service.bulk_pause(db, user.company_id, data.ids)


@router.post("/bulk/resume", response_model=BulkOperationResult)
async def bulk_resume(data: IdsRequest, user: CompanyUser, db: DBSession):
    return await subscription_service.bulk_resume(db, user.company_id, data.ids)


@router.get("/employee/{employee_id}", response_model=LunchSubscriptionResponse)
async def get_by_employee(employee_id: str, user: CompanyUser, db: DBSession):
    return await subscription_service.get_by_employee(db, user.company_id, employee_id)


@router.get("/{subscription_id}", response_model=LunchSubscriptionResponse)
async def get_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await subscription_service.get_subscription(db, user.company_id, subscription_id)


@router.post("", response_model=LunchSubscriptionResponse, status_code=201)
async def create_subscription(data: LunchSubscriptionCreate, user: CompanyUser, db: DBSession):
    """Create a lunch subscription and its daily orders (at least 5 working days)"""
    return await subscription_service.create_subscription(db, user.company_id, data)


@router.put("/{subscription_id}", response_model=LunchSubscriptionResponse)
async def update_subscription(
    subscription_id: str,
    data: LunchSubscriptionUpdate,
    user: CompanyUser,
    db: DBSession,
):
    return await subscription_service.update_subscription(db, user.company_id, subscription_id, data)


@router.delete("/{subscription_id}", response_model=MessageResponse)
async def delete_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    await subscription_service.delete_subscription(db, user.company_id, subscription_id)
    return MessageResponse(message="Подписка отменена")


@router.post("/{subscription_id}/pause", response_model=LunchSubscriptionResponse)
async def pause_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await subscription_service.pause_subscription(db, user.company_id, subscription_id)


@router.post("/{subscription_id}/resume", response_model=LunchSubscriptionResponse)
async def resume_subscription(subscription_id: str, user: CompanyUser, db: DBSession):
    return await subscription_service.resume_subscription(db, user.company_id, subscription_id)
