"""Dashboard user management endpoints"""

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyAdmin, CompanyUser, DBSession, SuperAdmin
from yalla_admin.schemas.common import MessageResponse, PagedResponse
from yalla_admin.schemas.user import OptionItem, UserCreate, UserResponse, UserUpdate
from yalla_admin.services.user_service import user_service

router = APIRouter()


@router.get("", response_model=PagedResponse[UserResponse])
async def list_users(
    user: CompanyAdmin,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    search: str | None = None,
    role: str | None = None,
    status: str | None = None,
):
    return await user_service.list_users(db, user.company_id, page, page_size, search, role, status)


@router.get("/all-admins", response_model=PagedResponse[UserResponse])
async def get_all_admins(
    user: SuperAdmin,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    search: str | None = None,
):
    """Company admins across all companies, used to pick an impersonation target"""
    return await user_service.get_all_admins(db, page, page_size, search)


@router.get("/permissions/routes", response_model=list[OptionItem])
async def get_available_routes(user: CompanyUser):
    return user_service.get_available_routes()


@router.get("/statuses", response_model=list[OptionItem])
async def get_statuses(user: CompanyUser):
    return user_service.get_statuses()


@router.get("/roles", response_model=list[OptionItem])
async def get_roles(user: CompanyUser):
    return user_service.get_roles()


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, user: CompanyAdmin, db: DBSession):
    return await user_service.get_user(db, user.company_id, user_id)


@router.post("", response_model=UserResponse, status_code=201)
async def create_user(data: UserCreate, user: CompanyAdmin, db: DBSession):
    return await user_service.create_user(db, user, data)


@router.put("/{user_id}", response_model=UserResponse)
async def update_user(user_id: str, data: UserUpdate, user: CompanyAdmin, db: DBSession):
    return await user_service.update_user(db, user, user_id, data)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(user_id: str, user: CompanyAdmin, db: DBSession):
    await user_service.delete_user(db, user, user_id)
    return MessageResponse(message="Пользователь удалён")
