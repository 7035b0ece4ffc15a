"""Company endpoints"""

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyUser, DBSession, SuperAdmin
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.organization import CompanyListItem, CompanyResponse
from yalla_admin.services.company_service import company_service

router = APIRouter()


@router.get("", response_model=PagedResponse[CompanyListItem])
async def list_companies(
    user: SuperAdmin,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    search: str | None = None,
):
    """All companies, for super admins"""
    return await company_service.list_companies(db, page, page_size, search)


@router.get("/current", response_model=CompanyResponse)
async def get_current_company(user: CompanyUser, db: DBSession):
    return await company_service.get_company(db, user.company_id)


@router.get("/{company_id}", response_model=CompanyResponse)
async def get_company(company_id: str, user: SuperAdmin, db: DBSession):
    return await company_service.get_company(db, company_id)
