"""Company document endpoints"""

from fastapi import APIRouter, Query

from yalla_admin.core.dependencies import CompanyUser, DBSession
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.content import DocumentResponse, DownloadUrl
from yalla_admin.services.document_service import document_service

router = APIRouter()


@router.get("", response_model=PagedResponse[DocumentResponse])
async def list_documents(
    user: CompanyUser,
    db: DBSession,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=500, alias="pageSize"),
    document_type: str | None = Query(None, alias="type"),
):
    return await document_service.list_documents(db, user.company_id, page, page_size, document_type)


@router.get("/{document_id}", response_model=DocumentResponse)
async def get_document(document_id: str, user: CompanyUser, db: DBSession):
    return await document_service.get_document(db, user.company_id, document_id)


@router.get("/{document_id}/download", response_model=DownloadUrl)
async def get_download_url(document_id: str, user: CompanyUser, db: DBSession):
    """Short-lived signed URL of the stored file"""
    return await document_service.get_download_url(db, user.company_id, document_id)
