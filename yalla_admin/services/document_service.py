"""Company documents service"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.errors import ErrorCode, NotFoundException
from yalla_admin.models.content import CompanyDocument
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.content import DocumentResponse, DownloadUrl
from yalla_admin.services.queries import paginate
from yalla_admin.services.storage_service import StorageService, storage_service


class DocumentService:
    """Reconciliation acts, invoice PDFs and contracts of a company"""

    def __init__(self, storage: StorageService):
        self.storage = storage

    async def list_documents(
        self,
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        page_size: int = 20,
        document_type: str | None = None,
    ) -> PagedResponse[DocumentResponse]:
        query = select(CompanyDocument).where(CompanyDocument.company_id == company_id)
        if document_type:
            query = query.where(CompanyDocument.type == document_type.upper())
        rows, total = await paginate(db, query.order_by(CompanyDocument.created_at.desc()), page, page_size)
        return PagedResponse.build([DocumentResponse.model_validate(row) for row in rows], total, page, page_size)

    async def get_document(self, db: AsyncSession, company_id: str, document_id: str) -> DocumentResponse:
        return DocumentResponse.model_validate(await self._get(db, company_id, document_id))

    async def get_download_url(self, db: AsyncSession, company_id: str, document_id: str) -> DownloadUrl:
        document = await self._get(db, company_id, document_id)
        url, expires_in = await self.storage.get_download_url(document.file_url)
        return DownloadUrl(url=url, file_name=document.file_name, expires_in=expires_in)

    @staticmethod
    async def _get(db: AsyncSession, company_id: str, document_id: str) -> CompanyDocument:
        document = await db.scalar(
            select(CompanyDocument).where(
                CompanyDocument.id == document_id,
                CompanyDocument.company_id == company_id,
            )
        )
        if document is None:
            raise NotFoundException(ErrorCode.DOCUMENT_NOT_FOUND)
        return document


# Global instance
document_service = DocumentService(storage_service)
