"""Company service (platform administration)"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.models.company import Company, Project
from yalla_admin.models.employee import Employee
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.organization import CompanyListItem, CompanyResponse
from yalla_admin.services.queries import get_company, like_pattern, paginate
from yalla_admin.utils.dates import format_time


class CompanyService:
    """Read access to tenant companies for super admins"""

    async def list_companies(
        self,
        db: AsyncSession,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
    ) -> PagedResponse[CompanyListItem]:
        query = select(Company).where(Company.deleted_at.is_(None))
        if search:
            query = query.where(Company.name.ilike(like_pattern(search)))
        query = query.order_by(Company.name)

        companies, total = await paginate(db, query, page, page_size)
        items = []
        for company in companies:
            projects_count, employees_count = await self._counts(db, company.id)
            items.append(
                CompanyListItem(
                    id=company.id,
                    name=company.name,
                    status=company.status,
                    budget=company.budget,
                    currency_code=company.currency_code,
                    projects_count=projects_count,
                    employees_count=employees_count,
                    created_at=company.created_at,
                )
            )
        return PagedResponse[CompanyListItem].build(items, total, page, page_size)

    async def get_company(self, db: AsyncSession, company_id: str) -> CompanyResponse:
        company = await get_company(db, company_id)
        projects_count, employees_count = await self._counts(db, company.id)
        return CompanyResponse(
            id=company.id,
            name=company.name,
            status=company.status,
            budget=company.budget,
            overdraft_limit=company.overdraft_limit,
            currency_code=company.currency_code,
            timezone=company.timezone,
            cutoff_time=format_time(company.cutoff_time),
            projects_count=projects_count,
            employees_count=employees_count,
            created_at=company.created_at,
        )

    async def _counts(self, db: AsyncSession, company_id: str) -> tuple[int, int]:
        projects_count = await db.scalar(
            select(func.count(Project.id)).where(
                Project.company_id == company_id,
                Project.deleted_at.is_(None),
            )
        )
        employees_count = await db.scalar(
            select(func.count(Employee.id)).where(
                Employee.company_id == company_id,
                Employee.deleted_at.is_(None),
            )
        )
        return projects_count or 0, employees_count or 0


# Global instance
company_service = CompanyService()
