"""Query helpers shared by services"""

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.errors import ErrorCode, ForbiddenException, NotFoundException
from yalla_admin.models.company import Company, Project
from yalla_admin.models.employee import Employee


async def paginate(db: AsyncSession, query: Select, page: int, page_size: int) -> tuple[list, int]:
    """
    Run a select for one page

    Args:
        db: Database session
        query: Select statement with filters and ordering
        page: 1-based page number
        page_size: Items per page

    Returns:
        Tuple of (items, total count)
    """
    page = max(page, 1)
    page_size = max(page_size, 1)
    total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
    result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
    return list(result.scalars().all()), int(total or 0)


async def get_company(db: AsyncSession, company_id: str | None) -> Company:
    company = await db.get(Company, company_id) if company_id else None
    if company is None or company.deleted_at is not None:
        raise NotFoundException(ErrorCode.COMPANY_NOT_FOUND)
    return company


async def get_company_project(
    db: AsyncSession,
    company_id: str | None,
    project_id: str | None,
) -> Project:
    """
    Load a project that belongs to the company

    Raises:
        NotFoundException: If the project does not exist or is deleted
        ForbiddenException: If the project belongs to another company
    """
    project = await db.get(Project, project_id) if project_id else None
    if project is None or project.deleted_at is not None:
        raise NotFoundException(ErrorCode.PROJ_NOT_FOUND)
    if company_id and project.company_id != company_id:
        raise ForbiddenException(ErrorCode.FORBIDDEN, "Нет доступа к этому проекту")
    return project


async def get_company_employee(
    db: AsyncSession,
    company_id: str | None,
    employee_id: str,
    include_deleted: bool = False,
) -> Employee:
    result = await db.execute(
        select(Employee).where(Employee.id == employee_id, Employee.company_id == company_id)
    )
    employee = result.scalar_one_or_none()
    if employee is None or (employee.deleted_at is not None and not include_deleted):
        raise NotFoundException(ErrorCode.EMP_NOT_FOUND)
    return employee


def like_pattern(value: str) -> str:
    return f"%{value.strip()}%"
