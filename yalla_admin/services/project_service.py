"""Project service"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode, ValidationException
from yalla_admin.models.company import Project
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import SERVICE_TYPE_NAMES, OrderStatus, ServiceType
from yalla_admin.models.finance import CompensationTransaction
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import LunchSubscription
from yalla_admin.schemas.organization import (
    AddressSchema,
    ProjectCreate,
    ProjectResponse,
    ProjectStats,
    ProjectUpdate,
    ServiceTypeInfo,
)
from yalla_admin.services.queries import get_company, get_company_project
from yalla_admin.utils.dates import format_time, get_zone, local_today, parse_time

SPENT_STATUSES = (OrderStatus.COMPLETED.value, OrderStatus.DELIVERED.value)


class ProjectService:
    """Service for project management"""

    async def list_projects(self, db: AsyncSession, company_id: str) -> list[ProjectResponse]:
        result = await db.execute(
            select(Project)
            .where(Project.company_id == company_id, Project.deleted_at.is_(None))
            .order_by(Project.is_headquarters.desc(), Project.name)
        )
        return [await self._to_response(db, project) for project in result.scalars().all()]

    async def get_project(self, db: AsyncSession, company_id: str, project_id: str) -> ProjectResponse:
        project = await get_company_project(db, company_id, project_id)
        return await self._to_response(db, project)

    async def create_project(
        self,
        db: AsyncSession,
        company_id: str,
        data: ProjectCreate,
    ) -> ProjectResponse:
        """
        Create a project

        Args:
            db: Database session
            company_id: Owner company
            data: Project data (the address cannot be changed later)

        Returns:
            Created project
        """
        company = await get_company(db, company_id)
        address = data.address or AddressSchema()

        project = Project(
            company_id=company.id,
            name=data.name.strip(),
            address_name=address.name,
            address_full_address=address.full_address,
            address_latitude=_to_decimal(address.latitude),
            address_longitude=_to_decimal(address.longitude),
            budget=data.budget,
            overdraft_limit=data.overdraft_limit,
            currency_code=company.currency_code,
            timezone=self._validate_timezone(data.timezone or company.timezone),
            cutoff_time=self._parse_cutoff(data.cutoff_time) or company.cutoff_time,
            service_types=self._validate_service_types(data.service_types),
            compensation_daily_limit=data.compensation_daily_limit or Decimal("0"),
            compensation_rollover=bool(data.compensation_rollover),
        )
        db.add(project)
        await db.commit()
        await db.refresh(project)

        logger.info(f"Project created: {project.id} ({project.name})", extra={"company_id": company_id})
        return await self._to_response(db, project)

    async def update_project(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str,
        data: ProjectUpdate,
    ) -> ProjectResponse:
        """
        Update a project

        Raises:
            BusinessRuleException: PROJ_ADDRESS_IMMUTABLE if the address differs
        """
        project = await get_company_project(db, company_id, project_id)

        if data.address is not None and self._address_changed(project, data.address):
            raise BusinessRuleException(ErrorCode.PROJ_ADDRESS_IMMUTABLE)

        if data.name is not None:
            project.name = data.name.strip()
        if data.budget is not None:
            project.budget = data.budget
        if data.overdraft_limit is not None:
            project.overdraft_limit = data.overdraft_limit
        if data.status is not None:
            project.status = data.status
        if data.timezone is not None:
            project.timezone = self._validate_timezone(data.timezone)
        if data.cutoff_time is not None:
            project.cutoff_time = self._parse_cutoff(data.cutoff_time)
        if data.service_types is not None:
            project.service_types = self._validate_service_types(data.service_types)
        if data.compensation_daily_limit is not None:
            project.compensation_daily_limit = data.compensation_daily_limit
        if data.compensation_rollover is not None:
            project.compensation_rollover = data.compensation_rollover

        await db.commit()
        await db.refresh(project)
        logger.info(f"Project updated: {project.id}")
        return await self._to_response(db, project)

    async def delete_project(self, db: AsyncSession, company_id: str, project_id: str) -> None:
        project = await get_company_project(db, company_id, project_id)
        if project.is_headquarters:
            raise BusinessRuleException(ErrorCode.VALIDATION_ERROR, "Нельзя удалить головной проект")
        project.deleted_at = datetime.now(timezone.utc)
        await db.commit()
        logger.info(f"Project deleted: {project.id}")

    async def get_stats(self, db: AsyncSession, company_id: str, project_id: str) -> ProjectStats:
        project = await get_company_project(db, company_id, project_id)
        today = local_today(project.timezone)

        active_employees = await db.scalar(
            select(func.count(Employee.id)).where(
                Employee.project_id == project.id,
                Employee.is_active.is_(True),
                Employee.deleted_at.is_(None),
            )
        )
        total_orders = await db.scalar(select(func.count(Order.id)).where(Order.project_id == project.id))
        today_orders = await db.scalar(
            select(func.count(Order.id)).where(
                Order.project_id == project.id,
                Order.order_date == today,
                Order.status != OrderStatus.CANCELLED.value,
            )
        )
        spent_lunch, spent_compensation = await self._spending(db, project.id)
        return ProjectStats(
            project_id=project.id,
            active_employees=active_employees or 0,
            total_orders=total_orders or 0,
            today_orders=today_orders or 0,
            total_spent=spent_lunch + spent_compensation,
            budget=project.budget,
        )

    def get_service_types(self) -> list[ServiceTypeInfo]:
        return [ServiceTypeInfo(value=value, name=name) for value, name in SERVICE_TYPE_NAMES.items()]

    async def _spending(self, db: AsyncSession, project_id: str) -> tuple[Decimal, Decimal]:
        spent_lunch = await db.scalar(
            select(func.coalesce(func.sum(Order.price), 0)).where(
                Order.project_id == project_id,
                Order.status.in_(SPENT_STATUSES),
            )
        )
        spent_compensation = await db.scalar(
            select(func.coalesce(func.sum(CompensationTransaction.company_paid_amount), 0)).where(
                CompensationTransaction.project_id == project_id
            )
        )
        return Decimal(str(spent_lunch or 0)), Decimal(str(spent_compensation or 0))

    async def _to_response(self, db: AsyncSession, project: Project) -> ProjectResponse:
        employees_count = await db.scalar(
            select(func.count(Employee.id)).where(
                Employee.project_id == project.id,
                Employee.deleted_at.is_(None),
            )
        )
        employees_with_lunch = await db.scalar(
            select(func.count(LunchSubscription.id)).where(
                LunchSubscription.project_id == project.id,
                LunchSubscription.is_active.is_(True),
            )
        )
        spent_lunch, spent_compensation = await self._spending(db, project.id)

        return ProjectResponse(
            id=project.id,
            company_id=project.company_id,
            name=project.name,
            status=project.status,
            is_headquarters=project.is_headquarters,
            address=AddressSchema(
                name=project.address_name,
                full_address=project.address_full_address,
                latitude=float(project.address_latitude) if project.address_latitude is not None else None,
                longitude=float(project.address_longitude) if project.address_longitude is not None else None,
            ),
            budget=project.budget,
            overdraft_limit=project.overdraft_limit,
            currency_code=project.currency_code,
            timezone=project.timezone,
            cutoff_time=format_time(project.cutoff_time),
            service_types=list(project.service_types or []),
            compensation_daily_limit=project.compensation_daily_limit,
            compensation_rollover=project.compensation_rollover,
            employees_count=employees_count or 0,
            employees_with_lunch=employees_with_lunch or 0,
            spent_lunch=spent_lunch,
            spent_compensation=spent_compensation,
            total_spent=spent_lunch + spent_compensation,
            created_at=project.created_at,
        )

    @staticmethod
    def _address_changed(project: Project, address: AddressSchema) -> bool:
        def differs(new, current) -> bool:
            return new is not None and new != current

        def differs_coordinate(new: float | None, current) -> bool:
            if new is None:
                return False
            if current is None:
                return True
            return abs(float(current) - new) > 1e-7

        return (
            differs(address.name, project.address_name)
            or differs(address.full_address, project.address_full_address)
            or differs_coordinate(address.latitude, project.address_latitude)
            or differs_coordinate(address.longitude, project.address_longitude)
        )

    @staticmethod
    def _parse_cutoff(value: str | None):
        if value is None:
            return None
        cutoff = parse_time(value)
        if cutoff is None:
            raise ValidationException(ErrorCode.INVALID_TIME_FORMAT)
        return cutoff

    @staticmethod
    def _validate_timezone(value: str) -> str:
        if get_zone(value) is timezone.utc and value != "UTC":
            raise ValidationException(ErrorCode.VALIDATION_ERROR, f"Неизвестный часовой пояс: {value}")
        return value

    @staticmethod
    def _validate_service_types(values: list[str] | None) -> list[str]:
        if not values:
            return [ServiceType.LUNCH.value]
        normalized = []
        for value in values:
            try:
                service_type = ServiceType(value.upper()).value
            except ValueError:
                raise ValidationException(ErrorCode.VALIDATION_ERROR, f"Неизвестный тип услуги: {value}")
            if service_type not in normalized:
                normalized.append(service_type)
        return normalized


def _to_decimal(value: float | None) -> Decimal | None:
    return Decimal(str(value)) if value is not None else None


# Global instance
project_service = ProjectService()
