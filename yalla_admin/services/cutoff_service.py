"""Cutoff time service: daily deadline for same-day order changes"""

from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode, ValidationException
from yalla_admin.models.company import Project
from yalla_admin.schemas.order import CutoffTimeResponse
from yalla_admin.services.queries import get_company, get_company_project
from yalla_admin.utils.dates import format_time, is_cutoff_passed, local_date, parse_time


class CutoffTimeService:
    """Service for reading and enforcing the ordering cutoff"""

    async def get_cutoff(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str | None = None,
    ) -> CutoffTimeResponse:
        """
        Get the cutoff of a project (or of the company when no project is given)

        Args:
            db: Database session
            company_id: Company ID
            project_id: Optional project ID

        Returns:
            Cutoff time, time zone and whether today's cutoff has passed
        """
        if project_id:
            owner = await get_company_project(db, company_id, project_id)
        else:
            owner = await get_company(db, company_id)
        return CutoffTimeResponse(
            cutoff_time=format_time(owner.cutoff_time),
            timezone=owner.timezone,
            is_cutoff_passed=is_cutoff_passed(owner.cutoff_time, owner.timezone),
        )

    async def update_cutoff(
        self,
        db: AsyncSession,
        company_id: str,
        value: str,
    ) -> CutoffTimeResponse:
        """
        Update the company cutoff and apply it to every company project

        Raises:
            ValidationException: If the value is not "HH:mm"
        """
        cutoff = parse_time(value)
        if cutoff is None or len(value.strip()) != 5:
            raise ValidationException(ErrorCode.INVALID_TIME_FORMAT)

        company = await get_company(db, company_id)
        company.cutoff_time = cutoff
        await db.execute(
            update(Project).where(Project.company_id == company_id).values(cutoff_time=cutoff)
        )
        await db.commit()

        logger.info(f"Cutoff time updated: company={company_id}, cutoff={value}")
        return CutoffTimeResponse(
            cutoff_time=format_time(cutoff),
            timezone=company.timezone,
            is_cutoff_passed=is_cutoff_passed(cutoff, company.timezone),
        )

    def ensure_can_modify(
        self,
        project: Project,
        order_date: date,
        now: datetime | None = None,
        message: str | None = None,
    ) -> None:
        """
        Reject changes to past orders and to today's orders after the cutoff

        Args:
            project: Project whose cutoff and time zone apply
            order_date: Date of the order being changed
            now: Current moment (defaults to the real clock)
            message: Custom message for the cutoff error

        Raises:
            BusinessRuleException: ORDER_PAST_DATE or ORDER_CUTOFF_PASSED
        """
        today = local_date(project.timezone, now)
        if order_date < today:
            raise BusinessRuleException(
                ErrorCode.ORDER_PAST_DATE,
                "Нельзя изменять заказы на прошедшую дату",
            )
        if order_date == today and is_cutoff_passed(project.cutoff_time, project.timezone, now):
            cutoff = format_time(project.cutoff_time)
            raise BusinessRuleException(
                ErrorCode.ORDER_CUTOFF_PASSED,
                message
                or (
                    f"Время для изменения заказов на сегодня истекло в {cutoff}. "
                    "Заказы на завтра и далее можно изменять."
                ),
            )

    def is_locked(self, project: Project, order_date: date, now: datetime | None = None) -> bool:
        """True when today's cutoff has passed for an order on this date"""
        today = local_date(project.timezone, now)
        return order_date == today and is_cutoff_passed(project.cutoff_time, project.timezone, now)


# Global instance
cutoff_service = CutoffTimeService()
