"""Project meal subscription service: company subscriptions and daily assignments"""

from collections import Counter, defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode, NotFoundException, ValidationException
from yalla_admin.models.company import Project
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import AssignmentStatus, SubscriptionStatus
from yalla_admin.models.subscription import CompanySubscription, EmployeeFreezeHistory, EmployeeMealAssignment
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
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.cutoff_service import cutoff_service
from yalla_admin.services.queries import get_company_project
from yalla_admin.utils.dates import inclusive_days, iso_week, local_today
from yalla_admin.utils.pricing import get_combo_price
from yalla_admin.utils.working_days import get_schedule_dates, next_working_day

OPEN_STATUSES = (AssignmentStatus.SCHEDULED.value, AssignmentStatus.ACTIVE.value)


def to_assignment_response(assignment: EmployeeMealAssignment) -> AssignmentResponse:
    employee = assignment.employee
    return AssignmentResponse(
        id=assignment.id,
        subscription_id=assignment.subscription_id,
        employee_id=assignment.employee_id,
        employee_name=employee.full_name if employee else None,
        project_id=assignment.project_id,
        assignment_date=assignment.assignment_date,
        combo_type=assignment.combo_type,
        price=assignment.price,
        status=assignment.status,
        frozen_reason=assignment.frozen_reason,
        replacement_date=assignment.replacement_date,
    )


class MealSubscriptionService:
    """Meal subscriptions bought for a whole project"""

    async def list_subscriptions(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str | None = None,
        status: str | None = None,
    ) -> list[MealSubscriptionResponse]:
        query = (
            select(CompanySubscription)
            .join(Project, Project.id == CompanySubscription.project_id)
            .where(Project.company_id == company_id)
        )
        if project_id:
            query = query.where(CompanySubscription.project_id == project_id)
        if status:
            query = query.where(CompanySubscription.status == status)
        result = await db.execute(query.order_by(CompanySubscription.created_at.desc()))
        subscriptions = list(result.scalars().all())
        return await self._build_responses(db, subscriptions)

    async def get_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> MealSubscriptionResponse:
        subscription = await self._get(db, company_id, subscription_id)
        return (await self._build_responses(db, [subscription]))[0]

    async def create_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        data: MealSubscriptionCreate,
        user_id: str | None = None,
        default_project_id: str | None = None,
    ) -> MealSubscriptionResponse:
        """
        Create a project meal subscription and one assignment per employee per delivery day

        Raises:
            ValidationException: Invalid or too short period
            NotFoundException: Unknown project or employee
        """
        project = await get_company_project(db, company_id, data.project_id or default_project_id)
        await self._validate_period(db, data.start_date, data.end_date)
        employees = await self._load_employees(db, company_id, [item.employee_id for item in data.employees])

        subscription = CompanySubscription(
            project_id=project.id,
            created_by_user_id=user_id,
            start_date=data.start_date,
            end_date=data.end_date,
            total_days=inclusive_days(data.start_date, data.end_date),
            total_amount=Decimal("0"),
            paid_amount=Decimal("0"),
            is_paid=False,
            status=SubscriptionStatus.ACTIVE.value,
            paused_days_count=0,
        )
        db.add(subscription)
        await db.flush()

        total = Decimal("0")
        for item in data.employees:
            employee = employees[item.employee_id]
            price = get_combo_price(item.combo_type)
            dates = get_schedule_dates(
                data.schedule_type,
                data.start_date,
                data.end_date,
                employee.working_days,
                data.custom_days,
            )
            for assignment_date in dates:
                db.add(
                    EmployeeMealAssignment(
                        subscription_id=subscription.id,
                        employee_id=employee.id,
                        project_id=project.id,
                        assignment_date=assignment_date,
                        combo_type=item.combo_type,
                        price=price,
                        status=AssignmentStatus.SCHEDULED.value,
                    )
                )
            total += price * len(dates)

        subscription.total_amount = total
        await db.commit()

        logger.info(
            f"Meal subscription created: {subscription.id} for {len(employees)} employees, total {total}",
            extra={"project_id": project.id},
        )
        return (await self._build_responses(db, [subscription]))[0]

    async def price_preview(self, db: AsyncSession, company_id: str, data: MealSubscriptionCreate) -> MealPricePreview:
        """Total price of a subscription without creating it"""
        if data.end_date < data.start_date:
            raise ValidationException(ErrorCode.SUB_INVALID_PERIOD)
        employees = await self._load_employees(db, company_id, [item.employee_id for item in data.employees])
        total = Decimal("0")
        assignments = 0
        for item in data.employees:
            employee = employees[item.employee_id]
            dates = get_schedule_dates(
                data.schedule_type,
                data.start_date,
                data.end_date,
                employee.working_days,
                data.custom_days,
            )
            assignments += len(dates)
            total += get_combo_price(item.combo_type) * len(dates)
        return MealPricePreview(
            total_amount=total,
            total_days=inclusive_days(data.start_date, data.end_date),
            employees=len(employees),
            assignments=assignments,
        )

    async def cancel_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> MealSubscriptionResponse:
        subscription = await self._get(db, company_id, subscription_id)
        if subscription.status in (SubscriptionStatus.CANCELLED.value, SubscriptionStatus.COMPLETED.value):
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Подписка уже завершена")

        project = await db.get(Project, subscription.project_id)
        today = local_today(project.timezone if project else None)
        result = await db.execute(
            select(EmployeeMealAssignment).where(
                EmployeeMealAssignment.subscription_id == subscription.id,
                EmployeeMealAssignment.assignment_date >= today,
            )
        )
        for assignment in result.scalars().all():
            if assignment.status != AssignmentStatus.DELIVERED.value:
                assignment.status = AssignmentStatus.CANCELLED.value

        subscription.status = SubscriptionStatus.CANCELLED.value
        await db.commit()
        logger.info(f"Meal subscription cancelled: {subscription.id}")
        return (await self._build_responses(db, [subscription]))[0]

    async def pause_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> MealSubscriptionResponse:
        """
        Pause future assignments and extend the period by the number of paused days

        Raises:
            BusinessRuleException: SUB_INVALID_STATUS if the subscription is not active
        """
        subscription = await self._get(db, company_id, subscription_id)
        if subscription.status != SubscriptionStatus.ACTIVE.value:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Приостановить можно только активную подписку")

        project = await db.get(Project, subscription.project_id)
        today = local_today(project.timezone if project else None)
        result = await db.execute(
            select(EmployeeMealAssignment).where(
                EmployeeMealAssignment.subscription_id == subscription.id,
                EmployeeMealAssignment.assignment_date > today,
                EmployeeMealAssignment.status.in_(OPEN_STATUSES),
            )
        )
        assignments = result.scalars().all()
        for assignment in assignments:
            assignment.status = AssignmentStatus.PAUSED.value

        paused_days = len({assignment.assignment_date for assignment in assignments})
        subscription.status = SubscriptionStatus.PAUSED.value
        subscription.paused_at = datetime.now(timezone.utc)
        subscription.paused_days_count = paused_days
        subscription.end_date = subscription.end_date + timedelta(days=paused_days)
        subscription.total_days += paused_days
        await db.commit()

        logger.info(f"Meal subscription paused: {subscription.id}, {len(assignments)} assignments")
        return (await self._build_responses(db, [subscription]))[0]

    async def resume_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> MealSubscriptionResponse:
        """
        Resume a paused subscription

        Paused assignments still ahead are scheduled again. Those whose date passed
        during the pause are cancelled and moved to working days after the original end.
        """
        subscription = await self._get(db, company_id, subscription_id)
        if subscription.status != SubscriptionStatus.PAUSED.value:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Подписка не на паузе")

        project = await db.get(Project, subscription.project_id)
        today = local_today(project.timezone if project else None)
        result = await db.execute(
            select(EmployeeMealAssignment)
            .where(
                EmployeeMealAssignment.subscription_id == subscription.id,
                EmployeeMealAssignment.status == AssignmentStatus.PAUSED.value,
            )
            .order_by(EmployeeMealAssignment.assignment_date)
        )
        missed: dict[str, list[EmployeeMealAssignment]] = defaultdict(list)
        for assignment in result.scalars().all():
            if assignment.assignment_date > today:
                assignment.status = AssignmentStatus.SCHEDULED.value
            else:
                assignment.status = AssignmentStatus.CANCELLED.value
                missed[assignment.employee_id].append(assignment)

        original_end = subscription.end_date - timedelta(days=subscription.paused_days_count)
        new_end = original_end
        for assignments in missed.values():
            current = max(original_end, today)
            for assignment in assignments:
                current = next_working_day(current, assignment.employee.working_days if assignment.employee else None)
                db.add(
                    EmployeeMealAssignment(
                        subscription_id=subscription.id,
                        employee_id=assignment.employee_id,
                        project_id=assignment.project_id,
                        assignment_date=current,
                        combo_type=assignment.combo_type,
                        price=assignment.price,
                        status=AssignmentStatus.SCHEDULED.value,
                    )
                )
            new_end = max(new_end, current)

        subscription.end_date = new_end
        subscription.total_days = inclusive_days(subscription.start_date, new_end)
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.paused_at = None
        subscription.paused_days_count = 0
        await db.commit()

        logger.info(f"Meal subscription resumed: {subscription.id}, end date {new_end}")
        return (await self._build_responses(db, [subscription]))[0]

    async def get_assignments(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str | None = None,
        employee_id: str | None = None,
        project_id: str | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[AssignmentResponse]:
        """Assignments filtered by subscription, employee or project, ordered by date"""
        query = (
            select(EmployeeMealAssignment)
            .join(Project, Project.id == EmployeeMealAssignment.project_id)
            .where(Project.company_id == company_id)
        )
        if subscription_id:
            query = query.where(EmployeeMealAssignment.subscription_id == subscription_id)
        if employee_id:
            query = query.where(EmployeeMealAssignment.employee_id == employee_id)
        if project_id:
            query = query.where(EmployeeMealAssignment.project_id == project_id)
        if date_from:
            query = query.where(EmployeeMealAssignment.assignment_date >= date_from)
        if date_to:
            query = query.where(EmployeeMealAssignment.assignment_date <= date_to)

        result = await db.execute(query.order_by(EmployeeMealAssignment.assignment_date, EmployeeMealAssignment.id))
        return [to_assignment_response(assignment) for assignment in result.scalars().all()]

    async def update_assignment(
        self,
        db: AsyncSession,
        company_id: str,
        assignment_id: str,
        data: AssignmentUpdate,
    ) -> AssignmentResponse:
        assignment = await self._get_assignment(db, company_id, assignment_id)
        if assignment.status not in OPEN_STATUSES:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Изменить можно только запланированный обед")
        await self._ensure_can_modify(db, assignment)
        assignment.combo_type = data.combo_type
        assignment.price = get_combo_price(data.combo_type)
        await db.commit()
        return to_assignment_response(assignment)

    async def cancel_assignment(self, db: AsyncSession, company_id: str, assignment_id: str) -> AssignmentResponse:
        assignment = await self._get_assignment(db, company_id, assignment_id)
        if assignment.status == AssignmentStatus.DELIVERED.value:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Доставленный обед нельзя отменить")
        await self._ensure_can_modify(db, assignment)
        assignment.status = AssignmentStatus.CANCELLED.value
        await db.commit()
        logger.info(f"Assignment cancelled: {assignment.id}")
        return to_assignment_response(assignment)

    async def get_freeze_info(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        on_date: date | None = None,
    ) -> MealFreezeInfo:
        employee = await db.scalar(
            select(Employee).where(Employee.id == employee_id, Employee.company_id == company_id)
        )
        if employee is None:
            raise NotFoundException(ErrorCode.EMP_NOT_FOUND)

        week_year, week_number = iso_week(on_date or local_today())
        used = await self._count_week_freezes(db, employee_id, week_year, week_number)
        limit = await business_config_service.get_int(db, "max_freezes_per_week", 2)
        return MealFreezeInfo(
            employee_id=employee_id,
            week_year=week_year,
            week_number=week_number,
            freezes_used=used,
            freezes_limit=limit,
            remaining=max(limit - used, 0),
        )

    async def freeze_assignment(
        self,
        db: AsyncSession,
        company_id: str,
        assignment_id: str,
        data: AssignmentFreezeRequest,
    ) -> AssignmentResponse:
        """
        Freeze one assignment and move the meal to the next working day after the period end

        Raises:
            BusinessRuleException: Not scheduled, past date, cutoff passed or weekly limit reached
        """
        assignment = await self._get_assignment(db, company_id, assignment_id)
        if assignment.status not in OPEN_STATUSES:
            raise BusinessRuleException(
                ErrorCode.FREEZE_ORDER_NOT_ACTIVE,
                "Можно заморозить только запланированный обед",
            )

        project = await db.get(Project, assignment.project_id)
        if assignment.assignment_date < local_today(project.timezone):
            raise BusinessRuleException(ErrorCode.FREEZE_PAST_DATE)
        cutoff_service.ensure_can_modify(project, assignment.assignment_date)

        week_year, week_number = iso_week(assignment.assignment_date)
        used = await self._count_week_freezes(db, assignment.employee_id, week_year, week_number)
        limit = await business_config_service.get_int(db, "max_freezes_per_week", 2)
        if used >= limit:
            raise BusinessRuleException(
                ErrorCode.FREEZE_LIMIT_EXCEEDED,
                f"Превышен лимит заморозок ({limit} в неделю). Попробуйте на следующей неделе.",
                details={"freezesThisWeek": used, "maxFreezesPerWeek": limit},
            )

        subscription = await db.get(CompanySubscription, assignment.subscription_id)
        working_days = assignment.employee.working_days if assignment.employee else None
        new_end = next_working_day(subscription.end_date, working_days)
        subscription.end_date = new_end
        subscription.total_days += 1

        assignment.status = AssignmentStatus.FROZEN.value
        assignment.frozen_at = datetime.now(timezone.utc)
        assignment.frozen_reason = data.reason
        assignment.replacement_date = new_end

        db.add(
            EmployeeFreezeHistory(
                employee_id=assignment.employee_id,
                assignment_id=assignment.id,
                original_date=assignment.assignment_date,
                replacement_date=new_end,
                reason=data.reason,
                week_year=week_year,
                week_number=week_number,
            )
        )
        await db.commit()

        logger.info(
            f"Assignment {assignment.id} frozen, subscription {subscription.id} extended to {new_end}",
            extra={"employee_id": assignment.employee_id},
        )
        return to_assignment_response(assignment)

    async def unfreeze_assignment(self, db: AsyncSession, company_id: str, assignment_id: str) -> AssignmentResponse:
        assignment = await self._get_assignment(db, company_id, assignment_id)
        if assignment.status != AssignmentStatus.FROZEN.value:
            raise BusinessRuleException(ErrorCode.FREEZE_NOT_FROZEN)
        await self._ensure_can_modify(db, assignment)

        history = await db.execute(
            select(EmployeeFreezeHistory).where(EmployeeFreezeHistory.assignment_id == assignment.id)
        )
        for row in history.scalars().all():
            await db.delete(row)

        subscription = await db.get(CompanySubscription, assignment.subscription_id)
        if subscription is not None and subscription.end_date == assignment.replacement_date:
            last = await db.scalar(
                select(func.max(EmployeeMealAssignment.assignment_date)).where(
                    EmployeeMealAssignment.subscription_id == subscription.id,
                    EmployeeMealAssignment.id != assignment.id,
                )
            )
            subscription.end_date = max(last or subscription.start_date, assignment.assignment_date)
            subscription.total_days = max(subscription.total_days - 1, 0)

        assignment.status = AssignmentStatus.SCHEDULED.value
        assignment.frozen_at = None
        assignment.frozen_reason = None
        assignment.replacement_date = None
        await db.commit()

        logger.info(f"Assignment {assignment.id} unfrozen")
        return to_assignment_response(assignment)

    async def get_calendar(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str,
        start_date: date,
        end_date: date,
    ) -> list[CalendarDay]:
        """Per-day assignment counts of a project"""
        project = await get_company_project(db, company_id, project_id)
        result = await db.execute(
            select(
                EmployeeMealAssignment.assignment_date,
                EmployeeMealAssignment.status,
                func.count(EmployeeMealAssignment.id),
            )
            .where(
                EmployeeMealAssignment.project_id == project.id,
                EmployeeMealAssignment.assignment_date >= start_date,
                EmployeeMealAssignment.assignment_date <= end_date,
            )
            .group_by(EmployeeMealAssignment.assignment_date, EmployeeMealAssignment.status)
        )
        counts: dict[date, Counter] = defaultdict(Counter)
        for day, status, count in result.all():
            counts[day][status] += count

        days = []
        for day in sorted(counts):
            counter = counts[day]
            days.append(
                CalendarDay(
                    date=day.isoformat(),
                    total=sum(counter.values()),
                    active=counter[AssignmentStatus.ACTIVE.value] + counter[AssignmentStatus.SCHEDULED.value],
                    frozen=counter[AssignmentStatus.FROZEN.value],
                    cancelled=counter[AssignmentStatus.CANCELLED.value],
                    delivered=counter[AssignmentStatus.DELIVERED.value],
                )
            )
        return days

    async def _build_responses(
        self,
        db: AsyncSession,
        subscriptions: list[CompanySubscription],
    ) -> list[MealSubscriptionResponse]:
        if not subscriptions:
            return []
        ids = [subscription.id for subscription in subscriptions]
        result = await db.execute(
            select(
                EmployeeMealAssignment.subscription_id,
                func.count(EmployeeMealAssignment.id),
                func.count(func.distinct(EmployeeMealAssignment.employee_id)),
            )
            .where(EmployeeMealAssignment.subscription_id.in_(ids))
            .group_by(EmployeeMealAssignment.subscription_id)
        )
        stats = {row[0]: (row[1], row[2]) for row in result.all()}

        responses = []
        for subscription in subscriptions:
            assignments_count, employees_count = stats.get(subscription.id, (0, 0))
            responses.append(
                MealSubscriptionResponse(
                    id=subscription.id,
                    project_id=subscription.project_id,
                    start_date=subscription.start_date,
                    end_date=subscription.end_date,
                    total_days=subscription.total_days,
                    total_amount=subscription.total_amount,
                    paid_amount=subscription.paid_amount,
                    is_paid=subscription.is_paid,
                    status=subscription.status,
                    employees_count=employees_count,
                    assignments_count=assignments_count,
                    created_at=subscription.created_at,
                )
            )
        return responses

    @staticmethod
    async def _load_employees(db: AsyncSession, company_id: str, employee_ids: list[str]) -> dict[str, Employee]:
        result = await db.execute(
            select(Employee).where(
                Employee.id.in_(employee_ids),
                Employee.company_id == company_id,
                Employee.deleted_at.is_(None),
            )
        )
        employees = {employee.id: employee for employee in result.scalars().all()}
        missing = [employee_id for employee_id in employee_ids if employee_id not in employees]
        if missing:
            raise NotFoundException(ErrorCode.EMP_NOT_FOUND, details={"employeeIds": missing})
        return employees

    @staticmethod
    async def _validate_period(db: AsyncSession, start_date: date, end_date: date) -> None:
        if end_date < start_date:
            raise ValidationException(ErrorCode.SUB_INVALID_PERIOD)
        min_days = await business_config_service.get_int(db, "min_subscription_days", 5)
        if inclusive_days(start_date, end_date) < min_days:
            raise ValidationException(
                ErrorCode.SUB_MIN_DAYS_REQUIRED,
                f"Минимальный период подписки - {min_days} дней",
            )

    @staticmethod
    async def _count_week_freezes(db: AsyncSession, employee_id: str, week_year: int, week_number: int) -> int:
        count = await db.scalar(
            select(func.count(EmployeeFreezeHistory.id)).where(
                EmployeeFreezeHistory.employee_id == employee_id,
                EmployeeFreezeHistory.assignment_id.isnot(None),
                EmployeeFreezeHistory.week_year == week_year,
                EmployeeFreezeHistory.week_number == week_number,
            )
        )
        return int(count or 0)

    @staticmethod
    async def _get(db: AsyncSession, company_id: str, subscription_id: str) -> CompanySubscription:
        subscription = await db.scalar(
            select(CompanySubscription)
            .join(Project, Project.id == CompanySubscription.project_id)
            .where(CompanySubscription.id == subscription_id, Project.company_id == company_id)
        )
        if subscription is None:
            raise NotFoundException(ErrorCode.SUB_NOT_FOUND)
        return subscription

    @staticmethod
    async def _ensure_can_modify(db: AsyncSession, assignment: EmployeeMealAssignment) -> None:
        project = await db.get(Project, assignment.project_id)
        cutoff_service.ensure_can_modify(project, assignment.assignment_date)

    @staticmethod
    async def _get_assignment(db: AsyncSession, company_id: str, assignment_id: str) -> EmployeeMealAssignment:
        assignment = await db.scalar(
            select(EmployeeMealAssignment)
            .join(Project, Project.id == EmployeeMealAssignment.project_id)
            .where(EmployeeMealAssignment.id == assignment_id, Project.company_id == company_id)
        )
        if assignment is None:
            raise NotFoundException(ErrorCode.SUB_ASSIGNMENT_NOT_FOUND)
        return assignment


# Global instance
meal_subscription_service = MealSubscriptionService()
