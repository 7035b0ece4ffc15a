"""Lunch subscription service"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import (
    AppException,
    BusinessRuleException,
    ConflictException,
    ErrorCode,
    NotFoundException,
    ValidationException,
)
from yalla_admin.models.company import Project
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import OrderStatus, ScheduleType, ServiceType, SubscriptionStatus
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import LunchSubscription
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.subscription import (
    BulkLunchSubscriptionCreate,
    BulkOperationResult,
    LunchSubscriptionCreate,
    LunchSubscriptionResponse,
    LunchSubscriptionUpdate,
    PricePreview,
    PricePreviewRequest,
)
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.cutoff_service import cutoff_service
from yalla_admin.services.order_service import order_service
from yalla_admin.services.queries import get_company_employee, like_pattern, paginate
from yalla_admin.utils.dates import inclusive_days, local_today
from yalla_admin.utils.pricing import get_combo_price
from yalla_admin.utils.working_days import get_schedule_dates

DEFAULT_PERIOD_DAYS = 30


def to_response(subscription: LunchSubscription) -> LunchSubscriptionResponse:
    employee = subscription.employee
    return LunchSubscriptionResponse(
        id=subscription.id,
        employee_id=subscription.employee_id,
        employee_name=employee.full_name if employee else None,
        employee_phone=employee.phone if employee else None,
        project_id=subscription.project_id,
        combo_type=subscription.combo_type,
        price_per_day=get_combo_price(subscription.combo_type),
        is_active=subscription.is_active,
        status=subscription.status,
        start_date=subscription.start_date,
        end_date=subscription.end_date,
        total_days=subscription.total_days,
        total_price=subscription.total_price,
        schedule_type=subscription.schedule_type,
        frozen_days_count=subscription.frozen_days_count,
        created_at=subscription.created_at,
    )


class SubscriptionService:
    """Per-employee lunch subscriptions and the orders they generate"""

    async def list_subscriptions(
        self,
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        page_size: int = 20,
        is_active: bool | None = None,
        status: str | None = None,
        project_id: str | None = None,
        search: str | None = None,
    ) -> PagedResponse[LunchSubscriptionResponse]:
        query = (
            select(LunchSubscription)
            .join(Employee, Employee.id == LunchSubscription.employee_id)
            .where(LunchSubscription.company_id == company_id)
        )
        if is_active is not None:
            query = query.where(LunchSubscription.is_active.is_(is_active))
        if status:
            query = query.where(LunchSubscription.status == status)
        if project_id:
            query = query.where(LunchSubscription.project_id == project_id)
        if search:
            pattern = like_pattern(search)
            query = query.where(or_(Employee.full_name.ilike(pattern), Employee.phone.ilike(pattern)))
        query = query.order_by(LunchSubscription.created_at.desc(), LunchSubscription.id)

        subscriptions, total = await paginate(db, query, page, page_size)
        items = [to_response(subscription) for subscription in subscriptions]
        return PagedResponse[LunchSubscriptionResponse].build(items, total, page, page_size)

    async def get_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> LunchSubscriptionResponse:
        return to_response(await self._get(db, company_id, subscription_id))

    async def get_by_employee(self, db: AsyncSession, company_id: str, employee_id: str) -> LunchSubscriptionResponse:
        subscription = await db.scalar(
            select(LunchSubscription).where(
                LunchSubscription.employee_id == employee_id,
                LunchSubscription.company_id == company_id,
            )
        )
        if subscription is None:
            raise NotFoundException(ErrorCode.SUB_NOT_FOUND)
        return to_response(subscription)

    async def create_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        data: LunchSubscriptionCreate,
    ) -> LunchSubscriptionResponse:
        """
        Create (or reactivate) a lunch subscription and its orders

        Args:
            db: Database session
            company_id: Company ID
            data: Employee, combo, period and schedule

        Returns:
            Created subscription

        Raises:
            BusinessRuleException: Employee cannot subscribe, or the period is
                shorter than the minimum
            ConflictException: Employee already has an active subscription
        """
        subscription = await self._create(db, company_id, data)
        await db.commit()
        await db.refresh(subscription)
        return to_response(subscription)

    async def update_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
        data: LunchSubscriptionUpdate,
    ) -> LunchSubscriptionResponse:
        """
        Update combo, end date or schedule

        A combo change reprices upcoming active orders; a period or schedule
        change regenerates upcoming orders.
        """
        subscription = await self._get(db, company_id, subscription_id)
        if subscription.status in (SubscriptionStatus.CANCELLED.value, SubscriptionStatus.COMPLETED.value):
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS)

        if data.combo_type and data.combo_type != subscription.combo_type:
            subscription.combo_type = data.combo_type
            price = get_combo_price(data.combo_type)
            for order in await self._upcoming_orders(db, subscription, (OrderStatus.ACTIVE, OrderStatus.PAUSED)):
                order.combo_type = data.combo_type
                order.price = price

        reschedule = False
        if data.end_date is not None and data.end_date != subscription.end_date:
            await self._validate_period(db, subscription.start_date, data.end_date)
            subscription.end_date = data.end_date
            subscription.original_end_date = None
            reschedule = True
        if data.schedule_type is not None:
            subscription.schedule_type = ScheduleType.normalize(data.schedule_type).value
            subscription.custom_days = data.custom_days
            reschedule = True

        if reschedule:
            for order in await self._upcoming_orders(db, subscription, (OrderStatus.ACTIVE, OrderStatus.PAUSED)):
                await db.delete(order)
            await db.flush()
            employee = subscription.employee
            project = await db.get(Project, subscription.project_id) if subscription.project_id else None
            if project is not None:
                await self._create_orders(db, subscription, employee, project)

        self._recalculate(subscription, subscription.employee)
        await db.commit()
        logger.info(f"Lunch subscription updated: {subscription.id}")
        return to_response(subscription)

    async def delete_subscription(self, db: AsyncSession, company_id: str, subscription_id: str) -> None:
        """Deactivate a subscription and cancel its orders from tomorrow on"""
        subscription = await self._get(db, company_id, subscription_id)
        subscription.is_active = False
        subscription.status = SubscriptionStatus.COMPLETED.value

        tomorrow = await self._project_today(db, subscription) + timedelta(days=1)
        result = await db.execute(
            select(Order).where(
                Order.employee_id == subscription.employee_id,
                Order.status.in_((OrderStatus.ACTIVE.value, OrderStatus.FROZEN.value, OrderStatus.PAUSED.value)),
                Order.order_date >= tomorrow,
            )
        )
        cancelled = 0
        for order in result.scalars().all():
            order.status = OrderStatus.CANCELLED.value
            cancelled += 1

        await db.commit()
        logger.info(f"Lunch subscription {subscription.id} deactivated, {cancelled} future orders cancelled")

    async def bulk_create(
        self,
        db: AsyncSession,
        company_id: str,
        data: BulkLunchSubscriptionCreate,
    ) -> BulkOperationResult:
        """Create subscriptions for several employees, collecting per-employee errors"""
        created = 0
        errors: list[dict] = []
        for employee_id in data.employee_ids:
            request = LunchSubscriptionCreate(
                employee_id=employee_id,
                combo_type=data.combo_type,
                start_date=data.start_date,
                end_date=data.end_date,
                schedule_type=data.schedule_type,
                custom_days=data.custom_days,
            )
            try:
                await self._create(db, company_id, request)
            except AppException as exc:
                errors.append({"employeeId": employee_id, "code": exc.code, "message": exc.message})
                continue
            created += 1

        await db.commit()
        logger.info(f"Bulk subscription create: created={created}, failed={len(errors)}")
        return BulkOperationResult(message=f"Создано {created} подписок", processed=created, errors=errors)

    async def bulk_update(
        self,
        db: AsyncSession,
        company_id: str,
        employee_ids: list[str],
        combo_type: str,
    ) -> BulkOperationResult:
        return await order_service.bulk_update_subscription(db, company_id, employee_ids, combo_type)

    async def pause_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> LunchSubscriptionResponse:
        """Pause a subscription and its upcoming active orders"""
        subscription = await self._get(db, company_id, subscription_id)
        await self._pause(db, subscription)
        await db.commit()
        return to_response(subscription)

    async def resume_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        subscription_id: str,
    ) -> LunchSubscriptionResponse:
        subscription = await self._get(db, company_id, subscription_id)
        await self._resume(db, subscription)
        await db.commit()
        return to_response(subscription)

    async def bulk_pause(self, db: AsyncSession, company_id: str, subscription_ids: list[str]) -> BulkOperationResult:
        return await self._bulk(db, company_id, subscription_ids, self._pause, "Приостановлено")

    async def bulk_resume(self, db: AsyncSession, company_id: str, subscription_ids: list[str]) -> BulkOperationResult:
        return await self._bulk(db, company_id, subscription_ids, self._resume, "Возобновлено")

    async def price_preview(self, db: AsyncSession, company_id: str, data: PricePreviewRequest) -> PricePreview:
        """
        Estimate the price of a subscription period

        Without employees the default Monday-Friday schedule is used.
        """
        if data.end_date < data.start_date:
            raise ValidationException(ErrorCode.SUB_INVALID_PERIOD)

        price = get_combo_price(data.combo_type)
        default_dates = get_schedule_dates(data.schedule_type, data.start_date, data.end_date, None, data.custom_days)
        default_days = len(default_dates)
        if not data.employee_ids:
            return PricePreview(
                combo_type=data.combo_type,
                price_per_day=price,
                days=default_days,
                employees=0,
                total=price * default_days,
            )

        result = await db.execute(
            select(Employee).where(
                Employee.id.in_(data.employee_ids),
                Employee.company_id == company_id,
                Employee.deleted_at.is_(None),
            )
        )
        employees = result.scalars().all()
        total_days = sum(
            len(
                get_schedule_dates(
                    data.schedule_type,
                    data.start_date,
                    data.end_date,
                    employee.working_days,
                    data.custom_days,
                )
            )
            for employee in employees
        )
        return PricePreview(
            combo_type=data.combo_type,
            price_per_day=price,
            days=default_days,
            employees=len(employees),
            total=price * total_days,
        )

    async def _create(self, db: AsyncSession, company_id: str, data: LunchSubscriptionCreate) -> LunchSubscription:
        employee = await get_company_employee(db, company_id, data.employee_id, include_deleted=True)
        if employee.is_deleted:
            raise BusinessRuleException(
                ErrorCode.EMP_DELETED,
                "Невозможно создать подписку для удалённого сотрудника",
            )
        if not employee.is_active:
            raise BusinessRuleException(
                ErrorCode.EMP_INACTIVE,
                "Невозможно создать подписку для неактивного сотрудника. Сначала активируйте сотрудника.",
            )
        if employee.service_type == ServiceType.COMPENSATION.value:
            raise BusinessRuleException(ErrorCode.EMP_COMPENSATION_SERVICE)
        project = await db.get(Project, employee.project_id) if employee.project_id else None
        if project is None or project.deleted_at is not None:
            raise BusinessRuleException(
                ErrorCode.EMP_NO_PROJECT,
                "Невозможно создать подписку: сотрудник не привязан к проекту",
            )

        start_date = data.start_date or local_today(project.timezone)
        end_date = data.end_date or start_date + timedelta(days=DEFAULT_PERIOD_DAYS)
        await self._validate_period(db, start_date, end_date)

        subscription = await db.scalar(select(LunchSubscription).where(LunchSubscription.employee_id == employee.id))
        if subscription is not None and subscription.is_active:
            raise ConflictException(ErrorCode.CONFLICT, "Сотрудник уже имеет активную подписку на обеды")
        if subscription is None:
            subscription = LunchSubscription(employee_id=employee.id, company_id=company_id)
            db.add(subscription)

        subscription.project_id = project.id
        subscription.combo_type = data.combo_type
        subscription.is_active = True
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.start_date = start_date
        subscription.end_date = end_date
        subscription.original_end_date = None
        subscription.frozen_days_count = 0
        subscription.paused_at = None
        subscription.schedule_type = ScheduleType.normalize(data.schedule_type).value
        subscription.custom_days = data.custom_days
        subscription.employee = employee
        self._recalculate(subscription, employee)

        if employee.service_type is None:
            employee.service_type = ServiceType.LUNCH.value

        await db.flush()
        created = await self._create_orders(db, subscription, employee, project)
        logger.info(
            f"Lunch subscription {subscription.id} for employee {employee.id}: "
            f"{subscription.total_days} days, {created} orders created",
            extra={"company_id": company_id},
        )
        return subscription

    async def _create_orders(
        self,
        db: AsyncSession,
        subscription: LunchSubscription,
        employee: Employee,
        project: Project,
    ) -> int:
        """Create orders for scheduled dates from today (or tomorrow after the cutoff)"""
        today = local_today(project.timezone)
        first_date = max(subscription.start_date, today)
        if first_date == today and cutoff_service.is_locked(project, today):
            first_date = today + timedelta(days=1)
        if subscription.end_date < first_date:
            return 0

        dates = get_schedule_dates(
            subscription.schedule_type,
            first_date,
            subscription.end_date,
            employee.working_days,
            subscription.custom_days,
        )
        result = await db.execute(
            select(Order.order_date).where(
                Order.employee_id == employee.id,
                Order.order_date >= first_date,
                Order.order_date <= subscription.end_date,
                Order.status != OrderStatus.CANCELLED.value,
            )
        )
        existing = set(result.scalars().all())
        price = get_combo_price(subscription.combo_type)

        created = 0
        for order_date in dates:
            if order_date in existing:
                continue
            db.add(
                Order(
                    company_id=project.company_id,
                    project_id=project.id,
                    employee_id=employee.id,
                    combo_type=subscription.combo_type,
                    price=price,
                    currency_code=project.currency_code,
                    status=OrderStatus.ACTIVE.value,
                    order_date=order_date,
                )
            )
            created += 1
        return created

    async def _pause(self, db: AsyncSession, subscription: LunchSubscription) -> None:
        if subscription.status != SubscriptionStatus.ACTIVE.value or not subscription.is_active:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Подписка уже приостановлена")
        subscription.status = SubscriptionStatus.PAUSED.value
        subscription.paused_at = datetime.now(timezone.utc)
        for order in await self._upcoming_orders(db, subscription, (OrderStatus.ACTIVE,)):
            order.status = OrderStatus.PAUSED.value
        logger.info(f"Lunch subscription paused: {subscription.id}")

    async def _resume(self, db: AsyncSession, subscription: LunchSubscription) -> None:
        if subscription.status != SubscriptionStatus.PAUSED.value:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_STATUS, "Подписка уже активна")
        subscription.status = SubscriptionStatus.ACTIVE.value
        subscription.is_active = True
        subscription.paused_at = None
        for order in await self._upcoming_orders(db, subscription, (OrderStatus.PAUSED,)):
            order.status = OrderStatus.ACTIVE.value
        logger.info(f"Lunch subscription resumed: {subscription.id}")

    async def _bulk(self, db: AsyncSession, company_id: str, subscription_ids: list[str], operation, verb: str):
        result = await db.execute(
            select(LunchSubscription).where(
                LunchSubscription.id.in_(subscription_ids),
                LunchSubscription.company_id == company_id,
            )
        )
        processed = 0
        errors: list[dict] = []
        for subscription in result.scalars().all():
            try:
                await operation(db, subscription)
            except BusinessRuleException as exc:
                errors.append({"subscriptionId": subscription.id, "code": exc.code, "message": exc.message})
                continue
            processed += 1
        await db.commit()
        return BulkOperationResult(message=f"{verb} {processed} подписок", processed=processed, errors=errors)

    @staticmethod
    async def _project_today(db: AsyncSession, subscription: LunchSubscription) -> date:
        project = await db.get(Project, subscription.project_id) if subscription.project_id else None
        return local_today(project.timezone if project else None)

    async def _upcoming_orders(
        self,
        db: AsyncSession,
        subscription: LunchSubscription,
        statuses: tuple[OrderStatus, ...],
    ) -> list[Order]:
        """Orders of the subscription that can still change (today before the cutoff, or later)"""
        today = await self._project_today(db, subscription)
        result = await db.execute(
            select(Order).where(
                Order.employee_id == subscription.employee_id,
                Order.is_guest_order.is_(False),
                Order.status.in_([status.value for status in statuses]),
                Order.order_date >= today,
            )
        )
        return [
            order
            for order in result.scalars().all()
            if order.project is None or not cutoff_service.is_locked(order.project, order.order_date)
        ]

    @staticmethod
    def _recalculate(subscription: LunchSubscription, employee: Employee | None) -> None:
        dates = get_schedule_dates(
            subscription.schedule_type,
            subscription.start_date,
            subscription.end_date,
            employee.working_days if employee else None,
            subscription.custom_days,
        )
        subscription.total_days = len(dates)
        subscription.total_price = get_combo_price(subscription.combo_type) * Decimal(len(dates))

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
    async def _get(db: AsyncSession, company_id: str, subscription_id: str) -> LunchSubscription:
        subscription = await db.scalar(
            select(LunchSubscription).where(
                LunchSubscription.id == subscription_id,
                LunchSubscription.company_id == company_id,
            )
        )
        if subscription is None:
            raise NotFoundException(ErrorCode.SUB_NOT_FOUND)
        return subscription


# Global instance
subscription_service = SubscriptionService()
