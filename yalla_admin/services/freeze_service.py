"""Order freeze service"""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode, NotFoundException
from yalla_admin.models.enums import OrderStatus, SubscriptionStatus
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import EmployeeFreezeHistory, LunchSubscription
from yalla_admin.schemas.employee import EmployeeOrderItem
from yalla_admin.schemas.order import FreezeInfo, FreezeOrderRequest, FreezePeriodRequest, FreezeResult
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.cutoff_service import cutoff_service
from yalla_admin.services.order_service import project_address
from yalla_admin.services.queries import get_company_employee
from yalla_admin.utils import order_state
from yalla_admin.utils.dates import iso_week, local_today, week_bounds
from yalla_admin.utils.working_days import next_working_day


class OrderFreezeService:
    """
    Freezing skips one subscribed day

    Each freeze moves the subscription end to the next working day and adds a
    replacement order there. An employee may freeze at most
    ``max_freezes_per_week`` orders per Monday-Sunday week.
    """

    async def freeze_order(
        self,
        db: AsyncSession,
        company_id: str,
        order_id: str,
        data: FreezeOrderRequest,
    ) -> FreezeResult:
        """
        Freeze one order

        Raises:
            NotFoundException: ORDER_NOT_FOUND
            BusinessRuleException: Guest order, not active, past date or past cutoff,
                weekly limit reached, no active subscription
        """
        order = await self._get_order(db, company_id, order_id)
        if order.employee_id is None:
            raise BusinessRuleException(ErrorCode.FREEZE_ORDER_NOT_ACTIVE, "Гостевые заказы нельзя замораживать")
        self._ensure_can_freeze(order)

        limit = await self._freeze_limit(db)
        used = await self._count_week_freezes(db, order.employee_id, order.order_date)
        if used >= limit:
            raise BusinessRuleException(
                ErrorCode.FREEZE_LIMIT_EXCEEDED,
                f"Превышен лимит заморозок ({limit} в неделю). Попробуйте на следующей неделе.",
                details={"freezesThisWeek": used, "maxFreezesPerWeek": limit},
            )

        subscription = await self._get_active_subscription(db, order.employee_id)
        replacement = self._freeze(db, order, subscription, data.reason)
        await db.commit()

        logger.info(
            f"Order {order.id} frozen, subscription extended to {subscription.end_date}, "
            f"replacement order {replacement.id}",
            extra={"employee_id": order.employee_id},
        )
        return FreezeResult(
            message="Заказ заморожен. Подписка продлена на один день",
            order_id=order.id,
            status=order.status,
            replacement_order_id=replacement.id,
            replacement_date=replacement.order_date,
            subscription_end_date=subscription.end_date,
            freeze_info=await self.get_employee_freeze_info(db, company_id, order.employee_id, order.order_date),
        )

    async def unfreeze_order(self, db: AsyncSession, company_id: str, order_id: str) -> FreezeResult:
        """
        Unfreeze an order, removing its replacement and shrinking the subscription back

        Raises:
            BusinessRuleException: FREEZE_NOT_FROZEN, past date or past cutoff
        """
        order = await self._get_order(db, company_id, order_id)
        if order.employee_id is None or order_state.parse_status(order.status) != OrderStatus.FROZEN:
            raise BusinessRuleException(ErrorCode.FREEZE_NOT_FROZEN)
        if order.project is not None:
            cutoff_service.ensure_can_modify(order.project, order.order_date)

        order_state.transition(order.status, OrderStatus.ACTIVE)
        subscription = await db.scalar(
            select(LunchSubscription).where(
                LunchSubscription.employee_id == order.employee_id,
                LunchSubscription.is_active.is_(True),
            )
        )

        if order.replacement_order_id:
            replacement = await db.get(Order, order.replacement_order_id)
            if replacement is not None:
                await db.delete(replacement)

        history = await db.scalar(select(EmployeeFreezeHistory).where(EmployeeFreezeHistory.order_id == order.id))
        if history is not None:
            await db.delete(history)

        order.status = OrderStatus.ACTIVE.value
        order.frozen_at = None
        order.frozen_reason = None
        order.replacement_order_id = None
        await db.flush()

        if subscription is not None:
            await self._shrink(db, subscription)
        await db.commit()

        logger.info(f"Order {order.id} unfrozen", extra={"employee_id": order.employee_id})
        return FreezeResult(
            message="Заказ разморожен",
            order_id=order.id,
            status=order.status,
            subscription_end_date=subscription.end_date if subscription else None,
            freeze_info=await self.get_employee_freeze_info(db, company_id, order.employee_id, order.order_date),
        )

    async def freeze_period(self, db: AsyncSession, company_id: str, data: FreezePeriodRequest) -> list[FreezeResult]:
        """
        Freeze the employee's active orders in a date range

        Stops at the weekly limit; orders that cannot be frozen are left as they are.
        """
        if data.end_date < data.start_date:
            raise BusinessRuleException(ErrorCode.SUB_INVALID_PERIOD)
        employee = await get_company_employee(db, company_id, data.employee_id)

        result = await db.execute(
            select(Order)
            .where(
                Order.employee_id == employee.id,
                Order.company_id == company_id,
                Order.status == OrderStatus.ACTIVE.value,
                Order.order_date >= data.start_date,
                Order.order_date <= data.end_date,
            )
            .order_by(Order.order_date)
        )
        orders = list(result.scalars().all())
        if not orders:
            raise BusinessRuleException(
                ErrorCode.FREEZE_ORDER_NOT_ACTIVE,
                "Нет активных заказов в указанном периоде",
            )

        subscription = await self._get_active_subscription(db, employee.id)
        limit = await self._freeze_limit(db)

        frozen: list[tuple[Order, Order]] = []
        for order in orders:
            if order.project is not None and cutoff_service.is_locked(order.project, order.order_date):
                continue
            if order.project is not None and order.order_date < local_today(order.project.timezone):
                continue
            if await self._count_week_freezes(db, employee.id, order.order_date) >= limit:
                logger.warning(f"Freeze limit reached for employee {employee.id} on {order.order_date}")
                break
            frozen.append((order, self._freeze(db, order, subscription, data.reason)))
            await db.flush()

        await db.commit()
        logger.info(f"Period freeze for employee {employee.id}: {len(frozen)} orders frozen")
        return [
            FreezeResult(
                message="Заказ заморожен",
                order_id=order.id,
                status=order.status,
                replacement_order_id=replacement.id,
                replacement_date=replacement.order_date,
                subscription_end_date=subscription.end_date,
            )
            for order, replacement in frozen
        ]

    async def get_employee_freeze_info(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        on_date: date | None = None,
    ) -> FreezeInfo:
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)
        week_start, week_end = week_bounds(on_date or local_today())
        limit = await self._freeze_limit(db)

        result = await db.execute(
            select(Order.order_date)
            .where(
                Order.employee_id == employee.id,
                Order.status == OrderStatus.FROZEN.value,
                Order.order_date >= week_start,
                Order.order_date <= week_end,
            )
            .order_by(Order.order_date)
        )
        frozen_dates = list(result.scalars().all())
        return FreezeInfo(
            employee_id=employee.id,
            freezes_this_week=len(frozen_dates),
            max_freezes_per_week=limit,
            remaining_freezes=max(0, limit - len(frozen_dates)),
            week_start=week_start,
            week_end=week_end,
            frozen_dates=frozen_dates,
        )

    async def get_employee_orders(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[EmployeeOrderItem]:
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)
        query = select(Order).where(Order.employee_id == employee.id, Order.company_id == company_id)
        if start_date:
            query = query.where(Order.order_date >= start_date)
        if end_date:
            query = query.where(Order.order_date <= end_date)
        result = await db.execute(query.order_by(Order.order_date.desc()))
        return [
            EmployeeOrderItem(
                id=order.id,
                date=order.order_date.isoformat(),
                combo_type=order.combo_type,
                price=order.price,
                status=order.status,
                address=project_address(order.project),
            )
            for order in result.scalars().all()
        ]

    def _freeze(self, db: AsyncSession, order: Order, subscription: LunchSubscription, reason: str | None) -> Order:
        order_state.transition(order.status, OrderStatus.FROZEN)
        working_days = order.employee.working_days if order.employee else None

        if subscription.original_end_date is None:
            subscription.original_end_date = subscription.end_date
        subscription.end_date = next_working_day(subscription.end_date, working_days)
        subscription.frozen_days_count = (subscription.frozen_days_count or 0) + 1

        replacement = Order(
            id=str(uuid.uuid4()),
            company_id=order.company_id,
            project_id=order.project_id,
            employee_id=order.employee_id,
            combo_type=order.combo_type,
            price=order.price,
            currency_code=order.currency_code,
            status=OrderStatus.ACTIVE.value,
            order_date=subscription.end_date,
        )
        db.add(replacement)
        order.status = OrderStatus.FROZEN.value
        order.frozen_at = datetime.now(timezone.utc)
        order.frozen_reason = reason
        order.replacement_order_id = replacement.id

        week_year, week_number = iso_week(order.order_date)
        db.add(
            EmployeeFreezeHistory(
                employee_id=order.employee_id,
                order_id=order.id,
                original_date=order.order_date,
                replacement_date=subscription.end_date,
                reason=reason,
                week_year=week_year,
                week_number=week_number,
            )
        )
        return replacement

    async def _shrink(self, db: AsyncSession, subscription: LunchSubscription) -> None:
        subscription.frozen_days_count = max(0, (subscription.frozen_days_count or 0) - 1)
        if subscription.frozen_days_count == 0 and subscription.original_end_date is not None:
            subscription.end_date = subscription.original_end_date
            subscription.original_end_date = None
            return

        last_date = await db.scalar(
            select(func.max(Order.order_date)).where(
                Order.employee_id == subscription.employee_id,
                Order.status != OrderStatus.CANCELLED.value,
                Order.order_date >= subscription.start_date,
            )
        )
        if last_date is not None and last_date < subscription.end_date:
            subscription.end_date = max(last_date, subscription.original_end_date or last_date)

    @staticmethod
    def _ensure_can_freeze(order: Order) -> None:
        if order_state.parse_status(order.status) != OrderStatus.ACTIVE:
            raise BusinessRuleException(ErrorCode.FREEZE_ORDER_NOT_ACTIVE)
        if order.project is None:
            return
        if order.order_date < local_today(order.project.timezone):
            raise BusinessRuleException(ErrorCode.FREEZE_PAST_DATE)
        cutoff_service.ensure_can_modify(order.project, order.order_date)

    @staticmethod
    async def _get_order(db: AsyncSession, company_id: str, order_id: str) -> Order:
        order = await db.scalar(select(Order).where(Order.id == order_id, Order.company_id == company_id))
        if order is None:
            raise NotFoundException(ErrorCode.ORDER_NOT_FOUND)
        return order

    @staticmethod
    async def _get_active_subscription(db: AsyncSession, employee_id: str) -> LunchSubscription:
        subscription = await db.scalar(
            select(LunchSubscription).where(
                LunchSubscription.employee_id == employee_id,
                LunchSubscription.is_active.is_(True),
                LunchSubscription.status == SubscriptionStatus.ACTIVE.value,
            )
        )
        if subscription is None:
            raise BusinessRuleException(ErrorCode.SUB_NOT_FOUND, "У сотрудника нет активной подписки")
        return subscription

    @staticmethod
    async def _count_week_freezes(db: AsyncSession, employee_id: str, on_date: date) -> int:
        week_start, week_end = week_bounds(on_date)
        count = await db.scalar(
            select(func.count(Order.id)).where(
                Order.employee_id == employee_id,
                Order.status == OrderStatus.FROZEN.value,
                Order.order_date >= week_start,
                Order.order_date <= week_end,
            )
        )
        return int(count or 0)

    @staticmethod
    async def _freeze_limit(db: AsyncSession) -> int:
        return await business_config_service.get_int(db, "max_freezes_per_week", 2)


# Global instance
order_freeze_service = OrderFreezeService()
