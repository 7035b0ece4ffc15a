"""Order management service (dashboard orders)"""

from decimal import Decimal

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import BusinessRuleException, ErrorCode, ValidationException
from yalla_admin.models.company import Project
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import OrderStatus, ServiceType
from yalla_admin.models.finance import CompensationTransaction
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import LunchSubscription
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.order import (
    AssignMealsRequest,
    AssignMealsResult,
    BulkActionRequest,
    BulkActionResult,
    GuestOrderCreate,
    GuestOrderResult,
    OrderFilters,
    OrderListItem,
    SkippedEmployee,
)
from yalla_admin.schemas.subscription import BulkOperationResult
from yalla_admin.services.budget_service import budget_service
from yalla_admin.services.cutoff_service import cutoff_service
from yalla_admin.services.queries import get_company, get_company_employee, get_company_project, like_pattern
from yalla_admin.utils import order_state
from yalla_admin.utils.dates import format_time, local_today, parse_date
from yalla_admin.utils.pricing import get_combo_price

GUEST_LABEL = "Гость"
EMPLOYEE_LABEL = "Сотрудник"
BULK_ACTIONS = ("pause", "resume", "cancel", "changecombo")
# Actions blocked on today's orders once the cutoff has passed
CUTOFF_ACTIONS = ("pause", "cancel", "changecombo")


def project_address(project: Project | None) -> str | None:
    if project is None:
        return None
    return project.address_full_address or project.address_name or ""


def to_list_item(order: Order) -> OrderListItem:
    """Map an order to the dashboard list row"""
    employee = order.employee
    return OrderListItem(
        id=order.id,
        employee_id=order.employee_id,
        employee_name=order.display_name,
        phone=employee.phone if employee else None,
        date=order.order_date.isoformat(),
        status=order_state.parse_status(order.status).value,
        address=project_address(order.project),
        project_id=order.project_id,
        project_name=order.project.name if order.project else None,
        combo_type=order.combo_type,
        amount=order.price,
        type=GUEST_LABEL if order.is_guest_order else EMPLOYEE_LABEL,
        service_type=ServiceType.LUNCH.value,
    )


class OrderService:
    """Service for listing and managing daily orders"""

    async def get_orders(
        self,
        db: AsyncSession,
        company_id: str,
        filters: OrderFilters,
        page: int = 1,
        page_size: int = 20,
        project_id: str | None = None,
    ) -> PagedResponse[OrderListItem]:
        """
        List lunch orders merged with compensation transactions

        Args:
            db: Database session
            company_id: Company ID
            filters: Search and filter values
            page: Page number
            page_size: Page size
            project_id: Restrict to one project (non-headquarters users)

        Returns:
            Page of orders sorted by date (newest first), then name
        """
        service_type = (filters.service_type or "").upper()
        order_type = (filters.type or "").lower()
        include_lunch = service_type in ("", ServiceType.LUNCH.value)
        include_compensation = service_type in ("", ServiceType.COMPENSATION.value) and order_type != "guest"
        # Status and combo filters only apply to lunch orders
        if filters.status or filters.combo_type:
            include_compensation = include_compensation and service_type == ServiceType.COMPENSATION.value

        query = self._lunch_query(company_id, filters, project_id)

        if include_lunch and not include_compensation:
            total = await db.scalar(select(func.count()).select_from(query.order_by(None).subquery()))
            page = max(page, 1)
            result = await db.execute(query.offset((page - 1) * page_size).limit(page_size))
            items = [to_list_item(order) for order in result.scalars().all()]
            return PagedResponse[OrderListItem].build(items, int(total or 0), page, page_size)

        items: list[OrderListItem] = []
        if include_lunch:
            result = await db.execute(query)
            items.extend(to_list_item(order) for order in result.scalars().all())
        if include_compensation:
            items.extend(await self._compensation_items(db, company_id, filters, project_id))

        items.sort(key=lambda item: item.employee_name or "")
        items.sort(key=lambda item: item.date, reverse=True)
        total = len(items)
        page = max(page, 1)
        start = (page - 1) * page_size
        return PagedResponse[OrderListItem].build(items[start:start + page_size], total, page, page_size)

    async def create_guest_orders(
        self,
        db: AsyncSession,
        company_id: str,
        data: GuestOrderCreate,
        project_id: str | None = None,
        user_id: str | None = None,
    ) -> GuestOrderResult:
        """
        Create guest orders for a project

        The budget is only checked here, it is charged at settlement.

        Raises:
            ValidationException: No project or invalid date
            BusinessRuleException: Past date, cutoff passed or insufficient budget
        """
        target_project_id = data.project_id or project_id
        if not target_project_id:
            raise ValidationException(ErrorCode.VALIDATION_ERROR, "Необходимо указать проект для гостевого заказа")
        project = await get_company_project(db, company_id, target_project_id)

        order_date = parse_date(data.date)
        if order_date is None:
            raise ValidationException(ErrorCode.VALIDATION_ERROR, "Неверный формат даты. Используйте YYYY-MM-DD")

        price = get_combo_price(data.combo_type)
        total_cost = price * data.quantity

        cutoff_service.ensure_can_modify(
            project,
            order_date,
            message=f"Время для заказов на сегодня истекло в {format_time(project.cutoff_time)}",
        )
        await budget_service.ensure_can_charge(db, project, total_cost)

        orders = [
            Order(
                company_id=company_id,
                project_id=project.id,
                created_by_user_id=user_id,
                guest_name=data.order_name.strip(),
                is_guest_order=True,
                combo_type=data.combo_type,
                price=price,
                currency_code=project.currency_code,
                status=OrderStatus.ACTIVE.value,
                order_date=order_date,
            )
            for _ in range(data.quantity)
        ]
        db.add_all(orders)
        await db.commit()
        for order in orders:
            await db.refresh(order)

        logger.info(
            f"Created {data.quantity} guest orders for project {project.id}, pending settlement {total_cost}",
            extra={"company_id": company_id},
        )
        return GuestOrderResult(
            message=f"Создано {data.quantity} гостевых заказов",
            orders=[to_list_item(order) for order in orders],
            total_cost=total_cost,
            remaining_budget=project.budget,
        )

    async def assign_meals(self, db: AsyncSession, company_id: str, data: AssignMealsRequest) -> AssignMealsResult:
        """
        Create one order per employee for a date

        Employees that cannot get a lunch are skipped with a reason.
        """
        company = await get_company(db, company_id)
        order_date = parse_date(data.date)
        if order_date is None:
            raise ValidationException(ErrorCode.VALIDATION_ERROR, "Неверный формат даты. Используйте YYYY-MM-DD")
        price = get_combo_price(data.combo_type)

        result = await db.execute(
            select(Employee).where(Employee.id.in_(data.employee_ids), Employee.company_id == company_id)
        )
        employees = result.scalars().all()

        created = 0
        skipped: list[SkippedEmployee] = []
        for employee in employees:
            reason = self._assignment_skip_reason(employee, price)
            project = await db.get(Project, employee.project_id) if reason is None else None
            if reason is None and project is None:
                reason = "нет проекта"
            if reason is None:
                try:
                    cutoff_service.ensure_can_modify(
                        project,
                        order_date,
                        message=f"время заказа на сегодня истекло в {format_time(project.cutoff_time)}",
                    )
                except BusinessRuleException as exc:
                    reason = exc.message
            if reason is None:
                existing = await db.scalar(
                    select(Order.id).where(Order.employee_id == employee.id, Order.order_date == order_date).limit(1)
                )
                if existing:
                    reason = "уже есть заказ"

            if reason is not None:
                skipped.append(SkippedEmployee(employee_id=employee.id, name=employee.full_name, reason=reason))
                continue

            db.add(
                Order(
                    company_id=company_id,
                    project_id=project.id,
                    employee_id=employee.id,
                    combo_type=data.combo_type,
                    price=price,
                    currency_code=company.currency_code,
                    status=OrderStatus.ACTIVE.value,
                    order_date=order_date,
                )
            )
            employee.budget.total_budget -= price
            created += 1

        await db.commit()
        logger.info(f"Assigned meals to {created} employees, skipped {len(skipped)}")
        return AssignMealsResult(message=f"Назначено {created} заказов", created=created, skipped=skipped)

    async def bulk_action(self, db: AsyncSession, company_id: str, data: BulkActionRequest) -> BulkActionResult:
        """
        Apply pause / resume / cancel / changecombo to several orders

        Raises:
            ValidationException: Unknown action or missing combo type
            BusinessRuleException: A today's order is past its project cutoff
        """
        action = data.action.strip().lower()
        if action not in BULK_ACTIONS:
            raise ValidationException(ErrorCode.ORDER_UNKNOWN_ACTION, f"Неизвестное действие: {data.action}")
        if action == "changecombo" and not (data.combo_type and data.combo_type.strip()):
            raise ValidationException(ErrorCode.VALIDATION_ERROR, "Укажите тип комбо")

        result = await db.execute(
            select(Order).where(Order.id.in_(data.order_ids), Order.company_id == company_id)
        )
        orders = result.scalars().all()

        if action in CUTOFF_ACTIONS:
            for order in orders:
                if order.project is not None and cutoff_service.is_locked(order.project, order.order_date):
                    cutoff = format_time(order.project.cutoff_time)
                    raise BusinessRuleException(
                        ErrorCode.ORDER_CUTOFF_PASSED,
                        f"Время для изменения заказов на сегодня истекло в {cutoff}. "
                        "Заказы на завтра и далее можно изменять.",
                    )

        updated = 0
        skipped: list[str] = []
        for order in orders:
            reason = await self._apply_action(db, order, action, data.combo_type)
            if reason is None:
                updated += 1
            else:
                skipped.append(f"{order.display_name}: {reason}")

        await db.commit()

        message = f"Обновлено {updated} заказов"
        if action == "cancel":
            message = f"Отменено {updated} заказов"
        if skipped:
            message += f" (пропущено: {len(skipped)})"
        logger.info(f"Bulk {action}: updated={updated}, skipped={len(skipped)}", extra={"company_id": company_id})
        return BulkActionResult(message=message, updated_count=updated, skipped_count=len(skipped), skipped=skipped)

    async def update_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        combo_type: str,
    ) -> BulkOperationResult:
        """Change the combo of an employee's active orders and lunch subscription"""
        employee = await get_company_employee(db, company_id, employee_id)
        await self._change_combo_for(db, [employee.id], combo_type)
        await db.commit()
        logger.info(f"Updated orders and subscription for employee {employee.id} with combo {combo_type}")
        return BulkOperationResult(message="Подписка обновлена", processed=1)

    async def bulk_update_subscription(
        self,
        db: AsyncSession,
        company_id: str,
        employee_ids: list[str],
        combo_type: str,
    ) -> BulkOperationResult:
        result = await db.execute(
            select(Employee.id).where(
                Employee.id.in_(employee_ids),
                Employee.company_id == company_id,
                Employee.deleted_at.is_(None),
            )
        )
        ids = list(result.scalars().all())
        if ids:
            await self._change_combo_for(db, ids, combo_type)
        await db.commit()
        logger.info(f"Bulk updated subscriptions for {len(ids)} employees")
        return BulkOperationResult(message=f"Обновлено {len(ids)} подписок", processed=len(ids))

    def _lunch_query(self, company_id: str, filters: OrderFilters, project_id: str | None):
        query = (
            select(Order)
            .outerjoin(Employee, Employee.id == Order.employee_id)
            .where(Order.company_id == company_id)
        )
        if project_id:
            query = query.where(Order.project_id == project_id)
        if filters.project_id:
            query = query.where(Order.project_id == filters.project_id)
        if filters.address:
            query = query.where(Order.project_id == filters.address)
        if filters.status:
            query = query.where(Order.status == order_state.parse_status(filters.status).value)

        exact_date = parse_date(filters.date)
        if exact_date:
            query = query.where(Order.order_date == exact_date)
        date_from, date_to = parse_date(filters.date_from), parse_date(filters.date_to)
        if date_from:
            query = query.where(Order.order_date >= date_from)
        if date_to:
            query = query.where(Order.order_date <= date_to)

        order_type = (filters.type or "").lower()
        if order_type == "guest":
            query = query.where(Order.is_guest_order.is_(True))
        elif order_type == "employee":
            query = query.where(Order.is_guest_order.is_(False))
        if filters.combo_type:
            query = query.where(Order.combo_type == filters.combo_type)
        if filters.search:
            pattern = like_pattern(filters.search)
            query = query.where(or_(Employee.full_name.ilike(pattern), Order.guest_name.ilike(pattern)))

        return query.order_by(Order.order_date.desc(), func.coalesce(Employee.full_name, Order.guest_name), Order.id)

    async def _compensation_items(
        self,
        db: AsyncSession,
        company_id: str,
        filters: OrderFilters,
        project_id: str | None,
    ) -> list[OrderListItem]:
        query = (
            select(CompensationTransaction, Employee.full_name, Employee.phone, Project.name)
            .join(Project, Project.id == CompensationTransaction.project_id)
            .outerjoin(Employee, Employee.id == CompensationTransaction.employee_id)
            .where(Project.company_id == company_id)
        )
        for value in (project_id, filters.project_id, filters.address):
            if value:
                query = query.where(CompensationTransaction.project_id == value)

        exact_date = parse_date(filters.date)
        if exact_date:
            query = query.where(CompensationTransaction.transaction_date == exact_date)
        date_from, date_to = parse_date(filters.date_from), parse_date(filters.date_to)
        if date_from:
            query = query.where(CompensationTransaction.transaction_date >= date_from)
        if date_to:
            query = query.where(CompensationTransaction.transaction_date <= date_to)
        if filters.search:
            query = query.where(Employee.full_name.ilike(like_pattern(filters.search)))

        result = await db.execute(query)
        return [
            OrderListItem(
                id=transaction.id,
                employee_id=transaction.employee_id,
                employee_name=full_name or EMPLOYEE_LABEL,
                phone=phone,
                date=transaction.transaction_date.isoformat(),
                status=OrderStatus.COMPLETED.value,
                address=transaction.restaurant_name or "",
                project_id=transaction.project_id,
                project_name=project_name,
                combo_type="",
                amount=transaction.total_amount,
                type=EMPLOYEE_LABEL,
                service_type=ServiceType.COMPENSATION.value,
            )
            for transaction, full_name, phone, project_name in result.all()
        ]

    @staticmethod
    def _assignment_skip_reason(employee: Employee, price: Decimal) -> str | None:
        if employee.deleted_at is not None:
            return "удалён"
        if not employee.is_active:
            return "неактивен"
        if employee.service_type == ServiceType.COMPENSATION.value:
            return "тип услуги: Компенсация"
        if not employee.project_id:
            return "нет проекта"
        if employee.budget is None or employee.budget.total_budget < price:
            return "недостаточно бюджета"
        return None

    async def _apply_action(
        self,
        db: AsyncSession,
        order: Order,
        action: str,
        combo_type: str | None,
    ) -> str | None:
        """Apply one action, returning the skip reason when it is not allowed"""
        if action == "pause":
            if not order_state.can_transition(order.status, OrderStatus.PAUSED):
                return "невозможно приостановить"
            order.status = OrderStatus.PAUSED.value
            return None

        if action == "resume":
            if not order_state.can_transition(order.status, OrderStatus.ACTIVE):
                return "невозможно возобновить"
            order.status = OrderStatus.ACTIVE.value
            return None

        if order.project is not None and order.order_date < local_today(order.project.timezone):
            return "заказ на прошедшую дату"

        if action == "changecombo":
            if not order_state.can_be_modified(order.status):
                return "нельзя изменить"
            order.combo_type = combo_type.strip()
            order.price = get_combo_price(order.combo_type)
            return None

        if not order_state.can_be_cancelled(order.status):
            return "нельзя отменить"

        is_future = order.project is not None and order.order_date > local_today(order.project.timezone)
        if not order.is_guest_order and order.employee_id and is_future:
            has_subscription = await db.scalar(
                select(LunchSubscription.id).where(
                    LunchSubscription.employee_id == order.employee_id,
                    LunchSubscription.is_active.is_(True),
                )
            )
            if not has_subscription:
                # A cancelled future order without a subscription has nothing to keep
                await db.delete(order)
                return None

        order.status = OrderStatus.CANCELLED.value
        return None

    async def _change_combo_for(self, db: AsyncSession, employee_ids: list[str], combo_type: str) -> None:
        price = get_combo_price(combo_type)
        result = await db.execute(
            select(Order).where(Order.employee_id.in_(employee_ids), Order.status == OrderStatus.ACTIVE.value)
        )
        for order in result.scalars().all():
            # Past orders and today's orders after the cutoff keep their combo
            timezone = order.project.timezone if order.project else None
            if order.order_date < local_today(timezone):
                continue
            if order.project is not None and cutoff_service.is_locked(order.project, order.order_date):
                continue
            order.combo_type = combo_type
            order.price = price

        result = await db.execute(
            select(LunchSubscription).where(
                LunchSubscription.employee_id.in_(employee_ids),
                LunchSubscription.is_active.is_(True),
            )
        )
        for subscription in result.scalars().all():
            subscription.combo_type = combo_type
            project = await db.get(Project, subscription.project_id) if subscription.project_id else None
            remaining = await db.scalar(
                select(func.count(Order.id)).where(
                    Order.employee_id == subscription.employee_id,
                    Order.status.in_((OrderStatus.ACTIVE.value, OrderStatus.FROZEN.value)),
                    Order.order_date >= local_today(project.timezone if project else None),
                )
            )
            if remaining:
                subscription.total_price = price * remaining


# Global instance
order_service = OrderService()
