"""Employee service"""

from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import and_, delete, exists, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.core.errors import (
    BusinessRuleException,
    ErrorCode,
    FieldError,
    MultiValidationException,
)
from yalla_admin.models.company import Project
from yalla_admin.models.employee import Employee, EmployeeBudget
from yalla_admin.models.enums import (
    BudgetPeriod,
    EmployeeStatus,
    InviteStatus,
    OrderStatus,
    ServiceType,
    ShiftType,
)
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import LunchSubscription
from yalla_admin.models.user import AdminUser
from yalla_admin.schemas.common import PagedResponse
from yalla_admin.schemas.employee import (
    EmployeeBudgetSchema,
    EmployeeCreate,
    EmployeeOrderItem,
    EmployeeResponse,
    EmployeeUpdate,
)
from yalla_admin.services.queries import get_company, get_company_employee, like_pattern, paginate
from yalla_admin.utils.dates import format_time, local_today, parse_time
from yalla_admin.utils.validators import (
    normalize_phone,
    validate_email,
    validate_phone,
    validate_time,
    validate_work_time_range,
    validate_working_days,
)

SORT_FIELDS = {
    "name": Employee.full_name,
    "fullname": Employee.full_name,
    "phone": Employee.phone,
    "email": Employee.email,
    "budget": EmployeeBudget.total_budget,
    "status": Employee.is_active,
}


class EmployeeService:
    """Service for employee roster management"""

    async def list_employees(
        self,
        db: AsyncSession,
        company_id: str,
        page: int = 1,
        page_size: int = 20,
        search: str | None = None,
        status: str | None = None,
        invite_status: str | None = None,
        order_status: str | None = None,
        min_budget: Decimal | None = None,
        max_budget: Decimal | None = None,
        has_subscription: bool | None = None,
        project_id: str | None = None,
        service_type: str | None = None,
        sort_by: str | None = None,
        sort_desc: bool = True,
    ) -> PagedResponse[EmployeeResponse]:
        """
        List employees of a company

        Args:
            db: Database session
            company_id: Company ID
            page: Page number
            page_size: Page size
            search: Substring of name, phone or email
            status: "active" or "inactive"
            invite_status: Invite status label
            order_status: "ordered" / "not_ordered" for today
            min_budget: Minimum total budget
            max_budget: Maximum total budget
            has_subscription: Filter by active lunch subscription
            project_id: Restrict to one project
            service_type: LUNCH or COMPENSATION
            sort_by: name, phone, email, budget or status (default: creation date)
            sort_desc: Descending order

        Returns:
            Page of employees
        """
        company = await get_company(db, company_id)
        today = local_today(company.timezone)

        query = (
            select(Employee)
            .outerjoin(EmployeeBudget, EmployeeBudget.employee_id == Employee.id)
            .where(Employee.company_id == company_id, Employee.deleted_at.is_(None))
        )

        if search:
            pattern = like_pattern(search)
            query = query.where(
                or_(
                    Employee.full_name.ilike(pattern),
                    Employee.phone.ilike(pattern),
                    Employee.email.ilike(pattern),
                )
            )
        if status:
            if status.lower() == "active":
                query = query.where(Employee.is_active.is_(True))
            elif status.lower() == "inactive":
                query = query.where(Employee.is_active.is_(False))
        if invite_status:
            query = query.where(Employee.invite_status == invite_status)
        if project_id:
            query = query.where(Employee.project_id == project_id)
        if service_type:
            query = query.where(Employee.service_type == service_type.upper())
        if min_budget is not None:
            query = query.where(EmployeeBudget.total_budget >= min_budget)
        if max_budget is not None:
            query = query.where(EmployeeBudget.total_budget <= max_budget)

        if order_status:
            has_order_today = exists().where(
                Order.employee_id == Employee.id,
                Order.order_date == today,
                Order.status != OrderStatus.CANCELLED.value,
            )
            if order_status.lower() == "ordered":
                query = query.where(has_order_today)
            elif order_status.lower() == "not_ordered":
                query = query.where(~has_order_today)

        if has_subscription is not None:
            active_subscription = exists().where(
                LunchSubscription.employee_id == Employee.id,
                LunchSubscription.is_active.is_(True),
            )
            query = query.where(active_subscription if has_subscription else ~active_subscription)

        sort_column = SORT_FIELDS.get((sort_by or "").lower(), Employee.created_at)
        query = query.order_by(sort_column.desc() if sort_desc else sort_column.asc(), Employee.id)

        employees, total = await paginate(db, query, page, page_size)
        items = await self._build_responses(db, employees, today)
        return PagedResponse[EmployeeResponse].build(items, total, page, page_size)

    async def get_employee(self, db: AsyncSession, company_id: str, employee_id: str) -> EmployeeResponse:
        employee = await get_company_employee(db, company_id, employee_id)
        company = await get_company(db, company_id)
        return (await self._build_responses(db, [employee], local_today(company.timezone)))[0]

    async def create_employee(
        self,
        db: AsyncSession,
        company_id: str,
        data: EmployeeCreate,
    ) -> EmployeeResponse:
        """
        Create an employee with an empty monthly budget

        Raises:
            MultiValidationException: With every invalid field
        """
        errors = self._validate_fields(data, require_identity=True)
        phone = normalize_phone(data.phone)
        email = data.email.strip().lower() if data.email and data.email.strip() else None

        if data.project_id:
            errors.extend(await self._validate_project(db, company_id, data.project_id))
        if phone and not any(error.field == "phone" for error in errors):
            errors.extend(await self._validate_phone_unique(db, phone))
        if email and not any(error.field == "email" for error in errors):
            errors.extend(await self._validate_email_unique(db, email))

        if errors:
            raise MultiValidationException(errors)

        employee = Employee(
            company_id=company_id,
            project_id=data.project_id,
            full_name=data.full_name.strip(),
            phone=phone,
            email=email,
            position=data.position,
            is_active=True,
            status=EmployeeStatus.ACTIVE.value,
            invite_status=InviteStatus.ACCEPTED.value,
            service_type=data.service_type.upper() if data.service_type else None,
            shift_type=(data.shift_type or ShiftType.DAY.value).upper(),
            working_days=data.working_days if data.working_days is not None else [1, 2, 3, 4, 5],
            work_start_time=parse_time(data.work_start_time),
            work_end_time=parse_time(data.work_end_time),
        )
        employee.budget = EmployeeBudget(
            total_budget=Decimal("0"),
            daily_limit=Decimal("0"),
            period=BudgetPeriod.MONTHLY.value,
            auto_renew=True,
        )
        db.add(employee)
        await db.commit()
        await db.refresh(employee)

        logger.info(f"Employee created: {employee.id} ({employee.full_name})", extra={"company_id": company_id})
        return await self.get_employee(db, company_id, employee.id)

    async def update_employee(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        data: EmployeeUpdate,
    ) -> EmployeeResponse:
        """
        Partially update an employee

        Raises:
            BusinessRuleException: Deleted employee, or service type switch while
                a lunch subscription is active
            MultiValidationException: Invalid fields
        """
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)
        if employee.is_deleted:
            raise BusinessRuleException(
                ErrorCode.EMP_DELETED,
                "Невозможно обновить удалённого сотрудника. Сначала восстановите его.",
            )

        errors = self._validate_fields(data, require_identity=False)
        phone = normalize_phone(data.phone) if data.phone is not None else None
        email = None
        if data.email is not None:
            email = data.email.strip().lower() or None

        if data.project_id and data.project_id != employee.project_id:
            errors.extend(await self._validate_project(db, company_id, data.project_id))
        if phone and phone != employee.phone and not any(error.field == "phone" for error in errors):
            errors.extend(await self._validate_phone_unique(db, phone))
        if email and email != employee.email and not any(error.field == "email" for error in errors):
            errors.extend(await self._validate_email_unique(db, email))
        if errors:
            raise MultiValidationException(errors)

        new_service_type = data.service_type.upper() if data.service_type else None
        if new_service_type and new_service_type != employee.service_type:
            if await self._has_active_subscription(db, employee.id):
                raise BusinessRuleException(ErrorCode.EMP_SERVICE_TYPE_SWITCH_BLOCKED)
            employee.service_type = new_service_type

        if data.full_name is not None:
            employee.full_name = data.full_name.strip()
        if phone:
            employee.phone = phone
        if data.email is not None:
            employee.email = email
        if data.position is not None:
            employee.position = data.position
        if data.project_id is not None:
            employee.project_id = data.project_id or None
        if data.shift_type is not None:
            employee.shift_type = data.shift_type.upper()
        if data.working_days is not None:
            employee.working_days = data.working_days
        if data.work_start_time is not None:
            employee.work_start_time = parse_time(data.work_start_time)
        if data.work_end_time is not None:
            employee.work_end_time = parse_time(data.work_end_time)

        await db.commit()
        logger.info(f"Employee updated: {employee.id}")
        return await self.get_employee(db, company_id, employee.id)

    async def toggle_activation(self, db: AsyncSession, company_id: str, employee_id: str) -> EmployeeResponse:
        """
        Activate or deactivate an employee

        Deactivation pauses the employee's upcoming active orders.
        """
        employee = await get_company_employee(db, company_id, employee_id)
        company = await get_company(db, company_id)
        employee.is_active = not employee.is_active
        employee.status = EmployeeStatus.ACTIVE.value if employee.is_active else EmployeeStatus.DEACTIVATED.value

        if not employee.is_active:
            result = await db.execute(
                select(Order).where(
                    Order.employee_id == employee.id,
                    Order.order_date >= local_today(company.timezone),
                    Order.status == OrderStatus.ACTIVE.value,
                )
            )
            paused = 0
            for order in result.scalars().all():
                order.status = OrderStatus.PAUSED.value
                paused += 1
            logger.info(f"Employee {employee.id} deactivated, paused {paused} orders")

        await db.commit()
        return await self.get_employee(db, company_id, employee.id)

    async def delete_employee(self, db: AsyncSession, company_id: str, employee_id: str) -> None:
        """Soft-delete an employee and cancel upcoming orders and the subscription"""
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)
        if employee.is_deleted:
            raise BusinessRuleException(ErrorCode.EMP_ALREADY_DELETED)

        company = await get_company(db, company_id)
        today = local_today(company.timezone)
        employee.deleted_at = datetime.now(timezone.utc)
        employee.is_active = False
        employee.status = EmployeeStatus.DEACTIVATED.value

        result = await db.execute(
            select(Order).where(
                Order.employee_id == employee.id,
                Order.order_date > today,
                Order.status.in_((OrderStatus.ACTIVE.value, OrderStatus.PAUSED.value, OrderStatus.FROZEN.value)),
            )
        )
        for order in result.scalars().all():
            order.status = OrderStatus.CANCELLED.value

        subscription = await db.scalar(select(LunchSubscription).where(LunchSubscription.employee_id == employee.id))
        if subscription is not None:
            subscription.is_active = False

        await db.commit()
        logger.info(f"Employee soft-deleted: {employee.id}")

    async def delete_employee_permanently(self, db: AsyncSession, company_id: str, employee_id: str) -> None:
        """Remove an employee with orders and subscriptions"""
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)
        await db.execute(delete(Order).where(Order.employee_id == employee.id))
        await db.execute(delete(LunchSubscription).where(LunchSubscription.employee_id == employee.id))
        await db.delete(employee)
        await db.commit()
        logger.warning(f"Employee permanently deleted: {employee_id}")

    async def get_order_history(
        self,
        db: AsyncSession,
        company_id: str,
        employee_id: str,
        page: int = 1,
        page_size: int = 20,
        date_from: date | None = None,
        date_to: date | None = None,
        status: str | None = None,
    ) -> PagedResponse[EmployeeOrderItem]:
        employee = await get_company_employee(db, company_id, employee_id, include_deleted=True)

        query = select(Order).where(Order.employee_id == employee.id)
        if date_from:
            query = query.where(Order.order_date >= date_from)
        if date_to:
            query = query.where(Order.order_date <= date_to)
        if status:
            query = query.where(Order.status == status)
        query = query.order_by(Order.order_date.desc())

        orders, total = await paginate(db, query, page, page_size)
        items = [
            EmployeeOrderItem(
                id=order.id,
                date=order.order_date.isoformat(),
                combo_type=order.combo_type,
                price=order.price,
                status=order.status,
                address=_project_address(order.project),
            )
            for order in orders
        ]
        return PagedResponse[EmployeeOrderItem].build(items, total, page, page_size)

    def get_invite_statuses(self) -> list[str]:
        return [status.value for status in InviteStatus]

    async def _build_responses(
        self,
        db: AsyncSession,
        employees: list[Employee],
        today: date,
    ) -> list[EmployeeResponse]:
        if not employees:
            return []
        ids = [employee.id for employee in employees]

        project_ids = {employee.project_id for employee in employees if employee.project_id}
        projects = {}
        if project_ids:
            result = await db.execute(select(Project.id, Project.name).where(Project.id.in_(project_ids)))
            projects = dict(result.all())

        result = await db.execute(
            select(LunchSubscription).where(
                LunchSubscription.employee_id.in_(ids),
                LunchSubscription.is_active.is_(True),
            )
        )
        subscriptions = {subscription.employee_id: subscription for subscription in result.scalars().all()}

        result = await db.execute(
            select(Order.employee_id, Order.status).where(
                Order.employee_id.in_(ids),
                Order.order_date == today,
                Order.is_guest_order.is_(False),
            )
        )
        today_orders = dict(result.all())

        responses = []
        for employee in employees:
            subscription = subscriptions.get(employee.id)
            budget = employee.budget
            responses.append(
                EmployeeResponse(
                    id=employee.id,
                    full_name=employee.full_name,
                    phone=employee.phone,
                    email=employee.email,
                    position=employee.position,
                    project_id=employee.project_id,
                    project_name=projects.get(employee.project_id),
                    is_active=employee.is_active,
                    status=employee.status,
                    invite_status=employee.invite_status,
                    service_type=employee.service_type,
                    shift_type=employee.shift_type,
                    working_days=list(employee.working_days or []),
                    work_start_time=format_time(employee.work_start_time),
                    work_end_time=format_time(employee.work_end_time),
                    budget=EmployeeBudgetSchema.model_validate(budget) if budget else None,
                    has_subscription=subscription is not None,
                    subscription_combo=subscription.combo_type if subscription else None,
                    today_order_status=today_orders.get(employee.id),
                    is_deleted=employee.is_deleted,
                    created_at=employee.created_at,
                )
            )
        return responses

    @staticmethod
    def _validate_fields(data: EmployeeCreate | EmployeeUpdate, require_identity: bool) -> list[FieldError]:
        errors: list[FieldError] = []

        if require_identity or data.full_name is not None:
            if not data.full_name or not data.full_name.strip():
                errors.append(FieldError("fullName", ErrorCode.VALIDATION_ERROR, "ФИО обязательно"))
            elif len(data.full_name.strip()) > 255:
                errors.append(FieldError("fullName", ErrorCode.VALIDATION_ERROR, "ФИО слишком длинное"))

        if require_identity or data.phone is not None:
            is_valid, message = validate_phone(data.phone)
            if not is_valid:
                errors.append(FieldError("phone", ErrorCode.EMP_INVALID_PHONE_FORMAT, message))

        if data.email is not None and data.email.strip():
            is_valid, message = validate_email(data.email.strip())
            if not is_valid:
                errors.append(FieldError("email", ErrorCode.VALIDATION_ERROR, message))

        is_valid, message = validate_working_days(data.working_days)
        if not is_valid:
            errors.append(FieldError("workingDays", ErrorCode.VALIDATION_ERROR, message))

        for field, label, value in (
            ("workStartTime", "Время начала", data.work_start_time),
            ("workEndTime", "Время окончания", data.work_end_time),
        ):
            is_valid, message = validate_time(value, label)
            if not is_valid:
                errors.append(FieldError(field, ErrorCode.INVALID_TIME_FORMAT, message))

        is_valid, message = validate_work_time_range(data.work_start_time, data.work_end_time)
        if not is_valid:
            errors.append(FieldError("workEndTime", ErrorCode.VALIDATION_ERROR, message))

        if data.service_type and data.service_type.upper() not in {item.value for item in ServiceType}:
            errors.append(
                FieldError("serviceType", ErrorCode.VALIDATION_ERROR, f"Неизвестный тип услуги: {data.service_type}")
            )
        if data.shift_type and data.shift_type.upper() not in {item.value for item in ShiftType}:
            errors.append(FieldError("shiftType", ErrorCode.VALIDATION_ERROR, f"Неизвестная смена: {data.shift_type}"))

        return errors

    @staticmethod
    async def _validate_project(db: AsyncSession, company_id: str, project_id: str) -> list[FieldError]:
        project = await db.get(Project, project_id)
        if project is None or project.deleted_at is not None or project.company_id != company_id:
            return [FieldError("projectId", ErrorCode.PROJ_NOT_FOUND, "Проект не найден")]
        return []

    @staticmethod
    async def _validate_phone_unique(db: AsyncSession, phone: str) -> list[FieldError]:
        existing = await db.scalar(select(Employee).where(Employee.phone == phone))
        if existing is None:
            return []
        if existing.is_deleted:
            return [
                FieldError(
                    "phone",
                    ErrorCode.EMP_PHONE_DELETED,
                    "Сотрудник с таким телефоном был удален. Восстановите его или используйте другой номер",
                )
            ]
        return [FieldError("phone", ErrorCode.EMP_PHONE_EXISTS, "Сотрудник с таким телефоном уже существует")]

    @staticmethod
    async def _validate_email_unique(db: AsyncSession, email: str) -> list[FieldError]:
        employee_exists = await db.scalar(
            select(Employee.id).where(Employee.email == email, Employee.deleted_at.is_(None)).limit(1)
        )
        user_exists = await db.scalar(
            select(AdminUser.id).where(AdminUser.email == email, AdminUser.deleted_at.is_(None)).limit(1)
        )
        if employee_exists or user_exists:
            return [FieldError("email", ErrorCode.EMP_EMAIL_EXISTS, "Этот email уже используется")]
        return []

    @staticmethod
    async def _has_active_subscription(db: AsyncSession, employee_id: str) -> bool:
        subscription_id = await db.scalar(
            select(LunchSubscription.id).where(
                and_(LunchSubscription.employee_id == employee_id, LunchSubscription.is_active.is_(True))
            )
        )
        return subscription_id is not None


def _project_address(project: Project | None) -> str | None:
    if project is None:
        return None
    return project.address_full_address or project.address_name or project.name


# Global instance
employee_service = EmployeeService()
