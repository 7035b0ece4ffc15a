"""Employee schemas"""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from yalla_admin.schemas.common import CamelModel, Money


class EmployeeBudgetSchema(CamelModel):
    total_budget: Money = Decimal("0")
    daily_limit: Money = Decimal("0")
    period: str = "в Месяц"
    auto_renew: bool = True


class EmployeeCreate(CamelModel):
    full_name: str | None = None
    phone: str | None = None
    email: str | None = None
    position: str | None = None
    project_id: str | None = None
    service_type: str | None = None
    shift_type: str | None = None
    working_days: list[int] | None = None
    work_start_time: str | None = None
    work_end_time: str | None = None


class EmployeeUpdate(CamelModel):
    full_name: str | None = None
    phone: str | None = None
    email: str | None = None
    position: str | None = None
    project_id: str | None = None
    service_type: str | None = None
    shift_type: str | None = None
    working_days: list[int] | None = None
    work_start_time: str | None = None
    work_end_time: str | None = None


class EmployeeResponse(CamelModel):
    id: str
    full_name: str
    phone: str
    email: str | None = None
    position: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    is_active: bool
    status: str
    invite_status: str
    service_type: str | None = None
    shift_type: str
    working_days: list[int]
    work_start_time: str | None = None
    work_end_time: str | None = None
    budget: EmployeeBudgetSchema | None = None
    has_subscription: bool = False
    subscription_combo: str | None = None
    today_order_status: str | None = None
    is_deleted: bool = False
    created_at: datetime


class BudgetUpdate(CamelModel):
    total_budget: Money | None = None
    daily_limit: Money | None = None
    period: str | None = None
    auto_renew: bool | None = None


class BatchBudgetUpdate(BudgetUpdate):
    employee_ids: list[str] = Field(..., min_length=1)


class EmployeeOrderItem(CamelModel):
    id: str
    date: str
    combo_type: str
    price: Money
    status: str
    address: str | None = None
