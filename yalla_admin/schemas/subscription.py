"""Lunch subscription and meal subscription schemas"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from yalla_admin.schemas.common import CamelModel, Money


class LunchSubscriptionCreate(CamelModel):
    employee_id: str
    combo_type: str
    start_date: date | None = None
    end_date: date | None = None
    schedule_type: str | None = None
    custom_days: list[str] | None = None


class LunchSubscriptionUpdate(CamelModel):
    combo_type: str | None = None
    end_date: date | None = None
    schedule_type: str | None = None
    custom_days: list[str] | None = None


class BulkLunchSubscriptionCreate(CamelModel):
    employee_ids: list[str] = Field(..., min_length=1)
    combo_type: str
    start_date: date | None = None
    end_date: date | None = None
    schedule_type: str | None = None
    custom_days: list[str] | None = None


class BulkLunchSubscriptionUpdate(CamelModel):
    employee_ids: list[str] = Field(..., min_length=1)
    combo_type: str


class DashboardSubscriptionUpdate(CamelModel):
    combo_type: str


class LunchSubscriptionResponse(CamelModel):
    id: str
    employee_id: str
    employee_name: str | None = None
    employee_phone: str | None = None
    project_id: str | None = None
    combo_type: str
    price_per_day: Money
    is_active: bool
    status: str
    start_date: date
    end_date: date
    total_days: int
    total_price: Money
    schedule_type: str
    frozen_days_count: int = 0
    created_at: datetime


class BulkOperationResult(CamelModel):
    success: bool = True
    message: str
    processed: int
    errors: list[dict] = []


class PricePreviewRequest(CamelModel):
    combo_type: str
    start_date: date
    end_date: date
    schedule_type: str | None = None
    employee_ids: list[str] = []
    custom_days: list[str] | None = None


class PricePreview(CamelModel):
    combo_type: str
    price_per_day: Money
    days: int
    employees: int
    total: Money


class MealSubscriptionEmployee(CamelModel):
    employee_id: str
    combo_type: str


class MealSubscriptionCreate(CamelModel):
    project_id: str | None = None
    start_date: date
    end_date: date
    schedule_type: str | None = None
    custom_days: list[str] | None = None
    employees: list[MealSubscriptionEmployee] = Field(..., min_length=1)


class MealSubscriptionResponse(CamelModel):
    id: str
    project_id: str
    start_date: date
    end_date: date
    total_days: int
    total_amount: Money
    paid_amount: Money = Decimal("0")
    is_paid: bool
    status: str
    employees_count: int = 0
    assignments_count: int = 0
    created_at: datetime


class AssignmentResponse(CamelModel):
    id: str
    subscription_id: str
    employee_id: str
    employee_name: str | None = None
    project_id: str
    assignment_date: date
    combo_type: str
    price: Money
    status: str
    frozen_reason: str | None = None
    replacement_date: date | None = None


class AssignmentUpdate(CamelModel):
    combo_type: str


class AssignmentFreezeRequest(CamelModel):
    reason: str | None = Field(None, max_length=500)


class MealFreezeInfo(CamelModel):
    employee_id: str
    week_year: int
    week_number: int
    freezes_used: int
    freezes_limit: int
    remaining: int


class CalendarDay(CamelModel):
    date: str
    total: int
    active: int
    frozen: int
    cancelled: int
    delivered: int


class MealPricePreview(CamelModel):
    total_amount: Money
    total_days: int
    employees: int
    assignments: int
