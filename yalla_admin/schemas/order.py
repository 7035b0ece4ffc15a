"""Order, dashboard and freeze schemas"""

from datetime import date

from pydantic import Field

from yalla_admin.schemas.common import CamelModel, Money


class OrderListItem(CamelModel):
    id: str
    employee_id: str | None = None
    employee_name: str
    phone: str | None = None
    date: str
    status: str
    address: str | None = None
    project_id: str | None = None
    project_name: str | None = None
    combo_type: str | None = None
    amount: Money
    type: str
    service_type: str


class OrderFilters(CamelModel):
    search: str | None = None
    status: str | None = None
    date: str | None = None
    date_from: str | None = None
    date_to: str | None = None
    address: str | None = None
    project_id: str | None = None
    type: str | None = None
    combo_type: str | None = None
    service_type: str | None = None


class GuestOrderCreate(CamelModel):
    order_name: str = Field(..., min_length=1, max_length=255)
    quantity: int = Field(1, ge=1, le=100)
    combo_type: str
    project_id: str | None = None
    date: str


class GuestOrderResult(CamelModel):
    success: bool = True
    message: str
    orders: list[OrderListItem]
    total_cost: Money
    remaining_budget: Money


class AssignMealsRequest(CamelModel):
    employee_ids: list[str] = Field(..., min_length=1)
    combo_type: str
    date: str


class SkippedEmployee(CamelModel):
    employee_id: str
    name: str | None = None
    reason: str


class AssignMealsResult(CamelModel):
    success: bool = True
    message: str
    created: int
    skipped: list[SkippedEmployee] = []


class BulkActionRequest(CamelModel):
    order_ids: list[str] = Field(..., min_length=1)
    action: str
    combo_type: str | None = None


class BulkActionResult(CamelModel):
    success: bool = True
    message: str
    updated_count: int
    skipped_count: int = 0
    skipped: list[str] = []


class FreezeOrderRequest(CamelModel):
    reason: str | None = Field(None, max_length=500)


class FreezePeriodRequest(CamelModel):
    employee_id: str
    start_date: date
    end_date: date
    reason: str | None = Field(None, max_length=500)


class FreezeInfo(CamelModel):
    employee_id: str
    freezes_this_week: int
    max_freezes_per_week: int
    remaining_freezes: int
    week_start: date
    week_end: date
    frozen_dates: list[date] = []


class FreezeResult(CamelModel):
    success: bool = True
    message: str
    order_id: str
    status: str
    replacement_order_id: str | None = None
    replacement_date: date | None = None
    subscription_end_date: date | None = None
    freeze_info: FreezeInfo | None = None


class CutoffTimeResponse(CamelModel):
    cutoff_time: str
    timezone: str
    is_cutoff_passed: bool


class CutoffTimeUpdate(CamelModel):
    cutoff_time: str
