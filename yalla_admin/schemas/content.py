"""News, document, configuration and dashboard schemas"""

from datetime import date, datetime
from typing import Any

from yalla_admin.schemas.common import CamelModel, Money


class NewsResponse(CamelModel):
    id: str
    title: str
    content: str
    published_at: datetime | None = None
    is_read: bool = False


class UnreadCount(CamelModel):
    count: int


class DocumentResponse(CamelModel):
    id: str
    type: str
    file_name: str | None = None
    file_url: str
    period_start: date | None = None
    period_end: date | None = None
    created_at: datetime


class DownloadUrl(CamelModel):
    url: str
    file_name: str | None = None
    expires_in: int | None = None


class ConfigUpdate(CamelModel):
    value: Any
    description: str | None = None


class ConfigItem(CamelModel):
    key: str
    value: Any
    description: str | None = None
    updated_at: datetime | None = None


class DashboardResponse(CamelModel):
    total_budget: Money
    overdraft_limit: Money
    available_budget: Money
    forecast: Money
    budget_consumption_percent: float
    is_budget_low: bool
    budget_warning: str | None = None
    currency_code: str
    total_orders: int
    active_orders: int
    paused_orders: int
    guest_orders: int
    active_guest_orders: int
    paused_guest_orders: int
    today_orders: int
    yesterday_orders: int
    orders_change: int
    orders_change_percent: float
    cutoff_time: str
    is_cutoff_passed: bool
    timezone: str
    project_id: str | None = None
    project_name: str | None = None


class ComboInfo(CamelModel):
    type: str
    price: float
    items: list[str] = []
