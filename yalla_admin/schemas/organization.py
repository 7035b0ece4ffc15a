"""Company and project schemas"""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from yalla_admin.schemas.common import CamelModel, Money


class AddressSchema(CamelModel):
    name: str | None = None
    full_address: str | None = None
    latitude: float | None = None
    longitude: float | None = None


class CompanyListItem(CamelModel):
    id: str
    name: str
    status: str
    budget: Money
    currency_code: str
    projects_count: int = 0
    employees_count: int = 0
    created_at: datetime


class CompanyResponse(CamelModel):
    id: str
    name: str
    status: str
    budget: Money
    overdraft_limit: Money
    currency_code: str
    timezone: str
    cutoff_time: str
    projects_count: int = 0
    employees_count: int = 0
    created_at: datetime


class ProjectCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    address: AddressSchema | None = None
    budget: Money = Field(Decimal("0"), ge=0)
    overdraft_limit: Money = Field(Decimal("0"), ge=0)
    timezone: str | None = None
    cutoff_time: str | None = None
    service_types: list[str] | None = None
    compensation_daily_limit: Money | None = Field(None, ge=0)
    compensation_rollover: bool | None = None


class ProjectUpdate(CamelModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    address: AddressSchema | None = None
    budget: Money | None = Field(None, ge=0)
    overdraft_limit: Money | None = Field(None, ge=0)
    status: str | None = None
    timezone: str | None = None
    cutoff_time: str | None = None
    service_types: list[str] | None = None
    compensation_daily_limit: Money | None = Field(None, ge=0)
    compensation_rollover: bool | None = None


class ProjectResponse(CamelModel):
    id: str
    company_id: str
    name: str
    status: str
    is_headquarters: bool
    address: AddressSchema
    budget: Money
    overdraft_limit: Money
    currency_code: str
    timezone: str
    cutoff_time: str
    service_types: list[str]
    compensation_daily_limit: Money
    compensation_rollover: bool
    employees_count: int = 0
    employees_with_lunch: int = 0
    spent_lunch: Money = Decimal("0")
    spent_compensation: Money = Decimal("0")
    total_spent: Money = Decimal("0")
    created_at: datetime


class ProjectStats(CamelModel):
    project_id: str
    active_employees: int
    total_orders: int
    today_orders: int
    total_spent: Money
    budget: Money


class ServiceTypeInfo(CamelModel):
    value: str
    name: str
