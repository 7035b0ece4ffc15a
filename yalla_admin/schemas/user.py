"""Admin user schemas"""

from datetime import datetime

from pydantic import Field

from yalla_admin.schemas.common import CamelModel


class UserCreate(CamelModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    phone: str = Field(..., min_length=1, max_length=32)
    email: str | None = None
    password: str | None = None
    role: str = "MANAGER"
    project_id: str | None = None
    permissions: list[str] = []


class UserUpdate(CamelModel):
    full_name: str | None = Field(None, min_length=1, max_length=255)
    phone: str | None = None
    email: str | None = None
    role: str | None = None
    status: str | None = None
    project_id: str | None = None
    permissions: list[str] | None = None


class UserResponse(CamelModel):
    id: str
    full_name: str
    phone: str
    email: str | None = None
    role: str
    status: str
    company_id: str | None = None
    company_name: str | None = None
    project_id: str | None = None
    permissions: list[str] = []
    last_login_at: datetime | None = None
    created_at: datetime


class OptionItem(CamelModel):
    value: str
    label: str
