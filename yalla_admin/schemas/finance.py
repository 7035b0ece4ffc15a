"""Invoice, transaction and compensation schemas"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from yalla_admin.schemas.common import CamelModel, Money


class InvoiceCreate(CamelModel):
    amount: Money = Field(..., gt=0)
    external_id: str | None = Field(None, max_length=128)
    project_id: str | None = None
    due_date: date | None = None
    currency_code: str = "TJS"


class InvoicePayRequest(CamelModel):
    amount: Money | None = Field(None, gt=0)


class InvoiceResponse(CamelModel):
    id: str
    company_id: str
    project_id: str | None = None
    external_id: str | None = None
    amount: Money
    currency_code: str
    status: str
    due_date: date | None = None
    paid_at: datetime | None = None
    created_at: datetime


class TransactionResponse(CamelModel):
    id: str
    company_id: str
    project_id: str | None = None
    type: str
    amount: Money
    balance_after: Money | None = None
    invoice_id: str | None = None
    daily_order_id: str | None = None
    description: str | None = None
    created_at: datetime


class BalanceResponse(CamelModel):
    balance: Money
    overdraft_limit: Money
    available: Money
    currency_code: str


class FinancialSummary(CamelModel):
    balance: Money
    overdraft_limit: Money
    available: Money
    pending_deduction: Money
    pending_income: Money
    projected_balance: Money
    is_low_balance: bool
    warnings: list[str] = []
    currency_code: str


class PendingOperation(CamelModel):
    id: str
    type: str
    amount: Money
    date: str
    description: str
    status: str


class CompensationSettings(CamelModel):
    project_id: str
    daily_limit: Money
    rollover: bool
    currency_code: str


class CompensationSettingsUpdate(CamelModel):
    daily_limit: Money | None = Field(None, ge=0)
    rollover: bool | None = None


class CompensationBalance(CamelModel):
    employee_id: str
    project_id: str
    daily_limit: Money
    used_today: Money
    remaining_today: Money
    accumulated_balance: Money
    rollover: bool


class CompensationTransactionCreate(CamelModel):
    employee_id: str
    total_amount: Money = Field(..., gt=0)
    restaurant_name: str | None = Field(None, max_length=255)
    description: str | None = None
    transaction_date: date | None = None


class CompensationTransactionResponse(CamelModel):
    id: str
    project_id: str
    employee_id: str
    total_amount: Money
    company_paid_amount: Money
    employee_paid_amount: Money
    restaurant_name: str | None = None
    description: str | None = None
    transaction_date: date
    created_at: datetime


class CompensationDailySummaryItem(CamelModel):
    employee_id: str
    employee_name: str
    transactions: int
    total_amount: Money
    company_paid: Money
    employee_paid: Money


class CompensationDailySummary(CamelModel):
    project_id: str
    date: str
    total_amount: Money = Decimal("0")
    company_paid: Money = Decimal("0")
    employee_paid: Money = Decimal("0")
    employees: list[CompensationDailySummaryItem] = []
