"""Employee and employee budget models"""

import uuid
from datetime import datetime, time, timezone
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Numeric, String, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yalla_admin.models.database import Base
from yalla_admin.models.enums import BudgetPeriod, EmployeeStatus, InviteStatus, ShiftType


class Employee(Base):
    """Company employee who receives lunches or compensation"""

    __tablename__ = "employees"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    company_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("companies.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    project_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Personal data
    full_name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True, index=True)
    position: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Status flags
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(32),
        default=EmployeeStatus.ACTIVE.value,
        nullable=False,
    )
    invite_status: Mapped[str] = mapped_column(
        String(32),
        default=InviteStatus.ACCEPTED.value,
        nullable=False,
    )

    # Service and schedule
    service_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    shift_type: Mapped[str] = mapped_column(String(16), default=ShiftType.DAY.value, nullable=False)
    working_days: Mapped[list] = mapped_column(JSON, default=lambda: [1, 2, 3, 4, 5], nullable=False)
    work_start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    work_end_time: Mapped[time | None] = mapped_column(Time, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    budget: Mapped["EmployeeBudget"] = relationship(
        back_populates="employee",
        uselist=False,
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Employee(id={self.id}, full_name={self.full_name}, phone={self.phone})>"


class EmployeeBudget(Base):
    """Personal budget of an employee"""

    __tablename__ = "employee_budgets"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    employee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )

    total_budget: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )
    daily_limit: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    period: Mapped[str] = mapped_column(String(16), default=BudgetPeriod.MONTHLY.value, nullable=False)
    auto_renew: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
        nullable=False,
    )

    employee: Mapped[Employee] = relationship(back_populates="budget")

    def __repr__(self) -> str:
        return f"<EmployeeBudget(employee_id={self.employee_id}, total_budget={self.total_budget})>"
