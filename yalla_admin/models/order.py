"""Daily lunch order model"""

import uuid
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import Boolean, Date, DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from yalla_admin.models.company import Project
from yalla_admin.models.database import Base
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import OrderStatus


class Order(Base):
    """One lunch for one employee (or guest) on one date"""

    __tablename__ = "orders"

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
    employee_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    created_by_user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    # Guest
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    is_guest_order: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Order data
    combo_type: Mapped[str] = mapped_column(String(64), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(14, 2), nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), default="TJS", nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        default=OrderStatus.ACTIVE.value,
        nullable=False,
        index=True,
    )
    order_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # Freeze
    frozen_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    frozen_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
    replacement_order_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

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

    employee: Mapped[Employee | None] = relationship(lazy="selectin")
    project: Mapped[Project | None] = relationship(lazy="selectin")

    @property
    def display_name(self) -> str:
        if self.is_guest_order:
            return self.guest_name or "Гость"
        return self.employee.full_name if self.employee else "Гость"

    def __repr__(self) -> str:
        return f"<Order(id={self.id}, date={self.order_date}, status={self.status})>"
