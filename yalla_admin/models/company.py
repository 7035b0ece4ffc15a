"""Company and project models"""

import uuid
from datetime import datetime, time, timezone
from decimal import Decimal

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Numeric, String, Time
from sqlalchemy.orm import Mapped, mapped_column

from yalla_admin.models.database import Base
from yalla_admin.models.enums import CompanyStatus, ServiceType


class Company(Base):
    """Tenant company"""

    __tablename__ = "companies"

    # Primary key
    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        default=CompanyStatus.ACTIVE.value,
        nullable=False,
    )

    # Finance
    budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    overdraft_limit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )
    currency_code: Mapped[str] = mapped_column(String(3), default="TJS", nullable=False)

    # Ordering schedule
    timezone: Mapped[str] = mapped_column(String(64), default="Asia/Dushanbe", nullable=False)
    cutoff_time: Mapped[time] = mapped_column(Time, default=time(10, 30), nullable=False)

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

    @property
    def available_budget(self) -> Decimal:
        """Budget plus allowed overdraft"""
        return (self.budget or Decimal("0")) + (self.overdraft_limit or Decimal("0"))

    def __repr__(self) -> str:
        return f"<Company(id={self.id}, name={self.name})>"


class Project(Base):
    """Company delivery location with its own budget and service types"""

    __tablename__ = "projects"

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

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32),
        default=CompanyStatus.ACTIVE.value,
        nullable=False,
    )
    is_headquarters: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Address (immutable after creation)
    address_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_full_address: Mapped[str | None] = mapped_column(String(500), nullable=True)
    address_latitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), nullable=True)
    address_longitude: Mapped[Decimal | None] = mapped_column(Numeric(10, 7), nullable=True)

    # Finance
    budget: Mapped[Decimal] = mapped_column(Numeric(14, 2), default=Decimal("0"), nullable=False)
    overdraft_limit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )
    currency_code: Mapped[str] = mapped_column(String(3), default="TJS", nullable=False)

    # Ordering schedule
    timezone: Mapped[str] = mapped_column(String(64), default="Asia/Dushanbe", nullable=False)
    cutoff_time: Mapped[time] = mapped_column(Time, default=time(10, 30), nullable=False)

    # Services
    service_types: Mapped[list] = mapped_column(
        JSON,
        default=lambda: [ServiceType.LUNCH.value],
        nullable=False,
    )
    compensation_daily_limit: Mapped[Decimal] = mapped_column(
        Numeric(14, 2),
        default=Decimal("0"),
        nullable=False,
    )
    compensation_rollover: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

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

    @property
    def available_budget(self) -> Decimal:
        """Budget plus allowed overdraft"""
        return (self.budget or Decimal("0")) + (self.overdraft_limit or Decimal("0"))

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def has_service(self, service_type: ServiceType | str) -> bool:
        value = service_type.value if isinstance(service_type, ServiceType) else service_type
        return value in (self.service_types or [])

    def __repr__(self) -> str:
        return f"<Project(id={self.id}, name={self.name}, company_id={self.company_id})>"
