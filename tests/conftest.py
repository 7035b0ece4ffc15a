"""
Pytest configuration and fixtures.
"""
import os

os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["ENVIRONMENT"] = "testing"
os.environ["ENABLE_RATE_LIMITING"] = "false"
os.environ["SETTLEMENT_ENABLED"] = "false"
os.environ["BCRYPT_ROUNDS"] = "4"
os.environ["LOG_LEVEL"] = "WARNING"

from datetime import date, time, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from yalla_admin.main import app
from yalla_admin.models import Base
from yalla_admin.models.company import Company, Project
from yalla_admin.models.database import get_db
from yalla_admin.models.employee import Employee, EmployeeBudget
from yalla_admin.models.enums import ServiceType, UserRole, UserStatus
from yalla_admin.models.user import AdminUser
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.rate_limiter import rate_limiter
from yalla_admin.services.token_service import token_service
from yalla_admin.utils.crypto import hash_password
from yalla_admin.utils.dates import local_today

ADMIN_PHONE = "+992900000001"
ADMIN_PASSWORD = "Secret#123"
TIMEZONE = "Asia/Dushanbe"


def next_monday() -> date:
    """Понедельник следующей недели по времени проекта (всегда позже сегодняшнего дня)."""
    today = local_today(TIMEZONE)
    return today + timedelta(days=7 - today.weekday())


def auth_headers(user: AdminUser, project: Project | None = None, impersonated_by: str | None = None) -> dict:
    token, _ = token_service.create_access_token(user, project=project, impersonated_by=impersonated_by)
    return {"Authorization": f"Bearer {token}"}


@pytest_asyncio.fixture
async def db_engine():
    """Создать in-memory SQLite engine для тестов."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    """Создать сессию БД для тестов."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture(autouse=True)
def clear_config_cache():
    """Бизнес-настройки кэшируются глобально, каждый тест начинает с чистого кэша."""
    business_config_service.clear_cache()
    yield
    business_config_service.clear_cache()


@pytest.fixture(autouse=True)
def mock_rate_limiter():
    """Redis в тестах недоступен."""
    with (
        patch.object(rate_limiter, "is_locked_out", AsyncMock(return_value=(False, None))),
        patch.object(rate_limiter, "record_failed_login", AsyncMock()),
        patch.object(rate_limiter, "reset_failed_logins", AsyncMock()),
    ):
        yield rate_limiter


@pytest_asyncio.fixture
async def client(db_session):
    """HTTP-клиент приложения, работающий с тестовой сессией БД."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def company(db_session):
    company = Company(
        name="ООО Тест",
        budget=Decimal("10000"),
        overdraft_limit=Decimal("0"),
        timezone=TIMEZONE,
        cutoff_time=time(10, 30),
    )
    db_session.add(company)
    await db_session.commit()
    return company


@pytest_asyncio.fixture
async def project(db_session, company):
    project = Project(
        company_id=company.id,
        name="Головной офис",
        is_headquarters=True,
        address_name="Офис",
        address_full_address="Душанбе, пр. Рудаки 1",
        budget=Decimal("5000"),
        overdraft_limit=Decimal("0"),
        timezone=TIMEZONE,
        cutoff_time=time(10, 30),
        service_types=[ServiceType.LUNCH.value],
    )
    db_session.add(project)
    await db_session.commit()
    return project


@pytest_asyncio.fixture
async def admin_user(db_session, company, project):
    user = AdminUser(
        company_id=company.id,
        project_id=project.id,
        full_name="Администратор",
        phone=ADMIN_PHONE,
        email="admin@example.com",
        password_hash=hash_password(ADMIN_PASSWORD),
        role=UserRole.ADMIN.value,
        status=UserStatus.ACTIVE.value,
        permissions=[],
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def super_admin(db_session):
    user = AdminUser(
        full_name="Супер Админ",
        phone="+992900000009",
        password_hash=hash_password(ADMIN_PASSWORD),
        role=UserRole.SUPER_ADMIN.value,
        status=UserStatus.ACTIVE.value,
        permissions=[],
    )
    db_session.add(user)
    await db_session.commit()
    return user


@pytest_asyncio.fixture
async def employee(db_session, company, project):
    employee = Employee(
        company_id=company.id,
        project_id=project.id,
        full_name="Иван Петров",
        phone="+992900000101",
        service_type=ServiceType.LUNCH.value,
        working_days=[1, 2, 3, 4, 5],
        budget=EmployeeBudget(total_budget=Decimal("1000"), daily_limit=Decimal("100")),
    )
    db_session.add(employee)
    await db_session.commit()
    return employee


@pytest.fixture
def admin_headers(admin_user, project):
    return auth_headers(admin_user, project)


@pytest.fixture
def make_headers():
    """Заголовки авторизации для произвольного пользователя."""
    return auth_headers


@pytest.fixture
def week_start():
    """Понедельник следующей недели: на эти даты не действует отсечка."""
    return next_monday()
