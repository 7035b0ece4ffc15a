"""Database models"""

from yalla_admin.models.company import Company, Project
from yalla_admin.models.content import BusinessConfig, CompanyDocument, NewsReadStatus, SystemNews
from yalla_admin.models.database import Base, close_db, get_db, init_db
from yalla_admin.models.employee import Employee, EmployeeBudget
from yalla_admin.models.finance import (
    CompanyTransaction,
    CompensationTransaction,
    EmployeeCompensationBalance,
    Invoice,
)
from yalla_admin.models.order import Order
from yalla_admin.models.subscription import (
    CompanySubscription,
    EmployeeFreezeHistory,
    EmployeeMealAssignment,
    LunchSubscription,
)
from yalla_admin.models.user import AdminUser, AuditLog, RefreshToken, UserPermission

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "close_db",
    "Company",
    "Project",
    "Employee",
    "EmployeeBudget",
    "Order",
    "LunchSubscription",
    "CompanySubscription",
    "EmployeeMealAssignment",
    "EmployeeFreezeHistory",
    "Invoice",
    "CompanyTransaction",
    "CompensationTransaction",
    "EmployeeCompensationBalance",
    "AdminUser",
    "UserPermission",
    "RefreshToken",
    "AuditLog",
    "SystemNews",
    "NewsReadStatus",
    "CompanyDocument",
    "BusinessConfig",
]
