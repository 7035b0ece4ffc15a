"""Service modules"""

from yalla_admin.services.audit_service import audit_service
from yalla_admin.services.auth_service import auth_service
from yalla_admin.services.budget_service import budget_service
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.company_service import company_service
from yalla_admin.services.compensation_service import compensation_service
from yalla_admin.services.cutoff_service import cutoff_service
from yalla_admin.services.dashboard_service import dashboard_service
from yalla_admin.services.document_service import document_service
from yalla_admin.services.employee_budget_service import employee_budget_service
from yalla_admin.services.employee_service import employee_service
from yalla_admin.services.export_service import export_service
from yalla_admin.services.freeze_service import order_freeze_service
from yalla_admin.services.invoice_service import invoice_service
from yalla_admin.services.meal_subscription_service import meal_subscription_service
from yalla_admin.services.news_service import news_service
from yalla_admin.services.order_service import order_service
from yalla_admin.services.project_service import project_service
from yalla_admin.services.rate_limiter import rate_limiter
from yalla_admin.services.settlement_service import settlement_service
from yalla_admin.services.storage_service import storage_service
from yalla_admin.services.subscription_service import subscription_service
from yalla_admin.services.token_service import token_service
from yalla_admin.services.transaction_service import transaction_service
from yalla_admin.services.user_service import user_service

__all__ = [
    "audit_service",
    "auth_service",
    "budget_service",
    "business_config_service",
    "company_service",
    "compensation_service",
    "cutoff_service",
    "dashboard_service",
    "document_service",
    "employee_budget_service",
    "employee_service",
    "export_service",
    "order_freeze_service",
    "invoice_service",
    "meal_subscription_service",
    "news_service",
    "order_service",
    "project_service",
    "rate_limiter",
    "settlement_service",
    "storage_service",
    "subscription_service",
    "token_service",
    "transaction_service",
    "user_service",
]
