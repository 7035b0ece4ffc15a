"""Version 1 API routers"""

from fastapi import APIRouter

from yalla_admin.api.v1 import (
    auth,
    companies,
    compensation,
    config,
    documents,
    employees,
    home,
    invoices,
    meal_subscriptions,
    news,
    orders,
    projects,
    subscriptions,
    transactions,
    users,
)

api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["Auth"])
api_router.include_router(companies.router, prefix="/companies", tags=["Companies"])
api_router.include_router(projects.router, prefix="/projects", tags=["Projects"])
api_router.include_router(employees.router, prefix="/employees", tags=["Employees"])
api_router.include_router(home.router, prefix="/home", tags=["Home"])
api_router.include_router(orders.router, prefix="/orders", tags=["Orders"])
api_router.include_router(subscriptions.router, prefix="/subscriptions", tags=["Subscriptions"])
api_router.include_router(meal_subscriptions.router, prefix="/meal-subscriptions", tags=["Meal subscriptions"])
api_router.include_router(compensation.router, prefix="/compensation", tags=["Compensation"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["Transactions"])
api_router.include_router(invoices.router, prefix="/invoices", tags=["Invoices"])
api_router.include_router(documents.router, prefix="/documents", tags=["Documents"])
api_router.include_router(news.router, prefix="/news", tags=["News"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(config.router, prefix="/config", tags=["Config"])
