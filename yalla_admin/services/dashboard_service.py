"""Dashboard (home page) metrics"""

from datetime import timedelta
from decimal import Decimal

from sqlalchemy import and_, case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.models.enums import OrderStatus
from yalla_admin.models.order import Order
from yalla_admin.schemas.content import ComboInfo, DashboardResponse
from yalla_admin.services.business_config_service import business_config_service
from yalla_admin.services.queries import get_company, get_company_project
from yalla_admin.utils.dates import format_time, is_cutoff_passed, local_today
from yalla_admin.utils.pricing import list_combos

ZERO = Decimal("0")


def _count(condition):
    return func.coalesce(func.sum(case((condition, 1), else_=0)), 0)


class DashboardService:
    async def get_dashboard(
        self,
        db: AsyncSession,
        company_id: str,
        project_id: str | None = None,
    ) -> DashboardResponse:
        """
        Budget, order and cutoff metrics of a project, or of the whole company

        The budget is reported low when it is spent or below the configured
        share of the budget plus overdraft.
        """
        project = None
        if project_id:
            project = await get_company_project(db, company_id, project_id)
            holder = project
        else:
            holder = await get_company(db, company_id)

        today = local_today(holder.timezone)
        yesterday = today - timedelta(days=1)
        active = Order.status == OrderStatus.ACTIVE.value
        paused = Order.status == OrderStatus.PAUSED.value
        guest = Order.is_guest_order.is_(True)

        query = select(
            func.count(Order.id),
            _count(active),
            _count(paused),
            _count(guest),
            _count(and_(guest, active)),
            _count(and_(guest, paused)),
            func.coalesce(func.sum(case((active, Order.price), else_=0)), 0),
            _count(Order.order_date == today),
            _count(Order.order_date == yesterday),
        ).where(Order.company_id == company_id)
        if project_id:
            query = query.where(Order.project_id == project_id)
        (
            total,
            active_count,
            paused_count,
            guests,
            active_guests,
            paused_guests,
            forecast,
            today_count,
            yesterday_count,
        ) = (await db.execute(query)).one()
        forecast = Decimal(str(forecast or 0))

        budget = holder.budget or ZERO
        overdraft = holder.overdraft_limit or ZERO
        available = budget + overdraft
        base = budget if budget > 0 else available
        consumption = round(float(forecast / base * 100), 1) if base > 0 else 0.0

        threshold = await business_config_service.get_int(db, "low_budget_threshold_percent", 20)
        is_low = budget <= 0 or (available > 0 and budget / available * 100 < threshold)
        warning = None
        if budget < 0:
            warning = f"Бюджет отрицательный: {budget:.0f} {holder.currency_code}. Используется овердрафт."
        elif budget == 0:
            warning = "Бюджет исчерпан. Пополните счет."
        elif is_low:
            percent = round(budget / available * 100)
            warning = f"Низкий остаток бюджета: {budget:.0f} {holder.currency_code} ({percent}%)"

        change = int(today_count) - int(yesterday_count)
        change_percent = round(change / int(yesterday_count) * 100, 1) if yesterday_count else 0.0

        return DashboardResponse(
            total_budget=budget,
            overdraft_limit=overdraft,
            available_budget=available,
            forecast=forecast,
            budget_consumption_percent=consumption,
            is_budget_low=is_low,
            budget_warning=warning,
            currency_code=holder.currency_code,
            total_orders=int(total),
            active_orders=int(active_count),
            paused_orders=int(paused_count),
            guest_orders=int(guests),
            active_guest_orders=int(active_guests),
            paused_guest_orders=int(paused_guests),
            today_orders=int(today_count),
            yesterday_orders=int(yesterday_count),
            orders_change=change,
            orders_change_percent=change_percent,
            cutoff_time=format_time(holder.cutoff_time) or "",
            is_cutoff_passed=is_cutoff_passed(holder.cutoff_time, holder.timezone),
            timezone=holder.timezone,
            project_id=project.id if project else None,
            project_name=project.name if project else None,
        )

    @staticmethod
    def get_combos() -> list[ComboInfo]:
        return [ComboInfo(**combo) for combo in list_combos()]


# Global instance
dashboard_service = DashboardService()
