"""CSV export of employees and orders"""

import csv
import io
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from yalla_admin.core.config import logger
from yalla_admin.models.employee import Employee
from yalla_admin.models.enums import BudgetPeriod
from yalla_admin.models.order import Order

EMPLOYEE_HEADERS = [
    "ФИО",
    "Телефон",
    "Email",
    "Должность",
    "Статус",
    "Приглашение",
    "Общий бюджет",
    "Дневной лимит",
    "Период",
    "Автопродление",
    "Дата создания",
]
ORDER_HEADERS = ["Дата", "Тип", "ФИО", "Телефон", "Комбо", "Цена", "Адрес", "Статус", "Дата создания"]

PERIOD_LABELS = {
    BudgetPeriod.DAILY.value: "День",
    BudgetPeriod.WEEKLY.value: "Неделя",
    BudgetPeriod.MONTHLY.value: "Месяц",
}


def to_csv(headers: list[str], rows: list[list]) -> bytes:
    """UTF-8 with BOM, semicolon separated, so spreadsheet apps open it as is"""
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=";", lineterminator="\r\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8-sig")


class ExportService:
    async def export_employees(self, db: AsyncSession, company_id: str) -> bytes:
        result = await db.execute(
            select(Employee)
            .where(Employee.company_id == company_id, Employee.deleted_at.is_(None))
            .order_by(Employee.full_name)
        )
        rows = []
        for employee in result.scalars().all():
            budget = employee.budget
            rows.append(
                [
                    employee.full_name,
                    employee.phone,
                    employee.email or "",
                    employee.position or "",
                    "Активный" if employee.is_active else "Не активный",
                    employee.invite_status,
                    f"{budget.total_budget:.2f}" if budget else "0.00",
                    f"{budget.daily_limit:.2f}" if budget else "0.00",
                    PERIOD_LABELS.get(budget.period, "") if budget else "",
                    "Да" if budget and budget.auto_renew else "Нет",
                    employee.created_at.strftime("%Y-%m-%d %H:%M"),
                ]
            )

        logger.info(f"Exported {len(rows)} employees", extra={"company_id": company_id})
        return to_csv(EMPLOYEE_HEADERS, rows)

    async def export_orders(
        self,
        db: AsyncSession,
        company_id: str,
        status: str | None = None,
        on_date: date | None = None,
        project_id: str | None = None,
    ) -> bytes:
        query = select(Order).where(Order.company_id == company_id)
        if status:
            query = query.where(Order.status == status)
        if on_date:
            query = query.where(Order.order_date == on_date)
        if project_id:
            query = query.where(Order.project_id == project_id)
        result = await db.execute(query.order_by(Order.order_date.desc(), Order.created_at))

        rows = []
        for order in result.scalars().all():
            employee = order.employee
            rows.append(
                [
                    order.order_date.isoformat(),
                    "Гостевой" if order.is_guest_order else "Сотрудник",
                    order.display_name,
                    employee.phone if employee else "",
                    order.combo_type,
                    f"{order.price:.2f}",
                    (order.project.address_full_address or "") if order.project else "",
                    order.status,
                    order.created_at.strftime("%Y-%m-%d %H:%M"),
                ]
            )

        logger.info(f"Exported {len(rows)} orders", extra={"company_id": company_id})
        return to_csv(ORDER_HEADERS, rows)


# Global instance
export_service = ExportService()
