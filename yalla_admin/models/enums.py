"""Enumerations stored as plain strings in the database"""

from enum import Enum


class CompanyStatus(str, Enum):
    """Company account status"""

    ACTIVE = "ACTIVE"
    BLOCKED_DEBT = "BLOCKED_DEBT"
    ARCHIVED = "ARCHIVED"


class ServiceType(str, Enum):
    """Service offered to a project or an employee"""

    LUNCH = "LUNCH"
    COMPENSATION = "COMPENSATION"


SERVICE_TYPE_NAMES = {
    ServiceType.LUNCH.value: "Ланч (комплексные обеды)",
    ServiceType.COMPENSATION.value: "Компенсация",
}


class ShiftType(str, Enum):
    DAY = "DAY"
    NIGHT = "NIGHT"


class EmployeeStatus(str, Enum):
    ACTIVE = "Активный"
    DEACTIVATED = "Деактивирован"
    VACATION = "Отпуск"


class InviteStatus(str, Enum):
    ACCEPTED = "Принято"
    PENDING = "Ожидает"
    REJECTED = "Отклонено"


class BudgetPeriod(str, Enum):
    DAILY = "в День"
    WEEKLY = "в Неделю"
    MONTHLY = "в Месяц"

    @classmethod
    def parse(cls, value: str | None) -> "BudgetPeriod":
        """Parse a period from its Russian label or its name"""
        if not value:
            return cls.MONTHLY
        for member in cls:
            if value == member.value or value.upper() == member.name:
                return member
        return cls.MONTHLY


class OrderStatus(str, Enum):
    """Daily order status"""

    ACTIVE = "Активен"
    PAUSED = "Приостановлен"
    FROZEN = "Заморожен"
    DAY_OFF = "Выходной"
    DELIVERED = "Доставлен"
    COMPLETED = "Выполнен"
    CANCELLED = "Отменён"


class SubscriptionStatus(str, Enum):
    """Lunch / meal subscription status"""

    ACTIVE = "Активна"
    PAUSED = "На паузе"
    COMPLETED = "Завершена"
    CANCELLED = "Отменена"


class AssignmentStatus(str, Enum):
    """Per-day meal assignment status"""

    SCHEDULED = "Запланирован"
    ACTIVE = "Активен"
    FROZEN = "Заморожен"
    DELIVERED = "Доставлен"
    CANCELLED = "Отменён"
    PAUSED = "Приостановлен"


class ScheduleType(str, Enum):
    EVERY_DAY = "EVERY_DAY"
    EVERY_OTHER_DAY = "EVERY_OTHER_DAY"
    CUSTOM = "CUSTOM"

    @classmethod
    def normalize(cls, value: str | None) -> "ScheduleType":
        """Normalize a schedule type, WEEKDAYS and unknown values mean every day"""
        if not value:
            return cls.EVERY_DAY
        try:
            return cls(value.upper())
        except ValueError:
            return cls.EVERY_DAY


class TransactionType(str, Enum):
    DEPOSIT = "DEPOSIT"
    LUNCH_DEDUCTION = "LUNCH_DEDUCTION"
    GUEST_ORDER = "GUEST_ORDER"
    CLIENT_APP_ORDER = "CLIENT_APP_ORDER"
    REFUND = "REFUND"


class InvoiceStatus(str, Enum):
    UNPAID = "UNPAID"
    PAID = "PAID"
    CANCELLED = "CANCELLED"
    OVERDUE = "OVERDUE"


class DocumentType(str, Enum):
    ACT_OF_RECONCILIATION = "ACT_OF_RECONCILIATION"
    INVOICE_PDF = "INVOICE_PDF"
    CONTRACT = "CONTRACT"


class UserRole(str, Enum):
    ADMIN = "ADMIN"
    MANAGER = "MANAGER"
    SUPER_ADMIN = "SUPER_ADMIN"


ROLE_NAMES = {
    UserRole.ADMIN.value: "Администратор",
    UserRole.MANAGER.value: "Менеджер",
    UserRole.SUPER_ADMIN.value: "Супер-администратор",
}


class UserStatus(str, Enum):
    ACTIVE = "Активный"
    INACTIVE = "Не активный"
    BLOCKED = "Заблокирован"


# Dashboard sections a manager can be granted
AVAILABLE_ROUTES = {
    "home": "Главная",
    "employees": "Сотрудники",
    "users": "Пользователи",
    "projects": "Проекты",
    "payments": "Оплаты",
    "analytics": "Аналитика",
    "meals": "Питание",
    "news": "Новости",
}
