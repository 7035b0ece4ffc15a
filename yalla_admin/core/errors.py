"""Application errors: error codes, default messages and exception classes"""

from dataclasses import asdict, dataclass
from typing import Any


class ErrorCode:
    """Stable machine-readable error codes returned to the client"""

    # Auth
    AUTH_INVALID_CREDENTIALS = "AUTH_INVALID_CREDENTIALS"
    AUTH_USER_BLOCKED = "AUTH_USER_BLOCKED"
    AUTH_USER_DELETED = "AUTH_USER_DELETED"
    AUTH_UNAUTHORIZED = "AUTH_UNAUTHORIZED"
    AUTH_FORBIDDEN = "AUTH_FORBIDDEN"
    AUTH_TOKEN_INVALID = "AUTH_TOKEN_INVALID"
    AUTH_TOKEN_EXPIRED = "AUTH_TOKEN_EXPIRED"
    AUTH_REFRESH_TOKEN_INVALID = "AUTH_REFRESH_TOKEN_INVALID"
    AUTH_RESET_TOKEN_INVALID = "AUTH_RESET_TOKEN_INVALID"
    AUTH_PASSWORD_WEAK = "AUTH_PASSWORD_WEAK"
    AUTH_PASSWORD_INCORRECT = "AUTH_PASSWORD_INCORRECT"
    AUTH_TOO_MANY_ATTEMPTS = "AUTH_TOO_MANY_ATTEMPTS"
    AUTH_IMPERSONATION_NOT_ALLOWED = "AUTH_IMPERSONATION_NOT_ALLOWED"
    AUTH_READ_ONLY_SESSION = "AUTH_READ_ONLY_SESSION"

    # Users
    USER_NOT_FOUND = "USER_NOT_FOUND"
    USER_PHONE_EXISTS = "USER_PHONE_EXISTS"
    USER_PHONE_DELETED = "USER_PHONE_DELETED"
    USER_CANNOT_DELETE_SELF = "USER_CANNOT_DELETE_SELF"
    USER_CANNOT_DEMOTE_SELF = "USER_CANNOT_DEMOTE_SELF"
    USER_LAST_ADMIN = "USER_LAST_ADMIN"

    # Companies / projects
    COMPANY_NOT_FOUND = "COMPANY_NOT_FOUND"
    PROJ_NOT_FOUND = "PROJ_NOT_FOUND"
    PROJ_ADDRESS_IMMUTABLE = "PROJ_ADDRESS_IMMUTABLE"
    PROJ_SERVICE_NOT_ENABLED = "PROJ_SERVICE_NOT_ENABLED"

    # Employees
    EMP_NOT_FOUND = "EMP_NOT_FOUND"
    EMP_PHONE_EXISTS = "EMP_PHONE_EXISTS"
    EMP_PHONE_DELETED = "EMP_PHONE_DELETED"
    EMP_EMAIL_EXISTS = "EMP_EMAIL_EXISTS"
    EMP_INVALID_PHONE_FORMAT = "EMP_INVALID_PHONE_FORMAT"
    EMP_DELETED = "EMP_DELETED"
    EMP_ALREADY_DELETED = "EMP_ALREADY_DELETED"
    EMP_INACTIVE = "EMP_INACTIVE"
    EMP_NO_PROJECT = "EMP_NO_PROJECT"
    EMP_COMPENSATION_SERVICE = "EMP_COMPENSATION_SERVICE"
    EMP_SERVICE_TYPE_SWITCH_BLOCKED = "EMP_SERVICE_TYPE_SWITCH_BLOCKED"

    # Subscriptions
    SUB_NOT_FOUND = "SUB_NOT_FOUND"
    SUB_MIN_DAYS_REQUIRED = "SUB_MIN_DAYS_REQUIRED"
    SUB_INVALID_PERIOD = "SUB_INVALID_PERIOD"
    SUB_INVALID_STATUS = "SUB_INVALID_STATUS"
    SUB_ASSIGNMENT_NOT_FOUND = "SUB_ASSIGNMENT_NOT_FOUND"

    # Freeze
    FREEZE_LIMIT_EXCEEDED = "FREEZE_LIMIT_EXCEEDED"
    FREEZE_ORDER_NOT_ACTIVE = "FREEZE_ORDER_NOT_ACTIVE"
    FREEZE_NOT_FROZEN = "FREEZE_NOT_FROZEN"
    FREEZE_PAST_DATE = "FREEZE_PAST_DATE"

    # Orders
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    ORDER_CUTOFF_PASSED = "ORDER_CUTOFF_PASSED"
    ORDER_PAST_DATE = "ORDER_PAST_DATE"
    ORDER_INVALID_STATUS_TRANSITION = "ORDER_INVALID_STATUS_TRANSITION"
    ORDER_UNKNOWN_ACTION = "ORDER_UNKNOWN_ACTION"

    # Budget / finance
    BUDGET_INSUFFICIENT = "BUDGET_INSUFFICIENT"
    BUDGET_NEGATIVE_NOT_ALLOWED = "BUDGET_NEGATIVE_NOT_ALLOWED"
    INVOICE_NOT_FOUND = "INVOICE_NOT_FOUND"
    INVOICE_ALREADY_PAID = "INVOICE_ALREADY_PAID"
    INVOICE_CANCELLED = "INVOICE_CANCELLED"
    INVOICE_DUPLICATE = "INVOICE_DUPLICATE"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"

    # Content
    DOCUMENT_NOT_FOUND = "DOCUMENT_NOT_FOUND"
    NEWS_NOT_FOUND = "NEWS_NOT_FOUND"
    CONFIG_NOT_FOUND = "CONFIG_NOT_FOUND"

    # Generic
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_TIME_FORMAT = "INVALID_TIME_FORMAT"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    INTERNAL_ERROR = "INTERNAL_ERROR"


ERROR_MESSAGES: dict[str, str] = {
    ErrorCode.AUTH_INVALID_CREDENTIALS: "Неверный логин или пароль",
    ErrorCode.AUTH_USER_BLOCKED: "Пользователь заблокирован",
    ErrorCode.AUTH_USER_DELETED: "Аккаунт был удален",
    ErrorCode.AUTH_UNAUTHORIZED: "Требуется авторизация",
    ErrorCode.AUTH_FORBIDDEN: "Недостаточно прав для выполнения операции",
    ErrorCode.AUTH_TOKEN_INVALID: "Недействительный токен",
    ErrorCode.AUTH_TOKEN_EXPIRED: "Срок действия токена истек",
    ErrorCode.AUTH_REFRESH_TOKEN_INVALID: "Недействительный refresh token",
    ErrorCode.AUTH_RESET_TOKEN_INVALID: "Недействительный или просроченный токен",
    ErrorCode.AUTH_PASSWORD_WEAK: "Пароль не соответствует требованиям безопасности",
    ErrorCode.AUTH_PASSWORD_INCORRECT: "Неверный текущий пароль",
    ErrorCode.AUTH_TOO_MANY_ATTEMPTS: "Слишком много неудачных попыток входа. Попробуйте позже",
    ErrorCode.AUTH_IMPERSONATION_NOT_ALLOWED: "Вход под другим пользователем запрещен",
    ErrorCode.AUTH_READ_ONLY_SESSION: "Режим просмотра: изменения недоступны при входе под другим пользователем",
    ErrorCode.USER_NOT_FOUND: "Пользователь не найден",
    ErrorCode.USER_PHONE_EXISTS: "Пользователь с таким телефоном уже существует",
    ErrorCode.USER_PHONE_DELETED: "Пользователь с таким телефоном был удален",
    ErrorCode.USER_CANNOT_DELETE_SELF: "Вы не можете удалить свой собственный аккаунт",
    ErrorCode.USER_CANNOT_DEMOTE_SELF: "Вы не можете понизить свою роль",
    ErrorCode.USER_LAST_ADMIN: "Невозможно удалить последнего администратора компании",
    ErrorCode.COMPANY_NOT_FOUND: "Компания не найдена",
    ErrorCode.PROJ_NOT_FOUND: "Проект не найден",
    ErrorCode.PROJ_ADDRESS_IMMUTABLE: "Адрес проекта нельзя изменить после создания",
    ErrorCode.PROJ_SERVICE_NOT_ENABLED: "Услуга не подключена для проекта",
    ErrorCode.EMP_NOT_FOUND: "Сотрудник не найден",
    ErrorCode.EMP_PHONE_EXISTS: "Сотрудник с таким телефоном уже существует",
    ErrorCode.EMP_PHONE_DELETED: "Сотрудник с таким телефоном был удален",
    ErrorCode.EMP_EMAIL_EXISTS: "Сотрудник с таким email уже существует",
    ErrorCode.EMP_INVALID_PHONE_FORMAT: "Неверный формат телефона",
    ErrorCode.EMP_DELETED: "Невозможно изменить удалённого сотрудника",
    ErrorCode.EMP_ALREADY_DELETED: "Сотрудник уже удалён",
    ErrorCode.EMP_INACTIVE: "Сотрудник неактивен",
    ErrorCode.EMP_NO_PROJECT: "Сотрудник не привязан к проекту",
    ErrorCode.EMP_COMPENSATION_SERVICE: "Сотрудник использует компенсацию и не может получать ланчи",
    ErrorCode.EMP_SERVICE_TYPE_SWITCH_BLOCKED: (
        "Невозможно сменить тип услуги, пока у сотрудника есть активная подписка на ланч"
    ),
    ErrorCode.SUB_NOT_FOUND: "Подписка не найдена",
    ErrorCode.SUB_MIN_DAYS_REQUIRED: "Минимальный период подписки - 5 дней",
    ErrorCode.SUB_INVALID_PERIOD: "Дата окончания должна быть не раньше даты начала",
    ErrorCode.SUB_INVALID_STATUS: "Операция недоступна в текущем статусе подписки",
    ErrorCode.SUB_ASSIGNMENT_NOT_FOUND: "Назначение не найдено",
    ErrorCode.FREEZE_LIMIT_EXCEEDED: "Превышен лимит заморозок на эту неделю",
    ErrorCode.FREEZE_ORDER_NOT_ACTIVE: "Можно заморозить только активный заказ",
    ErrorCode.FREEZE_NOT_FROZEN: "Заказ не заморожен",
    ErrorCode.FREEZE_PAST_DATE: "Нельзя заморозить заказ на прошедшую дату",
    ErrorCode.ORDER_NOT_FOUND: "Заказ не найден",
    ErrorCode.ORDER_CUTOFF_PASSED: "Время для изменения заказов на сегодня истекло",
    ErrorCode.ORDER_PAST_DATE: "Нельзя создать заказ на прошедшую дату",
    ErrorCode.ORDER_INVALID_STATUS_TRANSITION: "Недопустимый переход статуса заказа",
    ErrorCode.ORDER_UNKNOWN_ACTION: "Неизвестное действие",
    ErrorCode.BUDGET_INSUFFICIENT: "Недостаточно бюджета",
    ErrorCode.BUDGET_NEGATIVE_NOT_ALLOWED: "Бюджет не может быть отрицательным",
    ErrorCode.INVOICE_NOT_FOUND: "Счет не найден",
    ErrorCode.INVOICE_ALREADY_PAID: "Счет уже оплачен",
    ErrorCode.INVOICE_CANCELLED: "Счет отменен",
    ErrorCode.INVOICE_DUPLICATE: "Счет с таким внешним ID уже существует",
    ErrorCode.TRANSACTION_NOT_FOUND: "Транзакция не найдена",
    ErrorCode.DOCUMENT_NOT_FOUND: "Документ не найден",
    ErrorCode.NEWS_NOT_FOUND: "Новость не найдена",
    ErrorCode.CONFIG_NOT_FOUND: "Настройка не найдена",
    ErrorCode.VALIDATION_ERROR: "Ошибка валидации данных",
    ErrorCode.INVALID_TIME_FORMAT: "Неверный формат времени. Используйте формат HH:mm",
    ErrorCode.NOT_FOUND: "Ресурс не найден",
    ErrorCode.FORBIDDEN: "Доступ запрещен",
    ErrorCode.CONFLICT: "Конфликт данных",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Слишком много запросов. Попробуйте позже",
    ErrorCode.INTERNAL_ERROR: "Произошла внутренняя ошибка. Попробуйте позже",
}

ERROR_ACTIONS: dict[str, str] = {
    ErrorCode.AUTH_UNAUTHORIZED: "Войдите в систему",
    ErrorCode.AUTH_TOKEN_EXPIRED: "Войдите в систему повторно",
    ErrorCode.AUTH_REFRESH_TOKEN_INVALID: "Войдите в систему повторно",
    ErrorCode.AUTH_USER_BLOCKED: "Обратитесь к администратору",
    ErrorCode.AUTH_PASSWORD_WEAK: "Используйте более надежный пароль",
    ErrorCode.EMP_PHONE_DELETED: "Восстановите удаленного сотрудника или используйте другой номер",
    ErrorCode.EMP_SERVICE_TYPE_SWITCH_BLOCKED: "Сначала отмените подписку на ланч",
    ErrorCode.FREEZE_LIMIT_EXCEEDED: "Попробуйте на следующей неделе",
    ErrorCode.ORDER_CUTOFF_PASSED: "Заказы на завтра и далее можно изменять",
    ErrorCode.BUDGET_INSUFFICIENT: "Пополните баланс",
    ErrorCode.PROJ_ADDRESS_IMMUTABLE: "Создайте новый проект с нужным адресом",
    ErrorCode.RATE_LIMIT_EXCEEDED: "Подождите минуту и повторите запрос",
}


class ErrorType:
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    RATE_LIMIT = "rate_limit"
    INTERNAL = "internal"


STATUS_BY_TYPE = {
    ErrorType.VALIDATION: 400,
    ErrorType.BUSINESS_RULE: 400,
    ErrorType.UNAUTHORIZED: 401,
    ErrorType.FORBIDDEN: 403,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.RATE_LIMIT: 429,
    ErrorType.INTERNAL: 500,
}


class AppException(Exception):
    """
    Base application exception

    Carries an error code, a user-facing message and an error type that
    determines the HTTP status code.
    """

    error_type = ErrorType.INTERNAL

    def __init__(
        self,
        code: str,
        message: str | None = None,
        details: dict[str, Any] | None = None,
        action: str | None = None,
    ):
        self.code = code
        self.message = message or ERROR_MESSAGES.get(code, code)
        self.details = details
        self.action = action or ERROR_ACTIONS.get(code)
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return STATUS_BY_TYPE.get(self.error_type, 500)

    def to_dict(self) -> dict[str, Any]:
        payload = {
            "code": self.code,
            "message": self.message,
            "type": self.error_type,
            "action": self.action,
        }
        if self.details:
            payload["details"] = self.details
        return payload


class ValidationException(AppException):
    error_type = ErrorType.VALIDATION


class BusinessRuleException(AppException):
    error_type = ErrorType.BUSINESS_RULE


class UnauthorizedException(AppException):
    error_type = ErrorType.UNAUTHORIZED


class ForbiddenException(AppException):
    error_type = ErrorType.FORBIDDEN


class NotFoundException(AppException):
    error_type = ErrorType.NOT_FOUND


class ConflictException(AppException):
    error_type = ErrorType.CONFLICT


@dataclass
class FieldError:
    field: str
    code: str
    message: str


class MultiValidationException(ValidationException):
    """Validation error that reports every invalid field at once"""

    def __init__(self, errors: list[FieldError], message: str | None = None):
        self.errors = errors
        super().__init__(
            ErrorCode.VALIDATION_ERROR,
            message or (errors[0].message if len(errors) == 1 else "Исправьте ошибки в форме"),
            details={"errors": [asdict(error) for error in errors]},
        )
