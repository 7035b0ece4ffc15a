"""Input validation utilities"""

import re

from yalla_admin.utils.dates import parse_time

PHONE_REGEX = re.compile(r"^\+?\d{9,15}$")
EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
SPECIAL_CHARS = re.compile(r"[!@#$%^&*(),.?\":{}|<>_\-+=\[\]\\/;'`~]")

COMMON_PASSWORDS = {
    "password",
    "password1",
    "password123",
    "qwerty123",
    "12345678",
    "123456789",
    "admin123",
    "welcome1",
    "iloveyou",
}


def normalize_phone(phone: str | None) -> str:
    """Strip spaces, dashes and brackets from a phone number"""
    if not phone:
        return ""
    return re.sub(r"[\s\-()]", "", phone.strip())


def validate_phone(phone: str | None) -> tuple[bool, str | None]:
    """
    Validate phone format

    Args:
        phone: Phone number (spaces, dashes and brackets are ignored)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not phone or not phone.strip():
        return False, "Телефон обязателен"

    if not PHONE_REGEX.match(normalize_phone(phone)):
        return False, "Неверный формат телефона. Пример: +992901234567"

    return True, None


def validate_email(email: str | None) -> tuple[bool, str | None]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email:
        return False, "Email обязателен"

    if len(email) > 255:
        return False, "Email слишком длинный (максимум 255 символов)"

    if not EMAIL_REGEX.match(email):
        return False, "Неверный формат email"

    return True, None


def validate_password(password: str | None) -> list[str]:
    """
    Validate password strength

    Requirements:
    - From 8 to 128 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    - Not a well-known password

    Args:
        password: Password to validate

    Returns:
        List of error messages (empty when the password is strong)
    """
    if not password:
        return ["Пароль обязателен"]

    errors = []
    if len(password) < 8:
        errors.append("Пароль должен содержать минимум 8 символов")
    if len(password) > 128:
        errors.append("Пароль не должен превышать 128 символов")
    if not re.search(r"[A-ZА-ЯЁ]", password):
        errors.append("Пароль должен содержать заглавную букву")
    if not re.search(r"[a-zа-яё]", password):
        errors.append("Пароль должен содержать строчную букву")
    if not re.search(r"\d", password):
        errors.append("Пароль должен содержать цифру")
    if not SPECIAL_CHARS.search(password):
        errors.append("Пароль должен содержать специальный символ")
    if password.lower() in COMMON_PASSWORDS:
        errors.append("Пароль слишком распространенный")
    return errors


def validate_working_days(working_days: list[int] | None) -> tuple[bool, str | None]:
    """
    Validate working days (0 = Sunday ... 6 = Saturday)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if working_days is None:
        return True, None

    if len(working_days) > 7:
        return False, "Рабочих дней не может быть больше 7"

    if any(not isinstance(day, int) or day < 0 or day > 6 for day in working_days):
        return False, "Дни недели должны быть в диапазоне от 0 до 6"

    if len(set(working_days)) != len(working_days):
        return False, "Дни недели не должны повторяться"

    return True, None


def validate_time(value: str | None, field_label: str) -> tuple[bool, str | None]:
    """Validate "HH:mm" time, empty values are allowed"""
    if not value:
        return True, None
    if parse_time(value) is None:
        return False, f"{field_label}: неверный формат времени, используйте HH:mm"
    return True, None


def validate_work_time_range(start: str | None, end: str | None) -> tuple[bool, str | None]:
    """
    Validate a work shift time range

    Overnight shifts (end before start) are allowed, an empty shift is not.
    """
    if not start or not end:
        return True, None
    start_time, end_time = parse_time(start), parse_time(end)
    if start_time is None or end_time is None:
        return True, None
    if start_time == end_time:
        return False, "Время начала и окончания работы не могут совпадать"
    return True, None
