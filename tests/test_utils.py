"""
Unit тесты для утилит: статусы заказов, рабочие дни, валидация, отсечка.
"""

from datetime import date, datetime, time, timezone
from decimal import Decimal

import pytest

from yalla_admin.core.errors import BusinessRuleException, ErrorCode
from yalla_admin.models.enums import OrderStatus
from yalla_admin.utils import order_state
from yalla_admin.utils.dates import inclusive_days, is_cutoff_passed, local_date, parse_time, week_bounds
from yalla_admin.utils.pricing import DEFAULT_COMBO_PRICE, get_combo_price
from yalla_admin.utils.validators import (
    normalize_phone,
    validate_password,
    validate_phone,
    validate_work_time_range,
    validate_working_days,
)
from yalla_admin.utils.working_days import (
    day_index,
    get_schedule_dates,
    get_working_dates,
    next_working_day,
)


class TestOrderState:
    """Тесты переходов статусов заказа."""

    def test_active_can_be_frozen_and_cancelled(self):
        assert order_state.can_transition(OrderStatus.ACTIVE, OrderStatus.FROZEN)
        assert order_state.can_transition(OrderStatus.ACTIVE, OrderStatus.CANCELLED)
        assert order_state.transition("Активен", "Приостановлен") == OrderStatus.PAUSED

    def test_terminal_statuses_reject_transitions(self):
        for status in (OrderStatus.COMPLETED, OrderStatus.CANCELLED):
            with pytest.raises(BusinessRuleException) as exc_info:
                order_state.transition(status, OrderStatus.ACTIVE)
            assert exc_info.value.code == ErrorCode.ORDER_INVALID_STATUS_TRANSITION
            assert "конечный статус" in exc_info.value.message

    def test_invalid_transition_lists_options(self):
        with pytest.raises(BusinessRuleException) as exc_info:
            order_state.transition(OrderStatus.PAUSED, OrderStatus.FROZEN)
        assert "Доступные переходы" in exc_info.value.message

    def test_parse_status_aliases(self):
        assert order_state.parse_status("На паузе") == OrderStatus.PAUSED
        assert order_state.parse_status("Завершен") == OrderStatus.COMPLETED
        assert order_state.parse_status("cancelled") == OrderStatus.CANCELLED
        assert order_state.parse_status(None) == OrderStatus.ACTIVE
        assert order_state.parse_status("что-то") == OrderStatus.ACTIVE

    def test_modifiable_and_terminal(self):
        assert order_state.can_be_modified(OrderStatus.FROZEN)
        assert not order_state.can_be_modified(OrderStatus.COMPLETED)
        assert order_state.is_terminal(OrderStatus.DELIVERED)
        assert not order_state.can_be_cancelled(OrderStatus.COMPLETED)


class TestWorkingDays:
    """Тесты календаря рабочих дней (0 = воскресенье)."""

    def test_day_index_sunday_is_zero(self):
        assert day_index(date(2024, 1, 7)) == 0  # воскресенье
        assert day_index(date(2024, 1, 8)) == 1  # понедельник

    def test_working_dates_skip_weekend(self):
        dates = get_working_dates(date(2024, 1, 5), date(2024, 1, 9))
        assert dates == [date(2024, 1, 5), date(2024, 1, 8), date(2024, 1, 9)]

    def test_custom_working_days(self):
        # только суббота и воскресенье
        dates = get_working_dates(date(2024, 1, 1), date(2024, 1, 7), [0, 6])
        assert dates == [date(2024, 1, 6), date(2024, 1, 7)]

    def test_next_working_day_after_friday(self):
        assert next_working_day(date(2024, 1, 5)) == date(2024, 1, 8)
        assert next_working_day(date(2024, 1, 8)) == date(2024, 1, 9)

    def test_every_other_day_schedule(self):
        dates = get_schedule_dates("EVERY_OTHER_DAY", date(2024, 1, 8), date(2024, 1, 12))
        assert dates == [date(2024, 1, 8), date(2024, 1, 10), date(2024, 1, 12)]

    def test_custom_schedule_keeps_dates_in_range(self):
        dates = get_schedule_dates(
            "CUSTOM",
            date(2024, 1, 8),
            date(2024, 1, 12),
            custom_days=["2024-01-09", "2024-01-20", "not-a-date", "2024-01-09"],
        )
        assert dates == [date(2024, 1, 9)]

    def test_unknown_schedule_means_every_working_day(self):
        dates = get_schedule_dates("WEEKDAYS", date(2024, 1, 8), date(2024, 1, 14))
        assert len(dates) == 5


class TestValidators:
    """Тесты валидации входных данных."""

    def test_phone_normalization(self):
        assert normalize_phone(" +992 (90) 123-45-67 ") == "+992901234567"
        assert validate_phone("+992 90 123 45 67") == (True, None)

    def test_invalid_phone(self):
        is_valid, error = validate_phone("12-34")
        assert not is_valid
        assert "формат" in error

    def test_empty_phone(self):
        assert validate_phone("") == (False, "Телефон обязателен")

    def test_strong_password(self):
        assert validate_password("Secret#123") == []

    def test_weak_password_reports_every_problem(self):
        errors = validate_password("abc")
        assert "Пароль должен содержать минимум 8 символов" in errors
        assert "Пароль должен содержать заглавную букву" in errors
        assert "Пароль должен содержать цифру" in errors
        assert "Пароль должен содержать специальный символ" in errors

    def test_working_days_range_and_duplicates(self):
        assert validate_working_days([1, 2, 3])[0]
        assert not validate_working_days([1, 7])[0]
        assert not validate_working_days([1, 1])[0]

    def test_overnight_shift_allowed(self):
        assert validate_work_time_range("22:00", "06:00") == (True, None)
        assert not validate_work_time_range("09:00", "09:00")[0]


class TestDates:
    """Тесты отсечки и календарных помощников."""

    def test_cutoff_uses_project_timezone(self):
        # 05:00 UTC = 10:00 в Душанбе (UTC+5)
        now = datetime(2024, 1, 8, 5, 0, tzinfo=timezone.utc)
        assert not is_cutoff_passed(time(10, 30), "Asia/Dushanbe", now)
        later = datetime(2024, 1, 8, 5, 30, tzinfo=timezone.utc)
        assert is_cutoff_passed(time(10, 30), "Asia/Dushanbe", later)

    def test_no_cutoff_never_passes(self):
        assert not is_cutoff_passed(None, "Asia/Dushanbe")

    def test_local_date_crosses_midnight(self):
        now = datetime(2024, 1, 7, 20, 0, tzinfo=timezone.utc)
        assert local_date("Asia/Dushanbe", now) == date(2024, 1, 8)

    def test_unknown_timezone_falls_back_to_utc(self):
        now = datetime(2024, 1, 7, 20, 0, tzinfo=timezone.utc)
        assert local_date("Mars/Olympus", now) == date(2024, 1, 7)

    def test_parse_time(self):
        assert parse_time("10:30") == time(10, 30)
        assert parse_time("25:00") is None

    def test_week_bounds_and_inclusive_days(self):
        assert week_bounds(date(2024, 1, 10)) == (date(2024, 1, 8), date(2024, 1, 14))
        assert inclusive_days(date(2024, 1, 8), date(2024, 1, 12)) == 5

    def test_combo_prices(self):
        assert get_combo_price("Комбо 25") == Decimal("25")
        assert get_combo_price("Комбо 35") == Decimal("35")
        assert get_combo_price("Неизвестное") == DEFAULT_COMBO_PRICE
