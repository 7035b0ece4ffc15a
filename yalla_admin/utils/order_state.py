"""Order status parsing and allowed status transitions"""

from yalla_admin.core.errors import BusinessRuleException, ErrorCode
from yalla_admin.models.enums import OrderStatus

_LEGACY_ALIASES = {
    "На паузе": OrderStatus.PAUSED,
    "Завершен": OrderStatus.COMPLETED,
    "Завершён": OrderStatus.COMPLETED,
    "Отменен": OrderStatus.CANCELLED,
}

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.ACTIVE: frozenset(
        {OrderStatus.PAUSED, OrderStatus.FROZEN, OrderStatus.COMPLETED, OrderStatus.CANCELLED}
    ),
    OrderStatus.PAUSED: frozenset({OrderStatus.ACTIVE, OrderStatus.CANCELLED}),
    OrderStatus.FROZEN: frozenset({OrderStatus.ACTIVE, OrderStatus.CANCELLED}),
    OrderStatus.DAY_OFF: frozenset({OrderStatus.ACTIVE, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset({OrderStatus.COMPLETED}),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

MODIFIABLE = frozenset({OrderStatus.ACTIVE, OrderStatus.PAUSED, OrderStatus.FROZEN})
TERMINAL = frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED, OrderStatus.CANCELLED})


def parse_status(value: str | OrderStatus | None) -> OrderStatus:
    """
    Parse a stored or user-supplied status

    Legacy labels are mapped to current statuses, empty or unknown values
    are treated as active.
    """
    if isinstance(value, OrderStatus):
        return value
    if not value:
        return OrderStatus.ACTIVE
    value = value.strip()
    if value in _LEGACY_ALIASES:
        return _LEGACY_ALIASES[value]
    try:
        return OrderStatus(value)
    except ValueError:
        pass
    try:
        return OrderStatus[value.upper()]
    except KeyError:
        return OrderStatus.ACTIVE


def can_transition(current: str | OrderStatus, target: str | OrderStatus) -> bool:
    return parse_status(target) in TRANSITIONS[parse_status(current)]


def can_be_modified(status: str | OrderStatus) -> bool:
    return parse_status(status) in MODIFIABLE


def can_be_cancelled(status: str | OrderStatus) -> bool:
    return can_transition(status, OrderStatus.CANCELLED)


def is_terminal(status: str | OrderStatus) -> bool:
    return parse_status(status) in TERMINAL


def transition(current: str | OrderStatus, target: str | OrderStatus) -> OrderStatus:
    """
    Validate a status transition

    Args:
        current: Current order status
        target: Requested status

    Returns:
        Target status

    Raises:
        BusinessRuleException: If the transition is not allowed
    """
    source = parse_status(current)
    destination = parse_status(target)
    allowed = TRANSITIONS[source]
    if destination in allowed:
        return destination

    if not allowed:
        message = (
            f"Невозможно перевести заказ из статуса '{source.value}' в '{destination.value}'. "
            "Это конечный статус, дальнейшие переходы невозможны."
        )
    else:
        options = ", ".join(sorted(status.value for status in allowed))
        message = (
            f"Невозможно перевести заказ из статуса '{source.value}' в '{destination.value}'. "
            f"Доступные переходы: {options}"
        )
    raise BusinessRuleException(ErrorCode.ORDER_INVALID_STATUS_TRANSITION, message)
