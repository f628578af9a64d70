# storefront/domain/status.py
"""
Order and payment status values.

Rows written by older code paths (or by hand in the admin panel) may carry
``Pending`` instead of ``pending`` or something that is not a status at all.
``parse_*`` never raises: unknown strings come back as :class:`Unrecognized`
so callers can still render the row.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Union


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class Unrecognized:
    raw: str


OrderStatusValue = Union[OrderStatus, Unrecognized]
PaymentStatusValue = Union[PaymentStatus, Unrecognized]


ORDER_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),
    OrderStatus.CANCELLED: set(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.COMPLETED: set(),
    PaymentStatus.FAILED: set(),
}


def _parse(enum_cls, raw):
    if isinstance(raw, enum_cls):
        return raw
    if raw is None:
        return Unrecognized("")
    try:
        return enum_cls(str(raw).strip().lower())
    except ValueError:
        return Unrecognized(str(raw))


def parse_order_status(raw) -> OrderStatusValue:
    return _parse(OrderStatus, raw)


def parse_payment_status(raw) -> PaymentStatusValue:
    return _parse(PaymentStatus, raw)


def status_label(value) -> str:
    """Human label for list views; anything unrecognized renders as ``Unknown``."""
    if isinstance(value, (OrderStatus, PaymentStatus)):
        return value.value.capitalize()
    return "Unknown"


def is_terminal(status: OrderStatus) -> bool:
    return not ORDER_TRANSITIONS[status]


def can_transition_order(current: OrderStatus, target: OrderStatus) -> bool:
    return current == target or target in ORDER_TRANSITIONS[current]


def can_transition_payment(current: PaymentStatus, target: PaymentStatus) -> bool:
    return target in PAYMENT_TRANSITIONS[current]
