# storefront/domain/order_status.py
"""
Order lifecycle rules.

pending -> confirmed -> processing -> shipped -> delivered is the happy path,
cancelled / returned / refunded branch off it. Every status change made by the
order service goes through `ensure_transition`.
"""
from typing import Dict, FrozenSet

from storefront.domain.enums import OrderStatus
from storefront.domain.errors import BusinessRuleViolation

INITIAL_STATUS = OrderStatus.PENDING

TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED, OrderStatus.CANCELLED}),
    OrderStatus.SHIPPED: frozenset(
        {OrderStatus.DELIVERED, OrderStatus.RETURNED, OrderStatus.CANCELLED}
    ),
    OrderStatus.DELIVERED: frozenset({OrderStatus.RETURNED, OrderStatus.REFUNDED}),
    OrderStatus.CANCELLED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.RETURNED: frozenset({OrderStatus.REFUNDED}),
    OrderStatus.REFUNDED: frozenset(),
}

# fulfilment is over once an order reaches one of these
TERMINAL_STATUSES = frozenset(
    {OrderStatus.DELIVERED, OrderStatus.CANCELLED, OrderStatus.REFUNDED, OrderStatus.RETURNED}
)

CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})

# moving into one of these puts the ordered quantities back on the shelf
STOCK_RESTORING = frozenset({OrderStatus.CANCELLED, OrderStatus.RETURNED, OrderStatus.REFUNDED})

TIMESTAMP_FIELDS = {
    OrderStatus.CONFIRMED: "confirmed_at",
    OrderStatus.SHIPPED: "shipped_at",
    OrderStatus.DELIVERED: "delivered_at",
    OrderStatus.CANCELLED: "cancelled_at",
}


def can_transition(current: OrderStatus, new: OrderStatus) -> bool:
    return OrderStatus(new) in TRANSITIONS[OrderStatus(current)]


def ensure_transition(current: OrderStatus, new: OrderStatus) -> None:
    current, new = OrderStatus(current), OrderStatus(new)
    if not can_transition(current, new):
        raise BusinessRuleViolation(
            f"Cannot transition order from {current.value} to {new.value}"
        )


def restores_stock(current: OrderStatus, new: OrderStatus) -> bool:
    return OrderStatus(new) in STOCK_RESTORING and OrderStatus(current) not in STOCK_RESTORING
