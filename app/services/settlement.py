"""
Order settlement state machine.

    PENDING -> PARTIALLY_PAID -> PAID
    PENDING | PARTIALLY_PAID -> CANCELLED

PAID and CANCELLED are terminal.
"""
from decimal import Decimal

from app.exceptions import BusinessLogicError
from app.models import OrderStatus

TERMINAL_STATES = frozenset({OrderStatus.PAID, OrderStatus.CANCELLED})

ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PARTIALLY_PAID, OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PARTIALLY_PAID: {OrderStatus.PAID, OrderStatus.CANCELLED},
    OrderStatus.PAID: set(),
    OrderStatus.CANCELLED: set(),
}

LABELS = {
    OrderStatus.PENDING: 'Pending',
    OrderStatus.PARTIALLY_PAID: 'Partially paid',
    OrderStatus.PAID: 'Paid',
    OrderStatus.CANCELLED: 'Cancelled',
}

COLORS = {
    OrderStatus.PENDING: '#FFD700',
    OrderStatus.PARTIALLY_PAID: '#FD7E14',
    OrderStatus.PAID: '#17A2B8',
    OrderStatus.CANCELLED: '#DC3545',
}


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATES


def status_for(total_price, total_paid) -> OrderStatus:
    """Settlement state implied by the amounts (never CANCELLED)."""
    total_price = Decimal(str(total_price or 0))
    total_paid = Decimal(str(total_paid or 0))
    if total_paid <= 0:
        return OrderStatus.PENDING
    if total_paid >= total_price:
        return OrderStatus.PAID
    return OrderStatus.PARTIALLY_PAID


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return current == target or target in ALLOWED_TRANSITIONS[current]


def transition(order, target: OrderStatus) -> bool:
    """
    Move `order` to `target`. Returns True when the status changed.

    Raises BusinessLogicError for transitions out of a terminal state.
    """
    current = order.status or OrderStatus.PENDING
    if current == target:
        return False
    if not can_transition(current, target):
        raise BusinessLogicError(
            f'Order #{order.id} cannot move from {LABELS[current]} to {LABELS[target]}',
            status_code=409
        )
    order.status = target
    return True


def settle(order, total_paid) -> bool:
    """Re-evaluate a non-terminal order against what has been paid."""
    if is_terminal(order.status):
        return False
    target = status_for(order.total_price, total_paid)
    if not can_transition(order.status, target):
        # Settlement only moves forward
        return False
    return transition(order, target)
