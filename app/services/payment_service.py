"""Payment service - records order payments and keeps settlement status in step."""
import logging
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import (
    AppError, FieldError, NotFoundError, PersistenceError, ValidationError
)
from app.models import AuditAction, Customer, Order, OrderStatus, Payment
from app.services import audit_service, metrics_service, settlement
from app.services.cache_service import invalidate_reports
from app.services.pricing_service import to_money
from app.utils.formatters import parse_datetime

logger = logging.getLogger(__name__)


def total_paid(order: Order, session=None) -> Decimal:
    """
    Sum of the active payments of an order.

    With a session the sum is read from the database, otherwise from the
    loaded `payments` collection.
    """
    if session is not None:
        paid = session.query(func.coalesce(func.sum(Payment.amount), 0)).filter(
            Payment.order_id == order.id,
            Payment.is_active.is_(True)
        ).scalar()
        return to_money(paid)
    return to_money(sum((Decimal(str(p.amount)) for p in order.active_payments), Decimal('0')))


def remaining_balance(order: Order, session=None) -> Decimal:
    """What is still owed on the order, never below zero."""
    remaining = Decimal(str(order.total_price or 0)) - total_paid(order, session)
    return max(Decimal('0.00'), to_money(remaining))


def _validate_payment_input(order_id, customer_id, amount, payment_date):
    errors: List[FieldError] = []

    try:
        order_id = int(order_id)
        if order_id <= 0:
            raise ValueError
    except (TypeError, ValueError):
        errors.append(FieldError('order_id', 'A valid order must be selected'))

    try:
        customer_id = int(customer_id)
        if customer_id <= 0:
            raise ValueError
    except (TypeError, ValueError):
        errors.append(FieldError('customer_id', 'A valid customer must be selected'))

    parsed_amount = None
    if amount is not None and amount != '' and not isinstance(amount, bool):
        try:
            parsed_amount = Decimal(str(amount).strip())
        except (InvalidOperation, ValueError):
            parsed_amount = None
    if parsed_amount is None or not parsed_amount.is_finite() or parsed_amount <= 0:
        errors.append(FieldError('amount', 'Amount must be greater than 0'))

    parsed_date = parse_datetime(payment_date)
    if parsed_date is None:
        errors.append(FieldError('payment_date', 'Payment date is not a valid date'))

    if errors:
        raise ValidationError(errors)
    return order_id, customer_id, to_money(parsed_amount), parsed_date


def record_payment(
    session,
    order_id: int,
    customer_id: int,
    amount,
    payment_date,
    description: str = None
) -> Payment:
    """
    Record a payment against an order (partial or full).

    The order row is locked, the payment inserted and the settlement status
    re-evaluated in the same transaction. Overpayment is accepted.

    Returns:
        Payment object
    """
    order_id, customer_id, amount, paid_at = _validate_payment_input(
        order_id, customer_id, amount, payment_date
    )

    try:
        # Step 1: Lock order row
        order = (
            session.query(Order)
            .filter(Order.id == order_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        if order is None or not order.is_active:
            raise NotFoundError(f'Order #{order_id} not found')

        customer = session.get(Customer, customer_id)
        if customer is None or not customer.is_active:
            raise NotFoundError(f'Customer #{customer_id} not found')
        if order.customer_id != customer.id:
            raise ValidationError(FieldError('customer_id', 'The order belongs to another customer'))

        # Step 2: Create payment record
        payment = Payment(
            order=order,
            customer=customer,
            amount=amount,
            payment_date=paid_at,
            description=(description or '').strip() or None
        )
        session.add(payment)
        session.flush()

        # Step 3: Re-evaluate settlement
        paid = total_paid(order, session)
        remaining = max(Decimal('0.00'), to_money(Decimal(str(order.total_price)) - paid))
        settlement.settle(order, paid)

        # Step 4: Audit
        completed = paid >= Decimal(str(order.total_price))
        audit_service.log_action(
            session,
            AuditAction.ORDER_PAYMENT_COMPLETED if completed else AuditAction.ORDER_PARTIAL_PAYMENT,
            description=f'Payment of {amount} received for order #{order.id}',
            details={
                'payment_id': payment.id,
                'amount': amount,
                'total_paid': paid,
                'total_price': order.total_price,
                'remaining': remaining,
                'status': order.status.value
            },
            customer_id=customer.id,
            order_id=order.id
        )

        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to record payment for order {order_id}: {e}")
        raise PersistenceError()

    logger.info(f"Payment {payment.id} recorded for order {order.id}: {amount} (status {order.status.value})")

    metrics_service.record_payment_event(order.status.value)

    invalidate_reports()
    return payment


def list_payments(
    session,
    order_id: int = None,
    customer_id: int = None,
    start: datetime = None,
    end: datetime = None
) -> List[Payment]:
    """Active payments, newest first, optionally filtered."""
    query = session.query(Payment).filter(Payment.is_active.is_(True))
    if order_id:
        query = query.filter(Payment.order_id == order_id)
    if customer_id:
        query = query.filter(Payment.customer_id == customer_id)
    if start:
        query = query.filter(Payment.payment_date >= start)
    if end:
        query = query.filter(Payment.payment_date < end)
    return query.order_by(Payment.payment_date.desc(), Payment.id.desc()).all()


def reconcile_order_statuses(session) -> Dict[str, int]:
    """
    Repair active, non-terminal orders whose status lags behind their payments.

    Returns counts of examined and updated orders.
    """
    paid_by_order = dict(
        session.query(Payment.order_id, func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.is_active.is_(True))
        .group_by(Payment.order_id)
        .all()
    )

    orders = (
        session.query(Order)
        .filter(
            Order.is_active.is_(True),
            Order.status.in_([OrderStatus.PENDING, OrderStatus.PARTIALLY_PAID])
        )
        .order_by(Order.id)
        .with_for_update()
        .all()
    )

    updated = 0
    try:
        for order in orders:
            paid = to_money(paid_by_order.get(order.id, 0))
            previous = order.status
            if settlement.settle(order, paid):
                updated += 1
                audit_service.log_action(
                    session,
                    AuditAction.ORDER_STATUS_RECONCILED,
                    description=f'Order #{order.id} status reconciled',
                    details={'from': previous.value, 'to': order.status.value, 'total_paid': paid},
                    customer_id=order.customer_id,
                    order_id=order.id
                )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Order status reconciliation failed: {e}")
        raise PersistenceError()

    logger.info(f"Reconciled order statuses: {updated} of {len(orders)} updated")
    return {'examined': len(orders), 'updated': updated}
