"""
Order lifecycle - create, edit and cancel orders as single transactions.

Each mutating operation runs validate -> price -> persist order and items ->
move stock -> audit, and either commits all of it or rolls all of it back.
"""
import logging
import math
from decimal import Decimal
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import selectinload

from app.exceptions import (
    AppError, BusinessLogicError, InsufficientStockError, NotFoundError, PersistenceError
)
from app.models import AuditAction, Customer, Order, OrderItem, OrderStatus
from app.services import audit_service, lookup_service, metrics_service, settlement, stock_service
from app.services.order_draft import OrderDraft, validate_order_draft
from app.services.payment_service import remaining_balance, total_paid
from app.services.pricing_service import OrderTotals, compute_order_totals, to_money

logger = logging.getLogger(__name__)


def _as_draft(payload: Union[OrderDraft, Dict[str, Any]]) -> OrderDraft:
    if isinstance(payload, OrderDraft):
        return payload
    return validate_order_draft(payload).unwrap()


def _resolve_tax_rate(session, draft: OrderDraft) -> Decimal:
    if draft.tax_rate is not None:
        return to_money(draft.tax_rate)
    return to_money(lookup_service.get_default_tax_rate(session))


def _require_customer(session, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None or not customer.is_active:
        raise NotFoundError(f'Customer #{customer_id} not found')
    return customer


def _lock_order(session, order_id: int) -> Order:
    order = (
        session.query(Order)
        .filter(Order.id == order_id)
        .with_for_update()
        .populate_existing()
        .first()
    )
    if order is None or not order.is_active:
        raise NotFoundError(f'Order #{order_id} not found')
    return order


def _build_items(draft: OrderDraft) -> List[OrderItem]:
    return [
        OrderItem(
            product_id=line.product_id,
            quantity=line.quantity,
            price=line.unit_price,
            is_manual=line.is_manual,
            manual_name=line.manual_name,
            stock_deducted=0,
            is_active=True
        )
        for line in draft.items
    ]


def _apply_draft(order: Order, draft: OrderDraft, tax_rate: Decimal, totals: OrderTotals) -> None:
    order.customer_id = draft.customer_id
    order.address = draft.address
    order.description = draft.description
    order.labor_cost = draft.labor_cost
    order.delivery_fee = draft.delivery_fee
    order.tax_rate = tax_rate
    order.discount_type = draft.discount_type
    order.discount_value = draft.discount_value
    order.total_price = totals.grand_total


def preview_order(session, payload: Union[OrderDraft, Dict[str, Any]]) -> OrderTotals:
    """Totals an order would have, without persisting anything."""
    draft = _as_draft(payload)
    return compute_order_totals(draft, _resolve_tax_rate(session, draft))


def create_order(session, payload: Union[OrderDraft, Dict[str, Any]], stock_policy: str = None) -> Order:
    """
    Create an order with its items and take their stock.

    Raises:
        ValidationError: malformed draft
        NotFoundError: customer or product absent/inactive
        InsufficientStockError: stock short under the reject policy
        PersistenceError: storage failure
    """
    draft = _as_draft(payload)

    try:
        customer = _require_customer(session, draft.customer_id)
        tax_rate = _resolve_tax_rate(session, draft)
        totals = compute_order_totals(draft, tax_rate)

        order = Order(status=OrderStatus.PENDING, is_active=True)
        _apply_draft(order, draft, tax_rate, totals)
        order.items = _build_items(draft)
        session.add(order)
        session.flush()

        stock_service.deduct_for_items(session, order.items, policy=stock_policy)

        audit_service.log_action(
            session,
            AuditAction.ORDER_CREATED,
            description=f'Order #{order.id} created for {customer.name}',
            details={'totals': totals.as_dict(), 'item_count': len(order.items)},
            customer_id=customer.id,
            order_id=order.id
        )

        session.commit()
    except InsufficientStockError:
        session.rollback()
        metrics_service.record_stock_rejection()
        raise
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to create order for customer {draft.customer_id}: {e}")
        raise PersistenceError()

    logger.info(f"Order {order.id} created: total {order.total_price}")
    metrics_service.record_order_event('created', order.total_price)
    return order


def update_order(session, order_id: int, payload: Union[OrderDraft, Dict[str, Any]],
                 stock_policy: str = None) -> Order:
    """
    Replace the contents of an order.

    Stock taken by the previous items is given back, the previous items are
    soft-deleted, and the new items are created and take stock again. The
    settlement status is re-evaluated against the payments already made.
    """
    draft = _as_draft(payload)

    try:
        order = _lock_order(session, order_id)
        if settlement.is_terminal(order.status):
            raise _final_state_error(order)

        customer = _require_customer(session, draft.customer_id)
        tax_rate = _resolve_tax_rate(session, draft)
        totals = compute_order_totals(draft, tax_rate)
        previous_total = order.total_price

        previous_items = order.active_items
        stock_service.restore_for_items(session, previous_items)
        for item in previous_items:
            item.is_active = False

        new_items = _build_items(draft)
        order.items.extend(new_items)
        _apply_draft(order, draft, tax_rate, totals)
        session.flush()

        stock_service.deduct_for_items(session, new_items, policy=stock_policy)
        settlement.settle(order, total_paid(order, session))

        audit_service.log_action(
            session,
            AuditAction.ORDER_UPDATED,
            description=f'Order #{order.id} updated',
            details={
                'previous_total': previous_total,
                'totals': totals.as_dict(),
                'item_count': len(new_items),
                'status': order.status.value
            },
            customer_id=customer.id,
            order_id=order.id
        )

        session.commit()
    except InsufficientStockError:
        session.rollback()
        metrics_service.record_stock_rejection()
        raise
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to update order {order_id}: {e}")
        raise PersistenceError()

    logger.info(f"Order {order.id} updated: total {order.total_price}")
    metrics_service.record_order_event('updated')
    return order


def _final_state_error(order: Order) -> BusinessLogicError:
    return BusinessLogicError(
        f'Order #{order.id} is {settlement.LABELS[order.status].lower()} and can no longer be changed',
        status_code=409
    )


def cancel_order(session, order_id: int) -> Order:
    """
    Cancel an order: give back its stock and soft-delete it with its items.

    Paid orders cannot be cancelled.
    """
    try:
        order = _lock_order(session, order_id)
        if settlement.is_terminal(order.status):
            raise _final_state_error(order)

        restored = stock_service.restore_for_items(session, order.active_items)
        settlement.transition(order, OrderStatus.CANCELLED)
        for item in order.active_items:
            item.is_active = False
        order.is_active = False

        audit_service.log_action(
            session,
            AuditAction.ORDER_CANCELLED,
            description=f'Order #{order.id} cancelled',
            details={'total_price': order.total_price, 'restored_stock': restored},
            customer_id=order.customer_id,
            order_id=order.id
        )

        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to cancel order {order_id}: {e}")
        raise PersistenceError()

    logger.info(f"Order {order.id} cancelled")
    metrics_service.record_order_event('cancelled')
    return order


def get_order(session, order_id: int) -> Order:
    order = (
        session.query(Order)
        .options(selectinload(Order.items), selectinload(Order.payments))
        .populate_existing()
        .filter(Order.id == order_id, Order.is_active.is_(True))
        .first()
    )
    if order is None:
        raise NotFoundError(f'Order #{order_id} not found')
    return order


def list_orders(
    session,
    page: int = 1,
    per_page: int = 10,
    customer_id: Optional[int] = None,
    status: Optional[Union[OrderStatus, str]] = None
) -> Dict[str, Any]:
    """Active orders, newest first, paginated."""
    page = max(1, int(page or 1))
    per_page = max(1, min(100, int(per_page or 10)))

    query = session.query(Order).filter(Order.is_active.is_(True))
    if customer_id:
        query = query.filter(Order.customer_id == customer_id)
    if status:
        if isinstance(status, str):
            status = OrderStatus(status.upper())
        query = query.filter(Order.status == status)

    total = query.count()
    orders = (
        query.order_by(Order.created_at.desc(), Order.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )
    return {
        'items': orders,
        'total': total,
        'page': page,
        'per_page': per_page,
        'pages': math.ceil(total / per_page) if total else 0
    }


def get_order_summary(session, order_id: int) -> Dict[str, Any]:
    """Order totals breakdown with what has been paid and what remains."""
    order = get_order(session, order_id)
    totals = compute_order_totals(order)
    return {
        'order': order,
        'totals': totals,
        'total_paid': total_paid(order, session),
        'remaining': remaining_balance(order, session),
        'payments': order.active_payments
    }
