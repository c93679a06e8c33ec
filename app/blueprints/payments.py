"""Payments blueprint."""
from flask import Blueprint, current_app

from app.database import get_session
from app.services import payment_service
from app.utils.responses import date_arg, int_arg, json_body, success
from app.utils.serializers import payment_to_dict, status_to_dict

payments_bp = Blueprint('payments', __name__, url_prefix='/api/payments')


@payments_bp.route('', methods=['GET'])
def list_payments():
    payments = payment_service.list_payments(
        get_session(),
        order_id=int_arg('order_id'),
        customer_id=int_arg('customer_id'),
        start=date_arg('start'),
        end=date_arg('end')
    )
    return success([payment_to_dict(p) for p in payments])


@payments_bp.route('', methods=['POST'])
def create_payment():
    """Record a payment and return it with the order's new settlement state."""
    payload = json_body()
    session = get_session()
    payment = payment_service.record_payment(
        session,
        order_id=payload.get('order_id'),
        customer_id=payload.get('customer_id'),
        amount=payload.get('amount'),
        payment_date=payload.get('payment_date'),
        description=payload.get('description')
    )
    order = payment.order
    current_app.logger.info(f"Payment {payment.id} recorded via API for order {order.id}")

    data = payment_to_dict(payment)
    data['order_status'] = status_to_dict(order.status)
    data['total_paid'] = payment_service.total_paid(order, session)
    data['remaining'] = payment_service.remaining_balance(order, session)
    return success(data, 201)
