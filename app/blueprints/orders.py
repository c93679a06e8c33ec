"""Orders blueprint - order lifecycle, price preview and printable document."""
from flask import Blueprint, current_app, request, send_file

from app.database import get_session
from app.exceptions import FieldError, ValidationError
from app.models import OrderStatus
from app.services import document_service, order_service
from app.utils.responses import int_arg, json_body, success
from app.utils.serializers import order_summary_to_dict, order_to_dict

orders_bp = Blueprint('orders', __name__, url_prefix='/api/orders')


@orders_bp.route('', methods=['GET'])
def list_orders():
    """Paginated active orders, optionally filtered by customer and status."""
    status = request.args.get('status')
    if status:
        try:
            status = OrderStatus(status.upper())
        except ValueError:
            raise ValidationError(FieldError('status', f'Unknown order status: {status}'))

    result = order_service.list_orders(
        get_session(),
        page=int_arg('page', 1),
        per_page=int_arg('per_page', current_app.config.get('DEFAULT_PAGE_SIZE', 10)),
        customer_id=int_arg('customer_id'),
        status=status
    )
    return success(
        [order_to_dict(o, include_items=False) for o in result['items']],
        pagination={
            'page': result['page'],
            'per_page': result['per_page'],
            'total': result['total'],
            'pages': result['pages']
        }
    )


@orders_bp.route('', methods=['POST'])
def create_order():
    order = order_service.create_order(get_session(), json_body())
    current_app.logger.info(f"Order {order.id} created via API")
    return success(order_to_dict(order), 201)


@orders_bp.route('/preview', methods=['POST'])
def preview_order():
    """Totals for a draft without saving it."""
    totals = order_service.preview_order(get_session(), json_body())
    return success(totals.as_dict())


@orders_bp.route('/<int:order_id>', methods=['GET'])
def get_order(order_id: int):
    summary = order_service.get_order_summary(get_session(), order_id)
    return success(order_summary_to_dict(summary))


@orders_bp.route('/<int:order_id>', methods=['PUT'])
def update_order(order_id: int):
    order = order_service.update_order(get_session(), order_id, json_body())
    return success(order_to_dict(order))


@orders_bp.route('/<int:order_id>', methods=['DELETE'])
def cancel_order(order_id: int):
    order = order_service.cancel_order(get_session(), order_id)
    return success({'id': order.id, 'status': order.status.value}, message='Order cancelled')


@orders_bp.route('/<int:order_id>/pdf', methods=['GET'])
def order_pdf(order_id: int):
    session = get_session()
    order = order_service.get_order(session, order_id)
    pdf = document_service.render_order_pdf(session, order)
    return send_file(
        pdf,
        mimetype='application/pdf',
        as_attachment=False,
        download_name=document_service.order_pdf_filename(order)
    )
