"""JSON representations of models for the API."""
from datetime import date, datetime
from typing import Any, Dict, Optional

from app.services import settlement


def _iso(value) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def customer_to_dict(customer) -> Dict[str, Any]:
    return {
        'id': customer.id,
        'name': customer.name,
        'email': customer.email,
        'phone': customer.phone,
        'address': customer.address,
        'tax_number': customer.tax_number,
        'is_company': customer.is_company,
        'created_at': _iso(customer.created_at),
        'updated_at': _iso(customer.updated_at)
    }


def product_type_to_dict(product_type) -> Dict[str, Any]:
    return {
        'id': product_type.id,
        'name': product_type.name,
        'description': product_type.description
    }


def product_to_dict(product) -> Dict[str, Any]:
    return {
        'id': product.id,
        'name': product.name,
        'current_price': product.current_price,
        'stock': product.stock,
        'type_id': product.type_id,
        'type': product_type_to_dict(product.type) if product.type else None,
        'created_at': _iso(product.created_at),
        'updated_at': _iso(product.updated_at)
    }


def item_to_dict(item) -> Dict[str, Any]:
    return {
        'id': item.id,
        'product_id': item.product_id,
        'name': item.display_name,
        'quantity': item.quantity,
        'price': item.price,
        'line_total': item.line_total,
        'is_manual': item.is_manual,
        'manual_name': item.manual_name,
        'stock_deducted': item.stock_deducted
    }


def payment_to_dict(payment) -> Dict[str, Any]:
    return {
        'id': payment.id,
        'order_id': payment.order_id,
        'customer_id': payment.customer_id,
        'amount': payment.amount,
        'payment_date': _iso(payment.payment_date),
        'description': payment.description
    }


def status_to_dict(status) -> Dict[str, Any]:
    return {
        'name': status.value,
        'label': settlement.LABELS[status],
        'color': settlement.COLORS[status]
    }


def order_to_dict(order, include_items: bool = True) -> Dict[str, Any]:
    data = {
        'id': order.id,
        'customer_id': order.customer_id,
        'customer_name': order.customer.name if order.customer else None,
        'status': status_to_dict(order.status),
        'address': order.address,
        'description': order.description,
        'labor_cost': order.labor_cost,
        'delivery_fee': order.delivery_fee,
        'tax_rate': order.tax_rate,
        'discount_type': order.discount_type.value,
        'discount_value': order.discount_value,
        'total_price': order.total_price,
        'created_at': _iso(order.created_at),
        'updated_at': _iso(order.updated_at)
    }
    if include_items:
        data['items'] = [item_to_dict(i) for i in order.active_items]
    return data


def order_summary_to_dict(summary: Dict[str, Any]) -> Dict[str, Any]:
    data = order_to_dict(summary['order'])
    data['totals'] = summary['totals'].as_dict()
    data['total_paid'] = summary['total_paid']
    data['remaining'] = summary['remaining']
    data['payments'] = [payment_to_dict(p) for p in summary['payments']]
    return data


def expense_type_to_dict(expense_type) -> Dict[str, Any]:
    return {
        'id': expense_type.id,
        'name': expense_type.name,
        'color': expense_type.color
    }


def expense_to_dict(expense) -> Dict[str, Any]:
    return {
        'id': expense.id,
        'expense_type_id': expense.expense_type_id,
        'expense_type': expense_type_to_dict(expense.expense_type) if expense.expense_type else None,
        'amount': expense.amount,
        'expense_date': _iso(expense.expense_date),
        'description': expense.description,
        'receipt_number': expense.receipt_number
    }
