"""
Report service - customer debts and yearly financial reports.

Revenue is recognized when a payment is received (payment_date), not when
the order is placed. Expenses are recognized at expense_date.
"""
import calendar
import logging
from collections import OrderedDict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.orm import joinedload

from app.models import Customer, Expense, Order, Payment
from app.services.cache_service import get_cache
from app.services.pricing_service import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def _paid_by_order(session) -> Dict[int, Decimal]:
    rows = (
        session.query(Payment.order_id, func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.is_active.is_(True))
        .group_by(Payment.order_id)
        .all()
    )
    return {order_id: to_money(amount) for order_id, amount in rows}


def customer_debt_report(session) -> Dict[str, Any]:
    """
    Outstanding balance of every active customer.

    remaining_debt is the sum of each order's own clamped balance, so an
    overpaid order does not offset another order's debt.
    """
    customers = (
        session.query(Customer)
        .filter(Customer.is_active.is_(True))
        .order_by(Customer.name, Customer.id)
        .all()
    )
    orders = session.query(Order).filter(Order.is_active.is_(True)).all()
    paid_by_order = _paid_by_order(session)

    orders_by_customer: Dict[int, List[Order]] = {}
    for order in orders:
        orders_by_customer.setdefault(order.customer_id, []).append(order)

    rows = []
    for customer in customers:
        customer_orders = orders_by_customer.get(customer.id, [])
        total_order_amount = ZERO
        total_paid_amount = ZERO
        remaining_debt = ZERO
        for order in customer_orders:
            price = to_money(order.total_price)
            paid = paid_by_order.get(order.id, ZERO)
            total_order_amount += price
            total_paid_amount += paid
            remaining_debt += max(ZERO, price - paid)

        rows.append({
            'id': customer.id,
            'name': customer.name,
            'email': customer.email,
            'phone': customer.phone,
            'is_company': customer.is_company,
            'total_order_amount': total_order_amount,
            'total_paid_amount': total_paid_amount,
            'remaining_debt': remaining_debt,
            'order_count': len(customer_orders)
        })

    customers_with_debt = [row for row in rows if row['remaining_debt'] > 0]

    stats = {
        'total_customers': len(rows),
        'customers_with_debt': len(customers_with_debt),
        'total_debt': sum((r['remaining_debt'] for r in rows), ZERO),
        'total_order_amount': sum((r['total_order_amount'] for r in rows), ZERO),
        'total_paid_amount': sum((r['total_paid_amount'] for r in rows), ZERO)
    }

    return {
        'customers': rows,
        'customers_with_debt': customers_with_debt,
        'stats': stats
    }


def _year_range(year: int):
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def _build_financial_report(session, year: int) -> Dict[str, Any]:
    start, end = _year_range(year)

    payments = (
        session.query(Payment)
        .filter(
            Payment.is_active.is_(True),
            Payment.payment_date >= start,
            Payment.payment_date < end
        )
        .order_by(Payment.payment_date, Payment.id)
        .all()
    )
    expenses = (
        session.query(Expense)
        .options(joinedload(Expense.expense_type))
        .filter(
            Expense.is_active.is_(True),
            Expense.expense_date >= start,
            Expense.expense_date < end
        )
        .order_by(Expense.expense_date, Expense.id)
        .all()
    )

    months = []
    for number in range(1, 13):
        months.append({
            'month': calendar.month_name[number],
            'month_number': number,
            'total_revenue': ZERO,
            'total_expenses': ZERO,
            'profit': ZERO,
            'payment_count': 0,
            'expense_count': 0,
            'expenses_by_type': OrderedDict()
        })

    daily = OrderedDict()
    for payment in payments:
        amount = to_money(payment.amount)
        month = months[payment.payment_date.month - 1]
        month['total_revenue'] += amount
        month['payment_count'] += 1

        day_key = payment.payment_date.date().isoformat()
        day = daily.setdefault(day_key, {
            'payment_date': day_key,
            'month': payment.payment_date.month,
            'daily_total': ZERO,
            'payment_count': 0
        })
        day['daily_total'] += amount
        day['payment_count'] += 1

    by_type = {}
    for expense in expenses:
        amount = to_money(expense.amount)
        month = months[expense.expense_date.month - 1]
        month['total_expenses'] += amount
        month['expense_count'] += 1

        type_name = expense.expense_type.name if expense.expense_type else 'Other'
        type_color = expense.expense_type.color if expense.expense_type else '#6C757D'
        month['expenses_by_type'][type_name] = month['expenses_by_type'].get(type_name, ZERO) + amount

        entry = by_type.setdefault(type_name, {
            'expense_type_name': type_name,
            'expense_type_color': type_color,
            'total_amount': ZERO,
            'count': 0
        })
        entry['total_amount'] += amount
        entry['count'] += 1

    for month in months:
        month['profit'] = month['total_revenue'] - month['total_expenses']
        month['expenses_by_type'] = dict(month['expenses_by_type'])

    yearly_totals = {
        'total_revenue': sum((m['total_revenue'] for m in months), ZERO),
        'total_expenses': sum((m['total_expenses'] for m in months), ZERO),
        'total_profit': sum((m['profit'] for m in months), ZERO),
        'total_payments': sum(m['payment_count'] for m in months),
        'total_expense_count': sum(m['expense_count'] for m in months)
    }

    expense_breakdown = sorted(by_type.values(), key=lambda e: (-e['total_amount'], e['expense_type_name']))

    return {
        'year': year,
        'monthly_data': months,
        'yearly_totals': yearly_totals,
        'expense_type_totals': expense_breakdown,
        'daily_payments': list(daily.values())
    }


def period_financial_report(session, year: int = None) -> Dict[str, Any]:
    """
    Monthly revenue, expenses and profit for a calendar year.

    Covers [Jan 1 year, Jan 1 year+1). Profit can be negative. Cached per
    year; payments and expenses invalidate the cache.
    """
    if year is None:
        year = datetime.now().year
    year = int(year)

    cache = get_cache()
    if cache is None:
        return _build_financial_report(session, year)

    from flask import current_app
    ttl = current_app.config.get('CACHE_REPORTS_TTL', 300)
    return cache.memoize('reports', f'year:{year}', lambda: _build_financial_report(session, year), ttl=ttl)
