"""Expense service - business expenses and expense types."""
import logging
import math
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import joinedload

from app.exceptions import AppError, ConflictError, FieldError, PersistenceError, ValidationError
from app.models import AuditAction, Expense, ExpenseType
from app.services import audit_service
from app.services.cache_service import invalidate_reports
from app.services.pricing_service import to_money
from app.utils.formatters import parse_datetime

logger = logging.getLogger(__name__)

DEFAULT_EXPENSE_TYPES = [
    ('Rent', '#6F42C1'),
    ('Salaries', '#007BFF'),
    ('Materials', '#28A745'),
    ('Fuel', '#FD7E14'),
    ('Utilities', '#17A2B8'),
    ('Other', '#6C757D'),
]


def _expense_filters(query, expense_type_id=None, start: datetime = None, end: datetime = None):
    query = query.filter(Expense.is_active.is_(True))
    if expense_type_id:
        query = query.filter(Expense.expense_type_id == expense_type_id)
    if start:
        query = query.filter(Expense.expense_date >= start)
    if end:
        query = query.filter(Expense.expense_date <= end)
    return query


def list_expenses(
    session,
    page: int = 1,
    per_page: int = 10,
    expense_type_id: int = None,
    start: datetime = None,
    end: datetime = None
) -> Dict[str, Any]:
    """Paginated expenses, newest first, with totals over the whole filter."""
    page = max(1, int(page or 1))
    per_page = max(1, min(100, int(per_page or 10)))

    base = _expense_filters(session.query(Expense), expense_type_id, start, end)
    total = base.count()
    expenses = (
        base.options(joinedload(Expense.expense_type))
        .order_by(Expense.expense_date.desc(), Expense.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    total_amount = _expense_filters(
        session.query(func.coalesce(func.sum(Expense.amount), 0)), expense_type_id, start, end
    ).scalar()

    by_type_rows = _expense_filters(
        session.query(
            ExpenseType.id, ExpenseType.name, ExpenseType.color,
            func.coalesce(func.sum(Expense.amount), 0), func.count(Expense.id)
        ).join(ExpenseType, Expense.expense_type_id == ExpenseType.id),
        expense_type_id, start, end
    ).group_by(ExpenseType.id, ExpenseType.name, ExpenseType.color).all()

    by_type = sorted(
        (
            {
                'expense_type_id': type_id,
                'expense_type_name': name,
                'expense_type_color': color,
                'total_amount': to_money(amount),
                'count': count
            }
            for type_id, name, color, amount, count in by_type_rows
        ),
        key=lambda row: (-row['total_amount'], row['expense_type_name'])
    )

    return {
        'items': expenses,
        'pagination': {
            'page': page,
            'per_page': per_page,
            'total': total,
            'pages': math.ceil(total / per_page) if total else 0
        },
        'stats': {
            'total_amount': to_money(total_amount),
            'total_count': total,
            'expenses_by_type': by_type
        }
    }


def create_expense(session, payload: Dict[str, Any]) -> Expense:
    errors = []

    expense_type = None
    try:
        expense_type_id = int(payload.get('expense_type_id'))
        expense_type = session.get(ExpenseType, expense_type_id)
    except (TypeError, ValueError):
        pass
    if expense_type is None or not expense_type.is_active:
        errors.append(FieldError('expense_type_id', 'An expense type must be selected'))

    amount = None
    try:
        amount = Decimal(str(payload.get('amount')).strip())
        if not amount.is_finite():
            amount = None
    except (InvalidOperation, ValueError):
        amount = None
    if amount is None or amount <= 0:
        errors.append(FieldError('amount', 'Amount must be greater than 0'))

    expense_date = parse_datetime(payload.get('expense_date'))
    if expense_date is None:
        errors.append(FieldError('expense_date', 'A date must be selected'))

    if errors:
        raise ValidationError(errors)

    try:
        expense = Expense(
            expense_type=expense_type,
            amount=to_money(amount),
            expense_date=expense_date,
            description=(payload.get('description') or '').strip() or None,
            receipt_number=(payload.get('receipt_number') or '').strip() or None
        )
        session.add(expense)
        session.flush()
        audit_service.log_action(
            session,
            AuditAction.EXPENSE_CREATED,
            description=f'Expense of {expense.amount} ({expense_type.name})',
            details={'expense_id': expense.id, 'expense_date': expense_date}
        )
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to create expense: {e}")
        raise PersistenceError()

    invalidate_reports()
    return expense


def list_expense_types(session) -> List[ExpenseType]:
    return (
        session.query(ExpenseType)
        .filter(ExpenseType.is_active.is_(True))
        .order_by(ExpenseType.name)
        .all()
    )


def create_expense_type(session, payload: Dict[str, Any]) -> ExpenseType:
    name = (payload.get('name') or '').strip()
    if not name:
        raise ValidationError(FieldError('name', 'Expense type name is required'))
    color = (payload.get('color') or '').strip() or '#6C757D'

    try:
        if session.query(ExpenseType.id).filter(func.lower(ExpenseType.name) == name.lower()).first():
            raise ConflictError(f"An expense type named '{name}' already exists")
        expense_type = ExpenseType(name=name, color=color)
        session.add(expense_type)
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to create expense type: {e}")
        raise PersistenceError()

    return expense_type


def seed_expense_types(session) -> int:
    added = 0
    for name, color in DEFAULT_EXPENSE_TYPES:
        if session.query(ExpenseType.id).filter_by(name=name).first():
            continue
        session.add(ExpenseType(name=name, color=color))
        added += 1
    session.commit()
    return added
