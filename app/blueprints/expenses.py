"""Expenses blueprint - expenses and expense types."""
from flask import Blueprint, current_app

from app.database import get_session
from app.services import expense_service
from app.utils.responses import date_arg, int_arg, json_body, success
from app.utils.serializers import expense_to_dict, expense_type_to_dict

expenses_bp = Blueprint('expenses', __name__, url_prefix='/api')


@expenses_bp.route('/expenses', methods=['GET'])
def list_expenses():
    result = expense_service.list_expenses(
        get_session(),
        page=int_arg('page', 1),
        per_page=int_arg('per_page', current_app.config.get('DEFAULT_PAGE_SIZE', 10)),
        expense_type_id=int_arg('expense_type_id'),
        start=date_arg('start'),
        end=date_arg('end')
    )
    return success({
        'expenses': [expense_to_dict(e) for e in result['items']],
        'pagination': result['pagination'],
        'stats': result['stats']
    })


@expenses_bp.route('/expenses', methods=['POST'])
def create_expense():
    expense = expense_service.create_expense(get_session(), json_body())
    return success(expense_to_dict(expense), 201)


@expenses_bp.route('/expense-types', methods=['GET'])
def list_expense_types():
    types = expense_service.list_expense_types(get_session())
    return success([expense_type_to_dict(t) for t in types])


@expenses_bp.route('/expense-types', methods=['POST'])
def create_expense_type():
    expense_type = expense_service.create_expense_type(get_session(), json_body())
    return success(expense_type_to_dict(expense_type), 201)
