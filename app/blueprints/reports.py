"""Reports blueprint - customer debts and yearly financial report."""
from datetime import datetime

from flask import Blueprint

from app.database import get_session
from app.exceptions import FieldError, ValidationError
from app.services import report_service
from app.utils.responses import int_arg, success

reports_bp = Blueprint('reports', __name__, url_prefix='/api')


@reports_bp.route('/debts', methods=['GET'])
def debts():
    return success(report_service.customer_debt_report(get_session()))


@reports_bp.route('/reports', methods=['GET'])
def financial_report():
    """Monthly revenue/expenses/profit for ?year= (defaults to the current year)."""
    year = int_arg('year', datetime.now().year)
    if not 1900 <= year <= 9998:
        raise ValidationError(FieldError('year', 'Year is out of range'))
    return success(report_service.period_financial_report(get_session(), year))
