"""Customer service - customer records and their lifecycle."""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from app.exceptions import AppError, BusinessLogicError, ConflictError, FieldError, NotFoundError, PersistenceError, ValidationError
from app.models import AuditAction, Customer, Order
from app.services import audit_service

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ('name', 'email', 'phone', 'address', 'tax_number', 'is_company')


def _clean(value) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _customer_data(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Extract and sanitize customer fields, validating the required ones."""
    data = {
        'name': _clean(payload.get('name')),
        'email': _clean(payload.get('email')),
        'phone': _clean(payload.get('phone')),
        'address': _clean(payload.get('address')),
        'tax_number': _clean(payload.get('tax_number')),
        'is_company': bool(payload.get('is_company', False))
    }
    if data['email']:
        data['email'] = data['email'].lower()

    errors = []
    if not data['name']:
        errors.append(FieldError('name', 'Customer name is required'))
    if data['email'] and '@' not in data['email']:
        errors.append(FieldError('email', 'Email address is not valid'))
    if errors:
        raise ValidationError(errors)
    return data


def _check_email_unique(session, email: Optional[str], exclude_id: Optional[int] = None) -> None:
    if not email:
        return
    query = session.query(Customer.id).filter(func.lower(Customer.email) == email.lower())
    if exclude_id:
        query = query.filter(Customer.id != exclude_id)
    if query.first():
        raise ConflictError(f"A customer with email '{email}' already exists")


def get_customer(session, customer_id: int) -> Customer:
    customer = session.get(Customer, customer_id)
    if customer is None or not customer.is_active:
        raise NotFoundError(f'Customer #{customer_id} not found')
    return customer


def list_customers(session, search: str = None) -> List[Customer]:
    """Active customers by name, optionally matching name/email/phone."""
    query = session.query(Customer).filter(Customer.is_active.is_(True))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern)
        ))
    return query.order_by(Customer.name, Customer.id).all()


def create_customer(session, payload: Dict[str, Any]) -> Customer:
    data = _customer_data(payload)
    try:
        _check_email_unique(session, data['email'])
        customer = Customer(**data)
        session.add(customer)
        session.flush()
        audit_service.log_action(
            session,
            AuditAction.CUSTOMER_CREATED,
            description=f'Customer {customer.name} created',
            details={'email': customer.email, 'is_company': customer.is_company},
            customer_id=customer.id
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"A customer with email '{data['email']}' already exists")
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to create customer: {e}")
        raise PersistenceError()

    logger.info(f"Customer {customer.id} created")
    return customer


def update_customer(session, customer_id: int, payload: Dict[str, Any]) -> Customer:
    data = _customer_data(payload)
    try:
        customer = get_customer(session, customer_id)
        _check_email_unique(session, data['email'], exclude_id=customer.id)
        changed = [f for f in CUSTOMER_FIELDS if getattr(customer, f) != data[f]]
        for field_name in CUSTOMER_FIELDS:
            setattr(customer, field_name, data[field_name])
        audit_service.log_action(
            session,
            AuditAction.CUSTOMER_UPDATED,
            description=f'Customer {customer.name} updated',
            details={'changed': changed},
            customer_id=customer.id
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"A customer with email '{data['email']}' already exists")
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to update customer {customer_id}: {e}")
        raise PersistenceError()

    return customer


def delete_customer(session, customer_id: int) -> Customer:
    """
    Soft delete. Refused while the customer still has active orders, whose
    balances would otherwise drop out of the debt report.
    """
    try:
        customer = get_customer(session, customer_id)
        open_orders = (
            session.query(Order.id)
            .filter(Order.customer_id == customer.id, Order.is_active.is_(True))
            .count()
        )
        if open_orders:
            raise BusinessLogicError(
                f"Customer {customer.name} has {open_orders} active order(s) and cannot be deleted",
                payload={'active_orders': open_orders}
            )
        customer.is_active = False
        audit_service.log_action(
            session,
            AuditAction.CUSTOMER_DELETED,
            description=f'Customer {customer.name} deleted',
            customer_id=customer.id
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to delete customer {customer_id}: {e}")
        raise PersistenceError()

    logger.info(f"Customer {customer.id} deactivated")
    return customer
