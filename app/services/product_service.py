"""Product service - catalog products, product types and stock corrections."""
import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError

from app.exceptions import AppError, ConflictError, FieldError, NotFoundError, PersistenceError, ValidationError
from app.models import AuditAction, Product, ProductType
from app.services import audit_service, stock_service

logger = logging.getLogger(__name__)

DEFAULT_PRODUCT_TYPES = [
    ('Piece', 'Sold by the piece'),
    ('Weight', 'Sold by weight'),
]


def _parse_price(value, errors) -> Decimal:
    try:
        price = Decimal(str(value).strip())
        if not price.is_finite():
            raise InvalidOperation
    except (InvalidOperation, ValueError, AttributeError):
        errors.append(FieldError('current_price', 'Price must be a number'))
        return None
    if price < 0:
        errors.append(FieldError('current_price', 'Price cannot be negative'))
    return price


def _parse_stock(value, errors):
    try:
        stock = Decimal(str(value).strip())
        if stock != stock.to_integral_value():
            raise InvalidOperation
    except (InvalidOperation, ValueError, AttributeError):
        errors.append(FieldError('stock', 'Stock must be a whole number'))
        return None
    if stock < 0:
        errors.append(FieldError('stock', 'Stock cannot be negative'))
    return int(stock)


def _product_data(session, payload: Dict[str, Any], partial: bool = False) -> Dict[str, Any]:
    """Validate the product fields present in payload. All of them unless partial."""
    errors = []
    data = {}

    if 'name' in payload or not partial:
        name = (payload.get('name') or '').strip()
        if not name:
            errors.append(FieldError('name', 'Product name is required'))
        data['name'] = name

    if 'current_price' in payload or not partial:
        data['current_price'] = _parse_price(payload.get('current_price'), errors)

    if 'stock' in payload or not partial:
        data['stock'] = _parse_stock(payload.get('stock', 0), errors)

    if 'type_id' in payload or not partial:
        type_id = payload.get('type_id')
        if type_id in (None, ''):
            data['type_id'] = None
        else:
            try:
                type_id = int(type_id)
            except (TypeError, ValueError):
                type_id = None
            if type_id is None or session.get(ProductType, type_id) is None:
                errors.append(FieldError('type_id', 'Invalid product type'))
            data['type_id'] = type_id

    if errors:
        raise ValidationError(errors)
    return data


def _check_name_unique(session, name: str, exclude_id: int = None) -> None:
    query = session.query(Product.id).filter(
        func.lower(Product.name) == name.lower(),
        Product.is_active.is_(True)
    )
    if exclude_id:
        query = query.filter(Product.id != exclude_id)
    if query.first():
        raise ConflictError(f"A product named '{name}' already exists")


def get_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None or not product.is_active:
        raise NotFoundError(f'Product #{product_id} not found')
    return product


def list_products(session, in_stock_only: bool = False) -> List[Product]:
    query = session.query(Product).filter(Product.is_active.is_(True))
    if in_stock_only:
        query = query.filter(Product.stock > 0)
    return query.order_by(Product.name, Product.id).all()


def create_product(session, payload: Dict[str, Any]) -> Product:
    data = _product_data(session, payload)
    try:
        _check_name_unique(session, data['name'])
        product = Product(**data)
        session.add(product)
        session.flush()
        audit_service.log_action(
            session,
            AuditAction.PRODUCT_CREATED,
            description=f'Product {product.name} created',
            details={'current_price': product.current_price, 'stock': product.stock}
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to create product: {e}")
        raise PersistenceError()

    logger.info(f"Product {product.id} created")
    return product


def update_product(session, product_id: int, payload: Dict[str, Any]) -> Product:
    """
    Partial update. A new stock value is applied as a locked correction so it
    does not race with orders taking stock.
    """
    data = _product_data(session, payload, partial=True)
    if not data:
        raise ValidationError(FieldError('body', 'At least one field must be updated'))

    try:
        product = get_product(session, product_id)
        if 'name' in data:
            _check_name_unique(session, data['name'], exclude_id=product.id)

        new_stock = data.pop('stock', None)
        for field_name, value in data.items():
            setattr(product, field_name, value)
        if new_stock is not None:
            session.flush()
            stock_service.set_stock(session, product.id, new_stock)

        audit_service.log_action(
            session,
            AuditAction.PRODUCT_UPDATED,
            description=f'Product {product.name} updated',
            details={'fields': sorted(list(data.keys()) + (['stock'] if new_stock is not None else []))}
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to update product {product_id}: {e}")
        raise PersistenceError()

    return product


def adjust_stock(session, product_id: int, new_stock) -> Product:
    """Inventory count correction: set the stock to an absolute value."""
    errors = []
    stock = _parse_stock(new_stock, errors)
    if errors:
        raise ValidationError(errors)

    try:
        previous = get_product(session, product_id).stock
        product = stock_service.set_stock(session, product_id, stock)
        audit_service.log_action(
            session,
            AuditAction.STOCK_ADJUSTED,
            description=f'Stock of {product.name} set to {stock}',
            details={'product_id': product.id, 'previous': previous, 'new': stock}
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to adjust stock of product {product_id}: {e}")
        raise PersistenceError()

    logger.info(f"Stock of product {product.id} adjusted: {previous} -> {stock}")
    return product


def delete_product(session, product_id: int) -> Product:
    """Soft delete. Existing order items keep referencing the product."""
    try:
        product = get_product(session, product_id)
        product.is_active = False
        audit_service.log_action(
            session,
            AuditAction.PRODUCT_DELETED,
            description=f'Product {product.name} deleted',
            details={'product_id': product.id}
        )
        session.commit()
    except AppError:
        session.rollback()
        raise
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception(f"Failed to delete product {product_id}: {e}")
        raise PersistenceError()

    return product


def list_product_types(session) -> List[ProductType]:
    return session.query(ProductType).order_by(ProductType.name).all()


def seed_product_types(session) -> int:
    added = 0
    for name, description in DEFAULT_PRODUCT_TYPES:
        if session.query(ProductType.id).filter_by(name=name).first():
            continue
        session.add(ProductType(name=name, description=description))
        added += 1
    session.commit()
    return added
