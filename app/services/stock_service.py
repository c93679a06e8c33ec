"""
Stock ledger: takes product units out on order creation and gives them
back on cancellation.

Product rows are locked FOR UPDATE before any change and every write is an
atomic SQL `stock = stock +/- n`, so concurrent orders on the same product
serialize instead of losing updates. The caller owns the transaction.
"""
import logging
from collections import OrderedDict
from typing import Dict, Iterable, List

from sqlalchemy import update

from app.exceptions import BusinessLogicError, InsufficientStockError, NotFoundError
from app.models import Product

logger = logging.getLogger(__name__)

POLICY_REJECT = 'reject'
POLICY_CLAMP = 'clamp'
POLICY_ALLOW = 'allow'
STOCK_POLICIES = (POLICY_REJECT, POLICY_CLAMP, POLICY_ALLOW)


def resolve_policy(policy: str = None) -> str:
    """Policy from the argument or the app config, defaulting to reject."""
    if policy is None:
        try:
            from flask import current_app
            policy = current_app.config.get('STOCK_POLICY', POLICY_REJECT)
        except RuntimeError:
            policy = POLICY_REJECT
    policy = (policy or POLICY_REJECT).lower()
    if policy not in STOCK_POLICIES:
        raise BusinessLogicError(f'Unknown stock policy: {policy}', status_code=500)
    return policy


def _lock_products(session, product_ids: Iterable[int]) -> Dict[int, Product]:
    """Lock product rows FOR UPDATE and return them by id."""
    ids = sorted(set(product_ids))
    if not ids:
        return {}
    products = (
        session.query(Product)
        .filter(Product.id.in_(ids))
        .order_by(Product.id)
        .with_for_update()
        .populate_existing()
        .all()
    )
    return {p.id: p for p in products}


def _apply_delta(session, product_id: int, delta: int) -> None:
    """Atomic stock change; never read-modify-write in Python."""
    if delta == 0:
        return
    session.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(stock=Product.stock + delta)
        .execution_options(synchronize_session='fetch')
    )


def deduct_for_items(session, items: List, policy: str = None) -> Dict[int, int]:
    """
    Take stock for every non-manual OrderItem in `items`.

    Sets `item.stock_deducted` to the units actually taken and returns the
    total taken per product id.

    Policies:
        reject: raise InsufficientStockError if any product falls short
        clamp:  take only what is available, never below zero
        allow:  take everything, stock may go negative
    """
    policy = resolve_policy(policy)
    stock_items = [i for i in items if not i.is_manual and i.product_id]
    products = _lock_products(session, [i.product_id for i in stock_items])

    requested = OrderedDict()
    for item in stock_items:
        product = products.get(item.product_id)
        if product is None or not product.is_active:
            raise NotFoundError(f'Product #{item.product_id} not found')
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    if policy == POLICY_REJECT:
        for product_id, qty in requested.items():
            product = products[product_id]
            if product.stock < qty:
                raise InsufficientStockError(product.name, qty, product.stock)

    available = {pid: max(products[pid].stock, 0) for pid in requested}
    taken: Dict[int, int] = {}
    for item in stock_items:
        if policy == POLICY_CLAMP:
            units = min(item.quantity, available[item.product_id])
            available[item.product_id] -= units
        else:
            units = item.quantity
        item.stock_deducted = units
        taken[item.product_id] = taken.get(item.product_id, 0) + units

    for product_id, units in taken.items():
        _apply_delta(session, product_id, -units)
        if policy == POLICY_CLAMP and units < requested[product_id]:
            logger.warning(
                f"Stock clamped for product {product_id}: requested {requested[product_id]}, took {units}"
            )

    return taken


def restore_for_items(session, items: List) -> Dict[int, int]:
    """
    Give back exactly what each item took. Manual items are skipped.

    Returns the units restored per product id.
    """
    restored: Dict[int, int] = {}
    stock_items = [i for i in items if not i.is_manual and i.product_id and i.stock_deducted]
    _lock_products(session, [i.product_id for i in stock_items])

    for item in stock_items:
        restored[item.product_id] = restored.get(item.product_id, 0) + item.stock_deducted
        item.stock_deducted = 0

    for product_id, units in restored.items():
        _apply_delta(session, product_id, units)

    return restored


def set_stock(session, product_id: int, new_stock: int) -> Product:
    """Manual stock correction (inventory count). Caller commits."""
    if new_stock is None or new_stock < 0:
        raise BusinessLogicError('Stock cannot be negative')
    products = _lock_products(session, [product_id])
    product = products.get(product_id)
    if product is None or not product.is_active:
        raise NotFoundError(f'Product #{product_id} not found')
    _apply_delta(session, product_id, new_stock - product.stock)
    session.refresh(product)
    return product
