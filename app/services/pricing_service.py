"""
Order pricing: items, tax, discount and grand total.

Pure functions, no session access. Tax is always applied before the
discount and is part of the discounted subtotal.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Union

from app.models import DiscountType

CENT = Decimal('0.01')
HUNDRED = Decimal('100')


@dataclass(frozen=True)
class OrderTotals:
    """Monetary breakdown of an order."""
    items_total: Decimal
    tax_amount: Decimal
    subtotal: Decimal
    discount_amount: Decimal
    grand_total: Decimal

    def as_dict(self):
        return {
            'items_total': self.items_total,
            'tax_amount': self.tax_amount,
            'subtotal': self.subtotal,
            'discount_amount': self.discount_amount,
            'grand_total': self.grand_total
        }


def to_money(value) -> Decimal:
    """Round to cents, half-up."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_items_total(items: Iterable) -> Decimal:
    """Sum of quantity x unit price. Accepts drafts or OrderItem rows."""
    total = Decimal('0')
    for item in items:
        if getattr(item, 'is_active', True) is False:
            continue
        unit_price = getattr(item, 'unit_price', None)
        if unit_price is None:
            unit_price = item.price
        total += Decimal(item.quantity) * Decimal(str(unit_price))
    return to_money(total)


def calculate_tax(items_total: Decimal, tax_rate) -> Decimal:
    return to_money(items_total * Decimal(str(tax_rate or 0)) / HUNDRED)


def calculate_discount(subtotal: Decimal, discount_type: Union[DiscountType, str, None], discount_value) -> Decimal:
    value = Decimal(str(discount_value or 0))
    if value <= 0:
        return Decimal('0.00')
    if isinstance(discount_type, str):
        discount_type = DiscountType(discount_type)
    if discount_type == DiscountType.PERCENTAGE:
        return to_money(subtotal * value / HUNDRED)
    return to_money(value)


def calculate_totals(
    items: Iterable,
    labor_cost=0,
    delivery_fee=0,
    tax_rate=0,
    discount_type: Union[DiscountType, str, None] = DiscountType.AMOUNT,
    discount_value=0
) -> OrderTotals:
    """
    Compute the full breakdown.

        items_total    = sum(quantity * unit_price)
        tax_amount     = items_total * tax_rate / 100
        subtotal       = items_total + tax_amount + labor_cost + delivery_fee
        discount       = subtotal * value / 100 (percentage) or value (amount)
        grand_total    = max(0, subtotal - discount)
    """
    items_total = calculate_items_total(items)
    tax_amount = calculate_tax(items_total, tax_rate)
    subtotal = to_money(
        items_total + tax_amount
        + Decimal(str(labor_cost or 0))
        + Decimal(str(delivery_fee or 0))
    )
    discount_amount = calculate_discount(subtotal, discount_type, discount_value)
    grand_total = max(Decimal('0.00'), subtotal - discount_amount)

    return OrderTotals(
        items_total=items_total,
        tax_amount=tax_amount,
        subtotal=subtotal,
        discount_amount=discount_amount,
        grand_total=to_money(grand_total)
    )


def compute_order_totals(draft, tax_rate: Optional[Decimal] = None) -> OrderTotals:
    """
    Totals for an OrderDraft (or a persisted Order).

    `tax_rate` overrides a draft without one; callers resolve the default
    from the lookup store before calling.
    """
    rate = draft.tax_rate if draft.tax_rate is not None else tax_rate
    items = getattr(draft, 'active_items', None)
    if items is None:
        items = draft.items
    return calculate_totals(
        items,
        labor_cost=draft.labor_cost,
        delivery_fee=draft.delivery_fee,
        tax_rate=rate or 0,
        discount_type=draft.discount_type,
        discount_value=draft.discount_value
    )
