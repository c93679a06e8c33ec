"""
Order draft value objects and validation.

A draft is the unvalidated structure submitted to create or update an
order. `validate_order_draft` never raises for bad input: it returns a
`DraftValidation` holding either the typed draft or every failing field.
"""
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from app.exceptions import FieldError, ValidationError
from app.models import DiscountType
from app.services.pricing_service import to_money

TRUE_STRINGS = frozenset({'true', '1', 'yes', 'on'})
FALSE_STRINGS = frozenset({'false', '0', 'no', 'off', ''})


@dataclass(frozen=True)
class LineItemDraft:
    """One requested line: catalog product or manual entry."""
    quantity: int
    unit_price: Decimal
    product_id: Optional[int] = None
    is_manual: bool = False
    manual_name: Optional[str] = None


@dataclass(frozen=True)
class OrderDraft:
    """Typed, validated order input."""
    customer_id: int
    items: Tuple[LineItemDraft, ...]
    labor_cost: Decimal = Decimal('0')
    delivery_fee: Decimal = Decimal('0')
    tax_rate: Optional[Decimal] = None
    discount_type: DiscountType = DiscountType.AMOUNT
    discount_value: Decimal = Decimal('0')
    address: Optional[str] = None
    description: Optional[str] = None


@dataclass
class DraftValidation:
    """Result of validating a draft: `draft` on success, `errors` otherwise."""
    draft: Optional[OrderDraft] = None
    errors: List[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors and self.draft is not None

    def unwrap(self) -> OrderDraft:
        """Return the draft or raise ValidationError with every failing field."""
        if not self.ok:
            raise ValidationError(self.errors)
        return self.draft


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == '' or isinstance(value, bool):
        return None
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError, TypeError):
        return None
    return result if result.is_finite() else None


def _to_scaled(value: Any) -> Optional[Decimal]:
    """Parse a number and round it to cents, the scale every amount is stored at."""
    number = _to_decimal(value)
    return None if number is None else to_money(number)


def _to_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool) or value is None:
        return bool(value)
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return True
    if text in FALSE_STRINGS:
        return False
    return None


def _to_int(value: Any) -> Optional[int]:
    """Parse an integer, rejecting fractional values like 1.5."""
    number = _to_decimal(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def _clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _money_field(payload: Dict[str, Any], name: str, errors: List[FieldError]) -> Decimal:
    raw = payload.get(name)
    if raw is None or raw == '':
        return Decimal('0')
    value = _to_scaled(raw)
    if value is None:
        errors.append(FieldError(name, f'{name} must be a number'))
        return Decimal('0')
    if value < 0:
        errors.append(FieldError(name, f'{name} cannot be negative'))
    return value


def _validate_item(index: int, raw: Any, errors: List[FieldError]) -> Optional[LineItemDraft]:
    prefix = f'items[{index}]'
    if not isinstance(raw, dict):
        errors.append(FieldError(prefix, 'Line item must be an object'))
        return None

    item_errors: List[FieldError] = []
    is_manual = _to_bool(raw.get('is_manual'))
    if is_manual is None:
        item_errors.append(FieldError(f'{prefix}.is_manual', 'is_manual must be true or false'))
        is_manual = False
    manual_name = _clean_text(raw.get('manual_name'))
    product_id = _to_int(raw.get('product_id'))

    if is_manual:
        if not manual_name:
            item_errors.append(FieldError(f'{prefix}.manual_name', 'Manual items need a name'))
        product_id = None
    else:
        if product_id is None or product_id <= 0:
            item_errors.append(FieldError(f'{prefix}.product_id', 'A product must be selected'))
        manual_name = None

    quantity = _to_int(raw.get('quantity'))
    if quantity is None or quantity < 1:
        item_errors.append(FieldError(f'{prefix}.quantity', 'Quantity must be a whole number of at least 1'))

    unit_price = _to_scaled(raw.get('unit_price', raw.get('price')))
    if unit_price is None or unit_price <= 0:
        item_errors.append(FieldError(f'{prefix}.unit_price', 'Price must be greater than 0'))

    if item_errors:
        errors.extend(item_errors)
        return None

    return LineItemDraft(
        quantity=quantity,
        unit_price=unit_price,
        product_id=product_id,
        is_manual=is_manual,
        manual_name=manual_name
    )


def validate_order_draft(payload: Dict[str, Any]) -> DraftValidation:
    """
    Validate a raw order payload (e.g. decoded JSON).

    Every failing field is reported, in payload order.
    """
    if not isinstance(payload, dict):
        return DraftValidation(errors=[FieldError('body', 'Order payload must be an object')])

    errors: List[FieldError] = []

    customer_id = _to_int(payload.get('customer_id'))
    if customer_id is None or customer_id <= 0:
        errors.append(FieldError('customer_id', 'A customer must be selected'))

    raw_items = payload.get('items') or []
    items = []
    if not isinstance(raw_items, list) or not raw_items:
        errors.append(FieldError('items', 'At least one line item is required'))
    else:
        for index, raw in enumerate(raw_items):
            item = _validate_item(index, raw, errors)
            if item is not None:
                items.append(item)

    labor_cost = _money_field(payload, 'labor_cost', errors)
    delivery_fee = _money_field(payload, 'delivery_fee', errors)
    discount_value = _money_field(payload, 'discount_value', errors)

    tax_rate = None
    if payload.get('tax_rate') not in (None, ''):
        tax_rate = _to_scaled(payload.get('tax_rate'))
        if tax_rate is None or not (0 <= tax_rate <= 100):
            errors.append(FieldError('tax_rate', 'Tax rate must be between 0 and 100'))

    discount_type = DiscountType.AMOUNT
    raw_discount_type = payload.get('discount_type')
    if raw_discount_type not in (None, ''):
        try:
            discount_type = DiscountType(str(raw_discount_type).strip().lower())
        except ValueError:
            errors.append(FieldError('discount_type', "Discount type must be 'percentage' or 'amount'"))

    if errors:
        return DraftValidation(errors=errors)

    draft = OrderDraft(
        customer_id=customer_id,
        items=tuple(items),
        labor_cost=labor_cost,
        delivery_fee=delivery_fee,
        tax_rate=tax_rate,
        discount_type=discount_type,
        discount_value=discount_value,
        address=_clean_text(payload.get('address')),
        description=_clean_text(payload.get('description'))
    )
    return DraftValidation(draft=draft)
