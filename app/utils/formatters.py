"""
Formatting and parsing helpers for amounts and dates.
Amounts use Turkish grouping: dot for thousands, comma for decimals.
"""
from decimal import Decimal, InvalidOperation
from datetime import date, datetime
from typing import Union, Optional


def _group_thousands(integer_part: str) -> str:
    reversed_int = integer_part[::-1]
    groups = [reversed_int[i:i+3] for i in range(0, len(reversed_int), 3)]
    return '.'.join(groups)[::-1]


def money_tr(value: Union[int, float, Decimal, str, None], symbol: Optional[str] = None) -> str:
    """
    Format an amount with exactly 2 decimals in Turkish style.

    Examples:
        money_tr(1500) -> "1.500,00"
        money_tr(Decimal('1234567.5'), '₺') -> "1.234.567,50 ₺"
        money_tr(None) -> "-"
    """
    if value is None or value == "":
        return "-"

    try:
        num = Decimal(str(value)).quantize(Decimal('0.01'))
    except (InvalidOperation, ValueError, TypeError):
        return "-"

    sign = "-" if num < 0 else ""
    integer_part, decimal_part = f"{abs(num):.2f}".split(".")
    formatted = f"{sign}{_group_thousands(integer_part)},{decimal_part}"
    if symbol:
        return f"{formatted} {symbol}"
    return formatted


def percent_tr(value: Union[int, float, Decimal, str, None]) -> str:
    """Rate with a leading percent sign: 18 -> '%18', 7.5 -> '%7,5'."""
    if value is None or value == "":
        return "-"
    try:
        num = Decimal(str(value)).normalize()
    except (InvalidOperation, ValueError, TypeError):
        return "-"
    text = format(num, 'f').replace('.', ',')
    return f"%{text}"


def date_tr(value: Union[date, datetime, None]) -> str:
    """
    Format a date as DD.MM.YYYY

    Examples:
        date_tr(date(2024, 1, 12)) -> "12.01.2024"
    """
    if value is None:
        return "-"
    if isinstance(value, datetime):
        value = value.date()
    if not isinstance(value, date):
        return "-"
    return value.strftime("%d.%m.%Y")


def datetime_tr(value: Union[datetime, None], with_time: bool = True) -> str:
    if not isinstance(value, datetime):
        return "-"
    if with_time:
        return value.strftime("%d.%m.%Y %H:%M")
    return value.strftime("%d.%m.%Y")


def parse_datetime(value) -> Optional[datetime]:
    """
    Accept a datetime, a date or an ISO 8601 string.

    Returns a naive datetime, or None when the value cannot be parsed.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed.replace(tzinfo=None)
