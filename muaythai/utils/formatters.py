"""
muaythai/utils/formatters.py
----------------------------
Number rendering for Thai Baht labels and messages.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP


def _to_decimal(value) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal('0')


def format_number(value) -> str:
    """Render a stored number without trailing zeros: 20.00 -> '20', 33.330 -> '33.33'."""
    d = _to_decimal(value)
    if d == d.to_integral_value():
        return str(int(d))
    return format(d.normalize(), 'f')


def format_baht(value) -> str:
    """Render an amount with thousands grouping: 1500 -> '1,500', 2500.5 -> '2,500.5'."""
    d = _to_decimal(value)
    if d == d.to_integral_value():
        return f'{int(d):,}'
    return format(d.normalize(), ',f')


def money_str(value) -> str:
    """Two-decimal string for JSON output (Decimal -> str keeps precision)."""
    return str(_to_decimal(value).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP))
