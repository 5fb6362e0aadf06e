"""
muaythai/promotions/validators.py
---------------------------------
Pure-Python validation for promotion payloads (JSON bodies, seed files).
Returns a dict of field -> error_message.
An empty dict means all fields are valid.
"""
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation

from muaythai.promotions.models import DISCOUNT_TYPE_CHOICES, DISCOUNT_VALUE_PLACES
from muaythai.promotions.coupons import normalize_coupon_code


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _decimal(value):
    """Decimal or raises InvalidOperation (bools are not numbers here)."""
    if isinstance(value, bool):
        raise InvalidOperation(value)
    d = Decimal(str(value).strip())
    if not d.is_finite():
        raise InvalidOperation(value)
    return d


def _whole(value) -> int:
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValueError(value)
        return int(value)
    return int(str(value).strip())


def parse_datetime(value) -> datetime:
    """ISO-8601 string/datetime → naive UTC datetime (what the DB column stores)."""
    if isinstance(value, datetime):
        dt = value
    else:
        text = str(value).strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        dt = datetime.fromisoformat(text)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


def _non_negative_amount(data: dict, field: str, label: str, errors: dict) -> None:
    raw = data.get(field)
    if _blank(raw):
        return
    try:
        if _decimal(raw) < 0:
            errors[field] = f'{label} must be a non-negative number.'
    except (InvalidOperation, ValueError):
        errors[field] = f'{label} must be a non-negative number.'


def _non_negative_int(data: dict, field: str, label: str, errors: dict) -> None:
    raw = data.get(field)
    if _blank(raw):
        return
    try:
        if _whole(raw) < 0:
            errors[field] = f'{label} must be a non-negative whole number.'
    except ValueError:
        errors[field] = f'{label} must be a non-negative whole number.'


def validate_promotion_payload(data: dict) -> dict:
    """
    Validate a raw promotion payload before it is stored.

    Args:
        data: dict of raw values (strings, numbers, booleans or None)

    Returns:
        dict of {field_name: error_message}, empty if all valid.
    """
    errors = {}

    # ── title ─────────────────────────────────────────────────────
    title = data.get('title')
    if not isinstance(title, str) or not title.strip():
        errors['title'] = 'Title is required.'
    elif len(title.strip()) > 200:
        errors['title'] = 'Title must be 200 characters or fewer.'

    # ── coupon_code ───────────────────────────────────────────────
    code = data.get('coupon_code')
    if not _blank(code) and len(normalize_coupon_code(code)) > 50:
        errors['coupon_code'] = 'Coupon code must be 50 characters or fewer.'

    # ── discount_type / discount_value ────────────────────────────
    discount_type = data.get('discount_type')
    if _blank(discount_type):
        discount_type = None
    if discount_type is not None and discount_type not in DISCOUNT_TYPE_CHOICES:
        errors['discount_type'] = 'Invalid discount type. Must be "percentage" or "fixed_amount".'

    raw_value = data.get('discount_value')
    if discount_type is not None and _blank(raw_value):
        errors['discount_value'] = 'Discount value is required when discount type is set.'
    elif not _blank(raw_value):
        try:
            value = _decimal(raw_value)
            if value < 0:
                errors['discount_value'] = 'Discount value must be a non-negative number.'
            elif discount_type == 'percentage' and value > 100:
                errors['discount_value'] = 'Percentage discount must be between 0 and 100.'
            elif value.as_tuple().exponent < -DISCOUNT_VALUE_PLACES:
                errors['discount_value'] = (
                    f'Discount value allows at most {DISCOUNT_VALUE_PLACES} decimal places.'
                )
        except (InvalidOperation, ValueError):
            errors['discount_value'] = 'Discount value must be a non-negative number.'

    # ── amounts and counters ──────────────────────────────────────
    _non_negative_amount(data, 'min_purchase_amount', 'Minimum purchase amount', errors)
    _non_negative_amount(data, 'max_discount_amount', 'Maximum discount amount', errors)
    _non_negative_int(data, 'max_uses', 'Max uses', errors)
    _non_negative_int(data, 'current_uses', 'Current uses', errors)
    _non_negative_int(data, 'priority', 'Priority', errors)

    # ── dates ─────────────────────────────────────────────────────
    parsed = {}
    for field, label in (('start_date', 'start date'), ('end_date', 'end date')):
        raw = data.get(field)
        if _blank(raw):
            continue
        try:
            parsed[field] = parse_datetime(raw)
        except (ValueError, TypeError):
            errors[field] = f'Invalid {label} format.'

    if 'start_date' in parsed and 'end_date' in parsed:
        if parsed['start_date'] >= parsed['end_date']:
            errors['end_date'] = 'End date must be after start date.'

    # ── scoping lists ─────────────────────────────────────────────
    for field in ('applicable_product_ids', 'applicable_gym_ids'):
        raw = data.get(field)
        if raw is not None and not isinstance(raw, list):
            errors[field] = 'Must be a list of ids.'

    return errors


def parse_promotion_payload(data: dict) -> dict:
    """
    Convert a validated payload to Promotion keyword arguments.
    Call only after validate_promotion_payload returns no errors.
    Keys missing from the payload are left out so model defaults apply.
    """
    def _opt(field, convert):
        raw = data.get(field)
        return None if _blank(raw) else convert(raw)

    kwargs = {
        'title':               data['title'].strip(),
        'discount_type':       data.get('discount_type') or None,
        'discount_value':      _opt('discount_value', _decimal),
        'min_purchase_amount': _opt('min_purchase_amount', _decimal),
        'max_discount_amount': _opt('max_discount_amount', _decimal),
        'max_uses':            _opt('max_uses', _whole),
        'start_date':          _opt('start_date', parse_datetime),
        'end_date':            _opt('end_date', parse_datetime),
        'coupon_code':         _opt('coupon_code', normalize_coupon_code),
        'package_id':          data.get('package_id') or None,
        'gym_id':              data.get('gym_id') or None,
    }

    for field in ('id', 'title_english', 'description',
                  'applicable_product_ids', 'applicable_gym_ids'):
        if field in data:
            kwargs[field] = data[field]
    for field in ('is_active', 'first_time_user_only', 'show_in_marquee'):
        if field in data:
            kwargs[field] = data[field] in (True, 1, '1', 'true', 'on', 'yes')
    if not _blank(data.get('priority')):
        kwargs['priority'] = _whole(data['priority'])
    if not _blank(data.get('current_uses')):
        kwargs['current_uses'] = _whole(data['current_uses'])

    return kwargs
