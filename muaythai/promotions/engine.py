"""
muaythai/promotions/engine.py
-----------------------------
Pure-Python promotion pricing engine.

Evaluates one promotion against one package price and returns a
DiscountResult, narrows a promotion list to those applicable to a
package, and renders the discount label shown on listings.

Nothing here touches the database or mutates a promotion. Any object with
the Promotion attributes (see models.py) can be passed in. Business-rule
failures never raise; they come back as is_valid=False with a Thai message
the frontend shows verbatim.
"""
from __future__ import annotations
import enum
import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable, List, Optional

from muaythai.utils.formatters import format_baht, format_number, money_str


logger = logging.getLogger(__name__)

Q = Decimal('0.01')   # quantize target (satang)
ZERO = Decimal('0')
HUNDRED = Decimal('100')

PERCENTAGE = 'percentage'
FIXED_AMOUNT = 'fixed_amount'


class PromotionError(enum.Enum):
    """Reasons a promotion cannot be used, with the message shown to users."""
    INACTIVE               = 'โปรโมชั่นไม่เปิดใช้งาน'
    NOT_STARTED            = 'โปรโมชั่นยังไม่เริ่มต้น'
    EXPIRED                = 'โปรโมชั่นหมดอายุแล้ว'
    USAGE_EXHAUSTED        = 'โปรโมชั่นถูกใช้ครบแล้ว'
    BELOW_MINIMUM_PURCHASE = 'ต้องซื้อขั้นต่ำ ฿{amount}'
    INVALID_CONFIGURATION  = 'การตั้งค่าโปรโมชั่นไม่ถูกต้อง'
    INVALID_PRICE          = 'ราคาไม่ถูกต้อง'
    # Coupon checkout (see coupons.py)
    NOT_FOUND              = 'ไม่พบโค้ดส่วนลดนี้'
    FIRST_TIME_USER_ONLY   = 'โปรโมชั่นนี้สำหรับลูกค้าใหม่เท่านั้น'
    PRODUCT_NOT_APPLICABLE = 'โปรโมชั่นนี้ไม่สามารถใช้กับสินค้านี้ได้'
    GYM_NOT_APPLICABLE     = 'โปรโมชั่นนี้ไม่สามารถใช้กับค่ายมวยนี้ได้'
    PACKAGE_NOT_APPLICABLE = 'โปรโมชั่นนี้ไม่สามารถใช้กับแพ็คเกจนี้ได้'

    def message(self, **params) -> str:
        return self.value.format(**params) if params else self.value


@dataclass(frozen=True)
class DiscountResult:
    """Outcome of pricing one package with one (optional) promotion."""
    original_price:  Decimal
    discount_amount: Decimal
    final_price:     Decimal
    promotion_id:    Optional[str] = None
    is_valid:        bool = True
    error:           Optional[str] = None
    error_code:      Optional[PromotionError] = None

    def to_dict(self) -> dict:
        return {
            'original_price':  money_str(self.original_price),
            'discount_amount': money_str(self.discount_amount),
            'final_price':     money_str(self.final_price),
            'promotion_id':    self.promotion_id,
            'is_valid':        self.is_valid,
            'error':           self.error,
            'error_code':      self.error_code.name if self.error_code else None,
        }


class _BadDate(ValueError):
    """A stored start/end date that cannot be interpreted."""


# ── Value helpers ─────────────────────────────────────────────────

def to_decimal(value) -> Optional[Decimal]:
    """Decimal for any numeric input, None if it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return None
    return d if d.is_finite() else None


def _as_utc(value) -> Optional[datetime]:
    """
    Normalise a stored date to an aware UTC datetime.
    Accepts datetime, date or an ISO-8601 string; naive values are UTC.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith(('Z', 'z')):
            text = text[:-1] + '+00:00'
        try:
            value = datetime.fromisoformat(text)
        except ValueError as e:
            raise _BadDate(value) from e
    elif isinstance(value, date) and not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day)
    elif not isinstance(value, datetime):
        raise _BadDate(value)

    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def resolve_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return _as_utc(now)


def _is_exhausted(promotion) -> bool:
    """Usage is only checked when both the limit and the counter are known."""
    max_uses = getattr(promotion, 'max_uses', None)
    current_uses = getattr(promotion, 'current_uses', None)
    if max_uses is None or current_uses is None:
        return False
    return current_uses >= max_uses


# ── Shared state check ────────────────────────────────────────────

def check_promotion_state(promotion, now: Optional[datetime] = None) -> Optional[PromotionError]:
    """
    Run the price-independent gates in order:
    active → start date → end date → usage.
    Returns the first failing PromotionError, or None when usable.
    """
    if not promotion.is_active:
        return PromotionError.INACTIVE

    current = resolve_now(now)
    try:
        start = _as_utc(getattr(promotion, 'start_date', None))
        end   = _as_utc(getattr(promotion, 'end_date', None))
    except _BadDate as e:
        logger.warning(f"Promotion {getattr(promotion, 'id', None)} has an unreadable date: {e}")
        return PromotionError.INVALID_CONFIGURATION

    if start is not None and current < start:
        return PromotionError.NOT_STARTED
    if end is not None and current > end:
        return PromotionError.EXPIRED

    if _is_exhausted(promotion):
        return PromotionError.USAGE_EXHAUSTED
    return None


def minimum_purchase_error(promotion, price: Decimal) -> Optional[str]:
    """Thai message if price is below the promotion's minimum, else None."""
    minimum = to_decimal(getattr(promotion, 'min_purchase_amount', None))
    if minimum is not None and price < minimum:
        return PromotionError.BELOW_MINIMUM_PURCHASE.message(amount=format_baht(minimum))
    return None


# ── Calculator ────────────────────────────────────────────────────

def _no_discount(price: Decimal, error: Optional[PromotionError] = None,
                 message: Optional[str] = None) -> DiscountResult:
    return DiscountResult(
        original_price=price,
        discount_amount=ZERO,
        final_price=price,
        promotion_id=None,
        is_valid=error is None,
        error=(message or error.message()) if error else None,
        error_code=error,
    )


def _raw_discount(promotion, price: Decimal) -> Optional[Decimal]:
    """Unrounded discount, or None when the discount fields are inconsistent."""
    value = to_decimal(promotion.discount_value)
    if value is None or value < ZERO:
        return None

    if promotion.discount_type == PERCENTAGE:
        discount = price * value / HUNDRED
        cap = to_decimal(getattr(promotion, 'max_discount_amount', None))
        if cap is not None:
            discount = min(discount, max(cap, ZERO))
    elif promotion.discount_type == FIXED_AMOUNT:
        discount = value
    else:
        return None

    return min(discount, price)   # final price floors at 0


def calculate_discount_price(price, promotion, now: Optional[datetime] = None) -> DiscountResult:
    """
    Price a package with an optional promotion.

    Checks run in this order and the first failure is returned:
    inactive → not started → expired → usage exhausted → minimum purchase.
    A promotion without a discount_type passes through with no discount.
    Amounts are Decimal, rounded half-up to 2 places; final_price is
    always original_price - discount_amount and never negative.
    """
    amount = to_decimal(price)
    if amount is None or amount < ZERO:
        return _no_discount(amount if amount is not None else ZERO, PromotionError.INVALID_PRICE)

    if promotion is None:
        return _no_discount(amount)

    state_error = check_promotion_state(promotion, now)
    if state_error is not None:
        return _no_discount(amount, state_error)

    min_error = minimum_purchase_error(promotion, amount)
    if min_error is not None:
        return _no_discount(amount, PromotionError.BELOW_MINIMUM_PURCHASE, min_error)

    if not promotion.discount_type:
        return _no_discount(amount)

    raw = _raw_discount(promotion, amount)
    if raw is None:
        logger.warning(
            f"Promotion {promotion.id} has inconsistent discount fields "
            f"(type={promotion.discount_type!r}, value={promotion.discount_value!r})"
        )
        return _no_discount(amount, PromotionError.INVALID_CONFIGURATION)

    discount = raw.quantize(Q, rounding=ROUND_HALF_UP)
    final    = max(amount - discount, ZERO).quantize(Q, rounding=ROUND_HALF_UP)

    return DiscountResult(
        original_price=amount,
        discount_amount=discount,
        final_price=final,
        promotion_id=promotion.id,
        is_valid=True,
    )


# ── Applicability filter ──────────────────────────────────────────

def filter_applicable_promotions(promotions: Iterable, package_id: str,
                                 now: Optional[datetime] = None) -> List:
    """
    Keep the promotions that can be offered for package_id right now:
    active, inside their date window, not used up, and either global
    (package_id is None) or scoped to this package. Order is preserved.
    """
    current = resolve_now(now)
    return [
        promo for promo in promotions
        if (promo.package_id is None or promo.package_id == package_id)
        and check_promotion_state(promo, current) is None
    ]


# ── Display ───────────────────────────────────────────────────────

def format_discount_text(promotion) -> str:
    """'ลด 20%' or 'ลด ฿1,500'; empty when there is nothing to show."""
    if promotion is None or not promotion.discount_type or promotion.discount_value is None:
        return ''

    if promotion.discount_type == PERCENTAGE:
        return f'ลด {format_number(promotion.discount_value)}%'
    return f'ลด ฿{format_baht(promotion.discount_value)}'
