"""
muaythai/promotions/coupons.py
------------------------------
Coupon-code checks at checkout.

The caller looks the promotion up by its normalised code and tells us
whether the buyer is a first-time customer; everything else is decided
here from the promotion and the checkout context, then priced by the
engine. No DB access, no usage increment.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from muaythai.promotions.engine import (
    DiscountResult, PromotionError,
    calculate_discount_price, check_promotion_state, minimum_purchase_error,
    ZERO, to_decimal, resolve_now,
)


logger = logging.getLogger(__name__)

PAYMENT_TYPES = ('gym_booking', 'product', 'ticket')


@dataclass(frozen=True)
class CouponValidation:
    """Result of checking a coupon code against one checkout."""
    is_valid:   bool
    promotion:  object
    discount:   DiscountResult
    error:      Optional[str] = None
    error_code: Optional[PromotionError] = None

    def to_dict(self) -> dict:
        return {
            'is_valid':   self.is_valid,
            'promotion':  self.promotion.to_dict() if self.promotion is not None else None,
            'discount':   self.discount.to_dict(),
            'error':      self.error,
            'error_code': self.error_code.name if self.error_code else None,
        }


def normalize_coupon_code(code: Optional[str]) -> str:
    """Coupon codes are stored upper-case without surrounding spaces."""
    return (code or '').strip().upper()


def _rejected(promotion, amount, error: PromotionError, message: Optional[str] = None) -> CouponValidation:
    discount = DiscountResult(
        original_price=amount,
        discount_amount=ZERO,
        final_price=amount,
        promotion_id=promotion.id if promotion is not None else None,
        is_valid=False,
    )
    return CouponValidation(
        is_valid=False,
        promotion=promotion,
        discount=discount,
        error=message or error.message(),
        error_code=error,
    )


def _scope_error(promotion, payment_type: str, product_id, gym_id, package_id) -> Optional[PromotionError]:
    """Product / gym / package restrictions for the given checkout."""
    if payment_type == 'product' and product_id:
        product_ids = promotion.applicable_product_ids or []
        if product_ids and product_id not in product_ids:
            return PromotionError.PRODUCT_NOT_APPLICABLE

    if payment_type == 'gym_booking' and gym_id:
        gym_ids = promotion.applicable_gym_ids or []
        # Partner promotions are tied to their own gym through gym_id
        if gym_ids or promotion.gym_id:
            if gym_id not in gym_ids and promotion.gym_id != gym_id:
                return PromotionError.GYM_NOT_APPLICABLE

    if payment_type == 'gym_booking' and package_id:
        if promotion.package_id is not None and promotion.package_id != package_id:
            return PromotionError.PACKAGE_NOT_APPLICABLE

    return None


def validate_coupon(promotion, amount, payment_type: str, *,
                    is_first_time_user: bool = False,
                    product_id: Optional[str] = None,
                    gym_id: Optional[str] = None,
                    package_id: Optional[str] = None,
                    now: Optional[datetime] = None) -> CouponValidation:
    """
    Decide whether a coupon promotion applies to this checkout.

    Order: not found → promotion state (active, window, usage) →
    first-time-user → minimum purchase → product/gym/package scope →
    engine pricing. The first failure is returned.
    """
    price = to_decimal(amount)
    if price is None or price < 0:
        return _rejected(promotion, ZERO, PromotionError.INVALID_PRICE)

    if promotion is None:
        return _rejected(None, price, PromotionError.NOT_FOUND)

    current = resolve_now(now)

    state_error = check_promotion_state(promotion, current)
    if state_error is not None:
        return _rejected(promotion, price, state_error)

    if promotion.first_time_user_only and not is_first_time_user:
        return _rejected(promotion, price, PromotionError.FIRST_TIME_USER_ONLY)

    min_error = minimum_purchase_error(promotion, price)
    if min_error is not None:
        return _rejected(promotion, price, PromotionError.BELOW_MINIMUM_PURCHASE, min_error)

    scope_error = _scope_error(promotion, payment_type, product_id, gym_id, package_id)
    if scope_error is not None:
        return _rejected(promotion, price, scope_error)

    discount = calculate_discount_price(price, promotion, now=current)
    if not discount.is_valid:
        return CouponValidation(
            is_valid=False,
            promotion=promotion,
            discount=discount,
            error=discount.error,
            error_code=discount.error_code,
        )

    logger.info(
        f"Coupon {promotion.coupon_code} accepted for {payment_type}: "
        f"-{discount.discount_amount} on {discount.original_price}"
    )
    return CouponValidation(is_valid=True, promotion=promotion, discount=discount)
