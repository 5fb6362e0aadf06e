"""
test_coupons.py — Tests for coupon-code checks at checkout.
Run: pytest test_coupons.py -v
"""
import pytest
from decimal import Decimal
from datetime import datetime, timedelta, timezone

from muaythai.promotions.models import Promotion
from muaythai.promotions.engine import PromotionError
from muaythai.promotions.coupons import normalize_coupon_code, validate_coupon


NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)


def make_coupon(**kwargs):
    defaults = dict(
        id='coupon-1', title='Coupon', coupon_code='SAVE10',
        discount_type='percentage', discount_value=10,
        is_active=True, current_uses=0,
    )
    defaults.update(kwargs)
    return Promotion(**defaults)


# ── Code normalisation ────────────────────────────────────────────

@pytest.mark.parametrize('raw,expected', [
    ('save10', 'SAVE10'),
    ('  Welcome10 ', 'WELCOME10'),
    ('', ''),
    (None, ''),
])
def test_normalize_coupon_code(raw, expected):
    assert normalize_coupon_code(raw) == expected


# ── Happy path ────────────────────────────────────────────────────

def test_valid_coupon_is_priced_by_engine():
    result = validate_coupon(make_coupon(), 2000, 'gym_booking', now=NOW)
    assert result.is_valid is True
    assert result.error is None
    assert result.discount.discount_amount == Decimal('200.00')
    assert result.discount.final_price == Decimal('1800.00')
    assert result.discount.promotion_id == 'coupon-1'


def test_to_dict_includes_promotion_and_discount():
    data = validate_coupon(make_coupon(), 2000, 'ticket', now=NOW).to_dict()
    assert data['is_valid'] is True
    assert data['promotion']['coupon_code'] == 'SAVE10'
    assert data['discount']['final_price'] == '1800.00'
    assert data['error_code'] is None


# ── Rejections ────────────────────────────────────────────────────

def test_unknown_code():
    result = validate_coupon(None, 2000, 'gym_booking', now=NOW)
    assert result.is_valid is False
    assert result.error == 'ไม่พบโค้ดส่วนลดนี้'
    assert result.promotion is None
    assert result.discount.final_price == Decimal('2000')
    assert result.to_dict()['promotion'] is None


def test_inactive_coupon():
    result = validate_coupon(make_coupon(is_active=False), 2000, 'gym_booking', now=NOW)
    assert result.error == 'โปรโมชั่นไม่เปิดใช้งาน'
    assert result.discount.promotion_id == 'coupon-1'


def test_expired_coupon():
    result = validate_coupon(make_coupon(end_date=NOW - timedelta(days=1)), 2000, 'product', now=NOW)
    assert result.error_code is PromotionError.EXPIRED


def test_used_up_coupon():
    result = validate_coupon(make_coupon(max_uses=50, current_uses=50), 2000, 'product', now=NOW)
    assert result.error == 'โปรโมชั่นถูกใช้ครบแล้ว'


def test_first_time_only_rejects_returning_customer():
    coupon = make_coupon(first_time_user_only=True)
    result = validate_coupon(coupon, 2000, 'gym_booking', is_first_time_user=False, now=NOW)
    assert result.error == 'โปรโมชั่นนี้สำหรับลูกค้าใหม่เท่านั้น'


def test_first_time_only_accepts_new_customer():
    coupon = make_coupon(first_time_user_only=True)
    result = validate_coupon(coupon, 2000, 'gym_booking', is_first_time_user=True, now=NOW)
    assert result.is_valid is True


def test_first_time_check_runs_before_minimum_purchase():
    coupon = make_coupon(first_time_user_only=True, min_purchase_amount=5000)
    result = validate_coupon(coupon, 2000, 'gym_booking', now=NOW)
    assert result.error_code is PromotionError.FIRST_TIME_USER_ONLY


def test_below_minimum_purchase():
    result = validate_coupon(make_coupon(min_purchase_amount=2500), 2000, 'gym_booking', now=NOW)
    assert result.error == 'ต้องซื้อขั้นต่ำ ฿2,500'


# ── Scope checks ──────────────────────────────────────────────────

def test_product_not_in_list():
    coupon = make_coupon(applicable_product_ids=['gloves', 'shorts'])
    result = validate_coupon(coupon, 900, 'product', product_id='wraps', now=NOW)
    assert result.error == 'โปรโมชั่นนี้ไม่สามารถใช้กับสินค้านี้ได้'


def test_product_in_list():
    coupon = make_coupon(applicable_product_ids=['gloves', 'shorts'])
    assert validate_coupon(coupon, 900, 'product', product_id='gloves', now=NOW).is_valid is True


def test_empty_product_list_means_any_product():
    coupon = make_coupon(applicable_product_ids=[])
    assert validate_coupon(coupon, 900, 'product', product_id='wraps', now=NOW).is_valid is True


def test_product_list_ignored_for_gym_bookings():
    coupon = make_coupon(applicable_product_ids=['gloves'])
    assert validate_coupon(coupon, 900, 'gym_booking', product_id='wraps', now=NOW).is_valid is True


def test_partner_coupon_rejected_at_other_gym():
    coupon = make_coupon(gym_id='gym-a')
    result = validate_coupon(coupon, 3000, 'gym_booking', gym_id='gym-b', now=NOW)
    assert result.error == 'โปรโมชั่นนี้ไม่สามารถใช้กับค่ายมวยนี้ได้'


def test_partner_coupon_accepted_at_own_gym():
    coupon = make_coupon(gym_id='gym-a')
    assert validate_coupon(coupon, 3000, 'gym_booking', gym_id='gym-a', now=NOW).is_valid is True


def test_gym_list_allows_listed_gyms():
    coupon = make_coupon(applicable_gym_ids=['gym-a', 'gym-c'])
    assert validate_coupon(coupon, 3000, 'gym_booking', gym_id='gym-c', now=NOW).is_valid is True
    assert validate_coupon(coupon, 3000, 'gym_booking', gym_id='gym-b', now=NOW).error_code \
        is PromotionError.GYM_NOT_APPLICABLE


def test_package_scoped_coupon_on_other_package():
    coupon = make_coupon(package_id='pkg-1')
    result = validate_coupon(coupon, 3000, 'gym_booking', package_id='pkg-2', now=NOW)
    assert result.error == 'โปรโมชั่นนี้ไม่สามารถใช้กับแพ็คเกจนี้ได้'


def test_package_scoped_coupon_on_its_package():
    coupon = make_coupon(package_id='pkg-1')
    assert validate_coupon(coupon, 3000, 'gym_booking', package_id='pkg-1', now=NOW).is_valid is True


# ── Engine failures surface ───────────────────────────────────────

def test_misconfigured_coupon_reports_engine_error():
    coupon = make_coupon(discount_type='fixed_amount', discount_value=None)
    result = validate_coupon(coupon, 3000, 'ticket', now=NOW)
    assert result.is_valid is False
    assert result.error_code is PromotionError.INVALID_CONFIGURATION
    assert result.error == 'การตั้งค่าโปรโมชั่นไม่ถูกต้อง'


def test_negative_amount_rejected():
    result = validate_coupon(make_coupon(), -5, 'ticket', now=NOW)
    assert result.error_code is PromotionError.INVALID_PRICE
