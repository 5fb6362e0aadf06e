"""
muaythai/promotions/routes.py
-----------------------------
Read-only JSON endpoints used by the booking and listing pages.
Promotions are read from the database and priced by the engine; nothing
here writes (usage counters are bumped by the payment flow).
"""
from flask import request, jsonify, abort, current_app

from muaythai import db
from muaythai.promotions import promotions
from muaythai.promotions.models import Promotion
from muaythai.promotions.engine import (
    calculate_discount_price, filter_applicable_promotions, format_discount_text,
    resolve_now, to_decimal,
)
from muaythai.promotions.coupons import (
    PAYMENT_TYPES, normalize_coupon_code, validate_coupon,
)


# ── Helpers ───────────────────────────────────────────────────────

def _json_body() -> dict:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='Request body must be a JSON object.')
    return data


def _price_from(data: dict, field: str):
    price = to_decimal(data.get(field))
    if price is None or price < 0:
        abort(400, description=f'"{field}" must be a non-negative number.')
    return price


# ── Quote ─────────────────────────────────────────────────────────

@promotions.route('/quote', methods=['POST'])
def quote():
    """Price a package with an optional stored promotion."""
    data  = _json_body()
    price = _price_from(data, 'price')

    promo = None
    promotion_id = data.get('promotion_id')
    if promotion_id:
        promo = db.session.get(Promotion, str(promotion_id))
        if promo is None:
            abort(404, description='Promotion not found.')

    result = calculate_discount_price(price, promo)
    if not result.is_valid:
        current_app.logger.info(f"Quote rejected for promotion {promotion_id}: {result.error_code.name}")
    return jsonify(result.to_dict())


# ── Applicable promotions for a package ───────────────────────────

@promotions.route('/applicable')
def applicable():
    package_id = request.args.get('package_id', '').strip()
    if not package_id:
        abort(400, description='"package_id" is required.')

    # Window and usage gates run in SQL before the limit is applied
    now   = resolve_now(None)
    limit = current_app.config.get('PROMOTION_LIST_LIMIT', 200)
    naive_now = now.replace(tzinfo=None)   # DateTime columns hold naive UTC
    candidates = (
        Promotion.query
        .filter(Promotion.is_active == True)  # noqa: E712
        .filter(db.or_(Promotion.package_id.is_(None), Promotion.package_id == package_id))
        .filter(db.or_(Promotion.start_date.is_(None), Promotion.start_date <= naive_now))
        .filter(db.or_(Promotion.end_date.is_(None), Promotion.end_date >= naive_now))
        .filter(db.or_(Promotion.max_uses.is_(None),
                       Promotion.current_uses.is_(None),
                       Promotion.current_uses < Promotion.max_uses))
        .order_by(Promotion.priority.desc(), Promotion.created_at.desc())
        .limit(limit)
        .all()
    )
    offered = filter_applicable_promotions(candidates, package_id, now=now)

    return jsonify([
        {**promo.to_dict(), 'discount_text': format_discount_text(promo)}
        for promo in offered
    ])


# ── Coupon check at checkout ──────────────────────────────────────

@promotions.route('/coupon/validate', methods=['POST'])
def validate_coupon_code():
    data   = _json_body()
    amount = _price_from(data, 'amount')

    code = normalize_coupon_code(data.get('coupon_code'))
    if not code:
        abort(400, description='"coupon_code" is required.')

    payment_type = data.get('payment_type', 'gym_booking')
    if payment_type not in PAYMENT_TYPES:
        abort(400, description=f'"payment_type" must be one of: {", ".join(PAYMENT_TYPES)}.')

    promo = Promotion.query.filter_by(coupon_code=code).first()
    result = validate_coupon(
        promo, amount, payment_type,
        is_first_time_user=bool(data.get('is_first_time_user')),
        product_id=data.get('product_id'),
        gym_id=data.get('gym_id'),
        package_id=data.get('package_id'),
    )
    if not result.is_valid:
        current_app.logger.info(f"Coupon {code} rejected: {result.error_code.name}")
    return jsonify(result.to_dict())
