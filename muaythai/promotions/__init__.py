"""
muaythai/promotions/__init__.py
-------------------------------
Promotion pricing blueprint (quote, applicable listing, coupon check).
URL prefix: /promotions
"""
from flask import Blueprint

promotions = Blueprint('promotions', __name__)

from muaythai.promotions import routes  # noqa: E402, F401
