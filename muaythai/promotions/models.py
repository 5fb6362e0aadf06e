"""
muaythai/promotions/models.py
-----------------------------
Promotion model.

A promotion is a discount rule, optionally scoped to one gym package:
  discount_type = 'percentage'    → discount_value is a percent (0–100)
  discount_type = 'fixed_amount'  → discount_value is an amount in ฿
  discount_type = NULL            → no discount (marketing-only promotion)

Every nullable column means "no constraint" when NULL. current_uses is a
read-only snapshot for the pricing engine; it is incremented by the
booking/payment flow, never here.
"""
import uuid
from datetime import datetime, timezone

from muaythai import db
from muaythai.utils.formatters import format_number, money_str


DISCOUNT_TYPES = [
    ('percentage',   'Percentage (%)'),
    ('fixed_amount', 'Fixed amount (฿)'),
]
DISCOUNT_TYPE_CHOICES = [d[0] for d in DISCOUNT_TYPES]
DISCOUNT_VALUE_PLACES = 4   # scale of the discount_value column

# Column defaults applied at construction so unsaved rows behave the same
# as persisted ones when handed to the engine.
_DEFAULTS = {
    'current_uses':         0,
    'is_active':            True,
    'first_time_user_only': False,
    'priority':             0,
    'show_in_marquee':      True,
}


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Promotion(db.Model):
    """A discount rule shown on listings and applied at checkout."""
    __tablename__ = 'promotions'

    id                     = db.Column(db.String(36),  primary_key=True, default=_new_id)
    title                  = db.Column(db.String(200), nullable=False)
    title_english          = db.Column(db.String(200), nullable=True)
    description            = db.Column(db.Text,        nullable=True)
    coupon_code            = db.Column(db.String(50),  nullable=True, unique=True, index=True)

    discount_type          = db.Column(db.String(20),     nullable=True)    # see DISCOUNT_TYPE_CHOICES
    discount_value         = db.Column(db.Numeric(12, DISCOUNT_VALUE_PLACES), nullable=True)
    min_purchase_amount    = db.Column(db.Numeric(12, 2), nullable=True)    # None = no minimum
    max_discount_amount    = db.Column(db.Numeric(12, 2), nullable=True)    # cap for percentage discounts

    package_id             = db.Column(db.String(36), nullable=True, index=True)   # None = all packages
    gym_id                 = db.Column(db.String(36), nullable=True, index=True)   # owning partner gym
    applicable_product_ids = db.Column(db.JSON,       nullable=True)
    applicable_gym_ids     = db.Column(db.JSON,       nullable=True)
    first_time_user_only   = db.Column(db.Boolean,    nullable=False, default=False)

    max_uses               = db.Column(db.Integer,  nullable=True)    # None = unlimited
    current_uses           = db.Column(db.Integer,  nullable=False, default=0)
    is_active              = db.Column(db.Boolean,  nullable=False, default=True)
    start_date             = db.Column(db.DateTime, nullable=True)    # None = always started (UTC)
    end_date               = db.Column(db.DateTime, nullable=True)    # None = never expires (UTC)

    priority               = db.Column(db.Integer,  nullable=False, default=0)
    show_in_marquee        = db.Column(db.Boolean,  nullable=False, default=True)
    created_at             = db.Column(db.DateTime, nullable=False, default=_utcnow)
    updated_at             = db.Column(db.DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    def __init__(self, **kwargs):
        for key, value in _DEFAULTS.items():
            kwargs.setdefault(key, value)
        kwargs.setdefault('id', _new_id())
        super().__init__(**kwargs)

    # ── Helpers ───────────────────────────────────────────────────

    def is_usable(self, now: datetime | None = None) -> bool:
        """True if active, inside its date window and not used up."""
        from muaythai.promotions.engine import check_promotion_state
        return check_promotion_state(self, now) is None

    def to_dict(self) -> dict:
        def _money(value):
            return money_str(value) if value is not None else None

        def _number(value):
            return format_number(value) if value is not None else None

        def _iso(value):
            return value.isoformat() if value is not None else None

        return {
            'id':                     self.id,
            'title':                  self.title,
            'title_english':          self.title_english,
            'description':            self.description,
            'coupon_code':            self.coupon_code,
            'discount_type':          self.discount_type,
            'discount_value':         _number(self.discount_value),
            'package_id':             self.package_id,
            'gym_id':                 self.gym_id,
            'min_purchase_amount':    _money(self.min_purchase_amount),
            'max_discount_amount':    _money(self.max_discount_amount),
            'max_uses':               self.max_uses,
            'current_uses':           self.current_uses,
            'first_time_user_only':   self.first_time_user_only,
            'applicable_product_ids': self.applicable_product_ids,
            'applicable_gym_ids':     self.applicable_gym_ids,
            'is_active':              self.is_active,
            'start_date':             _iso(self.start_date),
            'end_date':               _iso(self.end_date),
            'priority':               self.priority,
            'show_in_marquee':        self.show_in_marquee,
        }

    def __repr__(self):
        return f'<Promotion {self.title!r} {self.discount_type} {self.discount_value}>'
