import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from werkzeug.exceptions import HTTPException
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory: creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])
    app.json.ensure_ascii = False   # Thai messages go out as-is

    # ── Logging ───────────────────────────────────────────────────
    from muaythai.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    # ── Blueprints ────────────────────────────────────────────────
    from muaythai.main import main as main_blueprint
    app.register_blueprint(main_blueprint)

    from muaythai.promotions import promotions as promotions_blueprint
    app.register_blueprint(promotions_blueprint, url_prefix='/promotions')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(HTTPException)
    def http_error(e):
        return jsonify({'error': e.description}), e.code

    @app.errorhandler(500)
    def internal_error(e):
        app.logger.error(f"Unhandled error: {e}")
        return jsonify({'error': 'Internal server error'}), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


DEMO_PROMOTIONS = [
    {
        'title': 'ลดต้อนรับสมาชิกใหม่', 'title_english': 'Welcome discount',
        'coupon_code': 'WELCOME10', 'discount_type': 'percentage', 'discount_value': 10,
        'max_discount_amount': 500, 'first_time_user_only': True, 'priority': 10,
    },
    {
        'title': 'ลด 300 บาท แพ็คเกจรายเดือน', 'title_english': '฿300 off monthly training',
        'coupon_code': 'MONTH300', 'discount_type': 'fixed_amount', 'discount_value': 300,
        'min_purchase_amount': 3000, 'max_uses': 100, 'priority': 5,
    },
    {
        'title': 'สงกรานต์ลด 20%', 'title_english': 'Songkran 20% off',
        'discount_type': 'percentage', 'discount_value': 20,
        'start_date': '2026-04-10T00:00:00+07:00', 'end_date': '2026-04-20T23:59:59+07:00',
    },
    {
        'title': 'ข่าวสารค่ายมวย', 'title_english': 'Gym announcement',
        'discount_type': None,
    },
]


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables."""
        from muaythai.promotions import models  # noqa: F401  (register tables)
        db.create_all()
        click.echo('✅  Database tables created.')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Insert a handful of demo promotions (skips existing coupon codes)."""
        from muaythai.promotions.models import Promotion
        from muaythai.promotions.validators import (
            validate_promotion_payload, parse_promotion_payload,
        )

        db.create_all()
        created = 0
        for payload in DEMO_PROMOTIONS:
            errors = validate_promotion_payload(payload)
            if errors:
                click.echo(f'⚠️  Skipping "{payload.get("title")}": {errors}')
                continue
            fields = parse_promotion_payload(payload)
            if fields['coupon_code'] and Promotion.query.filter_by(coupon_code=fields['coupon_code']).first():
                click.echo(f'ℹ️   Coupon {fields["coupon_code"]} already exists.')
                continue
            db.session.add(Promotion(**fields))
            created += 1
        db.session.commit()
        click.echo(f'✅  {created} demo promotion(s) created.')

    @app.cli.command('check-promotions')
    def check_promotions():
        """Report stored promotions whose fields fail payload validation."""
        from muaythai.promotions.models import Promotion
        from muaythai.promotions.validators import validate_promotion_payload

        rows = Promotion.query.order_by(Promotion.priority.desc()).all()
        bad = 0
        for promo in rows:
            errors = validate_promotion_payload(promo.to_dict())
            if errors:
                bad += 1
                click.echo(f'❌  {promo.id} {promo.title!r}')
                for field, message in errors.items():
                    click.echo(f'      {field}: {message}')
        click.echo(f'{len(rows)} promotion(s) checked, {bad} with problems.')
        if bad:
            raise click.ClickException(f"{bad} promotion(s) need fixing.")

    @app.cli.command('quote')
    @click.argument('price')
    @click.option('--promotion-id', default=None, help='Promotion to apply')
    def quote(price, promotion_id):
        """Price a package with an optional promotion (diagnostic)."""
        from muaythai.promotions.models import Promotion
        from muaythai.promotions.engine import calculate_discount_price, format_discount_text

        promo = None
        if promotion_id:
            promo = db.session.get(Promotion, promotion_id)
            if promo is None:
                raise click.ClickException(f'Promotion {promotion_id} not found.')

        result = calculate_discount_price(price, promo)
        if promo is not None:
            click.echo(f'{promo.title} {format_discount_text(promo)}'.rstrip())
        click.echo(f'{"Original":<10} ฿{result.original_price}')
        click.echo(f'{"Discount":<10} ฿{result.discount_amount}')
        click.echo(f'{"Final":<10} ฿{result.final_price}')
        if not result.is_valid:
            click.echo(f'❌  {result.error}')
