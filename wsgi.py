from muaythai import create_app, db
import os

config_name = os.environ.get('FLASK_ENV', 'production')
app = create_app(config_name)

# Make sure the promotions table exists before the first request
with app.app_context():
    try:
        db.create_all()
    except Exception as e:
        app.logger.error(f"⚠️ Startup sequence failed: {e}")
        raise

if __name__ == "__main__":
    app.run()
