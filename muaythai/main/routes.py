"""
muaythai/main/routes.py
───────────────────────
Health check for the load balancer.
"""
from datetime import datetime, timezone

from flask import jsonify, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from muaythai import db
from muaythai.main import main


@main.route("/health")
def health():
    """Report DB reachability; 503 when the database cannot be queried."""
    status = "ok"
    failures = []

    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        status = "error"
        failures.append(f"DB: {e}")
        current_app.logger.error(f"Health check failed (DB): {e}")

    response = {
        "status": status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "details": {"db": "ok" if not failures else "error"},
    }
    if failures:
        response["failures"] = failures
        return jsonify(response), 503
    return jsonify(response)
