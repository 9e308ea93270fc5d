import logging

import click
from flask import Flask, jsonify

from config import Config
from routes import health_bp, booking_bp, requests_bp, admin_bp

from models import db
from flask_migrate import Migrate
from services.errors import SchedulingError, TransientError
from utils.seed import seed_roles, seed_settings
from utils.auth_context import load_current_user
from utils.notifications import register_notifications


def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Register routes
    app.register_blueprint(health_bp)
    app.register_blueprint(booking_bp)
    app.register_blueprint(requests_bp)
    app.register_blueprint(admin_bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    if app.config.get("TESTING"):
        with app.app_context():
            db.create_all()

    # Seed default roles and settings at startup (safe & idempotent)
    with app.app_context():
        seed_roles()
        seed_settings()

    register_notifications(app)

    @app.before_request
    def _load_user():
        load_current_user()

    @app.errorhandler(SchedulingError)
    def _scheduling_error(exc):
        resp = jsonify(exc.to_dict())
        resp.status_code = exc.status_code
        if isinstance(exc, TransientError):
            resp.headers["Retry-After"] = "1"
        return resp

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app

#-------------------------
from models.user import User, Role
from services.booking_ledger import BookingLedger
from services.deactivation_sweeper import DeactivationSweeper
from services.policy_store import PolicyStore
from utils.roles import ADMIN

def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to ADMIN by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            print("User not found")
            return

        admin_role = Role.query.filter_by(name=ADMIN).first()
        if not admin_role:
            admin_role = Role(name=ADMIN)
            db.session.add(admin_role)
            db.session.commit()

        if admin_role not in user.roles:
            user.roles.append(admin_role)
            db.session.commit()

        print(f"{user.email} promoted to ADMIN")

    @app.cli.command("sweep-inactive")
    def sweep_inactive():
        """Deactivate dormant walker accounts (run from cron)."""
        result = DeactivationSweeper().run()
        if result.skipped:
            print("Sweep already running elsewhere; skipped")
            return
        print(f"Deactivated {len(result.deactivated_ids)} account(s)")

    @app.cli.command("complete-bookings")
    def complete_bookings():
        """Mark past scheduled walks as completed."""
        count = BookingLedger().complete_past()
        print(f"Completed {count} booking(s)")

    @app.cli.command("reset-settings")
    def reset_settings():
        """Restore the default scheduling policy."""
        for key, value in PolicyStore().reset_defaults().items():
            print(f"{key} = {value}")

#-------------------------




if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
