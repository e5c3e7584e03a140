# backend/backoffice/__init__.py
import logging

from flask import Flask, jsonify

from .config import Config
from .errors import AllocationExhaustedError, BackofficeError
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.invoices import invoices_bp
    from .routes.tickets import tickets_bp
    from .routes.attendance import attendance_bp
    from .routes.leaves import leaves_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(invoices_bp)
    app.register_blueprint(tickets_bp)
    app.register_blueprint(attendance_bp)
    app.register_blueprint(leaves_bp)

    @app.errorhandler(BackofficeError)
    def handle_backoffice_error(exc: BackofficeError):
        db.session.rollback()
        if isinstance(exc, AllocationExhaustedError):
            app.logger.error("Code allocation exhausted: %s", exc.message)
        return jsonify(exc.to_dict()), exc.http_status

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
