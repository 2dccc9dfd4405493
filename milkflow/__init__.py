# milkflow/__init__.py
from __future__ import annotations

import logging

from flask import Flask, jsonify
from sqlalchemy import event
from werkzeug.exceptions import HTTPException

from .errors import MilkflowError
from .extensions import db, migrate, login_manager, limiter
from .settings import Config


def create_app(config_class=None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_class or Config)

    logging.basicConfig(level=app.config.get("LOG_LEVEL", "INFO"))
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    if app.config["SQLALCHEMY_DATABASE_URI"].startswith("sqlite"):
        with app.app_context():
            event.listen(db.engine, "connect", _sqlite_enforce_foreign_keys)

    # ======================
    # Register Blueprints
    # ======================
    from .routes import main
    from .auth import auth
    from .admin import admin_bp

    app.register_blueprint(main)
    app.register_blueprint(auth)
    app.register_blueprint(admin_bp)

    _register_error_handlers(app)

    from .commands import register_cli_commands
    register_cli_commands(app)

    # ======================
    # Background scheduler (daily supplier SMS)
    # ======================
    if app.config.get("SCHEDULER_ENABLED") and not app.config.get("TESTING"):
        from .services.scheduler_service import init_scheduler
        init_scheduler(app)

    return app


def _sqlite_enforce_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores ON DELETE rules unless asked per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _register_error_handlers(app: Flask) -> None:
    @app.errorhandler(MilkflowError)
    def milkflow_error(e: MilkflowError):
        return jsonify(e.to_dict()), e.status_code

    # ======================
    # Rate limit error handler
    # ======================
    @app.errorhandler(429)
    def ratelimit_handler(e):
        return jsonify({"error": "Too many requests. Please try again later."}), 429

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "You do not have permission to perform this action."}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found."}), 404

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"error": e.description or e.name}), e.code

    @app.errorhandler(500)
    def server_error(e):
        app.logger.error("Unhandled error: %s", getattr(e, "original_exception", e))
        return jsonify({"error": "Something went wrong. Please try again."}), 500
