# backend/cart_registry/__init__.py
from flask import Flask, request

from .config import DEV_ADMIN_SECRET, Config, RegistrySettings
from .extensions import db, migrate


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # Process-wide settings are frozen here and never mutated afterwards
    settings = RegistrySettings.from_mapping(app.config)
    app.extensions["registry_settings"] = settings

    if settings.admin_secret in ("", DEV_ADMIN_SECRET) and not (app.testing or app.debug):
        app.logger.warning(
            "ADMIN_SECRET is unset or the development placeholder; admin tokens can be forged"
        )

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .services.mail_service import MailDispatcher
    app.extensions["mail_dispatcher"] = MailDispatcher(settings)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.registrations import registrations_bp
    from .routes.carts import carts_bp, warranty_bp
    from .routes.admin import admin_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(registrations_bp)
    app.register_blueprint(carts_bp)
    app.register_blueprint(warranty_bp)
    app.register_blueprint(admin_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = set(app.config.get("CORS_ORIGINS") or [])
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, X-Admin-Key"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
