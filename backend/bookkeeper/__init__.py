# backend/bookkeeper/__init__.py
from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before db.init_app: the engine is built there
    if config_overrides:
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.businesses import businesses_bp
    from .routes.contacts import contacts_bp
    from .routes.inventory import inventory_bp
    from .routes.transactions import transactions_bp
    from .routes.bank_records import bank_records_bp
    from .routes.documents import documents_bp
    from .routes.analytics import analytics_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(businesses_bp)
    app.register_blueprint(contacts_bp)
    app.register_blueprint(inventory_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(bank_records_bp)
    app.register_blueprint(documents_bp)
    app.register_blueprint(analytics_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        if origin in app.config["CORS_ALLOWED_ORIGINS"]:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type, X-Business-Id"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
            response.headers["Access-Control-Expose-Headers"] = "Content-Disposition, X-Document-Status"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
