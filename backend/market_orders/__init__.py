# backend/market_orders/__init__.py
from flask import Flask, current_app, jsonify, request

from .config import Config
from .errors import OrderingError, internal_error_body
from .extensions import db, migrate



def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)

    # Overrides must land before the engine is configured by db.init_app
    if test_config:
        app.config.update(test_config)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.auth import auth_bp
    from .routes.users import users_bp
    from .routes.categories import categories_bp
    from .routes.items import items_bp
    from .routes.markets import markets_bp
    from .routes.orders import orders_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(auth_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(categories_bp)
    app.register_blueprint(items_bp)
    app.register_blueprint(markets_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(reports_bp)

    # Routes translate OrderingError themselves; this catches the ones that slip through
    @app.errorhandler(OrderingError)
    def handle_ordering_error(e: OrderingError):
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(500)
    def handle_internal_error(e):
        original = getattr(e, "original_exception", None) or e
        return jsonify(internal_error_body(original, current_app.config["EXPOSE_ERROR_DETAILS"])), 500

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Access-Control-Allow-Credentials"] = "true"
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type, Idempotency-Key"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,PATCH,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
