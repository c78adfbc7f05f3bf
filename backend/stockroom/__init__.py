# backend/stockroom/__init__.py
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from .config import Config
from .extensions import db, migrate


def _build_document_store(app: Flask):
    kind = app.config.get("DOCUMENT_STORE", "sql")
    if kind == "memory":
        from .services.memory_store import MemoryDocumentStore
        app.logger.warning("Using the in-memory document store; data is lost on restart")
        return MemoryDocumentStore()
    if kind == "sql":
        from .services.sql_store import SqlDocumentStore
        return SqlDocumentStore(db, write_attempts=app.config.get("STORE_WRITE_ATTEMPTS", 3))
    raise RuntimeError(f"Unknown DOCUMENT_STORE: {kind!r} (expected 'sql' or 'memory')")


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        # Applied before init_app so the engine is built from the final URI
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    app.extensions["document_store"] = _build_document_store(app)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.suppliers import suppliers_bp
    from .routes.families import families_bp
    from .routes.pricing import pricing_bp
    from .routes.sales import sales_bp
    from .routes.users import users_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(suppliers_bp)
    app.register_blueprint(families_bp)
    app.register_blueprint(pricing_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(users_bp)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
            "http://localhost:4173",
            "http://127.0.0.1:4173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = (
                f"{app.config.get('USER_HEADER', 'X-User-Id')}, Content-Type"
            )
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        # Routing errors (404/405) keep their own status
        if isinstance(e, HTTPException):
            return e
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        return jsonify({"success": False, "error": "Unexpected error"}), 500

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
