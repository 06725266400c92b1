# backend/minimarket/__init__.py
from flask import Flask, jsonify, request

from .config import Config, build_store_uri, check_required_config
from .extensions import db, migrate


def create_app(config_object=None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config)

    # Fatal: no Product Store credentials, no app
    check_required_config(app.config)
    app.config["SQLALCHEMY_DATABASE_URI"] = build_store_uri(
        app.config["PRODUCT_STORE_URL"],
        app.config["PRODUCT_STORE_KEY"],
    )
    app.config["SQLALCHEMY_BINDS"] = {"local": app.config["LOCAL_CACHE_URL"]}

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    from .runtime import init_runtime
    init_runtime(app)

    # Register blueprints
    from .routes.auth import auth_bp
    from .routes.products import products_bp
    from .routes.sales import sales_bp
    from .routes.cash import cash_bp
    from .routes.reports import reports_bp
    from .routes.alerts import alerts_bp
    from .routes.users import users_bp
    from .routes.audit import audit_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(cash_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(alerts_bp)
    app.register_blueprint(users_bp)
    app.register_blueprint(audit_bp)

    from .errors import register_error_handlers
    register_error_handlers(app)

    @app.after_request
    def add_cors_headers(response):
        origin = request.headers.get("Origin")
        allowed_origins = {
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        }
        if origin in allowed_origins:
            response.headers["Access-Control-Allow-Origin"] = origin
            response.headers["Vary"] = "Origin"
            response.headers["Access-Control-Allow-Headers"] = "Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PUT,DELETE,OPTIONS"
        return response

    @app.get("/api/health")
    def health():
        return jsonify({"status": "ok"})

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
