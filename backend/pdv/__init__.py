# backend/pdv/__init__.py
import logging

from flask import Flask, request

from .config import Config
from .extensions import db, migrate


def _configure_engine(app: Flask) -> None:
    """Per-dialect engine options that bound how long a unit of work waits for locks."""
    uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if uri.startswith("sqlite"):
        options = dict(app.config.get("SQLALCHEMY_ENGINE_OPTIONS") or {})
        connect_args = dict(options.get("connect_args") or {})
        # sqlite3 busy timeout: how long BEGIN IMMEDIATE waits for the write lock
        connect_args.setdefault("timeout", app.config["UNIT_OF_WORK_TIMEOUT_SECONDS"])
        # Worker threads open their own connections
        connect_args.setdefault("check_same_thread", False)
        options["connect_args"] = connect_args
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = options


def create_app(config_overrides=None, authorizer=None) -> Flask:
    """
    Application factory.

    config_overrides: mapping applied on top of Config before extensions
        initialize (tests point SQLALCHEMY_DATABASE_URI at a temp file).
    authorizer: object with resolve(token) -> Identity | None. Defaults to a
        TokenAuthorizer built from API_TOKENS.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        app.config.update(config_overrides)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    _configure_engine(app)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    if authorizer is None:
        from .authorizer import TokenAuthorizer
        authorizer = TokenAuthorizer.from_config(app.config["API_TOKENS"])
    app.extensions["pdv_authorizer"] = authorizer

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp, admin_products_bp
    from .routes.stock import stock_bp
    from .routes.sales import sales_bp, admin_sales_bp
    from .routes.reports import reports_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(admin_products_bp)
    app.register_blueprint(stock_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(admin_sales_bp)
    app.register_blueprint(reports_bp)

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
            response.headers["Access-Control-Allow-Headers"] = "Authorization, Content-Type"
            response.headers["Access-Control-Allow-Methods"] = "GET,POST,PATCH,DELETE,OPTIONS"
        return response

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
