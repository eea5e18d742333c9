# backend/shopsettle/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(config_overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    if config_overrides:
        # Applied before extensions bind so the database URI takes effect
        app.config.update(config_overrides)

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.sales import sales_bp
    from .routes.employee_sales import employee_sales_bp
    from .routes.loyalty import loyalty_bp
    from .routes.commissions import commissions_bp
    from .routes.discounts import discounts_bp
    from .routes.employees import employees_bp
    from .routes.reports import reports_bp, payouts_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(employee_sales_bp)
    app.register_blueprint(loyalty_bp)
    app.register_blueprint(commissions_bp)
    app.register_blueprint(discounts_bp)
    app.register_blueprint(employees_bp)
    app.register_blueprint(reports_bp)
    app.register_blueprint(payouts_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
