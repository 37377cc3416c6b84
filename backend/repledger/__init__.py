# backend/repledger/__init__.py
from flask import Flask

from .config import Config
from .extensions import db, migrate
from .repository import EXTENSION_KEY, SqlRepository, build_repository


def create_app(overrides: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides land before any extension reads the config
    if overrides:
        app.config.update(overrides)

    # app.logger is the "repledger" logger; service module loggers inherit its level
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Data store backend is chosen exactly once, here
    repo = build_repository(app.config["REPLEDGER_STORE"])
    app.extensions[EXTENSION_KEY] = repo

    # Schema comes from migrations (flask db upgrade) or `flask system init-db`;
    # demo seeding is a dev convenience and creates missing tables itself.
    if app.config.get("REPLEDGER_SEED_DEMO_DATA"):
        from .services.catalog_service import seed_demo_data
        with app.app_context():
            if isinstance(repo, SqlRepository):
                db.create_all()
            seed_demo_data(repo)

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.customers import customers_bp
    from .routes.providers import providers_bp
    from .routes.orders import orders_bp
    from .routes.transactions import transactions_bp
    from .routes.stats import stats_bp
    from .routes.ledger import ledger_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(providers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(transactions_bp)
    app.register_blueprint(stats_bp)
    app.register_blueprint(ledger_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    app.logger.info("repledger started with %s data store", repo.backend_name)
    return app
