"""
Flask application factory.

This module implements the application factory pattern for creating
Flask application instances with different configurations.
"""

from flask import Flask
import os

from .extensions import db, migrate, limiter
from .config import get_config

_models = None


def create_app(config_name=None):
    """
    Application factory function.

    Args:
        config_name: Configuration name (development, testing, production)
                    If None, determined from environment

    Returns:
        Flask application instance
    """
    global _models

    app = Flask(__name__)

    # Load configuration
    config_class = get_config(config_name)
    app.config.from_object(config_class)

    # Ensure instance directory exists
    basedir = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))
    os.makedirs(os.path.join(basedir, "instance"), exist_ok=True)

    # Update database URI to use absolute path
    if app.config['SQLALCHEMY_DATABASE_URI'].startswith('sqlite:///instance/'):
        app.config['SQLALCHEMY_DATABASE_URI'] = f'sqlite:///{os.path.join(basedir, "instance", "opscore.db")}'

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Initialize rate limiter (reads RATELIMIT_ENABLED / RATELIMIT_DEFAULT)
    limiter.init_app(app)

    configure_sqlite()

    # Configure logging and error handling
    from opscore.error_handlers import setup_logging, register_error_handlers
    setup_logging(app)
    register_error_handlers(app)

    # Initialize database models (model classes can only be declared once per process)
    from opscore.models import init_models, model_registry
    if _models is None:
        _models = init_models(db)

    model_registry.init_app(app)
    model_registry.register(_models)

    # Organization clock shared by routes and jobs
    from opscore.services.day_window import resolver_from_config
    app.extensions['day_window_resolver'] = resolver_from_config(app.config)

    register_blueprints(app)

    from opscore.tasks import init_celery
    init_celery(app)

    return app


def configure_sqlite():
    """
    SQLite connection setup: foreign keys on, and explicit BEGIN so that
    SAVEPOINTs nest inside a real transaction.
    """
    from sqlalchemy import event
    from sqlalchemy.engine import Engine

    if getattr(configure_sqlite, '_done', False):
        return
    configure_sqlite._done = True

    @event.listens_for(Engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Enable foreign key constraints for SQLite connections"""
        if 'sqlite' in str(type(dbapi_conn)).lower():
            dbapi_conn.isolation_level = None
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @event.listens_for(Engine, "begin")
    def begin_sqlite_transaction(conn):
        if conn.dialect.name == 'sqlite':
            conn.exec_driver_sql("BEGIN")


def register_blueprints(app):
    """Register all Flask blueprints."""
    from opscore.routes import jobs_bp, operations_bp, health_bp

    app.register_blueprint(jobs_bp)
    app.register_blueprint(operations_bp)
    app.register_blueprint(health_bp)

    # Probes are polled by orchestrators
    limiter.exempt(health_bp)

