"""
Application Initialization Module
Initializes the Flask app with all infrastructure components
"""
import os
from flask import Flask
from config import get_config
from logging_config import setup_logging
from security import setup_security
from health_checks import register_health_checks
from validators import parse_week_start, require_timezone
import logging

logger = logging.getLogger(__name__)


def create_app(config_name=None, config_overrides=None):
    """
    Application factory that creates and configures the Flask app

    Args:
        config_name: 'development', 'production' or 'testing'; defaults to FLASK_ENV
        config_overrides: Optional mapping applied on top of the config class

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)

    config_class = get_config(config_name)
    app.config.from_object(config_class)
    if config_overrides:
        app.config.update(config_overrides)

    setup_logging(app)

    logger.info("=" * 60)
    logger.info("Initializing AgencyOS Time Tracking")
    logger.info("=" * 60)
    logger.info(f"Environment: {config_name or os.environ.get('FLASK_ENV', 'development')}")
    logger.info(f"Debug mode: {app.debug}")

    validate_time_tracking_policy(app)

    setup_security(app, app.config)

    initialize_database(app)

    from app import register_blueprints
    register_blueprints(app)

    register_health_checks(app)

    logger.info("Application initialization complete")
    logger.info("=" * 60)

    return app


def validate_time_tracking_policy(app):
    """
    Fail fast on a misconfigured week start or timezone

    Args:
        app: Flask application instance
    """
    parse_week_start(app.config['WEEK_START_DAY'])
    require_timezone(app.config['TIMEZONE'])
    logger.info(
        f"Time tracking policy: timezone={app.config['TIMEZONE']}, "
        f"week starts {app.config['WEEK_START_DAY']}"
    )


def initialize_database(app):
    """
    Bind the database layer to the configured URL, create tables outside
    production and seed a default admin when requested

    Args:
        app: Flask application instance
    """
    from database.connection import configure_database, init_db
    from database.seed import seed_database

    configure_database(app.config['DATABASE_URL'], app.config.get('SQLALCHEMY_ENGINE_OPTIONS'))

    if app.config.get('AUTO_CREATE_TABLES', True):
        init_db()
    else:
        logger.info("Skipping create_all; schema is managed by Alembic")

    if app.config.get('SEED_DATABASE'):
        seed_database()
