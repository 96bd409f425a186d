"""
AgencyOS - Application Package

This package contains the HTTP layer:
- api/: HTTP route handlers (Flask Blueprints)

The app factory and core Flask setup remain in app_init.py at the project root.
Business logic lives in the root services/ package.
"""

import logging

from app.api.timers import timers_bp

logger = logging.getLogger(__name__)


def register_blueprints(app):
    """
    Register all API blueprints with the Flask app.
    Called from app_init.create_app().

    Args:
        app: Flask application instance
    """
    app.register_blueprint(timers_bp)
    logger.info("Registered blueprints: timers")


__all__ = ['register_blueprints', 'timers_bp']
