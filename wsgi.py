"""
WSGI Entry Point for Gunicorn

This module provides the WSGI application entry point for production deployment:
  gunicorn wsgi:app

The Flask application is created in application.py.
"""

from application import app  # noqa: F401
