"""
HTTP Security Middleware
Session signing key, CORS for the dashboard, response headers and the JSON
error pages shared by every blueprint
"""
import os
import secrets
from typing import Dict, Any
from flask import Flask, request, jsonify, Response, session
from flask_cors import CORS
import logging

logger = logging.getLogger(__name__)

# The session cookie carries the caller's identity, so its key must not be guessable
MIN_SECRET_KEY_LENGTH = 32

# Paths excluded from per-request logging
QUIET_PATHS = ('/api/health', '/api/ping')

# Status -> (error, message) for errors raised outside the timer blueprint
HTTP_ERRORS = {
    400: ('Bad Request', 'The request could not be understood or was missing required parameters'),
    401: ('Unauthorized', 'Authentication required'),
    403: ('Forbidden', 'You do not have permission to access this resource'),
    404: ('Not Found', 'The requested resource was not found'),
    405: ('Method Not Allowed', 'The method is not allowed for the requested URL'),
    503: ('Service Unavailable', 'The service is temporarily unavailable. Please try again later'),
}


def resolve_secret_key(config: Dict[str, Any]) -> str:
    """
    Return the configured session key, or a random one if it is missing or too short

    A generated key invalidates every session on restart, which is logged as an
    error in production.
    """
    secret_key = config.get('SECRET_KEY')
    if secret_key and len(secret_key) >= MIN_SECRET_KEY_LENGTH:
        return secret_key

    if secret_key:
        logger.warning(f"SECRET_KEY is shorter than {MIN_SECRET_KEY_LENGTH} characters; ignoring it")
    if os.environ.get('FLASK_ENV') == 'production':
        logger.error("No usable SECRET_KEY in production! Sessions will not survive a restart.")

    return secrets.token_hex(MIN_SECRET_KEY_LENGTH)


def setup_security_headers(app: Flask):
    """
    Add security headers to all responses

    Args:
        app: Flask application instance
    """
    @app.after_request
    def add_security_headers(response: Response) -> Response:
        response.headers['X-Frame-Options'] = 'DENY'
        response.headers['X-Content-Type-Options'] = 'nosniff'
        response.headers['Referrer-Policy'] = 'strict-origin-when-cross-origin'
        # JSON API: nothing here should ever load sub-resources
        response.headers['Content-Security-Policy'] = "default-src 'none'; frame-ancestors 'none'"
        response.headers['Cache-Control'] = 'no-store'

        if not app.debug:
            response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'

        return response


def setup_cors(app: Flask, config: Dict[str, Any]):
    """
    Allow the dashboard front-end to call the API with its session cookie

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    cors_origins = config.get('CORS_ORIGINS', ['*'])

    if not app.debug and '*' in cors_origins:
        logger.warning("Using wildcard CORS in production! Set CORS_ORIGINS environment variable.")

    CORS(
        app,
        origins=cors_origins,
        methods=config.get('CORS_METHODS', ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']),
        allow_headers=config.get('CORS_ALLOW_HEADERS', ['Content-Type']),
        supports_credentials=True,
        max_age=3600
    )

    logger.info(f"CORS configured: origins={cors_origins}")


def setup_error_handlers(app: Flask):
    """
    Render HTTP errors as {success, error, message} without stack traces

    Args:
        app: Flask application instance
    """
    def register(status, title, message):
        @app.errorhandler(status)
        def handle(error):
            return jsonify({'success': False, 'error': title, 'message': message}), status

    for status, (title, message) in HTTP_ERRORS.items():
        register(status, title, message)

    @app.errorhandler(500)
    def internal_server_error(error):
        logger.error(f"Internal server error: {error}", exc_info=True)
        body = {
            'success': False,
            'error': 'Internal Server Error',
            'message': 'An error occurred while processing your request'
        }
        if app.debug and not app.testing:
            body['details'] = str(error)
        return jsonify(body), 500


def setup_request_logging(app: Flask):
    """
    Log each request with the calling user, skipping health probes

    Args:
        app: Flask application instance
    """
    @app.before_request
    def log_request():
        if request.path in QUIET_PATHS:
            return
        logger.info(f"Request: {request.method} {request.path} user={session.get('user_id', '-')}")

    @app.after_request
    def log_response(response: Response) -> Response:
        if request.path not in QUIET_PATHS:
            logger.info(f"Response: {request.method} {request.path} status={response.status_code}")
        return response


def setup_security(app: Flask, config: Dict[str, Any]):
    """
    Setup all security features for the application

    Args:
        app: Flask application instance
        config: Application configuration dictionary
    """
    app.secret_key = resolve_secret_key(config)

    setup_cors(app, config)
    setup_security_headers(app)
    setup_error_handlers(app)
    setup_request_logging(app)

    if not app.debug:
        missing = [var for var in ('SECRET_KEY', 'DATABASE_URL') if not os.environ.get(var)]
        if missing:
            logger.error(f"Missing required environment variables in production: {missing}")

    logger.info("Security configuration complete")
