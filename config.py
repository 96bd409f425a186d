"""
Centralized Configuration for AgencyOS Time Tracking
Manages environment-specific settings, secrets, and time-tracking policy.
"""
import os
from datetime import timedelta


def _normalize_database_url(url):
    """Handle Render's postgres:// vs postgresql:// URL format"""
    if url and url.startswith('postgres://'):
        return url.replace('postgres://', 'postgresql://', 1)
    return url


class Config:
    """Base configuration with defaults"""

    # Flask Settings
    SECRET_KEY = os.environ.get('SECRET_KEY') or os.urandom(32).hex()
    JSON_SORT_KEYS = False

    # CORS Settings
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', '*').split(',')
    CORS_METHODS = ['GET', 'POST', 'PUT', 'DELETE', 'OPTIONS']
    CORS_ALLOW_HEADERS = ['Content-Type', 'Authorization', 'X-Requested-With']

    # Database Settings
    DATABASE_URL = _normalize_database_url(
        os.environ.get('DATABASE_URL', 'postgresql://localhost/agencyos')
    )
    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_pre_ping': True,
        'pool_recycle': 300,
    }
    SEED_DATABASE = os.environ.get('SEED_DATABASE', 'false').lower() == 'true'
    AUTO_CREATE_TABLES = True

    # Time Tracking Policy
    # TIMEZONE is the fallback for "today" / "this week" when the caller sends none.
    TIMEZONE = os.environ.get('TIMEZONE', 'UTC')
    WEEK_START_DAY = os.environ.get('WEEK_START_DAY', 'sunday').lower()

    # Logging Configuration
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
    LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    LOG_FILE = os.environ.get('LOG_FILE', 'app.log')
    LOG_DIR = os.environ.get('LOG_DIR', 'logs')

    # Session Configuration
    SESSION_PERMANENT = False
    PERMANENT_SESSION_LIFETIME = timedelta(days=30)


class DevelopmentConfig(Config):
    """Development-specific configuration"""
    DEBUG = True
    TESTING = False
    LOG_LEVEL = 'DEBUG'
    CORS_ORIGINS = ['*']


class ProductionConfig(Config):
    """Production-specific configuration"""
    DEBUG = False
    TESTING = False
    CORS_ORIGINS = os.environ.get('CORS_ORIGINS', 'https://agencyos.onrender.com').split(',')
    PREFERRED_URL_SCHEME = 'https'
    # Schema is managed by Alembic migrations
    AUTO_CREATE_TABLES = False
    SESSION_COOKIE_SECURE = True
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = 'Lax'


class TestingConfig(Config):
    """Testing-specific configuration"""
    DEBUG = True
    TESTING = True
    DATABASE_URL = 'sqlite://'
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SEED_DATABASE = False
    TIMEZONE = 'UTC'
    WEEK_START_DAY = 'sunday'
    LOG_LEVEL = 'WARNING'


# Configuration selector
config_by_name = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig,
    'default': DevelopmentConfig,
}


def get_config(name=None):
    """Get configuration by name, falling back to the FLASK_ENV environment variable"""
    env = name or os.environ.get('FLASK_ENV', 'development')
    return config_by_name.get(env, DevelopmentConfig)
