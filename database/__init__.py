"""
Database package for AgencyOS.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure_database,
    get_db_session,
    get_engine,
    init_db,
    check_db_connection
)

from database.models import (
    User,
    Project,
    Task,
    Timer,
    EventLog
)

__all__ = [
    # Connection
    'Base',
    'configure_database',
    'get_db_session',
    'get_engine',
    'init_db',
    'check_db_connection',
    # Models
    'User',
    'Project',
    'Task',
    'Timer',
    'EventLog'
]
