"""
Database seeding for AgencyOS.
Creates a default SUPER_ADMIN account if the database has none.
"""

import logging
import os
from werkzeug.security import generate_password_hash
from database.connection import get_db_session
from database.models import User, ROLE_SUPER_ADMIN

logger = logging.getLogger(__name__)

DEFAULT_ADMIN_EMAIL = "admin@agencyos.local"
DEFAULT_ADMIN_USERNAME = "admin"


def seed_default_admin(session, password=None):
    """Create default admin user if none exists."""
    admin = session.query(User).filter_by(role=ROLE_SUPER_ADMIN).first()
    if admin:
        logger.info(f"Admin user already exists: {admin.username}")
        return admin

    password = password or os.environ.get('DEFAULT_ADMIN_PASSWORD', 'admin123')
    admin = User(
        email=DEFAULT_ADMIN_EMAIL,
        username=DEFAULT_ADMIN_USERNAME,
        display_name="Administrator",
        role=ROLE_SUPER_ADMIN,
        password_hash=generate_password_hash(password, method='pbkdf2:sha256'),
        is_active=True
    )
    session.add(admin)
    session.flush()
    logger.info(f"Created default admin user: {admin.username}")
    return admin


def seed_database():
    """
    Seed the database with default data if empty.
    Called at application startup when SEED_DATABASE is enabled.
    """
    try:
        with get_db_session() as session:
            seed_default_admin(session)
        logger.info("Database seeding completed successfully")
        return True
    except Exception as e:
        logger.error(f"Database seeding failed: {e}")
        raise


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    from database.connection import init_db
    init_db()
    seed_database()
