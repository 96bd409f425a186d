"""
AgencyOS Time Tracking Application

MODULAR ARCHITECTURE:
- app/api/timers.py: Timer and task-statistics routes
- services/time_tracking.py: Timer state machine and statistics
- services/*_repository.py: Database access
- database/models.py: SQLAlchemy ORM models
- health_checks.py: /api/health, /api/ready, /api/metrics, /api/ping

The Flask app is built by app_init.create_app().
"""
import logging

from app_init import create_app

app = create_app()
logger = logging.getLogger(__name__)


if __name__ == '__main__':
    import os
    port = int(os.environ.get('PORT', 5000))
    logger.info(f"Starting development server on port {port}")
    app.run(host='0.0.0.0', port=port)
