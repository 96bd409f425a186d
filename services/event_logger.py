"""
Event Logger Service - Audit trail for time-tracking activity.

Every timer transition is recorded against the timer it touched, so a
disputed duration can be traced back to who started and stopped it and when.
"""

import logging
from typing import Dict, Optional, List

from database.models import EventLog, utcnow

logger = logging.getLogger(__name__)

# Event types for timer operations
EVENT_TYPES = {
    'TIMER_STARTED': 'Timer was started',
    'TIMER_STOPPED': 'Timer was stopped',
    'TIMER_DELETED': 'Timer was deleted',
    'DURATION_CLAMPED': 'Negative duration was clamped to zero',
}

ENTITY_TIMER = 'timer'


class EventLogger:
    """Service for logging system events to the database."""

    def __init__(self, session, actor_type: str = 'system', actor_id: str = None):
        """
        Initialize the event logger.

        Args:
            session: SQLAlchemy database session
            actor_type: Type of actor (user, system)
            actor_id: ID of the actor (user ID if user, None if system)
        """
        self.session = session
        self.actor_type = actor_type
        self.actor_id = actor_id

    def log(self, entity_type: str, entity_id: str, event_type: str,
            description: str = None, metadata: Dict = None) -> Optional[Dict]:
        """
        Log an event in the current unit of work.

        Args:
            entity_type: Type of entity (timer, task)
            entity_id: ID of the entity
            event_type: Type of event (TIMER_STARTED, etc.)
            description: Human-readable description of the event
            metadata: Additional data about the event

        Returns:
            The created event log entry as a dict
        """
        event = EventLog(
            timestamp=utcnow(),
            actor_type=self.actor_type,
            actor_id=self.actor_id,
            entity_type=entity_type,
            entity_id=entity_id,
            event_type=event_type,
            description=description or EVENT_TYPES.get(event_type, event_type),
            extra_data=metadata or {}
        )

        self.session.add(event)
        self.session.flush()

        logger.debug(f"Event logged: {event_type} on {entity_type}:{entity_id}")
        return event.to_dict()

    def log_timer_started(self, timer) -> Optional[Dict]:
        return self.log(
            ENTITY_TIMER, timer.id, 'TIMER_STARTED',
            metadata={'task_id': timer.task_id, 'user_id': timer.user_id}
        )

    def log_timer_stopped(self, timer) -> Optional[Dict]:
        return self.log(
            ENTITY_TIMER, timer.id, 'TIMER_STOPPED',
            description=f"Timer stopped after {timer.duration}s",
            metadata={'task_id': timer.task_id, 'duration': timer.duration}
        )

    def log_duration_clamped(self, timer_id: str, raw_seconds: float) -> Optional[Dict]:
        """Flag a stop whose clock reading came out negative."""
        return self.log(
            ENTITY_TIMER, timer_id, 'DURATION_CLAMPED',
            metadata={'raw_seconds': raw_seconds}
        )

    def log_timer_deleted(self, timer_data: Dict) -> Optional[Dict]:
        return self.log(
            ENTITY_TIMER, timer_data['id'], 'TIMER_DELETED',
            metadata={'deleted_data': timer_data}
        )

    def get_entity_history(self, entity_type: str, entity_id: str,
                           limit: int = 50) -> List[Dict]:
        """Get the event history for a specific entity, newest first."""
        events = self.session.query(EventLog).filter(
            EventLog.entity_type == entity_type,
            EventLog.entity_id == entity_id
        ).order_by(EventLog.timestamp.desc()).limit(limit).all()

        return [e.to_dict() for e in events]


def get_event_logger(session, user_id: str = None) -> EventLogger:
    """
    Factory function to create an EventLogger instance.

    Args:
        session: SQLAlchemy database session
        user_id: Optional user ID if the actor is a user

    Returns:
        EventLogger instance
    """
    actor_type = 'user' if user_id else 'system'
    return EventLogger(session, actor_type, user_id)
