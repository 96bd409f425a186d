"""
Timer Repository - Database operations for timers.

Writes here are the only place the active-timer invariant is touched:
creation relies on the partial unique index, and stopping is a conditional
UPDATE that only matches while end_time is still NULL.
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from database.models import Timer, ACTIVE_TIMER_INDEX

logger = logging.getLogger(__name__)

# SQLite names the indexed column rather than the index
SQLITE_ACTIVE_TIMER_VIOLATION = 'UNIQUE constraint failed: timers.user_id'


def is_active_timer_violation(error: IntegrityError) -> bool:
    """True if the IntegrityError came from the one-running-timer index."""
    diag = getattr(error.orig, 'diag', None)
    if getattr(diag, 'constraint_name', None) == ACTIVE_TIMER_INDEX:
        return True
    message = str(error.orig)
    return ACTIVE_TIMER_INDEX in message or SQLITE_ACTIVE_TIMER_VIOLATION in message


class TimerRepository:
    """Repository for timer database operations."""

    def __init__(self, session: Session):
        self.session = session

    def get_timer(self, timer_id: str) -> Optional[Timer]:
        """Get a single timer by ID."""
        return self.session.query(Timer).options(joinedload(Timer.task)).filter(
            Timer.id == timer_id
        ).first()

    def find_active_by_user(self, user_id: str) -> Optional[Timer]:
        """Get the user's running timer, if any."""
        return self.session.query(Timer).options(joinedload(Timer.task)).filter(
            Timer.user_id == user_id,
            Timer.end_time.is_(None)
        ).first()

    def find_active_by_users(self, user_ids: Iterable[str]) -> Optional[Timer]:
        """Get any running timer owned by one of the given users."""
        return self.session.query(Timer).filter(
            Timer.user_id.in_(list(set(user_ids))),
            Timer.end_time.is_(None)
        ).first()

    def list_by_task(self, task_id: str) -> List[Timer]:
        """All timers for a task, most recently started first."""
        return self.session.query(Timer).filter(
            Timer.task_id == task_id
        ).order_by(Timer.start_time.desc()).all()

    def list_timers(self, user_id: Optional[str] = None) -> List[Timer]:
        """List timers, optionally restricted to one owner, most recent first."""
        query = self.session.query(Timer).options(joinedload(Timer.task))
        if user_id:
            query = query.filter(Timer.user_id == user_id)
        return query.order_by(Timer.start_time.desc()).all()

    def create_active(self, task_id: str, user_id: str, started_by_id: str,
                      start_time: datetime) -> Timer:
        """
        Insert a running timer and flush it.

        Raises sqlalchemy.exc.IntegrityError if the owner already has an
        active timer; the caller decides how to surface that.
        """
        timer = Timer(
            task_id=task_id,
            user_id=user_id,
            started_by_id=started_by_id,
            start_time=start_time,
            end_time=None,
            duration=None,
        )
        self.session.add(timer)
        self.session.flush()
        return timer

    def stop_if_active(self, timer_id: str, end_time: datetime, duration: int,
                       needs_review: bool = False) -> bool:
        """
        Set end_time and duration in one statement, only if still running.

        Returns True if this call stopped the timer, False if it was already stopped.
        """
        updated = self.session.query(Timer).filter(
            Timer.id == timer_id,
            Timer.end_time.is_(None)
        ).update({
            Timer.end_time: end_time,
            Timer.duration: duration,
            Timer.needs_review: needs_review,
        }, synchronize_session=False)
        return updated == 1

    def refresh(self, timer: Timer) -> Timer:
        self.session.refresh(timer)
        return timer

    def delete_timer(self, timer: Timer) -> None:
        """Delete a timer."""
        self.session.delete(timer)
        self.session.flush()
