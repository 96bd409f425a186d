"""
Time Tracking Service - start/stop timers and task time statistics.

Rules enforced here:
- A user owns at most one running timer at a time, across all tasks. The
  pre-check gives a clear error; the partial unique index on timers makes
  the rule hold under concurrent starts.
- A timer stops exactly once. Stopping is a conditional UPDATE on
  end_time IS NULL, so a second or concurrent stop fails with AlreadyStopped
  instead of rewriting the duration.
- Duration is whole seconds, written at stop time, never negative.

Timer ownership is captured on the row (user_id) from the task's assignee
when the timer starts. started_by_id records who pressed start, which differs
only when a manager starts a timer on someone else's task.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, date, time, timedelta, timezone, tzinfo
from typing import Callable, Dict, Any, List, Optional, Tuple, Union

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from auth import Actor
from database.models import Timer, utcnow
from services.errors import (
    TimeTrackingError,
    Unauthenticated,
    PermissionDenied,
    NotFound,
    ConflictActiveTimer,
    AlreadyStopped,
    StorageFailure,
)
from services.event_logger import get_event_logger
from services.task_repository import TaskRepository
from services.timer_repository import TimerRepository, is_active_timer_violation
from validators import parse_week_start, require_identifier, require_timezone

logger = logging.getLogger(__name__)

# Statuses for which a passed due date no longer counts as overdue
CLOSED_TASK_STATUSES = frozenset({'COMPLETED', 'CANCELLED'})


def elapsed_seconds(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds()


def to_naive_utc(value: datetime) -> datetime:
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def local_date(value_utc: datetime, zone: tzinfo) -> date:
    """Calendar date of a stored naive-UTC timestamp in the given zone."""
    return value_utc.replace(tzinfo=timezone.utc).astimezone(zone).date()


def start_of_local_day(day: date, zone: tzinfo) -> datetime:
    """Naive-UTC instant of local midnight at the start of ``day``."""
    return to_naive_utc(datetime.combine(day, time.min, tzinfo=zone))


def start_of_week(day: date, week_start: int) -> date:
    """Most recent date on or before ``day`` that falls on ``week_start``."""
    return day - timedelta(days=(day.weekday() - week_start) % 7)


def reporting_windows(now_utc: datetime, zone: tzinfo, week_start: int) -> Tuple[datetime, datetime, datetime]:
    """
    Boundaries for the "today" and "this week" sums.

    Returns:
        (start_of_today, start_of_tomorrow, start_of_this_week) as naive UTC
    """
    today = local_date(now_utc, zone)
    return (
        start_of_local_day(today, zone),
        start_of_local_day(today + timedelta(days=1), zone),
        start_of_local_day(start_of_week(today, week_start), zone),
    )


@dataclass
class ActiveTimer:
    """A running timer plus its elapsed time at the moment of the read."""
    timer: Timer
    elapsed: int

    def to_dict(self) -> Dict[str, Any]:
        data = self.timer.to_dict()
        data['duration'] = self.elapsed
        return data


class TimeTrackingService:
    """Timer state machine and statistics over a single database session."""

    def __init__(self, session: Session, week_start: Union[str, int] = 'sunday',
                 default_timezone: str = 'UTC', clock: Optional[Callable[[], datetime]] = None):
        """
        Args:
            session: SQLAlchemy session; the caller owns commit/rollback
            week_start: First day of the reporting week, by name or weekday number
            default_timezone: IANA zone used when a statistics call names none
            clock: Returns the current time as naive UTC
        """
        self.session = session
        self.tasks = TaskRepository(session)
        self.timers = TimerRepository(session)
        self.week_start = week_start if isinstance(week_start, int) else parse_week_start(week_start)
        self.default_timezone = require_timezone(default_timezone)
        self.clock = clock or utcnow

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _require_actor(actor: Optional[Actor]) -> Actor:
        if actor is None or not actor.user_id:
            raise Unauthenticated("Authentication required")
        return actor

    @contextmanager
    def _storage_guard(self, operation: str):
        """Surface database errors as StorageFailure; business errors pass through."""
        try:
            yield
        except TimeTrackingError:
            raise
        except SQLAlchemyError as e:
            logger.error(f"Storage failure while trying to {operation}: {e}")
            raise StorageFailure(f"Could not {operation}") from e

    def _can_act_on(self, actor: Actor, owner_id: str) -> bool:
        return actor.user_id == owner_id or actor.is_elevated

    # ------------------------------------------------------------------
    # transitions
    # ------------------------------------------------------------------

    def start_timer(self, actor: Optional[Actor], task_id: Any) -> Timer:
        """
        Start tracking time on a task.

        Raises:
            Unauthenticated, ValidationError, NotFound, PermissionDenied,
            ConflictActiveTimer, StorageFailure
        """
        actor = self._require_actor(actor)
        task_id = require_identifier(task_id, 'task_id')

        with self._storage_guard('start timer'):
            task = self.tasks.get_task_ref(task_id)
            if task is None:
                raise NotFound(f"Task {task_id} not found")

            if not self._can_act_on(actor, task.assignee_user_id):
                raise PermissionDenied("Not allowed to track time for this task")

            owner_id = task.assignee_user_id
            running = self.timers.find_active_by_users({actor.user_id, owner_id})
            if running is not None:
                raise ConflictActiveTimer("An active timer is already running")

            try:
                timer = self.timers.create_active(
                    task_id=task.task_id,
                    user_id=owner_id,
                    started_by_id=actor.user_id,
                    start_time=self.clock(),
                )
            except IntegrityError as e:
                if not is_active_timer_violation(e):
                    raise
                # Lost a race with another start for the same owner
                logger.warning(f"Concurrent start rejected for user {owner_id}: {e.orig}")
                raise ConflictActiveTimer("An active timer is already running") from e

            get_event_logger(self.session, actor.user_id).log_timer_started(timer)

        logger.info(f"Timer {timer.id} started on task {task.task_id} by {actor.user_id}")
        return timer

    def stop_timer(self, actor: Optional[Actor], timer_id: Any) -> Timer:
        """
        Stop a running timer and persist its duration.

        Raises:
            Unauthenticated, ValidationError, NotFound, PermissionDenied,
            AlreadyStopped, StorageFailure
        """
        actor = self._require_actor(actor)
        timer_id = require_identifier(timer_id, 'timer_id')

        with self._storage_guard('stop timer'):
            timer = self.timers.get_timer(timer_id)
            if timer is None:
                raise NotFound(f"Timer {timer_id} not found")

            if not self._can_act_on(actor, timer.user_id):
                raise PermissionDenied("Not allowed to stop this timer")

            if timer.end_time is not None:
                raise AlreadyStopped("Timer is already stopped")

            end_time = self.clock()
            raw_seconds = elapsed_seconds(timer.start_time, end_time)
            duration = int(round(raw_seconds))
            needs_review = False
            if duration < 0:
                logger.warning(
                    f"Timer {timer_id} produced negative duration {raw_seconds:.3f}s; "
                    f"storing 0 and flagging for review"
                )
                duration = 0
                needs_review = True

            if not self.timers.stop_if_active(timer_id, end_time, duration, needs_review):
                raise AlreadyStopped("Timer is already stopped")

            timer = self.timers.refresh(timer)

            events = get_event_logger(self.session, actor.user_id)
            if needs_review:
                events.log_duration_clamped(timer_id, raw_seconds)
            events.log_timer_stopped(timer)

        logger.info(f"Timer {timer_id} stopped after {duration}s by {actor.user_id}")
        return timer

    def delete_timer(self, actor: Optional[Actor], timer_id: Any) -> Dict[str, Any]:
        """
        Delete a timer record, running or stopped.

        Returns:
            The deleted timer as a dict
        """
        actor = self._require_actor(actor)
        timer_id = require_identifier(timer_id, 'timer_id')

        with self._storage_guard('delete timer'):
            timer = self.timers.get_timer(timer_id)
            if timer is None:
                raise NotFound(f"Timer {timer_id} not found")

            if not self._can_act_on(actor, timer.user_id):
                raise PermissionDenied("Not allowed to delete this timer")

            snapshot = timer.to_dict(include_task=False)
            self.timers.delete_timer(timer)
            get_event_logger(self.session, actor.user_id).log_timer_deleted(snapshot)

        logger.info(f"Timer {timer_id} deleted by {actor.user_id}")
        return snapshot

    # ------------------------------------------------------------------
    # reads
    # ------------------------------------------------------------------

    def get_active_timer(self, actor: Optional[Actor]) -> Optional[ActiveTimer]:
        """The actor's running timer with elapsed time as of now, or None."""
        actor = self._require_actor(actor)

        with self._storage_guard('load active timer'):
            timer = self.timers.find_active_by_user(actor.user_id)

        if timer is None:
            return None

        elapsed = max(0, int(round(elapsed_seconds(timer.start_time, self.clock()))))
        return ActiveTimer(timer=timer, elapsed=elapsed)

    def list_timers(self, actor: Optional[Actor]) -> List[Timer]:
        """Managers and admins see every timer; everyone else sees their own."""
        actor = self._require_actor(actor)

        with self._storage_guard('list timers'):
            if actor.is_elevated:
                return self.timers.list_timers()
            return self.timers.list_timers(user_id=actor.user_id)

    def compute_task_statistics(self, task_id: Any, tz: Optional[str] = None) -> Dict[str, Any]:
        """
        Aggregate a task's timers.

        Only stopped timers contribute time; running timers count toward
        timerCount but add nothing until stopped. "Today" and "this week"
        are calendar boundaries in ``tz`` (default: the service timezone).
        """
        task_id = require_identifier(task_id, 'task_id')
        zone = require_timezone(tz) if tz else self.default_timezone

        with self._storage_guard('compute task statistics'):
            task = self.tasks.get_task_ref(task_id)
            if task is None:
                raise NotFound(f"Task {task_id} not found")
            timers = self.timers.list_by_task(task_id)

        now = self.clock()
        today_start, tomorrow_start, week_start = reporting_windows(now, zone, self.week_start)

        def seconds(timer):
            return timer.duration or 0

        total = sum(seconds(t) for t in timers)
        today = sum(seconds(t) for t in timers if today_start <= t.start_time < tomorrow_start)
        this_week = sum(seconds(t) for t in timers if week_start <= t.start_time < tomorrow_start)

        stopped = [t for t in timers if t.end_time is not None]
        last_worked_on = max((t.end_time for t in stopped), default=None)

        is_overdue = False
        days_until_due = None
        if task.due_date is not None:
            is_overdue = task.due_date < now and task.status not in CLOSED_TASK_STATUSES
            days_until_due = (local_date(task.due_date, zone) - local_date(now, zone)).days

        return {
            'taskId': task.task_id,
            'totalTimeSpent': total,
            'timeSpentToday': today,
            'timeSpentThisWeek': this_week,
            'timerCount': len(timers),
            'activeTimerCount': len(timers) - len(stopped),
            'lastWorkedOn': last_worked_on.isoformat() + 'Z' if last_worked_on else None,
            'isOverdue': is_overdue,
            'daysUntilDue': days_until_due,
        }
