"""
Tests for the timer state machine in TimeTrackingService
"""
import uuid
import pytest

from database.models import (
    Timer, ROLE_MANAGER, ROLE_SUPER_ADMIN, ROLE_CLIENT
)
from services.errors import (
    Unauthenticated,
    PermissionDenied,
    NotFound,
    ConflictActiveTimer,
    AlreadyStopped,
    ValidationError,
)
from services.event_logger import get_event_logger, ENTITY_TIMER


def _history(db_session, timer_id):
    return get_event_logger(db_session).get_entity_history(ENTITY_TIMER, timer_id)


def _events(db_session, timer_id):
    return [e['event_type'] for e in _history(db_session, timer_id)]


@pytest.mark.unit
class TestStartTimer:
    """Tests for starting timers"""

    def test_start_creates_active_timer(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that starting a timer records the clock time and no end"""
        user = make_user()
        task = make_task(user)

        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()

        assert timer.task_id == task.id
        assert timer.user_id == user.id
        assert timer.started_by_id == user.id
        assert timer.start_time == clock.now
        assert timer.end_time is None
        assert timer.duration is None
        assert timer.is_active is True

    def test_start_logs_event(self, service, db_session, make_user, make_task, actor_for):
        """Test that a start is written to the event log"""
        user = make_user()
        task = make_task(user)

        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()

        assert _events(db_session, timer.id) == ['TIMER_STARTED']

    def test_start_without_actor_is_unauthenticated(self, service, make_user, make_task):
        """Test that a missing identity is rejected before anything else"""
        task = make_task(make_user())
        with pytest.raises(Unauthenticated):
            service.start_timer(None, task.id)

    def test_start_with_malformed_task_id(self, service, make_user, actor_for):
        """Test that a non-UUID task id is a validation error"""
        user = make_user()
        with pytest.raises(ValidationError) as exc_info:
            service.start_timer(actor_for(user), 'not-a-task')
        assert exc_info.value.field == 'task_id'

    def test_start_unknown_task(self, service, make_user, actor_for):
        """Test that starting on a missing task raises NotFound"""
        user = make_user()
        with pytest.raises(NotFound):
            service.start_timer(actor_for(user), str(uuid.uuid4()))

    def test_start_on_someone_elses_task_is_denied(self, service, db_session, make_user, make_task, actor_for):
        """Test that a professional cannot track time on another user's task"""
        owner = make_user()
        other = make_user()
        task = make_task(owner)

        with pytest.raises(PermissionDenied):
            service.start_timer(actor_for(other), task.id)

        assert db_session.query(Timer).count() == 0

    def test_client_cannot_start_timer(self, service, make_user, make_task, actor_for):
        """Test that a client who is not the assignee is denied"""
        task = make_task(make_user())
        client_user = make_user(role=ROLE_CLIENT)
        with pytest.raises(PermissionDenied):
            service.start_timer(actor_for(client_user), task.id)

    def test_manager_starts_timer_for_assignee(self, service, db_session, make_user, make_task, actor_for):
        """Test that a manager's timer is owned by the assignee"""
        assignee = make_user()
        manager = make_user(role=ROLE_MANAGER)
        task = make_task(assignee)

        timer = service.start_timer(actor_for(manager), task.id)
        db_session.commit()

        assert timer.user_id == assignee.id
        assert timer.started_by_id == manager.id

    def test_second_start_conflicts(self, service, db_session, make_user, make_task, actor_for):
        """Test that a user cannot run two timers, even on different tasks"""
        user = make_user()
        first = make_task(user, title='First')
        second = make_task(user, title='Second')

        service.start_timer(actor_for(user), first.id)
        db_session.commit()

        with pytest.raises(ConflictActiveTimer):
            service.start_timer(actor_for(user), second.id)

        active = db_session.query(Timer).filter(Timer.user_id == user.id, Timer.end_time.is_(None)).count()
        assert active == 1

    def test_manager_start_conflicts_with_assignee_timer(self, service, db_session, make_user, make_task, actor_for):
        """Test that the assignee's running timer blocks a manager start"""
        assignee = make_user()
        manager = make_user(role=ROLE_MANAGER)
        first = make_task(assignee, title='First')
        second = make_task(assignee, title='Second')

        service.start_timer(actor_for(assignee), first.id)
        db_session.commit()

        with pytest.raises(ConflictActiveTimer):
            service.start_timer(actor_for(manager), second.id)

    def test_start_after_stop_is_allowed(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that stopping frees the user to start again"""
        user = make_user()
        task = make_task(user)

        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()
        clock.advance(minutes=10)
        service.stop_timer(actor_for(user), timer.id)
        db_session.commit()

        again = service.start_timer(actor_for(user), task.id)
        db_session.commit()
        assert again.id != timer.id
        assert again.is_active


@pytest.mark.unit
class TestStopTimer:
    """Tests for stopping timers"""

    def test_stop_records_whole_second_duration(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that a stop 125 seconds after start stores 125"""
        user = make_user()
        task = make_task(user)
        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()

        clock.advance(seconds=125)
        stopped = service.stop_timer(actor_for(user), timer.id)
        db_session.commit()

        assert stopped.end_time == clock.now
        assert stopped.duration == 125
        assert stopped.needs_review is False

    def test_stop_rounds_fractional_seconds(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that sub-second remainders are rounded to the nearest second"""
        user = make_user()
        task = make_task(user)
        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()

        clock.advance(seconds=59, milliseconds=700)
        stopped = service.stop_timer(actor_for(user), timer.id)
        db_session.commit()

        assert stopped.duration == 60

    def test_stop_twice_raises_already_stopped(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that a second stop fails and leaves the first result intact"""
        user = make_user()
        task = make_task(user)
        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()

        clock.advance(seconds=30)
        service.stop_timer(actor_for(user), timer.id)
        db_session.commit()
        first_end = clock.now

        clock.advance(seconds=300)
        with pytest.raises(AlreadyStopped):
            service.stop_timer(actor_for(user), timer.id)
        db_session.rollback()

        stored = db_session.get(Timer, timer.id)
        assert stored.end_time == first_end
        assert stored.duration == 30

    def test_stop_unknown_timer(self, service, make_user, actor_for):
        """Test that stopping a missing timer raises NotFound"""
        with pytest.raises(NotFound):
            service.stop_timer(actor_for(make_user()), str(uuid.uuid4()))

    def test_stop_malformed_timer_id(self, service, make_user, actor_for):
        """Test that a non-UUID timer id is a validation error"""
        with pytest.raises(ValidationError):
            service.stop_timer(actor_for(make_user()), '42')

    def test_stop_by_other_professional_is_denied(self, service, db_session, make_user, make_task, actor_for):
        """Test that only the owner or an elevated role may stop a timer"""
        owner = make_user()
        other = make_user()
        timer = service.start_timer(actor_for(owner), make_task(owner).id)
        db_session.commit()

        with pytest.raises(PermissionDenied):
            service.stop_timer(actor_for(other), timer.id)

    def test_admin_can_stop_any_timer(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that a super admin may stop another user's timer"""
        owner = make_user()
        admin = make_user(role=ROLE_SUPER_ADMIN)
        timer = service.start_timer(actor_for(owner), make_task(owner).id)
        db_session.commit()

        clock.advance(seconds=5)
        stopped = service.stop_timer(actor_for(admin), timer.id)
        db_session.commit()

        assert stopped.duration == 5
        assert stopped.user_id == owner.id

    def test_negative_duration_is_clamped_and_flagged(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that a clock moving backwards stores 0 and marks the timer for review"""
        user = make_user()
        timer = service.start_timer(actor_for(user), make_task(user).id)
        db_session.commit()

        clock.advance(seconds=-90)
        stopped = service.stop_timer(actor_for(user), timer.id)
        db_session.commit()

        assert stopped.duration == 0
        assert stopped.needs_review is True
        assert stopped.end_time is not None
        assert 'DURATION_CLAMPED' in _events(db_session, timer.id)

    def test_stop_logs_event(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that a stop is written to the event log with its duration"""
        user = make_user()
        timer = service.start_timer(actor_for(user), make_task(user).id)
        db_session.commit()

        clock.advance(seconds=12)
        service.stop_timer(actor_for(user), timer.id)
        db_session.commit()

        stopped = [e for e in _history(db_session, timer.id) if e['event_type'] == 'TIMER_STOPPED']
        assert len(stopped) == 1
        assert stopped[0]['metadata']['duration'] == 12
        assert stopped[0]['actor_id'] == user.id


@pytest.mark.unit
class TestActiveTimer:
    """Tests for reading the running timer"""

    def test_no_active_timer(self, service, make_user, actor_for):
        """Test that a user with nothing running gets None"""
        assert service.get_active_timer(actor_for(make_user())) is None

    def test_active_timer_reports_live_elapsed(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that elapsed time is computed at read time and not stored"""
        user = make_user()
        timer = service.start_timer(actor_for(user), make_task(user).id)
        db_session.commit()

        clock.advance(seconds=42)
        active = service.get_active_timer(actor_for(user))

        assert active.timer.id == timer.id
        assert active.elapsed == 42
        assert active.to_dict()['duration'] == 42

        db_session.expire_all()
        assert db_session.get(Timer, timer.id).duration is None

    def test_active_timer_elapsed_never_negative(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test that a clock behind the start time reports zero elapsed"""
        user = make_user()
        service.start_timer(actor_for(user), make_task(user).id)
        db_session.commit()

        clock.advance(seconds=-10)
        assert service.get_active_timer(actor_for(user)).elapsed == 0

    def test_active_timer_requires_actor(self, service):
        """Test that reading the active timer needs an identity"""
        with pytest.raises(Unauthenticated):
            service.get_active_timer(None)


@pytest.mark.unit
class TestListAndDelete:
    """Tests for listing and deleting timers"""

    def test_professional_sees_only_own_timers(self, service, make_user, make_task, make_timer, actor_for, clock):
        """Test that list_timers is scoped to the caller for non-elevated roles"""
        alice = make_user()
        bob = make_user()
        make_timer(make_task(alice), clock.now)
        make_timer(make_task(bob), clock.now)

        timers = service.list_timers(actor_for(alice))
        assert [t.user_id for t in timers] == [alice.id]

    def test_manager_sees_all_timers(self, service, make_user, make_task, make_timer, actor_for, clock):
        """Test that managers list every user's timers"""
        alice = make_user()
        bob = make_user()
        manager = make_user(role=ROLE_MANAGER)
        make_timer(make_task(alice), clock.now)
        make_timer(make_task(bob), clock.now)

        assert len(service.list_timers(actor_for(manager))) == 2

    def test_owner_deletes_timer(self, service, db_session, make_user, make_task, make_timer, actor_for, clock):
        """Test that deleting returns the removed timer and logs the deletion"""
        user = make_user()
        timer = make_timer(make_task(user), clock.now)
        timer_id = timer.id

        deleted = service.delete_timer(actor_for(user), timer_id)
        db_session.commit()

        assert deleted['id'] == timer_id
        assert db_session.get(Timer, timer_id) is None
        assert _events(db_session, timer_id) == ['TIMER_DELETED']

    def test_delete_by_other_professional_is_denied(self, service, make_user, make_task, make_timer, actor_for, clock):
        """Test that deleting another user's timer requires an elevated role"""
        owner = make_user()
        timer = make_timer(make_task(owner), clock.now)
        with pytest.raises(PermissionDenied):
            service.delete_timer(actor_for(make_user()), timer.id)

    def test_deleting_active_timer_frees_user(self, service, db_session, make_user, make_task, actor_for):
        """Test that removing a running timer lets the owner start again"""
        user = make_user()
        task = make_task(user)
        timer = service.start_timer(actor_for(user), task.id)
        db_session.commit()

        service.delete_timer(actor_for(user), timer.id)
        db_session.commit()

        assert service.start_timer(actor_for(user), task.id).is_active


@pytest.mark.unit
class TestWorkSession:
    """End-to-end walk through a working day"""

    def test_start_stop_conflict_and_stats(self, service, db_session, clock, make_user, make_task, actor_for):
        """Test a user's day: start, conflict, stop, stop again, then statistics"""
        user = make_user()
        actor = actor_for(user)
        task_a = make_task(user, title='Task A')
        task_b = make_task(user, title='Task B')

        timer = service.start_timer(actor, task_a.id)
        db_session.commit()

        with pytest.raises(ConflictActiveTimer):
            service.start_timer(actor, task_b.id)
        db_session.rollback()

        clock.advance(seconds=125)
        assert service.stop_timer(actor, timer.id).duration == 125
        db_session.commit()

        with pytest.raises(AlreadyStopped):
            service.stop_timer(actor, timer.id)
        db_session.rollback()

        stats = service.compute_task_statistics(task_a.id)
        assert stats['totalTimeSpent'] == 125
        assert stats['timeSpentToday'] == 125
        assert stats['timerCount'] == 1
        assert stats['activeTimerCount'] == 0
