"""
Pytest configuration and shared fixtures
"""
import sys
import itertools
import pytest
from datetime import datetime, timedelta
from pathlib import Path

# Add project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Wednesday, 14 October 2026, 09:00 UTC
DEFAULT_NOW = datetime(2026, 10, 14, 9, 0, 0)


class FakeClock:
    """Controllable replacement for utcnow(); returns naive UTC"""

    def __init__(self, now=DEFAULT_NOW):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now

    def set(self, value):
        self.now = value
        return self.now


@pytest.fixture
def clock():
    """Fixture providing a frozen clock that tests move by hand"""
    return FakeClock()


@pytest.fixture
def app(tmp_path, clock):
    """Fixture providing an app bound to a fresh SQLite file per test"""
    from app_init import create_app
    from database import connection

    app = create_app('testing', {
        'DATABASE_URL': f"sqlite:///{tmp_path / 'agencyos.db'}",
        'TIME_TRACKING_CLOCK': clock,
    })

    yield app

    connection.engine.dispose()


@pytest.fixture
def client(app):
    """Fixture providing the Flask test client"""
    return app.test_client()


@pytest.fixture
def db_session(app):
    """Fixture providing a session on the test database; callers commit"""
    from database.connection import get_session_factory

    session = get_session_factory()()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def make_user(db_session):
    """Factory fixture creating committed users"""
    from database.models import User, ROLE_PROFESSIONAL

    counter = itertools.count(1)

    def _make_user(role=ROLE_PROFESSIONAL, username=None):
        n = next(counter)
        username = username or f"{role.lower()}{n}"
        user = User(
            email=f"{username}@example.com",
            username=username,
            display_name=username.title(),
            role=role,
        )
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_task(db_session):
    """Factory fixture creating committed tasks assigned to a user"""
    from database.models import Task

    def _make_task(assignee, title='Design homepage', status='PENDING', due_date=None, project=None):
        task = Task(
            title=title,
            status=status,
            due_date=due_date,
            assignee_id=assignee.id,
            created_by_id=assignee.id,
            project_id=project.id if project else None,
        )
        db_session.add(task)
        db_session.commit()
        return task

    return _make_task


@pytest.fixture
def make_timer(db_session):
    """Factory fixture inserting timers directly, bypassing the service rules"""
    from database.models import Timer

    def _make_timer(task, start_time, end_time=None, duration=None, user=None):
        timer = Timer(
            task_id=task.id,
            user_id=user.id if user else task.assignee_id,
            started_by_id=user.id if user else task.assignee_id,
            start_time=start_time,
            end_time=end_time,
            duration=duration,
        )
        db_session.add(timer)
        db_session.commit()
        return timer

    return _make_timer


@pytest.fixture
def actor_for():
    """Fixture turning a User row into the Actor the service expects"""
    from auth import Actor

    def _actor_for(user):
        return Actor(user_id=user.id, role=user.role)

    return _actor_for


@pytest.fixture
def service(db_session, clock):
    """Fixture providing a TimeTrackingService on the test session"""
    from services.time_tracking import TimeTrackingService
    return TimeTrackingService(db_session, week_start='sunday', default_timezone='UTC', clock=clock)


@pytest.fixture
def login(client):
    """Fixture storing a user's identity in the test client's session"""
    def _login(user):
        with client.session_transaction() as sess:
            sess['user_id'] = user.id
            sess['user_role'] = user.role
    return _login
