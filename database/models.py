"""
SQLAlchemy models for AgencyOS.
Defines the tables the time-tracking subsystem reads and writes: users,
projects, tasks, timers and the audit event log.

All timestamps are stored as naive UTC.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, Integer, Boolean, DateTime, ForeignKey, JSON, Index, text
)
from sqlalchemy.orm import relationship
from database.connection import Base


# Roles, in descending order of privilege
ROLE_SUPER_ADMIN = 'SUPER_ADMIN'
ROLE_MANAGER = 'MANAGER'
ROLE_PROFESSIONAL = 'PROFESSIONAL'
ROLE_CLIENT = 'CLIENT'
ROLES = (ROLE_SUPER_ADMIN, ROLE_MANAGER, ROLE_PROFESSIONAL, ROLE_CLIENT)

TASK_STATUSES = ('PENDING', 'IN_PROGRESS', 'COMPLETED', 'ON_HOLD', 'CANCELLED')
TASK_PRIORITIES = ('LOW', 'MEDIUM', 'HIGH', 'URGENT')

# Partial unique index allowing one running timer per owner
ACTIVE_TIMER_INDEX = 'uq_timers_one_active_per_user'


def generate_uuid():
    """Generate a new UUID."""
    return str(uuid.uuid4())


def utcnow():
    """Current time as naive UTC, the storage convention for every column."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value):
    """Serialize a stored naive-UTC datetime for the API."""
    return value.isoformat() + 'Z' if value else None


# =============================================================================
# USERS
# =============================================================================

class User(Base):
    """Application users. Credentials are owned by the external identity provider."""
    __tablename__ = 'users'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, nullable=False)
    username = Column(String(100), unique=True, nullable=False)
    display_name = Column(String(255))
    role = Column(String(20), nullable=False, default=ROLE_PROFESSIONAL)
    password_hash = Column(String(255))
    is_active = Column(Boolean, default=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    assigned_tasks = relationship("Task", back_populates="assignee", foreign_keys="Task.assignee_id")

    __table_args__ = (
        Index('ix_users_role', 'role'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'email': self.email,
            'username': self.username,
            'displayName': self.display_name,
            'role': self.role,
            'isActive': self.is_active,
            'createdAt': isoformat(self.created_at),
        }


# =============================================================================
# PROJECTS
# =============================================================================

class Project(Base):
    """Projects group tasks and may belong to a client user."""
    __tablename__ = 'projects'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    client_id = Column(String(36), ForeignKey('users.id'))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tasks = relationship("Task", back_populates="project")

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'description': self.description,
            'clientId': self.client_id,
            'createdAt': isoformat(self.created_at),
        }


# =============================================================================
# TASKS
# =============================================================================

class Task(Base):
    """A unit of work assigned to exactly one user."""
    __tablename__ = 'tasks'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    title = Column(String(200), nullable=False)
    description = Column(Text)
    status = Column(String(20), nullable=False, default='PENDING')
    priority = Column(String(20), default='MEDIUM')
    due_date = Column(DateTime)
    assignee_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    created_by_id = Column(String(36), ForeignKey('users.id'))
    project_id = Column(String(36), ForeignKey('projects.id'))
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    assignee = relationship("User", back_populates="assigned_tasks", foreign_keys=[assignee_id])
    created_by = relationship("User", foreign_keys=[created_by_id])
    project = relationship("Project", back_populates="tasks")
    timers = relationship("Timer", back_populates="task", cascade="all, delete-orphan")

    __table_args__ = (
        Index('ix_tasks_assignee', 'assignee_id'),
        Index('ix_tasks_project', 'project_id'),
        Index('ix_tasks_status', 'status'),
    )

    def to_dict(self):
        return {
            'taskId': self.id,
            'title': self.title,
            'description': self.description,
            'status': self.status,
            'priority': self.priority,
            'dueDate': isoformat(self.due_date),
            'assigneeId': self.assignee_id,
            'createdById': self.created_by_id,
            'projectId': self.project_id,
            'createdAt': isoformat(self.created_at),
        }


# =============================================================================
# TIMERS
# =============================================================================

class Timer(Base):
    """
    One tracked work session against a task.

    A timer with no end_time is active. The partial unique index below allows
    at most one active timer per owning user; duration is written once, when
    the timer is stopped.
    """
    __tablename__ = 'timers'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    task_id = Column(String(36), ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False)
    user_id = Column(String(36), ForeignKey('users.id'), nullable=False)
    started_by_id = Column(String(36), ForeignKey('users.id'))
    start_time = Column(DateTime, nullable=False, default=utcnow)
    end_time = Column(DateTime)
    duration = Column(Integer)  # seconds
    needs_review = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    task = relationship("Task", back_populates="timers")
    user = relationship("User", foreign_keys=[user_id])

    __table_args__ = (
        Index('ix_timers_task_start', 'task_id', 'start_time'),
        Index('ix_timers_user', 'user_id'),
        Index(
            ACTIVE_TIMER_INDEX, 'user_id',
            unique=True,
            postgresql_where=text('end_time IS NULL'),
            sqlite_where=text('end_time IS NULL'),
        ),
    )

    @property
    def is_active(self):
        return self.end_time is None

    def to_dict(self, include_task=True):
        data = {
            'id': self.id,
            'taskId': self.task_id,
            'userId': self.user_id,
            'startedById': self.started_by_id,
            'startTime': isoformat(self.start_time),
            'endTime': isoformat(self.end_time),
            'duration': self.duration,
            'needsReview': bool(self.needs_review),
        }
        if include_task and self.task is not None:
            data['task'] = {'taskId': self.task.id, 'title': self.task.title}
        return data


# =============================================================================
# EVENT LOG
# =============================================================================

class EventLog(Base):
    """Audit trail of timer activity."""
    __tablename__ = 'event_log'

    id = Column(String(36), primary_key=True, default=generate_uuid)
    timestamp = Column(DateTime, default=utcnow, nullable=False)
    actor_type = Column(String(50))  # user, system
    actor_id = Column(String(36))
    entity_type = Column(String(50), nullable=False)  # timer, task
    entity_id = Column(String(36), nullable=False)
    event_type = Column(String(100), nullable=False)  # TIMER_STARTED, TIMER_STOPPED, etc.
    description = Column(Text)
    extra_data = Column(JSON, default=dict)

    __table_args__ = (
        Index('ix_event_log_entity', 'entity_type', 'entity_id'),
        Index('ix_event_log_timestamp', 'timestamp'),
        Index('ix_event_log_event_type', 'event_type'),
    )

    def to_dict(self):
        return {
            'id': self.id,
            'timestamp': isoformat(self.timestamp),
            'actor_type': self.actor_type,
            'actor_id': self.actor_id,
            'entity_type': self.entity_type,
            'entity_id': self.entity_id,
            'event_type': self.event_type,
            'description': self.description,
            'metadata': self.extra_data or {}
        }
