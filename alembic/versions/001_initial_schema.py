"""Initial database schema

Revision ID: 001
Revises: 
Create Date: 2026-10-19

Creates users, projects, tasks, timers and event_log, including the partial
unique index that allows one running timer per user.
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Users table
    op.create_table('users',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(100), nullable=False),
        sa.Column('display_name', sa.String(255)),
        sa.Column('role', sa.String(20), nullable=False, server_default='PROFESSIONAL'),
        sa.Column('password_hash', sa.String(255)),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true()),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sa.UniqueConstraint('username')
    )
    op.create_index('ix_users_role', 'users', ['role'])

    # Projects table
    op.create_table('projects',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('client_id', sa.String(36)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['client_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )

    # Tasks table
    op.create_table('tasks',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING'),
        sa.Column('priority', sa.String(20), server_default='MEDIUM'),
        sa.Column('due_date', sa.DateTime()),
        sa.Column('assignee_id', sa.String(36), nullable=False),
        sa.Column('created_by_id', sa.String(36)),
        sa.Column('project_id', sa.String(36)),
        sa.Column('created_at', sa.DateTime()),
        sa.Column('updated_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['assignee_id'], ['users.id']),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id']),
        sa.ForeignKeyConstraint(['project_id'], ['projects.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_tasks_assignee', 'tasks', ['assignee_id'])
    op.create_index('ix_tasks_project', 'tasks', ['project_id'])
    op.create_index('ix_tasks_status', 'tasks', ['status'])

    # Timers table
    op.create_table('timers',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('task_id', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('started_by_id', sa.String(36)),
        sa.Column('start_time', sa.DateTime(), nullable=False),
        sa.Column('end_time', sa.DateTime()),
        sa.Column('duration', sa.Integer()),
        sa.Column('needs_review', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime()),
        sa.ForeignKeyConstraint(['task_id'], ['tasks.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['started_by_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_timers_task_start', 'timers', ['task_id', 'start_time'])
    op.create_index('ix_timers_user', 'timers', ['user_id'])
    op.create_index(
        'uq_timers_one_active_per_user', 'timers', ['user_id'],
        unique=True,
        postgresql_where=sa.text('end_time IS NULL'),
        sqlite_where=sa.text('end_time IS NULL'),
    )

    # Event log table
    op.create_table('event_log',
        sa.Column('id', sa.String(36), nullable=False),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.Column('actor_type', sa.String(50)),
        sa.Column('actor_id', sa.String(36)),
        sa.Column('entity_type', sa.String(50), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('event_type', sa.String(100), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('extra_data', sa.JSON()),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_event_log_entity', 'event_log', ['entity_type', 'entity_id'])
    op.create_index('ix_event_log_timestamp', 'event_log', ['timestamp'])
    op.create_index('ix_event_log_event_type', 'event_log', ['event_type'])


def downgrade() -> None:
    op.drop_table('event_log')
    op.drop_index('uq_timers_one_active_per_user', table_name='timers')
    op.drop_table('timers')
    op.drop_table('tasks')
    op.drop_table('projects')
    op.drop_table('users')
