"""
Services package for AgencyOS.
Contains repository classes for database access.
"""

from services.task_repository import TaskRepository, TaskRef
from services.timer_repository import TimerRepository

__all__ = [
    'TaskRepository',
    'TaskRef',
    'TimerRepository'
]
