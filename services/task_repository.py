"""
Task Repository - Read-only task lookup for the time-tracking service.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from sqlalchemy.orm import Session

from database.models import Task

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TaskRef:
    """The slice of a task the time-tracking rules depend on."""
    task_id: str
    assignee_user_id: str
    project_id: Optional[str]
    title: str
    status: str
    due_date: Optional[datetime]


class TaskRepository:
    """Repository for task lookups."""

    def __init__(self, session: Session):
        self.session = session

    def get_task_ref(self, task_id: str) -> Optional[TaskRef]:
        """Get the assignee/project view of a task, or None if it does not exist."""
        task = self.session.query(Task).filter(Task.id == task_id).first()
        if not task:
            return None
        return TaskRef(
            task_id=task.id,
            assignee_user_id=task.assignee_id,
            project_id=task.project_id,
            title=task.title,
            status=task.status,
            due_date=task.due_date,
        )
