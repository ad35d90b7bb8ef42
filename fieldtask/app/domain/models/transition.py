from datetime import datetime

from pydantic import BaseModel, Field

from fieldtask.app.domain.models.task_status import TaskStatus


class TaskTransition(BaseModel):
    """A planned status change, applied with a conditional update on ``from_status``."""

    task_id: str
    from_status: TaskStatus
    to_status: TaskStatus
    occurred_at: datetime
    scheduled_at: datetime | None = Field(default=None, description="Set when not None.")
    started_at: datetime | None = Field(default=None, description="Set when not None.")
    completed_at: datetime | None = Field(default=None, description="Set when not None.")
    suspended_from_status: TaskStatus | None = Field(
        default=None, description="Always written; None clears the remembered state."
    )
    require_assignees: bool = Field(
        default=False, description="Refuse when the task has no assignees at commit time."
    )
    assignee_id: str | None = Field(
        default=None, description="Refuse unless this user is assigned at commit time."
    )
    checked_in_by: str | None = Field(
        default=None, description="Refuse unless this user has checked in to the task."
    )
