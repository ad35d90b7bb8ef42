import logging
from datetime import UTC, datetime

import inject

from fieldtask.app.application.access import forbidden
from fieldtask.app.domain.exceptions import TaskValidationError
from fieldtask.app.domain.models import Activity, ActivityAction, Actor, Task, task_topic
from fieldtask.app.domain.repositories import ActivityRepository, TaskRepository

logger = logging.getLogger(__name__)

_TASK_TOPIC_PREFIX = "TASK_"
COMMENT_MAX_LENGTH = 5000


class ActivityService:
    """Read access to the audit trail, and task comments."""

    def __init__(
        self,
        activities: ActivityRepository | None = None,
        tasks: TaskRepository | None = None,
    ) -> None:
        self._activities = activities or inject.instance(ActivityRepository)
        self._tasks = tasks or inject.instance(TaskRepository)

    async def list_activities(
        self,
        actor: Actor,
        *,
        topic: str | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> list[Activity]:
        """Admins read every topic; workers only the topics of tasks assigned to them."""
        if not actor.is_admin:
            if topic is None or not topic.startswith(_TASK_TOPIC_PREFIX):
                raise forbidden(actor, "Only administrators can read this feed.")
            await self._assigned_task(topic[len(_TASK_TOPIC_PREFIX):], actor)
        return await self._activities.list_activities(topic=topic, limit=limit, cursor=cursor)

    async def add_comment(self, task_id: str, actor: Actor, comment: str) -> Activity:
        """Record a ``TASK_COMMENTED`` activity on the task topic."""
        comment = comment.strip()
        if not comment:
            raise TaskValidationError("Comment must not be empty.")
        if len(comment) > COMMENT_MAX_LENGTH:
            raise TaskValidationError(f"Comment must be at most {COMMENT_MAX_LENGTH} characters.")

        if actor.is_admin:
            await self._tasks.get_task(task_id)
        else:
            await self._assigned_task(task_id, actor)

        activity = await self._activities.append(
            Activity(
                user_id=actor.user_id,
                topic=task_topic(task_id),
                action=ActivityAction.TASK_COMMENTED,
                payload={"comment": comment},
                created_at=datetime.now(UTC),
            )
        )
        logger.info("Task comment added", extra={"task_id": task_id, "user_id": actor.user_id})
        return activity

    async def _assigned_task(self, task_id: str, actor: Actor) -> Task:
        task = await self._tasks.get_task(task_id)
        if not task.is_assigned(actor.user_id):
            raise forbidden(actor, "You are not assigned to this task.")
        return task
