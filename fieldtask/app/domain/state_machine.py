"""Pure transition planning for the task lifecycle.

Each ``plan_*`` function validates an edge against the task's current status and
returns a ``TaskTransition``; persisting it is the repository's job.
"""

from __future__ import annotations

from datetime import datetime

from fieldtask.app.domain.exceptions import InvalidTransitionError, TaskValidationError
from fieldtask.app.domain.models.check_event import CheckDirection
from fieldtask.app.domain.models.task import Task
from fieldtask.app.domain.models.task_status import TaskStatus
from fieldtask.app.domain.models.transition import TaskTransition

ALLOWED_TRANSITIONS: dict[TaskStatus, set[TaskStatus]] = {
    TaskStatus.PREPARING: {TaskStatus.READY, TaskStatus.ON_HOLD},
    TaskStatus.READY: {TaskStatus.IN_PROGRESS, TaskStatus.ON_HOLD},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED, TaskStatus.ON_HOLD},
    # Resume goes back to the remembered status only.
    TaskStatus.ON_HOLD: {TaskStatus.PREPARING, TaskStatus.READY, TaskStatus.IN_PROGRESS},
    TaskStatus.COMPLETED: set(),
}

_CHECK_EDGES: dict[CheckDirection, tuple[TaskStatus, TaskStatus]] = {
    CheckDirection.CHECK_IN: (TaskStatus.READY, TaskStatus.IN_PROGRESS),
    CheckDirection.CHECK_OUT: (TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED),
}


def _task_id(task: Task) -> str:
    if task.id is None:
        raise ValueError("Task id is required to plan a transition.")
    return task.id


def ensure_transition_allowed(task: Task, requested: TaskStatus) -> None:
    if requested not in ALLOWED_TRANSITIONS[task.status]:
        raise InvalidTransitionError(_task_id(task), task.status, requested)


def check_edge(direction: CheckDirection) -> tuple[TaskStatus, TaskStatus]:
    """Return the (required, target) statuses for a check event."""
    return _CHECK_EDGES[direction]


def plan_schedule(
    task: Task, *, now: datetime, require_expected_revenue: bool = False
) -> TaskTransition:
    """PREPARING -> READY."""
    task_id = _task_id(task)
    if task.status is not TaskStatus.PREPARING:
        raise InvalidTransitionError(task_id, task.status, TaskStatus.READY)
    if not task.assignee_ids:
        raise TaskValidationError("A task needs at least one assignee before it can be scheduled.")
    if require_expected_revenue and task.expected_revenue is None:
        raise TaskValidationError("Expected revenue must be set before the task can be scheduled.")
    return TaskTransition(
        task_id=task_id,
        from_status=TaskStatus.PREPARING,
        to_status=TaskStatus.READY,
        occurred_at=now,
        scheduled_at=now,
        require_assignees=True,
    )


def plan_check_event(
    task: Task,
    direction: CheckDirection,
    *,
    now: datetime,
    acting_user_id: str | None = None,
    is_demo: bool = False,
) -> TaskTransition:
    """READY -> IN_PROGRESS on check-in, IN_PROGRESS -> COMPLETED on check-out.

    With ``acting_user_id`` the transition also carries the commit-time guards: the
    user must still be assigned (demo accounts excepted) and, for check-out, must
    have checked in to the task.
    """
    task_id = _task_id(task)
    required, target = check_edge(direction)
    if task.status is not required:
        raise InvalidTransitionError(task_id, task.status, target)

    transition = TaskTransition(
        task_id=task_id,
        from_status=required,
        to_status=target,
        occurred_at=now,
    )
    if direction is CheckDirection.CHECK_IN:
        transition.started_at = now
    else:
        started = task.started_at
        transition.completed_at = now if started is None or now >= started else started

    if acting_user_id is not None:
        transition.assignee_id = None if is_demo else acting_user_id
        if direction is CheckDirection.CHECK_OUT:
            transition.checked_in_by = acting_user_id
    return transition


def plan_hold(task: Task, *, now: datetime) -> TaskTransition:
    """Suspend a PREPARING, READY or IN_PROGRESS task.

    A task already ON_HOLD cannot be held again, so the remembered status is always
    a working status. Each hold/resume cycle overwrites it.
    """
    task_id = _task_id(task)
    # Repeated holds are refused rather than "last suspension wins"; see DESIGN.md.
    ensure_transition_allowed(task, TaskStatus.ON_HOLD)
    return TaskTransition(
        task_id=task_id,
        from_status=task.status,
        to_status=TaskStatus.ON_HOLD,
        occurred_at=now,
        suspended_from_status=task.status,
    )


def plan_resume(task: Task, *, now: datetime) -> TaskTransition:
    """ON_HOLD -> the status the task was suspended from."""
    task_id = _task_id(task)
    target = task.suspended_from_status or TaskStatus.PREPARING
    if task.status is not TaskStatus.ON_HOLD:
        raise InvalidTransitionError(task_id, task.status, target)
    ensure_transition_allowed(task, target)
    return TaskTransition(
        task_id=task_id,
        from_status=TaskStatus.ON_HOLD,
        to_status=target,
        occurred_at=now,
    )
