from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Protocol

from fieldtask.app.domain.models.activity import Activity
from fieldtask.app.domain.models.payment import Payment
from fieldtask.app.domain.models.task import ExpectedRevenue, Task
from fieldtask.app.domain.models.task_status import TaskStatus
from fieldtask.app.domain.models.transition import TaskTransition
from fieldtask.app.domain.models.user import UserRecord


class TaskRepository(Protocol):
    """Repository contract for tasks and the audit/payment rows written with them.

    Every mutating method persists its activities in the same transaction as the
    task change, so either both are stored or neither is.
    """

    async def create_task(self, task: Task, activity: Activity) -> Task:
        """Persist a new task together with its creation activity."""

    async def get_task(self, task_id: str) -> Task:
        """Return the task or raise ``TaskNotFoundError``."""

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        assignee_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks, newest first."""

    async def update_assignees(
        self, task_id: str, assignee_ids: list[str], activity: Activity
    ) -> Task:
        """Replace the assignee list.

        Raises ``TaskValidationError`` when the task is COMPLETED, or when an empty
        list is given for a task that has left PREPARING.
        """

    async def set_expected_revenue(
        self, task_id: str, revenue: ExpectedRevenue | None, activity: Activity
    ) -> Task:
        """Set or clear the expected revenue."""

    async def apply_transition(
        self,
        transition: TaskTransition,
        activities: Sequence[Activity],
        payment: Payment | None = None,
    ) -> Task:
        """Apply ``transition`` only if the task is still in ``from_status``.

        Raises ``InvalidTransitionError`` when the guard fails and
        ``TaskNotFoundError`` when the task is gone. The assignee and check-in
        guards carried by the transition are evaluated in the same transaction.
        """

    async def has_checked_in(self, task_id: str, user_id: str) -> bool:
        """Whether ``user_id`` has a recorded check-in on the task."""

    async def list_payments(self, task_id: str) -> list[Payment]:
        """Return payments for a task, newest first."""

    async def update_payment(
        self,
        payment_id: str,
        *,
        amount: int | None = None,
        notes: str | None = None,
        audit: Callable[[Payment, Payment], Activity],
    ) -> Payment:
        """Correct a payment; ``None`` leaves a field unchanged.

        ``audit`` builds the activity from the payment before and after the change;
        it is stored in the same transaction. Raises ``PaymentNotFoundError``.
        """


class ActivityRepository(Protocol):
    """Append-only store for audit records."""

    async def append(self, activity: Activity) -> Activity:
        """Insert a new activity and return it with id and timestamp."""

    async def list_activities(
        self,
        *,
        topic: str | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> list[Activity]:
        """List activities newest first, starting after the activity id ``cursor``."""


class IdentityProvider(Protocol):
    """External identity store; the only source of truth for user accounts."""

    async def get_user(self, user_id: str) -> UserRecord:
        """Return the user or raise ``UserNotFoundError``."""

    async def delete_user(self, user_id: str) -> None:
        """Delete the user and revoke its sessions.

        Raises ``UserNotFoundError`` when the user is already gone and
        ``IdentityProviderError`` for any other failure.
        """
