import logging
from collections.abc import Callable
from datetime import UTC, datetime
from uuid import uuid4

import inject

from fieldtask.app.application.access import forbidden, require_admin
from fieldtask.app.domain.exceptions import TaskValidationError
from fieldtask.app.domain.models import (
    Activity,
    ActivityAction,
    Actor,
    Customer,
    ExpectedRevenue,
    GeoLocation,
    Payment,
    PaymentSummary,
    Task,
    TaskPayments,
    TaskStatus,
    TaskTransition,
    task_topic,
)
from fieldtask.app.domain.models.task import DEFAULT_CURRENCY, MAX_VND_AMOUNT
from fieldtask.app.domain.repositories import TaskRepository
from fieldtask.app.domain.state_machine import plan_hold, plan_resume, plan_schedule
from fieldtask.setup.verification_config import get_verification_settings

logger = logging.getLogger(__name__)

EDIT_REASON_MIN_LENGTH = 10


class TaskService:
    """Admin task management and read access for assigned workers."""

    def __init__(
        self,
        tasks: TaskRepository | None = None,
        *,
        require_expected_revenue: bool | None = None,
    ) -> None:
        self._tasks = tasks or inject.instance(TaskRepository)
        if require_expected_revenue is None:
            require_expected_revenue = get_verification_settings().REQUIRE_EXPECTED_REVENUE
        self._require_expected_revenue = require_expected_revenue

    async def create_task(
        self,
        actor: Actor,
        *,
        title: str,
        description: str | None = None,
        customer: Customer | None = None,
        location: GeoLocation | None = None,
        assignee_ids: list[str] | None = None,
        expected_revenue: int | None = None,
    ) -> Task:
        """Create a PREPARING task and record ``TASK_CREATED``."""
        require_admin(actor)
        now = datetime.now(UTC)
        task = Task(
            id=uuid4().hex,
            title=title,
            description=description,
            customer=customer,
            location=location,
            assignee_ids=list(dict.fromkeys(assignee_ids or [])),
            expected_revenue=self._revenue(expected_revenue),
            created_at=now,
            updated_at=now,
        )
        activity = Activity(
            user_id=actor.user_id,
            topic=task_topic(task.id),
            action=ActivityAction.TASK_CREATED,
            payload={
                "title": task.title,
                "assigneeIds": task.assignee_ids,
                "expectedRevenue": expected_revenue,
                "hasLocation": location is not None,
            },
            created_at=now,
        )
        created = await self._tasks.create_task(task, activity)
        logger.info("Task created", extra={"task_id": created.id, "user_id": actor.user_id})
        return created

    async def get_task(self, task_id: str, actor: Actor) -> Task:
        task = await self._tasks.get_task(task_id)
        if not actor.is_admin and not task.is_assigned(actor.user_id):
            raise forbidden(actor, "You are not assigned to this task.")
        return task

    async def list_tasks(
        self,
        actor: Actor,
        *,
        status: TaskStatus | None = None,
        assignee_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Task]:
        """Admins may filter by any assignee; workers only ever see their own tasks."""
        if not actor.is_admin:
            if assignee_id is not None and assignee_id != actor.user_id:
                raise forbidden(actor, "Workers can only list their own tasks.")
            assignee_id = actor.user_id
        return await self._tasks.list_tasks(
            status=status, assignee_id=assignee_id, limit=limit, offset=offset
        )

    async def update_assignees(self, task_id: str, assignee_ids: list[str], actor: Actor) -> Task:
        require_admin(actor)
        assignee_ids = list(dict.fromkeys(assignee_ids))
        # Status rules on the new list are enforced by the repository at write time.
        task = await self._tasks.get_task(task_id)
        activity = Activity(
            user_id=actor.user_id,
            topic=task_topic(task_id),
            action=ActivityAction.TASK_ASSIGNEES_UPDATED,
            payload={
                "previousAssigneeIds": task.assignee_ids,
                "assigneeIds": assignee_ids,
            },
            created_at=datetime.now(UTC),
        )
        return await self._tasks.update_assignees(task_id, assignee_ids, activity)

    async def set_expected_revenue(self, task_id: str, amount: int | None, actor: Actor) -> Task:
        require_admin(actor)
        revenue = self._revenue(amount)
        task = await self._tasks.get_task(task_id)
        if task.status is TaskStatus.COMPLETED:
            raise TaskValidationError("Expected revenue of a completed task cannot be changed.")
        previous = task.expected_revenue
        activity = Activity(
            user_id=actor.user_id,
            topic=task_topic(task_id),
            action=ActivityAction.TASK_EXPECTED_REVENUE_UPDATED,
            payload={
                "oldAmount": previous.amount if previous else None,
                "newAmount": revenue.amount if revenue else None,
                "currency": DEFAULT_CURRENCY,
            },
            created_at=datetime.now(UTC),
        )
        return await self._tasks.set_expected_revenue(task_id, revenue, activity)

    async def schedule_task(self, task_id: str, actor: Actor) -> Task:
        """PREPARING -> READY."""
        require_admin(actor)
        task = await self._tasks.get_task(task_id)
        transition = plan_schedule(
            task,
            now=datetime.now(UTC),
            require_expected_revenue=self._require_expected_revenue,
        )
        return await self._apply(transition, actor)

    async def hold_task(self, task_id: str, actor: Actor) -> Task:
        require_admin(actor)
        task = await self._tasks.get_task(task_id)
        return await self._apply(plan_hold(task, now=datetime.now(UTC)), actor)

    async def resume_task(self, task_id: str, actor: Actor) -> Task:
        require_admin(actor)
        task = await self._tasks.get_task(task_id)
        return await self._apply(plan_resume(task, now=datetime.now(UTC)), actor)

    async def get_task_payments(self, task_id: str, actor: Actor) -> TaskPayments:
        task = await self.get_task(task_id, actor)
        payments = await self._tasks.list_payments(task_id)
        summary = PaymentSummary(
            expected_revenue=task.expected_revenue.amount if task.expected_revenue else None,
            total_collected=sum(payment.amount for payment in payments),
            has_payment=bool(payments),
        )
        return TaskPayments(payments=payments, summary=summary)

    async def update_payment(
        self,
        payment_id: str,
        actor: Actor,
        *,
        edit_reason: str,
        amount: int | None = None,
        notes: str | None = None,
    ) -> Payment:
        """Admin correction of a collected payment, audited as ``PAYMENT_UPDATED``."""
        require_admin(actor)
        edit_reason = edit_reason.strip()
        if len(edit_reason) < EDIT_REASON_MIN_LENGTH:
            raise TaskValidationError(
                f"Edit reason must be at least {EDIT_REASON_MIN_LENGTH} characters."
            )
        if amount is None and notes is None:
            raise TaskValidationError("Nothing to update: provide an amount or notes.")
        if amount is not None and not 0 < amount <= MAX_VND_AMOUNT:
            raise TaskValidationError(
                f"Payment amount must be between 1 and {MAX_VND_AMOUNT:,} VND."
            )

        payment = await self._tasks.update_payment(
            payment_id,
            amount=amount,
            notes=notes,
            audit=self._payment_audit(actor, edit_reason, amount, notes),
        )
        logger.info(
            "Payment updated",
            extra={"payment_id": payment_id, "task_id": payment.task_id, "user_id": actor.user_id},
        )
        return payment

    @staticmethod
    def _payment_audit(
        actor: Actor, edit_reason: str, amount: int | None, notes: str | None
    ) -> Callable[[Payment, Payment], Activity]:
        def build(before: Payment, after: Payment) -> Activity:
            changes: dict[str, dict[str, object]] = {}
            if amount is not None:
                changes["amount"] = {"old": before.amount, "new": after.amount}
            if notes is not None:
                changes["notes"] = {"old": before.notes, "new": after.notes}
            return Activity(
                user_id=actor.user_id,
                topic=task_topic(before.task_id),
                action=ActivityAction.PAYMENT_UPDATED,
                payload={
                    "paymentId": before.id,
                    "editReason": edit_reason,
                    "changes": changes,
                },
                created_at=datetime.now(UTC),
            )

        return build

    async def _apply(self, transition: TaskTransition, actor: Actor) -> Task:
        activity = Activity(
            user_id=actor.user_id,
            topic=task_topic(transition.task_id),
            action=ActivityAction.TASK_STATUS_UPDATED,
            payload={
                "fromStatus": transition.from_status.value,
                "toStatus": transition.to_status.value,
            },
            created_at=transition.occurred_at,
        )
        task = await self._tasks.apply_transition(transition, [activity])
        logger.info(
            "Task status updated",
            extra={
                "task_id": transition.task_id,
                "from_status": transition.from_status.value,
                "to_status": transition.to_status.value,
                "user_id": actor.user_id,
            },
        )
        return task

    @staticmethod
    def _revenue(amount: int | None) -> ExpectedRevenue | None:
        if amount is None:
            return None
        if amount <= 0 or amount > MAX_VND_AMOUNT:
            raise TaskValidationError(
                f"Expected revenue must be between 1 and {MAX_VND_AMOUNT:,} VND."
            )
        return ExpectedRevenue(amount=amount)
