from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import and_, delete, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from fieldtask.app.domain.exceptions import (
    CheckInRequiredError,
    InvalidTransitionError,
    PaymentNotFoundError,
    TaskNotFoundError,
    TaskValidationError,
    UnauthorizedError,
)
from fieldtask.app.domain.models.activity import Activity, ActivityAction, task_topic
from fieldtask.app.domain.models.customer import Customer
from fieldtask.app.domain.models.geo_location import GeoLocation
from fieldtask.app.domain.models.payment import Payment
from fieldtask.app.domain.models.task import DEFAULT_CURRENCY, ExpectedRevenue, Task
from fieldtask.app.domain.models.task_status import TaskStatus
from fieldtask.app.domain.models.transition import TaskTransition
from fieldtask.app.domain.repositories import ActivityRepository, TaskRepository
from fieldtask.app.infrastructure.postgres.mappers import OrmMapper
from fieldtask.app.infrastructure.postgres.orm import (
    ActivityRow,
    CustomerRow,
    GeoLocationRow,
    PaymentRow,
    PostgresOrm,
    TaskAssigneeRow,
    TaskRow,
)

_TASK_LOAD_OPTIONS = (
    selectinload(TaskRow.customer),
    selectinload(TaskRow.location),
    selectinload(TaskRow.assignees),
)


class PostgresTaskRepository(TaskRepository):
    """Task store backed by SQLAlchemy async sessions.

    Mutations run in a single ``session.begin()`` block so the task change and its
    activity rows commit or roll back together.
    """

    def __init__(self, orm: PostgresOrm) -> None:
        self._orm = orm

    async def create_task(self, task: Task, activity: Activity) -> Task:
        """Persist a new task, its customer and location, and the creation activity."""
        if task.id is None:
            task.id = uuid4().hex
        now = task.created_at or datetime.now(UTC)
        task.created_at = now

        async with self._orm.session_factory() as session:
            async with session.begin():
                task_row = OrmMapper.to_task_row(task)
                task_row.customer = await self._resolve_customer(session, task.customer, now)
                task_row.location = await self._resolve_location(session, task.location, now)
                session.add(task_row)
                session.add(OrmMapper.to_activity_row(activity))
        return OrmMapper.to_domain_task(task_row)

    async def get_task(self, task_id: str) -> Task:
        async with self._orm.session_factory() as session:
            task_row = await self._load_task(session, task_id)
        if task_row is None:
            raise TaskNotFoundError(task_id)
        return OrmMapper.to_domain_task(task_row)

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        assignee_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Task]:
        """List tasks newest first with optional status and assignee filters."""
        statement = select(TaskRow).options(*_TASK_LOAD_OPTIONS)
        if status is not None:
            statement = statement.where(TaskRow.status == status)
        if assignee_id is not None:
            assigned = select(TaskAssigneeRow.task_id).where(
                TaskAssigneeRow.user_id == assignee_id
            )
            statement = statement.where(TaskRow.id.in_(assigned))

        statement = (
            statement.order_by(TaskRow.created_at.desc(), TaskRow.id.desc())
            .limit(limit)
            .offset(offset)
        )

        async with self._orm.session_factory() as session:
            result = await session.execute(statement)
            rows = result.scalars().all()

        return [OrmMapper.to_domain_task(row) for row in rows]

    async def update_assignees(
        self, task_id: str, assignee_ids: list[str], activity: Activity
    ) -> Task:
        """Replace the assignee list of a task.

        The task row is updated first, guarded on its status, so a concurrent
        schedule or check-in either sees the old list or waits for the new one.
        """
        now = activity.created_at or datetime.now(UTC)
        async with self._orm.session_factory() as session:
            async with session.begin():
                await self._lock_for_assignees(session, task_id, bool(assignee_ids), now)
                await session.execute(
                    delete(TaskAssigneeRow).where(TaskAssigneeRow.task_id == task_id)
                )
                session.add_all(OrmMapper.to_assignee_rows(task_id, assignee_ids))
                session.add(OrmMapper.to_activity_row(activity))
                await session.flush()
                task_row = await self._load_task(session, task_id, refresh=True)
        return OrmMapper.to_domain_task(task_row)

    async def set_expected_revenue(
        self, task_id: str, revenue: ExpectedRevenue | None, activity: Activity
    ) -> Task:
        now = activity.created_at or datetime.now(UTC)
        values = {
            "expected_revenue": revenue.amount if revenue else None,
            "expected_currency": revenue.currency if revenue else DEFAULT_CURRENCY,
            "updated_at": now,
        }
        async with self._orm.session_factory() as session:
            async with session.begin():
                await self._touch(session, task_id, values)
                session.add(OrmMapper.to_activity_row(activity))
                await session.flush()
                task_row = await self._load_task(session, task_id, refresh=True)
        return OrmMapper.to_domain_task(task_row)

    async def apply_transition(
        self,
        transition: TaskTransition,
        activities: Sequence[Activity],
        payment: Payment | None = None,
    ) -> Task:
        """Apply a status change guarded by ``status = from_status``.

        The guarded UPDATE is the first statement of the transaction, so concurrent
        callers racing on the same edge serialize on the row and only one matches.
        """
        values: dict[str, object] = {
            "status": transition.to_status,
            "suspended_from_status": transition.suspended_from_status,
            "updated_at": transition.occurred_at,
        }
        for field in ("scheduled_at", "started_at", "completed_at"):
            value = getattr(transition, field)
            if value is not None:
                values[field] = value

        async with self._orm.session_factory() as session:
            async with session.begin():
                result = await session.execute(
                    update(TaskRow)
                    .where(
                        TaskRow.id == transition.task_id,
                        TaskRow.status == transition.from_status,
                    )
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    current = await session.scalar(
                        select(TaskRow.status).where(TaskRow.id == transition.task_id)
                    )
                    if current is None:
                        raise TaskNotFoundError(transition.task_id)
                    raise InvalidTransitionError(
                        transition.task_id, current, transition.to_status
                    )
                await self._check_transition_guards(session, transition)

                for activity in activities:
                    session.add(OrmMapper.to_activity_row(activity))
                if payment is not None:
                    session.add(OrmMapper.to_payment_row(payment))
                await session.flush()
                task_row = await self._load_task(session, transition.task_id, refresh=True)
        return OrmMapper.to_domain_task(task_row)

    async def list_payments(self, task_id: str) -> list[Payment]:
        statement = (
            select(PaymentRow)
            .where(PaymentRow.task_id == task_id)
            .order_by(PaymentRow.collected_at.desc(), PaymentRow.id.desc())
        )
        async with self._orm.session_factory() as session:
            result = await session.execute(statement)
            rows = result.scalars().all()
        return [OrmMapper.to_domain_payment(row) for row in rows]

    async def has_checked_in(self, task_id: str, user_id: str) -> bool:
        async with self._orm.session_factory() as session:
            return await self._has_checked_in(session, task_id, user_id)

    async def update_payment(
        self,
        payment_id: str,
        *,
        amount: int | None = None,
        notes: str | None = None,
        audit: Callable[[Payment, Payment], Activity],
    ) -> Payment:
        async with self._orm.session_factory() as session:
            async with session.begin():
                row = await session.scalar(
                    select(PaymentRow).where(PaymentRow.id == payment_id).with_for_update()
                )
                if row is None:
                    raise PaymentNotFoundError(payment_id)
                before = OrmMapper.to_domain_payment(row)
                if amount is not None:
                    row.amount = amount
                if notes is not None:
                    row.notes = notes
                after = OrmMapper.to_domain_payment(row)
                session.add(OrmMapper.to_activity_row(audit(before, after)))
        return after

    @staticmethod
    async def _load_task(
        session: AsyncSession, task_id: str, *, refresh: bool = False
    ) -> TaskRow | None:
        statement = select(TaskRow).options(*_TASK_LOAD_OPTIONS).where(TaskRow.id == task_id)
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        result = await session.execute(statement)
        return result.scalar_one_or_none()

    @staticmethod
    async def _lock_for_assignees(
        session: AsyncSession, task_id: str, has_assignees: bool, now: datetime
    ) -> None:
        statement = update(TaskRow).where(TaskRow.id == task_id)
        if has_assignees:
            statement = statement.where(TaskRow.status != TaskStatus.COMPLETED)
        else:
            statement = statement.where(TaskRow.status == TaskStatus.PREPARING)
        result = await session.execute(
            statement.values(updated_at=now).execution_options(synchronize_session=False)
        )
        if result.rowcount > 0:
            return
        current = await session.scalar(select(TaskRow.status).where(TaskRow.id == task_id))
        if current is None:
            raise TaskNotFoundError(task_id)
        if current is TaskStatus.COMPLETED:
            raise TaskValidationError("Assignees of a completed task cannot be changed.")
        raise TaskValidationError(
            "A task that has left PREPARING must keep at least one assignee."
        )

    @staticmethod
    async def _check_transition_guards(
        session: AsyncSession, transition: TaskTransition
    ) -> None:
        """Re-check assignment rules while holding the task row lock."""
        task_id = transition.task_id
        if transition.require_assignees or transition.assignee_id is not None:
            result = await session.scalars(
                select(TaskAssigneeRow.user_id).where(TaskAssigneeRow.task_id == task_id)
            )
            assignees = set(result.all())
            if transition.require_assignees and not assignees:
                raise TaskValidationError(
                    "A task needs at least one assignee before it can be scheduled."
                )
            if transition.assignee_id is not None and transition.assignee_id not in assignees:
                raise UnauthorizedError(
                    transition.assignee_id, "You are not assigned to this task."
                )
        if transition.checked_in_by is not None:
            checked_in = await PostgresTaskRepository._has_checked_in(
                session, task_id, transition.checked_in_by
            )
            if not checked_in:
                raise CheckInRequiredError(transition.checked_in_by, task_id)

    @staticmethod
    async def _has_checked_in(session: AsyncSession, task_id: str, user_id: str) -> bool:
        found = await session.scalar(
            select(ActivityRow.id)
            .where(
                ActivityRow.topic == task_topic(task_id),
                ActivityRow.action == ActivityAction.TASK_CHECKED_IN.value,
                ActivityRow.user_id == user_id,
            )
            .limit(1)
        )
        return found is not None

    @staticmethod
    async def _touch(session: AsyncSession, task_id: str, values: dict[str, object]) -> None:
        result = await session.execute(
            update(TaskRow)
            .where(TaskRow.id == task_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise TaskNotFoundError(task_id)

    @staticmethod
    async def _resolve_customer(
        session: AsyncSession, customer: Customer | None, now: datetime
    ) -> CustomerRow | None:
        if customer is None:
            return None
        if customer.id is not None:
            existing = await session.get(CustomerRow, customer.id)
            if existing is not None:
                return existing
        elif customer.name is not None or customer.phone is not None:
            # Same name and phone means the same customer.
            existing = await session.scalar(
                select(CustomerRow)
                .where(
                    CustomerRow.name.is_(None)
                    if customer.name is None
                    else CustomerRow.name == customer.name,
                    CustomerRow.phone.is_(None)
                    if customer.phone is None
                    else CustomerRow.phone == customer.phone,
                )
                .order_by(CustomerRow.created_at)
                .limit(1)
            )
            if existing is not None:
                return existing
        return OrmMapper.to_customer_row(customer, now)

    @staticmethod
    async def _resolve_location(
        session: AsyncSession, location: GeoLocation | None, now: datetime
    ) -> GeoLocationRow | None:
        if location is None:
            return None
        if location.id is not None:
            existing = await session.get(GeoLocationRow, location.id)
            if existing is not None:
                return existing
        return OrmMapper.to_location_row(location, now)


class PostgresActivityRepository(ActivityRepository):
    """Append-only activity store."""

    def __init__(self, orm: PostgresOrm) -> None:
        self._orm = orm

    async def append(self, activity: Activity) -> Activity:
        row = OrmMapper.to_activity_row(activity)
        async with self._orm.session_factory() as session:
            async with session.begin():
                session.add(row)
        return OrmMapper.to_domain_activity(row)

    async def list_activities(
        self,
        *,
        topic: str | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> list[Activity]:
        statement = select(ActivityRow)
        if topic is not None:
            statement = statement.where(ActivityRow.topic == topic)

        async with self._orm.session_factory() as session:
            if cursor is not None:
                anchor = await session.get(ActivityRow, cursor)
                if anchor is None:
                    raise TaskValidationError(f"Unknown activity cursor '{cursor}'.")
                statement = statement.where(
                    or_(
                        ActivityRow.created_at < anchor.created_at,
                        and_(
                            ActivityRow.created_at == anchor.created_at,
                            ActivityRow.id < anchor.id,
                        ),
                    )
                )
            statement = statement.order_by(
                ActivityRow.created_at.desc(), ActivityRow.id.desc()
            ).limit(limit)
            result = await session.execute(statement)
            rows = result.scalars().all()

        return [OrmMapper.to_domain_activity(row) for row in rows]
