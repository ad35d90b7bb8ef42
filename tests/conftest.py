from __future__ import annotations

import importlib
from collections.abc import Callable, Sequence
from datetime import UTC, datetime

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient

from fieldtask.app.domain.exceptions import (
    CheckInRequiredError,
    InvalidTransitionError,
    PaymentNotFoundError,
    TaskNotFoundError,
    TaskValidationError,
    UnauthorizedError,
    UserNotFoundError,
)
from fieldtask.app.domain.models import (
    Activity,
    ActivityAction,
    ExpectedRevenue,
    GeoLocation,
    Payment,
    Task,
    TaskStatus,
    TaskTransition,
    UserRecord,
)
from fieldtask.app.domain.repositories import (
    ActivityRepository,
    IdentityProvider,
    TaskRepository,
)
from fieldtask.app.infrastructure.postgres.orm import PostgresOrm

ADMIN_ID = "user_admin"
WORKER_ID = "user_worker"
OTHER_WORKER_ID = "user_other"
DEMO_ID = "user_demo"

# District 1, Ho Chi Minh City.
SITE = GeoLocation(id="loc-1", name="Site", address="1 Le Loi, Q1", lat=10.7731, lng=106.7020)


class StubTaskRepository(TaskRepository):
    """In-memory task store; mutations apply all-or-nothing like a transaction."""

    def __init__(self) -> None:
        self.tasks: dict[str, Task] = {}
        self.activities: list[Activity] = []
        self.payments: list[Payment] = []
        self.check_ins: set[tuple[str, str]] = set()
        self.fail_activity_writes = False

    def add(self, task: Task) -> Task:
        self.tasks[task.id] = task.model_copy(deep=True)  # type: ignore[index]
        return task

    def mark_checked_in(self, task_id: str, user_id: str) -> None:
        self.check_ins.add((task_id, user_id))

    async def create_task(self, task: Task, activity: Activity) -> Task:
        self._check_activity_writes()
        self.tasks[task.id] = task.model_copy(deep=True)  # type: ignore[index]
        self.activities.append(activity)
        return task.model_copy(deep=True)

    async def get_task(self, task_id: str) -> Task:
        if task_id not in self.tasks:
            raise TaskNotFoundError(task_id)
        return self.tasks[task_id].model_copy(deep=True)

    async def list_tasks(
        self,
        *,
        status: TaskStatus | None = None,
        assignee_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Task]:
        tasks = [
            task
            for task in self.tasks.values()
            if (status is None or task.status is status)
            and (assignee_id is None or assignee_id in task.assignee_ids)
        ]
        return [task.model_copy(deep=True) for task in tasks[offset : offset + limit]]

    async def update_assignees(
        self, task_id: str, assignee_ids: list[str], activity: Activity
    ) -> Task:
        task = await self.get_task(task_id)
        if task.status is TaskStatus.COMPLETED:
            raise TaskValidationError("Assignees of a completed task cannot be changed.")
        if not assignee_ids and task.status is not TaskStatus.PREPARING:
            raise TaskValidationError(
                "A task that has left PREPARING must keep at least one assignee."
            )
        self._check_activity_writes()
        task.assignee_ids = list(assignee_ids)
        self.tasks[task_id] = task
        self.activities.append(activity)
        return task.model_copy(deep=True)

    async def set_expected_revenue(
        self, task_id: str, revenue: ExpectedRevenue | None, activity: Activity
    ) -> Task:
        task = await self.get_task(task_id)
        self._check_activity_writes()
        task.expected_revenue = revenue
        self.tasks[task_id] = task
        self.activities.append(activity)
        return task.model_copy(deep=True)

    async def apply_transition(
        self,
        transition: TaskTransition,
        activities: Sequence[Activity],
        payment: Payment | None = None,
    ) -> Task:
        task = await self.get_task(transition.task_id)
        if task.status is not transition.from_status:
            raise InvalidTransitionError(task.id, task.status, transition.to_status)  # type: ignore[arg-type]
        if transition.require_assignees and not task.assignee_ids:
            raise TaskValidationError("A task needs at least one assignee before it can be scheduled.")
        if transition.assignee_id is not None and not task.is_assigned(transition.assignee_id):
            raise UnauthorizedError(transition.assignee_id, "You are not assigned to this task.")
        if transition.checked_in_by is not None and not await self.has_checked_in(
            transition.task_id, transition.checked_in_by
        ):
            raise CheckInRequiredError(transition.checked_in_by, transition.task_id)
        self._check_activity_writes()

        task.status = transition.to_status
        task.suspended_from_status = transition.suspended_from_status
        task.updated_at = transition.occurred_at
        for field in ("scheduled_at", "started_at", "completed_at"):
            value = getattr(transition, field)
            if value is not None:
                setattr(task, field, value)

        self.tasks[task.id] = task  # type: ignore[index]
        self.activities.extend(activities)
        for activity in activities:
            if activity.action is ActivityAction.TASK_CHECKED_IN and activity.user_id:
                self.mark_checked_in(transition.task_id, activity.user_id)
        if payment is not None:
            self.payments.append(payment)
        return task.model_copy(deep=True)

    async def has_checked_in(self, task_id: str, user_id: str) -> bool:
        return (task_id, user_id) in self.check_ins

    async def list_payments(self, task_id: str) -> list[Payment]:
        return [payment for payment in self.payments if payment.task_id == task_id]

    async def update_payment(
        self,
        payment_id: str,
        *,
        amount: int | None = None,
        notes: str | None = None,
        audit: Callable[[Payment, Payment], Activity],
    ) -> Payment:
        for index, before in enumerate(self.payments):
            if before.id == payment_id:
                break
        else:
            raise PaymentNotFoundError(payment_id)
        self._check_activity_writes()
        changes: dict[str, object] = {}
        if amount is not None:
            changes["amount"] = amount
        if notes is not None:
            changes["notes"] = notes
        after = before.model_copy(update=changes)
        self.payments[index] = after
        self.activities.append(audit(before, after))
        return after

    def _check_activity_writes(self) -> None:
        if self.fail_activity_writes:
            raise RuntimeError("activity store unavailable")


class StubActivityRepository(ActivityRepository):
    def __init__(self) -> None:
        self.activities: list[Activity] = []
        self.fail_appends = False

    async def append(self, activity: Activity) -> Activity:
        if self.fail_appends:
            raise RuntimeError("activity store unavailable")
        stored = activity.model_copy(update={"id": f"act-{len(self.activities) + 1}"})
        self.activities.append(stored)
        return stored

    async def list_activities(
        self,
        *,
        topic: str | None = None,
        limit: int = 20,
        cursor: str | None = None,
    ) -> list[Activity]:
        items = [a for a in reversed(self.activities) if topic is None or a.topic == topic]
        if cursor is not None:
            ids = [a.id for a in items]
            items = items[ids.index(cursor) + 1 :]
        return items[:limit]


class StubIdentityProvider(IdentityProvider):
    def __init__(self) -> None:
        self.users: dict[str, UserRecord] = {}
        self.delete_calls: list[str] = []
        self.delete_error: Exception | None = None
        self.get_error: Exception | None = None

    def add_user(self, user_id: str, *, roles: list[str] | None = None, is_demo: bool = False) -> None:
        self.users[user_id] = UserRecord(
            id=user_id,
            email=f"{user_id}@example.com",
            display_name=user_id,
            roles=roles or [],
            is_demo=is_demo,
        )

    async def get_user(self, user_id: str) -> UserRecord:
        if self.get_error is not None:
            raise self.get_error
        if user_id not in self.users:
            raise UserNotFoundError(user_id)
        return self.users[user_id]

    async def delete_user(self, user_id: str) -> None:
        self.delete_calls.append(user_id)
        if self.delete_error is not None:
            raise self.delete_error
        if user_id not in self.users:
            raise UserNotFoundError(user_id)
        del self.users[user_id]


def make_task(
    task_id: str = "task-1",
    *,
    status: TaskStatus = TaskStatus.READY,
    assignee_ids: list[str] | None = None,
    location: GeoLocation | None = SITE,
    expected_revenue: int | None = None,
    started_at: datetime | None = None,
) -> Task:
    now = datetime(2026, 10, 1, 8, 0, tzinfo=UTC)
    return Task(
        id=task_id,
        title="Install air conditioner",
        status=status,
        assignee_ids=[WORKER_ID] if assignee_ids is None else assignee_ids,
        location=location,
        expected_revenue=ExpectedRevenue(amount=expected_revenue) if expected_revenue else None,
        started_at=started_at,
        created_at=now,
        updated_at=now,
    )


@pytest.fixture
def env_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide environment variables for the settings classes."""
    monkeypatch.setenv("APP_NAME", "Test API")
    monkeypatch.setenv("APP_VERSION", "0.1.0")
    monkeypatch.setenv("ADMIN_ROLE", "nv_internal_admin")
    monkeypatch.setenv("DEMO_USER_IDS", '["user_listed_demo"]')
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("IDENTITY_API_KEY", "sk_test")
    monkeypatch.setenv("CHECKIN_ACCEPT_RADIUS_METERS", "100")
    monkeypatch.setenv("CHECKIN_WARNING_RADIUS_METERS", "150")
    monkeypatch.setenv("REQUIRE_EXPECTED_REVENUE", "false")


@pytest.fixture
def task_repo() -> StubTaskRepository:
    return StubTaskRepository()


@pytest.fixture
def activity_repo() -> StubActivityRepository:
    return StubActivityRepository()


@pytest.fixture
def identity() -> StubIdentityProvider:
    provider = StubIdentityProvider()
    provider.add_user(ADMIN_ID, roles=["nv_internal_admin"])
    provider.add_user(WORKER_ID, roles=["nv_internal_worker"])
    provider.add_user(OTHER_WORKER_ID, roles=["nv_internal_worker"])
    provider.add_user(DEMO_ID, roles=["nv_internal_worker"], is_demo=True)
    return provider


def _patch_inject_instance(
    monkeypatch: pytest.MonkeyPatch,
    task_repo: StubTaskRepository,
    activity_repo: StubActivityRepository,
    identity: StubIdentityProvider,
) -> Callable[[object], object]:
    """Patch `inject.instance` to return the stub implementations."""
    import inject

    bindings: dict[object, object] = {
        TaskRepository: task_repo,
        ActivityRepository: activity_repo,
        IdentityProvider: identity,
    }

    def fake_instance(interface: object) -> object:
        if interface in bindings:
            return bindings[interface]
        raise RuntimeError(f"Unexpected dependency request: {interface}")

    monkeypatch.setattr(inject, "instance", fake_instance)
    return fake_instance


@pytest.fixture
def api_client(
    env_settings: None,
    monkeypatch: pytest.MonkeyPatch,
    task_repo: StubTaskRepository,
    activity_repo: StubActivityRepository,
    identity: StubIdentityProvider,
):
    """FastAPI test client with services wired to the stub repositories."""
    _patch_inject_instance(monkeypatch, task_repo, activity_repo, identity)

    # Reload modules so module-level services pick up the patched injector.
    routes_module = importlib.reload(importlib.import_module("fieldtask.app.presentation.routes"))
    account_module = importlib.reload(
        importlib.import_module("fieldtask.app.presentation.account_routes")
    )
    errors_module = importlib.import_module("fieldtask.app.presentation.errors")

    app = FastAPI()
    errors_module.register_exception_handlers(app)
    app.include_router(routes_module.router)
    app.include_router(account_module.router)
    return TestClient(app)


@pytest_asyncio.fixture
async def sqlite_orm(tmp_path):
    """On-disk SQLite database so concurrent sessions use separate connections."""
    orm = PostgresOrm(f"sqlite+aiosqlite:///{tmp_path / 'fieldtask.db'}")
    await orm.create_all()
    yield orm
    await orm.dispose()
