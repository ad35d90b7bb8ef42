from __future__ import annotations

from datetime import UTC, datetime
from uuid import uuid4

from fieldtask.app.domain.models.activity import Activity, ActivityAction
from fieldtask.app.domain.models.customer import Customer
from fieldtask.app.domain.models.geo_location import GeoLocation
from fieldtask.app.domain.models.payment import Payment
from fieldtask.app.domain.models.task import ExpectedRevenue, Task
from fieldtask.app.infrastructure.postgres.orm import (
    ActivityRow,
    CustomerRow,
    GeoLocationRow,
    PaymentRow,
    TaskAssigneeRow,
    TaskRow,
)


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite drops tzinfo on the way back; stored values are always UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


class OrmMapper:
    @staticmethod
    def to_task_row(task: Task) -> TaskRow:
        if task.id is None:
            raise ValueError("Task id is required to persist TaskRow.")
        revenue = task.expected_revenue
        return TaskRow(
            id=task.id,
            title=task.title,
            description=task.description,
            status=task.status,
            expected_revenue=revenue.amount if revenue else None,
            expected_currency=revenue.currency if revenue else "VND",
            scheduled_at=task.scheduled_at,
            started_at=task.started_at,
            completed_at=task.completed_at,
            suspended_from_status=task.suspended_from_status,
            created_at=task.created_at,
            updated_at=task.updated_at or task.created_at,
            assignees=OrmMapper.to_assignee_rows(task.id, task.assignee_ids),
        )

    @staticmethod
    def to_assignee_rows(task_id: str, assignee_ids: list[str]) -> list[TaskAssigneeRow]:
        # Duplicates collapse; first occurrence keeps its position.
        unique = list(dict.fromkeys(assignee_ids))
        return [
            TaskAssigneeRow(task_id=task_id, user_id=user_id, position=position)
            for position, user_id in enumerate(unique)
        ]

    @staticmethod
    def to_customer_row(customer: Customer, created_at: datetime) -> CustomerRow:
        return CustomerRow(
            id=customer.id or uuid4().hex,
            name=customer.name,
            phone=customer.phone,
            created_at=created_at,
        )

    @staticmethod
    def to_location_row(location: GeoLocation, created_at: datetime) -> GeoLocationRow:
        return GeoLocationRow(
            id=location.id or uuid4().hex,
            name=location.name,
            address=location.address,
            lat=location.lat,
            lng=location.lng,
            created_at=created_at,
        )

    @staticmethod
    def to_activity_row(activity: Activity) -> ActivityRow:
        return ActivityRow(
            id=activity.id or uuid4().hex,
            user_id=activity.user_id,
            topic=activity.topic,
            action=activity.action.value,
            payload=activity.payload,
            created_at=activity.created_at or datetime.now(UTC),
        )

    @staticmethod
    def to_payment_row(payment: Payment) -> PaymentRow:
        return PaymentRow(
            id=payment.id or uuid4().hex,
            task_id=payment.task_id,
            amount=payment.amount,
            currency=payment.currency,
            collected_by=payment.collected_by,
            collected_at=payment.collected_at or datetime.now(UTC),
            notes=payment.notes,
        )

    @staticmethod
    def to_domain_task(row: TaskRow) -> Task:
        revenue = None
        if row.expected_revenue is not None:
            revenue = ExpectedRevenue(amount=row.expected_revenue, currency=row.expected_currency)
        return Task(
            id=row.id,
            title=row.title,
            description=row.description,
            status=row.status,
            assignee_ids=[assignee.user_id for assignee in row.assignees],
            customer=OrmMapper.to_domain_customer(row.customer) if row.customer else None,
            location=OrmMapper.to_domain_location(row.location) if row.location else None,
            expected_revenue=revenue,
            scheduled_at=_as_utc(row.scheduled_at),
            started_at=_as_utc(row.started_at),
            completed_at=_as_utc(row.completed_at),
            suspended_from_status=row.suspended_from_status,
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )

    @staticmethod
    def to_domain_customer(row: CustomerRow) -> Customer:
        return Customer(id=row.id, name=row.name, phone=row.phone)

    @staticmethod
    def to_domain_location(row: GeoLocationRow) -> GeoLocation:
        return GeoLocation(
            id=row.id,
            name=row.name,
            address=row.address,
            lat=row.lat,
            lng=row.lng,
        )

    @staticmethod
    def to_domain_activity(row: ActivityRow) -> Activity:
        return Activity(
            id=row.id,
            user_id=row.user_id,
            topic=row.topic,
            action=ActivityAction(row.action),
            payload=row.payload or {},
            created_at=_as_utc(row.created_at),
        )

    @staticmethod
    def to_domain_payment(row: PaymentRow) -> Payment:
        return Payment(
            id=row.id,
            task_id=row.task_id,
            amount=row.amount,
            currency=row.currency,
            collected_by=row.collected_by,
            collected_at=_as_utc(row.collected_at),
            notes=row.notes,
        )
