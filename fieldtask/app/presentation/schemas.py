from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from fieldtask.app.domain.models import (
    Activity,
    CheckEventOutcome,
    Customer,
    GeoLocation,
    Payment,
    PaymentInput,
    Task,
    TaskPayments,
    TaskStatus,
)
from fieldtask.app.domain.models.task import MAX_VND_AMOUNT


class ApiModel(BaseModel):
    """Wire models use camelCase; snake_case is accepted on input too."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateTaskRequest(ApiModel):
    title: str = Field(..., min_length=1, max_length=255, description="Short task title.")
    description: str | None = Field(default=None, description="Optional longer description.")
    customer: Customer | None = Field(default=None, description="Customer name and phone.")
    location: GeoLocation | None = Field(default=None, description="Target site for check-in.")
    assignee_ids: list[str] = Field(default_factory=list, description="Assigned worker ids.")
    expected_revenue: int | None = Field(
        default=None, gt=0, le=MAX_VND_AMOUNT, description="Expected amount in VND."
    )


class UpdateAssigneesRequest(ApiModel):
    assignee_ids: list[str] = Field(..., description="Full replacement list of worker ids.")


class ExpectedRevenueRequest(ApiModel):
    amount: int | None = Field(
        default=None, gt=0, le=MAX_VND_AMOUNT, description="Amount in VND; null clears it."
    )


class CommentRequest(ApiModel):
    comment: str = Field(..., min_length=1, max_length=5000, description="Comment text.")


class UpdatePaymentRequest(ApiModel):
    amount: int | None = Field(
        default=None, gt=0, le=MAX_VND_AMOUNT, description="Corrected amount in VND."
    )
    notes: str | None = Field(default=None, max_length=500, description="Replacement notes.")
    edit_reason: str = Field(
        ..., min_length=10, max_length=500, description="Why the payment is corrected."
    )


class CheckInRequest(ApiModel):
    lat: float = Field(..., ge=-90, le=90, description="Reported latitude.")
    lng: float = Field(..., ge=-180, le=180, description="Reported longitude.")
    notes: str | None = Field(default=None, max_length=500, description="Worker notes.")


class CheckOutRequest(ApiModel):
    lat: float = Field(..., ge=-90, le=90, description="Reported latitude.")
    lng: float = Field(..., ge=-180, le=180, description="Reported longitude.")
    notes: str | None = Field(default=None, max_length=1000, description="Worker notes.")
    payment_collected: bool = Field(default=False, description="Whether cash was collected.")
    payment_amount: int | None = Field(
        default=None, gt=0, le=MAX_VND_AMOUNT, description="Collected amount in VND."
    )
    payment_notes: str | None = Field(default=None, max_length=500, description="Payment notes.")

    @model_validator(mode="after")
    def _amount_required_when_collected(self) -> CheckOutRequest:
        if self.payment_collected and self.payment_amount is None:
            raise ValueError("paymentAmount is required when paymentCollected is true")
        return self

    def to_payment_input(self) -> PaymentInput | None:
        if not self.payment_collected or self.payment_amount is None:
            return None
        return PaymentInput(amount=self.payment_amount, notes=self.payment_notes)


class TaskResponse(ApiModel):
    id: str
    title: str
    description: str | None = None
    status: TaskStatus
    assignee_ids: list[str]
    customer: Customer | None = None
    location: GeoLocation | None = None
    expected_revenue: int | None = None
    expected_currency: str | None = None
    scheduled_at: datetime | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    suspended_from_status: TaskStatus | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_domain(cls, task: Task) -> TaskResponse:
        revenue = task.expected_revenue
        return cls(
            id=task.id or "",
            title=task.title,
            description=task.description,
            status=task.status,
            assignee_ids=task.assignee_ids,
            customer=task.customer,
            location=task.location,
            expected_revenue=revenue.amount if revenue else None,
            expected_currency=revenue.currency if revenue else None,
            scheduled_at=task.scheduled_at,
            started_at=task.started_at,
            completed_at=task.completed_at,
            suspended_from_status=task.suspended_from_status,
            created_at=task.created_at,
            updated_at=task.updated_at,
        )


class CheckEventResponse(ApiModel):
    accepted: bool = True
    distance_meters: float
    warning: str | None = None
    new_status: TaskStatus
    demo_bypass: bool = False
    payment_id: str | None = None
    task: TaskResponse | None = None

    @classmethod
    def from_outcome(cls, outcome: CheckEventOutcome) -> CheckEventResponse:
        return cls(
            accepted=outcome.accepted,
            distance_meters=outcome.distance_meters,
            warning=outcome.warning,
            new_status=outcome.status,
            demo_bypass=outcome.demo_bypass,
            payment_id=outcome.payment_id,
            task=TaskResponse.from_domain(outcome.task) if outcome.task else None,
        )


class LocationRejectedResponse(ApiModel):
    accepted: bool = False
    error_kind: str = "LocationRejected"
    message: str
    distance_meters: float
    new_status: TaskStatus

    @classmethod
    def from_outcome(cls, outcome: CheckEventOutcome) -> LocationRejectedResponse:
        return cls(
            message=outcome.rejection_reason or "Location rejected.",
            distance_meters=outcome.distance_meters,
            new_status=outcome.status,
        )


class PaymentResponse(ApiModel):
    id: str
    task_id: str
    amount: int
    currency: str
    collected_by: str
    collected_at: datetime | None = None
    notes: str | None = None

    @classmethod
    def from_domain(cls, payment: Payment) -> PaymentResponse:
        return cls(**payment.model_dump())


class PaymentSummaryResponse(ApiModel):
    expected_revenue: int | None = None
    total_collected: int
    has_payment: bool


class TaskPaymentsResponse(ApiModel):
    payments: list[PaymentResponse]
    summary: PaymentSummaryResponse

    @classmethod
    def from_domain(cls, task_payments: TaskPayments) -> TaskPaymentsResponse:
        return cls(
            payments=[PaymentResponse.from_domain(p) for p in task_payments.payments],
            summary=PaymentSummaryResponse(**task_payments.summary.model_dump()),
        )


class ActivityResponse(ApiModel):
    id: str
    user_id: str | None = None
    topic: str
    action: str
    payload: dict[str, Any]
    created_at: datetime | None = None

    @classmethod
    def from_domain(cls, activity: Activity) -> ActivityResponse:
        return cls(
            id=activity.id or "",
            user_id=activity.user_id,
            topic=activity.topic,
            action=activity.action.value,
            payload=activity.payload,
            created_at=activity.created_at,
        )


class ActivityPageResponse(ApiModel):
    items: list[ActivityResponse]
    next_cursor: str | None = Field(
        default=None, description="Pass as `cursor` to fetch the next page."
    )


class AccountDeletionResponse(ApiModel):
    success: bool
    message: str


class ErrorResponse(ApiModel):
    error_kind: str
    message: str


class HealthResponse(ApiModel):
    status: str = "ok"
    version: str
