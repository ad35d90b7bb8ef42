from datetime import datetime

from pydantic import BaseModel, Field

from fieldtask.app.domain.models.customer import Customer
from fieldtask.app.domain.models.geo_location import GeoLocation
from fieldtask.app.domain.models.task_status import TaskStatus

MAX_VND_AMOUNT = 10_000_000_000
DEFAULT_CURRENCY = "VND"


class ExpectedRevenue(BaseModel):
    amount: int = Field(gt=0, le=MAX_VND_AMOUNT, description="Expected amount in whole currency units.")
    currency: str = Field(default=DEFAULT_CURRENCY, description="ISO currency code.")


class Task(BaseModel):
    id: str | None = Field(default=None, description="Unique task identifier.")
    title: str = Field(min_length=1, description="Short task title.")
    description: str | None = Field(default=None, description="Optional longer description.")
    status: TaskStatus = Field(default=TaskStatus.PREPARING, description="Lifecycle status.")
    assignee_ids: list[str] = Field(
        default_factory=list,
        description="Identity-provider user ids of the assigned workers.",
    )
    customer: Customer | None = Field(default=None, description="Customer served by the task.")
    location: GeoLocation | None = Field(
        default=None, description="Target site used for check-in verification."
    )
    expected_revenue: ExpectedRevenue | None = Field(
        default=None, description="Amount expected to be collected on completion."
    )
    scheduled_at: datetime | None = Field(default=None, description="When the task became READY.")
    started_at: datetime | None = Field(default=None, description="When the first check-in happened.")
    completed_at: datetime | None = Field(default=None, description="When the check-out happened.")
    suspended_from_status: TaskStatus | None = Field(
        default=None, description="Status to return to when resumed from ON_HOLD."
    )
    created_at: datetime | None = Field(default=None, description="Creation timestamp.")
    updated_at: datetime | None = Field(default=None, description="Last modification timestamp.")

    def is_assigned(self, user_id: str) -> bool:
        return user_id in self.assignee_ids
