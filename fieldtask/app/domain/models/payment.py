from datetime import datetime

from pydantic import BaseModel, Field

from fieldtask.app.domain.models.task import DEFAULT_CURRENCY, MAX_VND_AMOUNT


class PaymentInput(BaseModel):
    """Payment details supplied by a worker at check-out."""

    amount: int = Field(gt=0, le=MAX_VND_AMOUNT, description="Collected amount.")
    notes: str | None = Field(default=None, max_length=500, description="Collector notes.")


class Payment(BaseModel):
    id: str | None = Field(default=None, description="Unique payment identifier.")
    task_id: str = Field(description="Task the payment was collected for.")
    amount: int = Field(gt=0, le=MAX_VND_AMOUNT, description="Collected amount.")
    currency: str = Field(default=DEFAULT_CURRENCY, description="ISO currency code.")
    collected_by: str = Field(description="Identity-provider id of the collector.")
    collected_at: datetime | None = Field(default=None, description="Collection timestamp.")
    notes: str | None = Field(default=None, description="Collector notes.")


class PaymentSummary(BaseModel):
    expected_revenue: int | None = None
    total_collected: int = 0
    has_payment: bool = False


class TaskPayments(BaseModel):
    payments: list[Payment]
    summary: PaymentSummary
