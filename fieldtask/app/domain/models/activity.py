from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

GENERAL_TOPIC = "GENERAL"


class ActivityAction(str, Enum):
    TASK_CREATED = "TASK_CREATED"
    TASK_ASSIGNEES_UPDATED = "TASK_ASSIGNEES_UPDATED"
    TASK_STATUS_UPDATED = "TASK_STATUS_UPDATED"
    TASK_EXPECTED_REVENUE_UPDATED = "TASK_EXPECTED_REVENUE_UPDATED"
    TASK_CHECKED_IN = "TASK_CHECKED_IN"
    TASK_COMPLETED = "TASK_COMPLETED"
    TASK_COMMENTED = "TASK_COMMENTED"
    PAYMENT_COLLECTED = "PAYMENT_COLLECTED"
    PAYMENT_UPDATED = "PAYMENT_UPDATED"
    ACCOUNT_DELETION_INITIATED = "ACCOUNT_DELETION_INITIATED"
    ACCOUNT_DELETION_COMPLETED = "ACCOUNT_DELETION_COMPLETED"
    ACCOUNT_DELETION_FAILED = "ACCOUNT_DELETION_FAILED"
    ACCOUNT_DELETION_ALREADY_DELETED = "ACCOUNT_DELETION_ALREADY_DELETED"


def task_topic(task_id: str) -> str:
    return f"TASK_{task_id}"


class Activity(BaseModel):
    """Append-only audit record.

    ``user_id`` is a plain identity-provider id. It is kept after the identity is
    deleted, so readers must tolerate ids that no longer resolve.
    """

    id: str | None = Field(default=None, description="Unique activity identifier.")
    user_id: str | None = Field(default=None, description="Acting user id, if any.")
    topic: str = Field(description="Either GENERAL or TASK_<task id>.")
    action: ActivityAction = Field(description="What happened.")
    payload: dict[str, Any] = Field(default_factory=dict, description="Event details.")
    created_at: datetime | None = Field(default=None, description="When the event was recorded.")
