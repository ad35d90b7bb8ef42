from enum import Enum

from pydantic import BaseModel, Field

from fieldtask.app.domain.models.task import Task
from fieldtask.app.domain.models.task_status import TaskStatus


class CheckDirection(str, Enum):
    CHECK_IN = "CHECK_IN"
    CHECK_OUT = "CHECK_OUT"


class LocationVerdict(str, Enum):
    ACCEPTED = "ACCEPTED"
    ACCEPTED_WITH_WARNING = "ACCEPTED_WITH_WARNING"
    REJECTED = "REJECTED"
    # Task has no target site, so there is nothing to verify against.
    SKIPPED = "SKIPPED"
    # Demo/review account; the distance check is not applied.
    BYPASSED = "BYPASSED"


class LocationCheck(BaseModel):
    verdict: LocationVerdict
    distance_meters: float = Field(description="Distance reported back to the caller.")
    measured_distance_meters: float | None = Field(
        default=None, description="Real haversine distance, when a target exists."
    )
    warning: str | None = None
    rejection_reason: str | None = None

    @property
    def accepted(self) -> bool:
        return self.verdict is not LocationVerdict.REJECTED


class CheckEventOutcome(BaseModel):
    """Result of a check-in/check-out attempt.

    A rejected attempt is a normal outcome: ``accepted`` is False, ``status`` is the
    unchanged current status and ``rejection_reason`` explains the distance problem.
    """

    task_id: str
    direction: CheckDirection
    accepted: bool
    distance_meters: float
    status: TaskStatus
    warning: str | None = None
    rejection_reason: str | None = None
    demo_bypass: bool = False
    payment_id: str | None = None
    task: Task | None = None
