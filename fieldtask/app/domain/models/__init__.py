from fieldtask.app.domain.models.account import DeletionOutcome, DeletionResult
from fieldtask.app.domain.models.activity import (
    GENERAL_TOPIC,
    Activity,
    ActivityAction,
    task_topic,
)
from fieldtask.app.domain.models.check_event import (
    CheckDirection,
    CheckEventOutcome,
    LocationCheck,
    LocationVerdict,
)
from fieldtask.app.domain.models.customer import Customer
from fieldtask.app.domain.models.geo_location import GeoLocation
from fieldtask.app.domain.models.payment import Payment, PaymentInput, PaymentSummary, TaskPayments
from fieldtask.app.domain.models.task import ExpectedRevenue, Task
from fieldtask.app.domain.models.task_status import TaskStatus
from fieldtask.app.domain.models.transition import TaskTransition
from fieldtask.app.domain.models.user import Actor, UserRecord

__all__ = [
    "Activity",
    "ActivityAction",
    "Actor",
    "CheckDirection",
    "CheckEventOutcome",
    "Customer",
    "DeletionOutcome",
    "DeletionResult",
    "ExpectedRevenue",
    "GENERAL_TOPIC",
    "GeoLocation",
    "LocationCheck",
    "LocationVerdict",
    "Payment",
    "PaymentInput",
    "PaymentSummary",
    "Task",
    "TaskPayments",
    "TaskStatus",
    "TaskTransition",
    "UserRecord",
    "task_topic",
]
