import logging
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import inject

from fieldtask.app.domain.exceptions import (
    CheckInRequiredError,
    TaskValidationError,
    UnauthorizedError,
)
from fieldtask.app.domain.geo import evaluate_location
from fieldtask.app.domain.models import (
    Activity,
    ActivityAction,
    CheckDirection,
    CheckEventOutcome,
    LocationCheck,
    LocationVerdict,
    Payment,
    PaymentInput,
    Task,
    task_topic,
)
from fieldtask.app.domain.repositories import TaskRepository
from fieldtask.app.domain.state_machine import plan_check_event
from fieldtask.setup.verification_config import VerificationSettings, get_verification_settings

logger = logging.getLogger(__name__)

NOTES_MAX_LENGTH: dict[CheckDirection, int] = {
    CheckDirection.CHECK_IN: 500,
    CheckDirection.CHECK_OUT: 1000,
}

_ACTIONS: dict[CheckDirection, ActivityAction] = {
    CheckDirection.CHECK_IN: ActivityAction.TASK_CHECKED_IN,
    CheckDirection.CHECK_OUT: ActivityAction.TASK_COMPLETED,
}

_VERIFIED_VERDICTS = {LocationVerdict.ACCEPTED, LocationVerdict.ACCEPTED_WITH_WARNING}


class LocationVerificationService:
    """GPS-verified check-in and check-out.

    Checks run in a fixed order: the task must exist, the caller must be an assignee
    (demo accounts excepted), the task must be in the status the direction requires,
    a check-out needs an earlier check-in by the same user, then the reported
    position is compared with the task site. Assignment and check-in are checked
    again when the status change is written. A rejected position is
    returned as an outcome with ``accepted=False`` and nothing is written.
    """

    def __init__(
        self,
        tasks: TaskRepository | None = None,
        settings: VerificationSettings | None = None,
    ) -> None:
        self._tasks = tasks or inject.instance(TaskRepository)
        self._settings = settings or get_verification_settings()

    async def verify_and_record(
        self,
        task_id: str,
        acting_user_id: str,
        reported_lat: float,
        reported_lng: float,
        direction: CheckDirection,
        *,
        is_demo: bool = False,
        notes: str | None = None,
        payment: PaymentInput | None = None,
    ) -> CheckEventOutcome:
        task = await self._tasks.get_task(task_id)
        if not is_demo and not task.is_assigned(acting_user_id):
            raise UnauthorizedError(acting_user_id, "You are not assigned to this task.")

        now = datetime.now(UTC)
        transition = plan_check_event(
            task, direction, now=now, acting_user_id=acting_user_id, is_demo=is_demo
        )
        if direction is CheckDirection.CHECK_OUT:
            if not await self._tasks.has_checked_in(task_id, acting_user_id):
                raise CheckInRequiredError(acting_user_id, task_id)
        self._validate_extras(task, direction, notes, payment)

        check = evaluate_location(
            task.location,
            reported_lat,
            reported_lng,
            accept_radius=self._settings.CHECKIN_ACCEPT_RADIUS_METERS,
            warning_radius=self._settings.CHECKIN_WARNING_RADIUS_METERS,
            bypass=is_demo,
        )
        logger.debug(
            "Location evaluated",
            extra={
                "task_id": task_id,
                "user_id": acting_user_id,
                "direction": direction.value,
                "verdict": check.verdict.value,
                "distance_meters": check.measured_distance_meters,
            },
        )

        if not check.accepted:
            logger.info(
                "Check event rejected",
                extra={
                    "task_id": task_id,
                    "user_id": acting_user_id,
                    "direction": direction.value,
                    "distance_meters": check.distance_meters,
                },
            )
            return CheckEventOutcome(
                task_id=task_id,
                direction=direction,
                accepted=False,
                distance_meters=check.distance_meters,
                status=task.status,
                rejection_reason=check.rejection_reason,
            )

        payment_record = None
        revenue = task.expected_revenue
        if payment is not None and revenue is not None:
            payment_record = Payment(
                id=uuid4().hex,
                task_id=task_id,
                amount=payment.amount,
                currency=revenue.currency,
                collected_by=acting_user_id,
                collected_at=now,
                notes=payment.notes,
            )

        activities = [
            Activity(
                user_id=acting_user_id,
                topic=task_topic(task_id),
                action=_ACTIONS[direction],
                payload=self._event_payload(
                    direction, reported_lat, reported_lng, check, notes, payment_record
                ),
                created_at=now,
            )
        ]
        if payment_record is not None and revenue is not None:
            activities.append(
                Activity(
                    user_id=acting_user_id,
                    topic=task_topic(task_id),
                    action=ActivityAction.PAYMENT_COLLECTED,
                    payload={
                        "paymentId": payment_record.id,
                        "amount": payment_record.amount,
                        "currency": payment_record.currency,
                        "expectedRevenue": revenue.amount,
                        "notes": payment_record.notes,
                    },
                    created_at=now,
                )
            )

        updated = await self._tasks.apply_transition(transition, activities, payment_record)
        logger.info(
            "Check event recorded",
            extra={
                "task_id": task_id,
                "user_id": acting_user_id,
                "direction": direction.value,
                "status": updated.status.value,
                "demo_bypass": is_demo,
            },
        )
        return CheckEventOutcome(
            task_id=task_id,
            direction=direction,
            accepted=True,
            distance_meters=check.distance_meters,
            status=updated.status,
            warning=check.warning,
            demo_bypass=check.verdict is LocationVerdict.BYPASSED,
            payment_id=payment_record.id if payment_record else None,
            task=updated,
        )

    @staticmethod
    def _validate_extras(
        task: Task,
        direction: CheckDirection,
        notes: str | None,
        payment: PaymentInput | None,
    ) -> None:
        limit = NOTES_MAX_LENGTH[direction]
        if notes is not None and len(notes) > limit:
            raise TaskValidationError(f"Notes must be at most {limit} characters.")
        if payment is None:
            return
        if direction is not CheckDirection.CHECK_OUT:
            raise TaskValidationError("Payments can only be recorded at check-out.")
        if task.expected_revenue is None:
            raise TaskValidationError(
                "A payment can only be recorded for a task with expected revenue."
            )

    @staticmethod
    def _event_payload(
        direction: CheckDirection,
        lat: float,
        lng: float,
        check: LocationCheck,
        notes: str | None,
        payment: Payment | None,
    ) -> dict[str, Any]:
        bypassed = check.verdict is LocationVerdict.BYPASSED
        payload: dict[str, Any] = {
            "type": direction.value,
            "reportedLocation": {"lat": lat, "lng": lng},
            "distanceFromTask": check.distance_meters,
            "verdict": check.verdict.value,
            "locationVerified": check.verdict in _VERIFIED_VERDICTS,
            "demoBypass": bypassed,
            "warnings": [check.warning] if check.warning else [],
            "notes": notes,
            "paymentCollected": payment is not None,
        }
        if check.measured_distance_meters is not None:
            payload["measuredDistance"] = check.measured_distance_meters
        if payment is not None:
            payload["paymentId"] = payment.id
        return payload
