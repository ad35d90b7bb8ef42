from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from fieldtask.app.application.activity_service import ActivityService
from fieldtask.app.application.location_service import LocationVerificationService
from fieldtask.app.application.task_service import TaskService
from fieldtask.app.domain.models import Actor, CheckDirection, CheckEventOutcome, TaskStatus
from fieldtask.app.presentation.dependencies import get_current_actor
from fieldtask.app.presentation.schemas import (
    ActivityPageResponse,
    ActivityResponse,
    CheckEventResponse,
    CheckInRequest,
    CheckOutRequest,
    CommentRequest,
    CreateTaskRequest,
    ErrorResponse,
    ExpectedRevenueRequest,
    HealthResponse,
    LocationRejectedResponse,
    PaymentResponse,
    TaskPaymentsResponse,
    TaskResponse,
    UpdateAssigneesRequest,
    UpdatePaymentRequest,
)
from fieldtask.setup.api_config import get_api_settings

router = APIRouter(tags=["tasks"])

# Instantiate services once (simple DI)
_settings = get_api_settings()
_task_service = TaskService()
_location_service = LocationVerificationService()
_activity_service = ActivityService()

_TASK_ERRORS = {
    401: {"model": ErrorResponse, "description": "Missing or unknown caller."},
    403: {"model": ErrorResponse, "description": "Caller may not access this task."},
    404: {"model": ErrorResponse, "description": "Task not found."},
}
_TRANSITION_ERRORS = {
    **_TASK_ERRORS,
    409: {"model": ErrorResponse, "description": "Status change not allowed from the current status."},
}


@router.get("/health", response_model=HealthResponse, tags=["health"])
async def health() -> HealthResponse:
    return HealthResponse(version=_settings.APP_VERSION)


@router.post(
    "/tasks",
    response_model=TaskResponse,
    status_code=201,
    summary="Create a task",
    responses=_TASK_ERRORS,
)
async def create_task(
    body: CreateTaskRequest, actor: Actor = Depends(get_current_actor)
) -> TaskResponse:
    task = await _task_service.create_task(
        actor,
        title=body.title,
        description=body.description,
        customer=body.customer,
        location=body.location,
        assignee_ids=body.assignee_ids,
        expected_revenue=body.expected_revenue,
    )
    return TaskResponse.from_domain(task)


@router.get("/tasks", response_model=list[TaskResponse], summary="List tasks")
async def list_tasks(
    status: TaskStatus | None = Query(default=None, description="Filter by status."),
    assignee_id: str | None = Query(default=None, alias="assigneeId"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    actor: Actor = Depends(get_current_actor),
) -> list[TaskResponse]:
    """
    Admins see every task; workers see only the tasks they are assigned to.
    """
    tasks = await _task_service.list_tasks(
        actor, status=status, assignee_id=assignee_id, limit=limit, offset=offset
    )
    return [TaskResponse.from_domain(task) for task in tasks]


@router.get("/tasks/{task_id}", response_model=TaskResponse, responses=_TASK_ERRORS)
async def get_task(task_id: str, actor: Actor = Depends(get_current_actor)) -> TaskResponse:
    return TaskResponse.from_domain(await _task_service.get_task(task_id, actor))


@router.put("/tasks/{task_id}/assignees", response_model=TaskResponse, responses=_TASK_ERRORS)
async def update_assignees(
    task_id: str,
    body: UpdateAssigneesRequest,
    actor: Actor = Depends(get_current_actor),
) -> TaskResponse:
    task = await _task_service.update_assignees(task_id, body.assignee_ids, actor)
    return TaskResponse.from_domain(task)


@router.put(
    "/tasks/{task_id}/expected-revenue", response_model=TaskResponse, responses=_TASK_ERRORS
)
async def set_expected_revenue(
    task_id: str,
    body: ExpectedRevenueRequest,
    actor: Actor = Depends(get_current_actor),
) -> TaskResponse:
    task = await _task_service.set_expected_revenue(task_id, body.amount, actor)
    return TaskResponse.from_domain(task)


@router.post(
    "/tasks/{task_id}/schedule",
    response_model=TaskResponse,
    summary="Move a PREPARING task to READY",
    responses=_TRANSITION_ERRORS,
)
async def schedule_task(task_id: str, actor: Actor = Depends(get_current_actor)) -> TaskResponse:
    return TaskResponse.from_domain(await _task_service.schedule_task(task_id, actor))


@router.post(
    "/tasks/{task_id}/hold",
    response_model=TaskResponse,
    summary="Put a task on hold",
    responses=_TRANSITION_ERRORS,
)
async def hold_task(task_id: str, actor: Actor = Depends(get_current_actor)) -> TaskResponse:
    return TaskResponse.from_domain(await _task_service.hold_task(task_id, actor))


@router.post(
    "/tasks/{task_id}/resume",
    response_model=TaskResponse,
    summary="Resume a task to the status it was held from",
    responses=_TRANSITION_ERRORS,
)
async def resume_task(task_id: str, actor: Actor = Depends(get_current_actor)) -> TaskResponse:
    return TaskResponse.from_domain(await _task_service.resume_task(task_id, actor))


@router.get(
    "/tasks/{task_id}/payments", response_model=TaskPaymentsResponse, responses=_TASK_ERRORS
)
async def get_task_payments(
    task_id: str, actor: Actor = Depends(get_current_actor)
) -> TaskPaymentsResponse:
    payments = await _task_service.get_task_payments(task_id, actor)
    return TaskPaymentsResponse.from_domain(payments)


@router.put(
    "/payments/{payment_id}",
    response_model=PaymentResponse,
    summary="Correct a collected payment",
    tags=["payments"],
    responses={
        **_TASK_ERRORS,
        404: {"model": ErrorResponse, "description": "Payment not found."},
    },
)
async def update_payment(
    payment_id: str,
    body: UpdatePaymentRequest,
    actor: Actor = Depends(get_current_actor),
) -> PaymentResponse:
    """
    Admin only. The change and its PAYMENT_UPDATED activity are stored together.
    """
    payment = await _task_service.update_payment(
        payment_id,
        actor,
        edit_reason=body.edit_reason,
        amount=body.amount,
        notes=body.notes,
    )
    return PaymentResponse.from_domain(payment)


@router.post(
    "/tasks/{task_id}/comments",
    response_model=ActivityResponse,
    status_code=201,
    summary="Comment on a task",
    responses=_TASK_ERRORS,
)
async def add_comment(
    task_id: str, body: CommentRequest, actor: Actor = Depends(get_current_actor)
) -> ActivityResponse:
    activity = await _activity_service.add_comment(task_id, actor, body.comment)
    return ActivityResponse.from_domain(activity)


_CHECK_EVENT_RESPONSES = {
    **_TRANSITION_ERRORS,
    422: {
        "model": LocationRejectedResponse,
        "description": "Reported position is too far from the task site, or invalid input.",
    },
}


@router.post(
    "/tasks/{task_id}/checkin",
    response_model=CheckEventResponse,
    summary="Check in at the task site",
    description="Verifies the reported GPS position and moves the task from READY to IN_PROGRESS.",
    responses=_CHECK_EVENT_RESPONSES,
)
async def check_in(
    task_id: str, body: CheckInRequest, actor: Actor = Depends(get_current_actor)
):
    outcome = await _location_service.verify_and_record(
        task_id,
        actor.user_id,
        body.lat,
        body.lng,
        CheckDirection.CHECK_IN,
        is_demo=actor.is_demo,
        notes=body.notes,
    )
    return _check_event_response(outcome)


@router.post(
    "/tasks/{task_id}/checkout",
    response_model=CheckEventResponse,
    summary="Check out at the task site",
    description=(
        "Verifies the reported GPS position and moves the task from IN_PROGRESS to "
        "COMPLETED, optionally recording the collected payment."
    ),
    responses=_CHECK_EVENT_RESPONSES,
)
async def check_out(
    task_id: str, body: CheckOutRequest, actor: Actor = Depends(get_current_actor)
):
    outcome = await _location_service.verify_and_record(
        task_id,
        actor.user_id,
        body.lat,
        body.lng,
        CheckDirection.CHECK_OUT,
        is_demo=actor.is_demo,
        notes=body.notes,
        payment=body.to_payment_input(),
    )
    return _check_event_response(outcome)


def _check_event_response(outcome: CheckEventOutcome) -> CheckEventResponse | JSONResponse:
    if not outcome.accepted:
        rejected = LocationRejectedResponse.from_outcome(outcome)
        return JSONResponse(
            status_code=422, content=rejected.model_dump(mode="json", by_alias=True)
        )
    return CheckEventResponse.from_outcome(outcome)


@router.get("/activities", response_model=ActivityPageResponse, tags=["activities"])
async def list_activities(
    topic: str | None = Query(default=None, description="GENERAL or TASK_<task id>."),
    limit: int = Query(default=20, ge=1, le=100),
    cursor: str | None = Query(default=None, description="Id of the last activity seen."),
    actor: Actor = Depends(get_current_actor),
) -> ActivityPageResponse:
    activities = await _activity_service.list_activities(
        actor, topic=topic, limit=limit, cursor=cursor
    )
    next_cursor = activities[-1].id if len(activities) == limit else None
    return ActivityPageResponse(
        items=[ActivityResponse.from_domain(activity) for activity in activities],
        next_cursor=next_cursor,
    )
