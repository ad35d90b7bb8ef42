import logging

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from fieldtask.app.domain.exceptions import (
    AuthenticationError,
    DomainError,
    IdentityProviderError,
    InvalidTransitionError,
    PaymentNotFoundError,
    TaskNotFoundError,
    TaskValidationError,
    UnauthorizedError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: list[tuple[type[DomainError], int]] = [
    (AuthenticationError, 401),
    (UnauthorizedError, 403),
    (TaskNotFoundError, 404),
    (PaymentNotFoundError, 404),
    (UserNotFoundError, 404),
    (InvalidTransitionError, 409),
    (TaskValidationError, 422),
    (IdentityProviderError, 502),
]


def error_body(kind: str, message: str, **detail: object) -> dict[str, object]:
    return {"errorKind": kind, "message": message, **detail}


def status_for(exc: DomainError) -> int:
    for error_type, status_code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return status_code
    return 500


async def handle_domain_error(request: Request, exc: DomainError) -> JSONResponse:
    status_code = status_for(exc)
    detail: dict[str, object] = {}
    if isinstance(exc, InvalidTransitionError):
        detail = {
            "currentStatus": exc.current.value,
            "requestedStatus": exc.requested.value,
        }
    if status_code >= 500:
        logger.error(
            "Request failed",
            extra={"path": request.url.path, "error_kind": exc.kind, "error": str(exc)},
        )
    else:
        logger.info(
            "Request rejected",
            extra={"path": request.url.path, "error_kind": exc.kind, "status_code": status_code},
        )
    return JSONResponse(status_code=status_code, content=error_body(exc.kind, str(exc), **detail))


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=error_body(
            TaskValidationError.kind,
            "Request validation failed.",
            errors=jsonable_encoder(exc.errors()),
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, handle_domain_error)  # type: ignore[arg-type]
    app.add_exception_handler(
        RequestValidationError, handle_request_validation_error  # type: ignore[arg-type]
    )
