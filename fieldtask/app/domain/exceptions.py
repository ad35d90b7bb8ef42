from fieldtask.app.domain.models.task_status import TaskStatus


class DomainError(Exception):
    """Base class for errors reported to callers with a stable ``kind``."""

    kind = "DomainError"


class TaskNotFoundError(DomainError):
    """Raised when a task identifier does not exist in the task store."""

    kind = "TaskNotFound"

    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task with id '{task_id}' was not found.")
        self.task_id = task_id


class UnauthorizedError(DomainError):
    """Raised when the acting user may not perform an operation."""

    kind = "Unauthorized"

    def __init__(self, user_id: str | None, message: str | None = None) -> None:
        super().__init__(message or f"User '{user_id}' is not allowed to perform this action.")
        self.user_id = user_id


class AuthenticationError(UnauthorizedError):
    """Raised when a request carries no usable identity."""

    def __init__(self, message: str = "Authentication required.") -> None:
        super().__init__(None, message)


class InvalidTransitionError(DomainError):
    """Raised when a status change is not a legal edge from the current status."""

    kind = "InvalidTransition"

    def __init__(self, task_id: str, current: TaskStatus, requested: TaskStatus) -> None:
        super().__init__(
            f"Task '{task_id}' cannot move from {current.value} to {requested.value}."
        )
        self.task_id = task_id
        self.current = current
        self.requested = requested


class TaskValidationError(DomainError):
    """Raised when task data violates a business rule."""

    kind = "ValidationError"


class UserNotFoundError(DomainError):
    """Raised by the identity provider when a user id does not resolve."""

    kind = "NotFound"

    def __init__(self, user_id: str) -> None:
        super().__init__(f"User '{user_id}' was not found at the identity provider.")
        self.user_id = user_id


class IdentityProviderError(DomainError):
    """Raised for network, timeout, rate-limit or server errors from the identity provider."""

    kind = "ProviderError"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CheckInRequiredError(UnauthorizedError):
    """Raised when a user checks out of a task they never checked in to."""

    def __init__(self, user_id: str, task_id: str) -> None:
        super().__init__(
            user_id, f"User '{user_id}' must check in to task '{task_id}' before checking out."
        )
        self.task_id = task_id


class PaymentNotFoundError(DomainError):
    kind = "PaymentNotFound"

    def __init__(self, payment_id: str) -> None:
        super().__init__(f"Payment with id '{payment_id}' was not found.")
        self.payment_id = payment_id
