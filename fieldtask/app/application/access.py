from fieldtask.app.domain.exceptions import DomainError, IdentityProviderError, UnauthorizedError
from fieldtask.app.domain.models import Actor


def forbidden(actor: Actor, message: str) -> DomainError:
    """Error for a refused request.

    When the caller's role could not be read from the identity provider, the refusal
    may be wrong, so it is reported as a provider failure instead.
    """
    if not actor.role_verified:
        return IdentityProviderError(
            "Could not verify the caller's role: identity provider unavailable."
        )
    return UnauthorizedError(actor.user_id, message)


def require_admin(actor: Actor) -> None:
    if not actor.is_admin:
        raise forbidden(actor, "Only administrators can perform this action.")
