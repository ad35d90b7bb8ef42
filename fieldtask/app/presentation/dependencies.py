import logging

import inject
from fastapi import Depends, Header

from fieldtask.app.domain.exceptions import (
    AuthenticationError,
    IdentityProviderError,
    UserNotFoundError,
)
from fieldtask.app.domain.models import Actor
from fieldtask.app.domain.repositories import IdentityProvider
from fieldtask.setup.api_config import get_api_settings

logger = logging.getLogger(__name__)


async def get_current_user_id(
    x_user_id: str | None = Header(default=None, description="Authenticated user id."),
) -> str:
    """Caller id set by the authenticating gateway in the ``X-User-Id`` header."""
    if x_user_id is None or not x_user_id.strip():
        raise AuthenticationError()
    return x_user_id.strip()


async def get_current_actor(user_id: str = Depends(get_current_user_id)) -> Actor:
    """Resolve the caller at the identity provider to get role and demo flag.

    If the provider is unavailable the caller continues as an unverified worker, so
    field check-ins keep working; admin-only actions then fail as provider errors.
    """
    settings = get_api_settings()
    identity: IdentityProvider = inject.instance(IdentityProvider)
    try:
        user = await identity.get_user(user_id)
    except UserNotFoundError as exc:
        raise AuthenticationError("Unknown user.") from exc
    except IdentityProviderError as exc:
        logger.warning(
            "Identity provider unavailable, continuing without role",
            extra={"user_id": user_id, "error": str(exc), "status_code": exc.status_code},
        )
        return Actor(
            user_id=user_id,
            is_demo=user_id in settings.DEMO_USER_IDS,
            role_verified=False,
        )

    return Actor(
        user_id=user_id,
        is_admin=settings.ADMIN_ROLE in user.roles,
        is_demo=user.is_demo or user_id in settings.DEMO_USER_IDS,
    )
