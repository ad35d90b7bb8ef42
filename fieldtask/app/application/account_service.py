import logging
from datetime import UTC, datetime
from typing import Any

import inject

from fieldtask.app.domain.exceptions import (
    IdentityProviderError,
    UnauthorizedError,
    UserNotFoundError,
)
from fieldtask.app.domain.models import (
    GENERAL_TOPIC,
    Activity,
    ActivityAction,
    DeletionOutcome,
    DeletionResult,
)
from fieldtask.app.domain.repositories import ActivityRepository, IdentityProvider

logger = logging.getLogger(__name__)


class AccountService:
    """Self-service account deletion at the identity provider.

    Deletion only removes the identity. Tasks, activities and payments that
    reference the user id are left untouched. Audit writes are best effort: a
    failure to append one is logged and never changes the outcome.
    """

    def __init__(
        self,
        identity: IdentityProvider | None = None,
        activities: ActivityRepository | None = None,
    ) -> None:
        self._identity = identity or inject.instance(IdentityProvider)
        self._activities = activities or inject.instance(ActivityRepository)

    async def delete_account(self, user_id: str, requesting_user_id: str) -> DeletionResult:
        if user_id != requesting_user_id:
            raise UnauthorizedError(requesting_user_id, "You can only delete your own account.")

        try:
            user = await self._identity.get_user(user_id)
        except UserNotFoundError:
            logger.info("Account already deleted", extra={"user_id": user_id})
            await self._record(user_id, ActivityAction.ACCOUNT_DELETION_ALREADY_DELETED)
            return DeletionResult(user_id=user_id, outcome=DeletionOutcome.ALREADY_DELETED)

        await self._record(
            user_id,
            ActivityAction.ACCOUNT_DELETION_INITIATED,
            {
                "email": user.email,
                "displayName": user.display_name,
                "roles": user.roles,
                "isDemo": user.is_demo,
            },
        )

        try:
            await self._identity.delete_user(user_id)
        except UserNotFoundError:
            # Deleted concurrently between lookup and delete.
            logger.info("Account deleted concurrently", extra={"user_id": user_id})
            await self._record(
                user_id,
                ActivityAction.ACCOUNT_DELETION_ALREADY_DELETED,
                {"stage": "delete"},
            )
            return DeletionResult(user_id=user_id, outcome=DeletionOutcome.ALREADY_DELETED)
        except IdentityProviderError as exc:
            logger.error(
                "Account deletion failed",
                extra={"user_id": user_id, "status_code": exc.status_code},
            )
            await self._record(
                user_id,
                ActivityAction.ACCOUNT_DELETION_FAILED,
                {"error": str(exc), "statusCode": exc.status_code},
            )
            raise

        await self._record(user_id, ActivityAction.ACCOUNT_DELETION_COMPLETED)
        logger.info("Account deleted", extra={"user_id": user_id})
        return DeletionResult(user_id=user_id, outcome=DeletionOutcome.DELETED)

    async def _record(
        self,
        user_id: str,
        action: ActivityAction,
        details: dict[str, Any] | None = None,
    ) -> None:
        activity = Activity(
            user_id=user_id,
            topic=GENERAL_TOPIC,
            action=action,
            payload={"userId": user_id, **(details or {})},
            created_at=datetime.now(UTC),
        )
        try:
            await self._activities.append(activity)
        except Exception:
            logger.warning(
                "Failed to record account deletion activity",
                extra={"user_id": user_id, "action": action.value},
                exc_info=True,
            )
