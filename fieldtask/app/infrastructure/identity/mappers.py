from __future__ import annotations

from typing import Any

from fieldtask.app.domain.models.user import UserRecord


class IdentityMapper:
    @staticmethod
    def to_user_record(payload: dict[str, Any]) -> UserRecord:
        """Map a provider user object (snake_case REST shape) to a ``UserRecord``."""
        metadata = payload.get("public_metadata") or {}
        roles = metadata.get("roles") or []
        if isinstance(roles, str):
            roles = [roles]
        return UserRecord(
            id=payload["id"],
            email=IdentityMapper._primary_email(payload),
            display_name=IdentityMapper._display_name(payload),
            roles=[str(role) for role in roles],
            is_demo=metadata.get("isDemo") is True,
        )

    @staticmethod
    def _primary_email(payload: dict[str, Any]) -> str | None:
        addresses = payload.get("email_addresses") or []
        primary_id = payload.get("primary_email_address_id")
        for address in addresses:
            if address.get("id") == primary_id:
                return address.get("email_address")
        if addresses:
            return addresses[0].get("email_address")
        return None

    @staticmethod
    def _display_name(payload: dict[str, Any]) -> str | None:
        parts = [payload.get("first_name"), payload.get("last_name")]
        full_name = " ".join(part for part in parts if part)
        return full_name or payload.get("username")
