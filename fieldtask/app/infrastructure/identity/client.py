"""Thin REST client for the identity provider's user API (no vendor SDK).

All calls go through ``httpx.AsyncClient`` with a bounded timeout. A 404 maps to
``UserNotFoundError``; every other failure, including timeouts, transport errors
and unreadable response bodies, maps to ``IdentityProviderError``.
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from fieldtask.app.domain.exceptions import IdentityProviderError, UserNotFoundError
from fieldtask.app.domain.models.user import UserRecord
from fieldtask.app.domain.repositories import IdentityProvider
from fieldtask.app.infrastructure.identity.mappers import IdentityMapper

logger = logging.getLogger(__name__)


class HttpIdentityProvider(IdentityProvider):
    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=httpx.Timeout(timeout_seconds),
            transport=transport,
        )

    async def get_user(self, user_id: str) -> UserRecord:
        response = await self._request("GET", user_id)
        try:
            return IdentityMapper.to_user_record(response.json())
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            logger.warning(
                "Identity provider returned an unreadable user",
                extra={"user_id": user_id, "status_code": response.status_code},
            )
            raise IdentityProviderError(
                "Identity provider returned an unreadable user record.",
                status_code=response.status_code,
            ) from exc

    async def delete_user(self, user_id: str) -> None:
        """Delete the user; the provider revokes its sessions as part of the delete."""
        await self._request("DELETE", user_id)

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _request(self, method: str, user_id: str) -> httpx.Response:
        path = f"/users/{quote(user_id, safe='')}"
        try:
            response = await self._http.request(method, path)
        except httpx.TimeoutException as exc:
            logger.warning(
                "Identity provider timed out",
                extra={"method": method, "user_id": user_id},
            )
            raise IdentityProviderError("Identity provider timed out.") from exc
        except httpx.HTTPError as exc:
            logger.warning(
                "Identity provider unreachable",
                extra={"method": method, "user_id": user_id, "error": str(exc)},
            )
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc

        if response.status_code == 404:
            raise UserNotFoundError(user_id)
        if response.status_code >= 400:
            logger.warning(
                "Identity provider rejected request",
                extra={
                    "method": method,
                    "user_id": user_id,
                    "status_code": response.status_code,
                },
            )
            raise IdentityProviderError(
                self._error_message(response), status_code=response.status_code
            )
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        if response.status_code == 429:
            return "Identity provider rate limit exceeded."
        detail: Any = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            errors = body.get("errors")
            if isinstance(errors, list) and errors and isinstance(errors[0], dict):
                detail = errors[0].get("long_message") or errors[0].get("message")
        if detail:
            return f"Identity provider error ({response.status_code}): {detail}"
        return f"Identity provider error ({response.status_code})."
