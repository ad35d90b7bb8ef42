import httpx
import pytest

from fieldtask.app.domain.exceptions import IdentityProviderError, UserNotFoundError
from fieldtask.app.infrastructure.identity.client import HttpIdentityProvider

USER_PAYLOAD = {
    "id": "user_123",
    "first_name": "Lan",
    "last_name": "Pham",
    "username": "lanpham",
    "primary_email_address_id": "idn_2",
    "email_addresses": [
        {"id": "idn_1", "email_address": "old@example.com"},
        {"id": "idn_2", "email_address": "lan@example.com"},
    ],
    "public_metadata": {"roles": ["nv_internal_worker"], "isDemo": True},
}


def _provider(handler) -> HttpIdentityProvider:
    return HttpIdentityProvider(
        "https://identity.test/v1",
        "sk_test",
        timeout_seconds=1.0,
        transport=httpx.MockTransport(handler),
    )


@pytest.mark.asyncio
async def test_get_user_maps_provider_payload() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=USER_PAYLOAD)

    provider = _provider(handler)
    user = await provider.get_user("user_123")
    await provider.aclose()

    assert user.id == "user_123"
    assert user.email == "lan@example.com"
    assert user.display_name == "Lan Pham"
    assert user.roles == ["nv_internal_worker"]
    assert user.is_demo is True
    assert seen[0].method == "GET"
    assert seen[0].url.path == "/v1/users/user_123"
    assert seen[0].headers["Authorization"] == "Bearer sk_test"


@pytest.mark.asyncio
async def test_user_ids_are_path_escaped() -> None:
    paths: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.raw_path.decode())
        return httpx.Response(200, json={"id": "a/b"})

    provider = _provider(handler)
    await provider.get_user("a/b")
    await provider.aclose()

    assert paths == ["/v1/users/a%2Fb"]


@pytest.mark.asyncio
async def test_missing_user_raises_not_found() -> None:
    provider = _provider(lambda request: httpx.Response(404, json={"errors": []}))

    with pytest.raises(UserNotFoundError):
        await provider.get_user("user_gone")
    with pytest.raises(UserNotFoundError):
        await provider.delete_user("user_gone")
    await provider.aclose()


@pytest.mark.asyncio
async def test_delete_user_sends_delete() -> None:
    methods: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        return httpx.Response(200, json={"id": "user_123", "deleted": True})

    provider = _provider(handler)
    await provider.delete_user("user_123")
    await provider.aclose()

    assert methods == ["DELETE"]


@pytest.mark.asyncio
async def test_server_error_becomes_provider_error() -> None:
    body = {"errors": [{"message": "boom", "long_message": "Internal failure"}]}
    provider = _provider(lambda request: httpx.Response(503, json=body))

    with pytest.raises(IdentityProviderError) as exc_info:
        await provider.delete_user("user_123")
    await provider.aclose()

    assert exc_info.value.status_code == 503
    assert "Internal failure" in str(exc_info.value)


@pytest.mark.asyncio
async def test_rate_limit_becomes_provider_error() -> None:
    provider = _provider(lambda request: httpx.Response(429))

    with pytest.raises(IdentityProviderError) as exc_info:
        await provider.get_user("user_123")
    await provider.aclose()

    assert exc_info.value.status_code == 429
    assert "rate limit" in str(exc_info.value)


@pytest.mark.asyncio
async def test_timeout_becomes_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    provider = _provider(handler)

    with pytest.raises(IdentityProviderError) as exc_info:
        await provider.delete_user("user_123")
    await provider.aclose()

    assert exc_info.value.status_code is None
    assert "timed out" in str(exc_info.value)


@pytest.mark.asyncio
async def test_connection_error_becomes_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    provider = _provider(handler)

    with pytest.raises(IdentityProviderError):
        await provider.get_user("user_123")
    await provider.aclose()


@pytest.mark.asyncio
async def test_unreadable_success_body_is_a_provider_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>proxy</html>")

    provider = _provider(handler)
    with pytest.raises(IdentityProviderError) as exc_info:
        await provider.get_user("user_123")
    await provider.aclose()

    assert exc_info.value.status_code == 200


@pytest.mark.asyncio
async def test_user_record_without_id_is_a_provider_error() -> None:
    payload = {key: value for key, value in USER_PAYLOAD.items() if key != "id"}

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=payload)

    provider = _provider(handler)
    with pytest.raises(IdentityProviderError):
        await provider.get_user("user_123")
    await provider.aclose()
