"""Tests for the identity provider backend API client (httpx MockTransport)."""

import json

import httpx
import pytest

from accountsync.services.identity import IdentityClient, IdentityProviderError

API_URL = "https://api.clerk.test/v1"


def identity_json(user_id: str = "user_1", **extra) -> dict:
    data = {
        "id": user_id,
        "first_name": "Ada",
        "last_name": "Lovelace",
        "email_addresses": [{"id": "idn_1", "email_address": "ada@example.com"}],
        "primary_email_address_id": "idn_1",
        "created_at": 1700000000000,
        "public_metadata": {},
        "private_metadata": {"role": "admin"},
    }
    data.update(extra)
    return data


def client_with(handler) -> IdentityClient:
    return IdentityClient(
        secret_key="sk_test_123",
        api_url=API_URL,
        timeout=5,
        transport=httpx.MockTransport(handler),
    )


class TestIdentityClient:
    async def test_get_user_sends_bearer_key(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["authorization"]
            return httpx.Response(200, json=identity_json())

        user = await client_with(handler).get_user("user_1")

        assert seen == {"url": f"{API_URL}/users/user_1", "auth": "Bearer sk_test_123"}
        assert user.email == "ada@example.com"
        assert user.full_name == "Ada Lovelace"
        assert user.private_metadata == {"role": "admin"}
        assert user.joined_at.year == 2023

    async def test_update_private_metadata_patches(self):
        seen = {}

        def handler(request: httpx.Request):
            seen["method"] = request.method
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=identity_json(private_metadata=seen["body"]["private_metadata"]))

        user = await client_with(handler).update_private_metadata(
            "user_1", {"role": "user", "plan": "free"}
        )
        assert seen == {
            "method": "PATCH",
            "body": {"private_metadata": {"role": "user", "plan": "free"}},
        }
        assert user.private_metadata == {"role": "user", "plan": "free"}

    async def test_list_users_passes_limit(self):
        def handler(request: httpx.Request):
            assert request.url.params["limit"] == "500"
            return httpx.Response(200, json=[identity_json("user_1"), identity_json("user_2")])

        users = await client_with(handler).list_users()
        assert [u.id for u in users] == ["user_1", "user_2"]

    async def test_delete_user(self):
        def handler(request: httpx.Request):
            assert request.method == "DELETE"
            return httpx.Response(200, json={"id": "user_1", "deleted": True})

        await client_with(handler).delete_user("user_1")

    async def test_http_error_wrapped_with_status(self):
        def handler(request: httpx.Request):
            return httpx.Response(404, json={"errors": [{"code": "resource_not_found"}]})

        with pytest.raises(IdentityProviderError) as info:
            await client_with(handler).get_user("user_404")
        assert info.value.status_code == 404

    async def test_transport_error_wrapped(self):
        def handler(request: httpx.Request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(IdentityProviderError) as info:
            await client_with(handler).get_user("user_1")
        assert info.value.status_code is None
