"""
Integration tests for the self-service user endpoints.

PUT/DELETE /api/user with an overridden session and a valid CSRF token.
"""

import json

import pytest

from accountsync.models.entities import User
from accountsync.services.users import find_by_clerk_id, users_repository

URL = "/api/user"


@pytest.fixture
async def ada(mongo):
    return await users_repository(mongo).create(User(clerk_id="user_1", email="ada@example.com"))


class TestUpdateCurrentUser:
    async def test_requires_session(self, client, csrf_headers):
        response = await client.put(URL, json={"name": "Ada"}, headers=csrf_headers)
        assert response.status_code == 401

    async def test_requires_csrf_token(self, client, login, ada):
        login()
        response = await client.put(URL, json={"name": "Ada"})
        assert response.status_code == 403
        assert response.json()["error"] == "CSRF token validation failed"

    async def test_partial_update(self, client, login, ada, csrf_headers, mongo):
        login()
        response = await client.put(
            URL, json={"name": "Ada King", "plan": "premium"}, headers=csrf_headers
        )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "User updated successfully"
        assert body["user"]["name"] == "Ada King"
        assert body["user"]["plan"] == "premium"
        stored = await find_by_clerk_id(users_repository(mongo), "user_1")
        assert stored.plan == "premium"
        assert stored.email == "ada@example.com"

    async def test_validation_errors_by_field(self, client, login, ada, csrf_headers):
        login()
        response = await client.put(
            URL, json={"name": "A", "role": "owner"}, headers=csrf_headers
        )
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "validation error"
        assert set(body["errors"]) == {"name", "role"}

    async def test_unknown_field_rejected(self, client, login, ada, csrf_headers):
        login()
        response = await client.put(URL, json={"clerk_id": "user_2"}, headers=csrf_headers)
        assert response.status_code == 400
        assert "clerk_id" in response.json()["errors"]

    async def test_invalid_json(self, client, login, ada, csrf_headers):
        login()
        response = await client.put(
            URL,
            content=b"{not json",
            headers={**csrf_headers, "content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["errors"] == {"body": ["Invalid JSON"]}

    async def test_unknown_user(self, client, login, csrf_headers):
        login("user_x")
        response = await client.put(URL, json={"name": "Nobody"}, headers=csrf_headers)
        assert response.status_code == 404

    async def test_email_taken(self, client, login, ada, csrf_headers, mongo):
        await users_repository(mongo).create(User(clerk_id="user_2", email="grace@example.com"))
        login()
        response = await client.put(
            URL, content=json.dumps({"email": "Grace@Example.com"}), headers=csrf_headers
        )
        assert response.status_code == 409


class TestDeleteCurrentUser:
    async def test_deletes_identity_and_document(self, client, login, ada, identity, csrf_headers, mongo):
        identity.add_user("user_1", "ada@example.com")
        login()

        response = await client.delete(URL, headers=csrf_headers)

        assert response.status_code == 204
        assert identity.called("delete_user") == ["user_1"]
        assert await find_by_clerk_id(users_repository(mongo), "user_1") is None

    async def test_provider_failure(self, client, login, ada, identity, csrf_headers, monkeypatch):
        from accountsync.services.identity import IdentityProviderError

        async def unavailable(user_id):
            raise IdentityProviderError("identity API unavailable", status_code=503)

        monkeypatch.setattr(identity, "delete_user", unavailable)
        login()

        response = await client.delete(URL, headers=csrf_headers)

        assert response.status_code == 500
