"""
Test doubles and payload builders.

FakeIdentityClient mirrors the IdentityClient interface with an in-memory
directory and records every call.
"""

import json
from typing import Any, Optional

from accountsync.services.identity import IdentityProviderError, IdentityUser

TEST_WEBHOOK_SECRET = "whsec_dGVzdC13ZWJob29rLXNpZ25pbmctc2VjcmV0LTEyMzQ1Ng=="


class FakeIdentityClient:
    def __init__(self):
        self.users: dict[str, IdentityUser] = {}
        self.calls: list[tuple[str, str]] = []
        self.fail_get = False
        self.fail_update = False

    def add_user(
        self,
        user_id: str,
        email: str = "",
        first_name: str = "",
        created_at: int = 0,
        private_metadata: Optional[dict[str, Any]] = None,
        public_metadata: Optional[dict[str, Any]] = None,
    ) -> IdentityUser:
        user = IdentityUser(
            id=user_id,
            first_name=first_name,
            email_addresses=[{"id": f"idn_{user_id}", "email_address": email}] if email else [],
            primary_email_address_id=f"idn_{user_id}" if email else None,
            created_at=created_at,
            private_metadata=private_metadata or {},
            public_metadata=public_metadata or {},
        )
        self.users[user_id] = user
        return user

    def _lookup(self, user_id: str) -> IdentityUser:
        if user_id not in self.users:
            raise IdentityProviderError(f"GET /users/{user_id} failed with 404", status_code=404)
        return self.users[user_id]

    async def get_user(self, user_id: str) -> IdentityUser:
        self.calls.append(("get_user", user_id))
        if self.fail_get:
            raise IdentityProviderError("identity API unavailable", status_code=503)
        return self._lookup(user_id)

    async def update_private_metadata(
        self, user_id: str, private_metadata: dict[str, Any]
    ) -> IdentityUser:
        self.calls.append(("update_private_metadata", user_id))
        if self.fail_update:
            raise IdentityProviderError("identity API unavailable", status_code=503)
        user = self._lookup(user_id)
        user.private_metadata = dict(private_metadata)
        return user

    async def list_users(self, limit: int = 500) -> list[IdentityUser]:
        self.calls.append(("list_users", str(limit)))
        return list(self.users.values())[:limit]

    async def delete_user(self, user_id: str) -> None:
        self.calls.append(("delete_user", user_id))
        self._lookup(user_id)
        del self.users[user_id]

    def called(self, method: str) -> list[str]:
        return [arg for name, arg in self.calls if name == method]


def user_payload(
    clerk_id: str = "user_1",
    email: Optional[str] = "ada@example.com",
    first_name: Optional[str] = "Ada",
    last_name: Optional[str] = "Lovelace",
    username: Optional[str] = "ada",
    image_url: Optional[str] = "https://img.example.com/ada.png",
    updated_at: Optional[int] = None,
    primary_email_address_id: Optional[str] = None,
) -> dict[str, Any]:
    """Identity profile payload of user.created / user.updated."""
    email_id = f"idn_{clerk_id}"
    data: dict[str, Any] = {
        "id": clerk_id,
        "email_addresses": [{"id": email_id, "email_address": email}] if email else [],
        "primary_email_address_id": primary_email_address_id or email_id,
        "first_name": first_name,
        "last_name": last_name,
        "username": username,
        "image_url": image_url,
    }
    if updated_at is not None:
        data["updated_at"] = updated_at
    return data


def event_body(event_type: str, data: dict[str, Any]) -> bytes:
    return json.dumps({"type": event_type, "object": "event", "data": data}).encode()
