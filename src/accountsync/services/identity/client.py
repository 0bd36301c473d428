"""
Identity provider (Clerk) backend API client.

Used for:
- Private metadata sync after a user is created from a webhook
- The admin user directory
- Self-service account deletion
- Admin role checks

Each call opens a short-lived `httpx.AsyncClient` bounded by
`settings.clerk.timeout`. Transport and HTTP errors are raised as
`IdentityProviderError`; this client never retries.
"""

from datetime import datetime
from typing import Any, Optional

import httpx
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from ...settings import settings
from ...utils.date_utils import from_epoch_ms


class IdentityProviderError(Exception):
    """A backend API call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class DirectoryEmail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email_address: str


class IdentityUser(BaseModel):
    """A user as returned by the backend API (subset)."""

    model_config = ConfigDict(extra="ignore")

    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    username: Optional[str] = None
    image_url: Optional[str] = None
    email_addresses: list[DirectoryEmail] = Field(default_factory=list)
    primary_email_address_id: Optional[str] = None
    created_at: Optional[int] = Field(default=None, description="Epoch milliseconds")
    public_metadata: dict[str, Any] = Field(default_factory=dict)
    private_metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def email(self) -> str:
        for address in self.email_addresses:
            if address.id == self.primary_email_address_id:
                return address.email_address
        if self.email_addresses:
            return self.email_addresses[0].email_address
        return ""

    @property
    def full_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p).strip()

    @property
    def joined_at(self) -> Optional[datetime]:
        return from_epoch_ms(self.created_at)


class IdentityClient:
    """
    Thin async client for the identity provider's backend API.

    Args:
        secret_key: Backend API secret key (sk_...)
        api_url: Base URL (defaults to settings.clerk.api_url)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests use httpx.MockTransport)
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key or settings.clerk.secret_key
        self.api_url = (api_url or settings.clerk.api_url).rstrip("/")
        self.timeout = timeout or settings.clerk.timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.secret_key}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self.transport,
        )

    async def _request(
        self, method: str, path: str, **kwargs: Any
    ) -> Any:
        try:
            async with self._client() as client:
                response = await client.request(method, path, **kwargs)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise IdentityProviderError(
                f"{method} {path} failed with {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise IdentityProviderError(f"{method} {path} failed: {e}") from e

        if not response.content:
            return None
        return response.json()

    async def get_user(self, user_id: str) -> IdentityUser:
        data = await self._request("GET", f"/users/{user_id}")
        return IdentityUser.model_validate(data)

    async def update_private_metadata(
        self, user_id: str, private_metadata: dict[str, Any]
    ) -> IdentityUser:
        """Replace the user's private metadata."""
        data = await self._request(
            "PATCH",
            f"/users/{user_id}",
            json={"private_metadata": private_metadata},
        )
        logger.debug(f"Updated private metadata for identity {user_id}")
        return IdentityUser.model_validate(data)

    async def list_users(self, limit: int = 500) -> list[IdentityUser]:
        """
        List directory users.

        The backend API caps a single page at 500 users; no further pages
        are requested.
        """
        data = await self._request("GET", "/users", params={"limit": limit})
        if isinstance(data, dict):
            data = data.get("data", [])
        return [IdentityUser.model_validate(item) for item in data or []]

    async def delete_user(self, user_id: str) -> None:
        await self._request("DELETE", f"/users/{user_id}")
        logger.info(f"Deleted identity {user_id} at identity provider")
